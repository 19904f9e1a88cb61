# services/scheduling-service/src/apps/core/services/query_service.py
"""
Range Query Service

Read-only, date-bounded, paginated booking listings.
"""

import math
import uuid
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Union

from django.conf import settings

from .exceptions import ValidationError
from .store import APPOINTMENT, BOOKING_KINDS, ExceptionStore
from .timeutils import date_range_bounds, ensure_aware

logger = logging.getLogger(__name__)

DateOrDatetime = Union[date, datetime]


@dataclass
class Page:
    """One page of results plus the totals needed to navigate."""

    items: List[Any] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size)) if self.page_size else 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)


class QueryService:
    """
    Service for range queries over bookings and exceptions.

    A booking belongs to a range when its start lies in ``[start, end)``.
    Results are ordered by start time. Dates (not datetimes) are read as
    whole days, so ``date(2025, 1, 1)`` to ``date(2025, 1, 31)`` covers
    all of January.
    """

    def __init__(self, max_page_size: int = None):
        self.max_page_size = max_page_size or getattr(settings, 'MAX_PAGE_SIZE', 100)

    def list_by_staff_and_date_range(self, staff_id: uuid.UUID, start, end, **kwargs) -> Page:
        return self._list(APPOINTMENT.name, {'staff_id': staff_id}, start, end, **kwargs)

    def list_by_business_and_date_range(self, business_id: uuid.UUID, start, end, kind: str = APPOINTMENT.name, **kwargs) -> Page:
        return self._list(kind, {'business_id': business_id}, start, end, **kwargs)

    def list_by_client_and_date_range(self, client_id: uuid.UUID, start, end, **kwargs) -> Page:
        return self._list(APPOINTMENT.name, {'client_id': client_id}, start, end, **kwargs)

    def list_by_resource_and_date_range(self, resource_id: uuid.UUID, start, end, **kwargs) -> Page:
        return self._list('resource_booking', {'resource_id': resource_id}, start, end, **kwargs)

    def list_exceptions_by_business(
        self,
        business_id: uuid.UUID,
        page: int = 1,
        page_size: int = 20,
        staff_id: uuid.UUID = None,
    ) -> Page:
        """Active availability exceptions of a business, ordered by start."""
        queryset = ExceptionStore.model.objects.active().filter(business_id=business_id)
        if staff_id:
            queryset = queryset.filter(staff_id=staff_id)
        return self._paginate(queryset.order_by('start_time', 'id'), page, page_size)

    def _list(
        self,
        kind: str,
        filters: dict,
        start: DateOrDatetime,
        end: DateOrDatetime,
        page: int = 1,
        page_size: int = 20,
        include_deleted: bool = False,
        active_only: bool = False,
        status: str = None,
    ) -> Page:
        if kind not in BOOKING_KINDS:
            raise ValidationError(f"Unknown booking kind: {kind!r}")

        range_start, range_end = self._bounds(start, end)

        queryset = BOOKING_KINDS[kind].model.objects.all()
        if active_only:
            queryset = queryset.active()
        elif not include_deleted:
            queryset = queryset.alive()
        if status:
            queryset = queryset.filter(status=status)

        queryset = (
            queryset.filter(**filters)
            .starting_between(range_start, range_end)
            .order_by('start_time', 'id')
        )

        return self._paginate(queryset, page, page_size)

    def _bounds(self, start: DateOrDatetime, end: DateOrDatetime) -> tuple:
        if start is None or end is None:
            raise ValidationError("Both start and end of the range are required")

        if not isinstance(start, datetime) and not isinstance(end, datetime):
            range_start, range_end = date_range_bounds(start, end)
        else:
            if not isinstance(start, datetime):
                start = date_range_bounds(start, start)[0]
            if not isinstance(end, datetime):
                end = date_range_bounds(end, end)[1]
            range_start, range_end = ensure_aware(start, 'start'), ensure_aware(end, 'end')

        if range_start >= range_end:
            raise ValidationError("Range start must be before range end")
        return range_start, range_end

    def _paginate(self, queryset, page: int, page_size: int) -> Page:
        if page < 1:
            raise ValidationError("Page must be 1 or greater")
        if page_size < 1:
            raise ValidationError("Page size must be 1 or greater")
        page_size = min(page_size, self.max_page_size)

        total = queryset.count()
        offset = (page - 1) * page_size
        items = list(queryset[offset:offset + page_size])

        return Page(items=items, total=total, page=page, page_size=page_size)
