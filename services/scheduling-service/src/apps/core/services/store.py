# services/scheduling-service/src/apps/core/services/store.py
"""
Store Boundary

Thin persistence layer between the scheduling engine and the Django ORM.
Every query that feeds a scheduling decision goes through here so the
active predicate and tombstone handling live in one place.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Type

from django.db import models, transaction

from apps.core.models import (
    Appointment,
    AvailabilityException,
    Resource,
    ResourceBooking,
    Staff,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingKind:
    """Pairs a booking model with the directory model of its subject."""

    name: str
    model: Type[models.Model]
    subject_model: Type[models.Model]
    subject_label: str

    @property
    def subject_field(self) -> str:
        return self.model.subject_field


APPOINTMENT = BookingKind('appointment', Appointment, Staff, 'Staff member')
RESOURCE_BOOKING = BookingKind('resource_booking', ResourceBooking, Resource, 'Resource')

BOOKING_KINDS = {kind.name: kind for kind in (APPOINTMENT, RESOURCE_BOOKING)}


class BookingStore:
    """Persistence for one booking kind."""

    def __init__(self, kind: BookingKind):
        self.kind = kind
        self.model = kind.model

    def atomic(self):
        return transaction.atomic()

    def lock_subject(self, subject_id):
        """
        Take a row lock on the subject's directory entry for the rest of the
        transaction. Concurrent commits for the same subject serialize here.
        """
        return self.kind.subject_model.objects.select_for_update().filter(pk=subject_id).first()

    def insert(self, **fields):
        return self.model.objects.create(**fields)

    def get(self, booking_id, include_deleted: bool = False):
        queryset = self.model.objects.all() if include_deleted else self.model.objects.alive()
        return queryset.filter(pk=booking_id).first()

    def query_overlapping(
        self,
        subject_id,
        start: datetime,
        end: datetime,
        active_only: bool = True,
        exclude_id=None,
    ) -> List[models.Model]:
        """Bookings of ``subject_id`` overlapping ``[start, end)``, ordered by start."""
        queryset = self.model.objects.active() if active_only else self.model.objects.alive()
        queryset = queryset.filter(**{self.kind.subject_field: subject_id}).overlapping(start, end)
        if exclude_id is not None:
            queryset = queryset.exclude(pk=exclude_id)
        return list(queryset.order_by('start_time', 'id'))

    def update_fields(self, booking, actor_id=None, **fields):
        for name, value in fields.items():
            setattr(booking, name, value)
        booking.touch(actor_id)
        booking.save(update_fields=[*fields, 'updated_at', 'updated_by'])
        return booking

    def soft_delete(self, booking, actor_id=None):
        booking.soft_delete(deleted_by=actor_id)
        return booking

    def query(self, include_deleted: bool = False, active_only: bool = False, **filters):
        if active_only:
            queryset = self.model.objects.active()
        elif include_deleted:
            queryset = self.model.objects.all()
        else:
            queryset = self.model.objects.alive()
        return queryset.filter(**filters)


class ExceptionStore:
    """Persistence for availability exceptions."""

    model = AvailabilityException

    def insert(self, **fields) -> AvailabilityException:
        return self.model.objects.create(**fields)

    def get(self, exception_id, include_deleted: bool = False) -> Optional[AvailabilityException]:
        queryset = self.model.objects.all() if include_deleted else self.model.objects.active()
        return queryset.filter(pk=exception_id).first()

    def query_for_staff(self, staff_id, start: datetime, end: datetime) -> Iterable[AvailabilityException]:
        """
        Active exceptions for ``staff_id`` that may affect ``[start, end)``.

        One-off exceptions are narrowed by date here; full-day ones are
        widened by a day on each side so the caller can expand them to
        whole days. Recurring exceptions are always returned and filtered
        per day by the recurrence rule.
        """
        one_day = timedelta(days=1)
        queryset = self.model.objects.active().for_staff(staff_id)
        return list(
            queryset.filter(
                models.Q(is_recurring=True)
                | models.Q(
                    is_recurring=False,
                    start_time__lt=end + one_day,
                    end_time__gt=start - one_day,
                )
                | models.Q(
                    is_recurring=False,
                    is_full_day=True,
                    start_time__lt=end + one_day,
                    start_time__gte=start - one_day,
                )
            ).order_by('start_time', 'id')
        )

    def update_fields(self, exception, actor_id=None, **fields):
        for name, value in fields.items():
            setattr(exception, name, value)
        exception.touch(actor_id)
        exception.save(update_fields=[*fields, 'updated_at', 'updated_by'])
        return exception

    def soft_delete(self, exception, actor_id=None):
        exception.soft_delete(deleted_by=actor_id)
        return exception
