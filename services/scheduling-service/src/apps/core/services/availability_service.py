# services/scheduling-service/src/apps/core/services/availability_service.py
"""
Availability Service

Availability exception management and the resolver that turns working
hours and exceptions into unavailable intervals.
"""

import uuid
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.db import transaction

from apps.core.models import AvailabilityException, BookingRule, Staff
from .conflicts import Interval, find_conflicts, overlaps, sort_intervals
from .exceptions import NotFoundError, ValidationError
from .recurrence import occurs, parse_rule
from .store import APPOINTMENT, BookingKind, BookingStore, ExceptionStore
from .timeutils import days_touching, ensure_aware

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service for managing availability.

    Handles:
    - Availability exception CRUD
    - Unavailable interval resolution
    - Availability checks
    """

    def __init__(self, exception_store: ExceptionStore = None):
        self.exceptions = exception_store or ExceptionStore()

    # ==========================================================================
    # Availability Exceptions
    # ==========================================================================

    @transaction.atomic
    def create_availability_exception(
        self,
        business_id: uuid.UUID,
        staff_id: uuid.UUID,
        exception_type: str,
        start_time: datetime,
        end_time: datetime = None,
        is_full_day: bool = False,
        is_recurring: bool = False,
        recurrence_rule: Any = None,
        notes: str = '',
        created_by: uuid.UUID = None,
    ) -> AvailabilityException:
        """Create an availability exception after validating it."""
        self._require_staff(business_id, staff_id)

        fields = self._validated_fields(
            exception_type=exception_type,
            start_time=start_time,
            end_time=end_time,
            is_full_day=is_full_day,
            is_recurring=is_recurring,
            recurrence_rule=recurrence_rule,
        )

        exception = self.exceptions.insert(
            business_id=business_id,
            staff_id=staff_id,
            notes=notes or '',
            created_by=created_by,
            updated_by=created_by,
            **fields
        )

        logger.info(
            f"Created {exception.exception_type} exception {exception.id} "
            f"for staff {staff_id} starting {exception.start_time:%Y-%m-%d %H:%M}"
        )

        return exception

    def get_exception(self, exception_id: uuid.UUID, include_deleted: bool = False) -> AvailabilityException:
        """Get an exception by ID."""
        exception = self.exceptions.get(exception_id, include_deleted=include_deleted)
        if exception is None:
            raise NotFoundError(f"Availability exception {exception_id} not found")
        return exception

    @transaction.atomic
    def update_exception(
        self,
        exception_id: uuid.UUID,
        updated_by: uuid.UUID = None,
        **kwargs
    ) -> AvailabilityException:
        """Update an exception, re-validating the merged result."""
        exception = self.get_exception(exception_id)

        allowed_fields = {
            'exception_type', 'start_time', 'end_time', 'is_full_day',
            'is_recurring', 'recurrence_rule', 'notes',
        }
        unknown = set(kwargs) - allowed_fields
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        merged = {
            'exception_type': exception.exception_type,
            'start_time': exception.start_time,
            'end_time': exception.end_time,
            'is_full_day': exception.is_full_day,
            'is_recurring': exception.is_recurring,
            'recurrence_rule': exception.recurrence_rule,
        }
        merged.update({k: v for k, v in kwargs.items() if k != 'notes'})

        fields = self._validated_fields(**merged)
        if 'notes' in kwargs:
            fields['notes'] = kwargs['notes'] or ''

        exception = self.exceptions.update_fields(exception, actor_id=updated_by, **fields)
        logger.info(f"Updated availability exception {exception.id}")
        return exception

    def delete_exception(self, exception_id: uuid.UUID, deleted_by: uuid.UUID = None) -> AvailabilityException:
        """Tombstone an exception."""
        exception = self.get_exception(exception_id)
        self.exceptions.soft_delete(exception, actor_id=deleted_by)
        logger.info(f"Deleted availability exception {exception_id}")
        return exception

    def list_exceptions_for_staff(
        self,
        staff_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> List[AvailabilityException]:
        """Active exceptions affecting ``[start, end)``, recurring ones included."""
        start = ensure_aware(start, 'start')
        end = ensure_aware(end, 'end')
        return [
            exception for exception in self.exceptions.query_for_staff(staff_id, start, end)
            if exception.is_recurring or overlaps(*exception.effective_window(), start, end)
        ]

    def _validated_fields(
        self,
        exception_type: str,
        start_time: datetime,
        end_time: Optional[datetime],
        is_full_day: bool,
        is_recurring: bool,
        recurrence_rule: Any,
    ) -> Dict[str, Any]:
        if exception_type not in AvailabilityException.ExceptionType.values:
            raise ValidationError(f"Invalid exception type: {exception_type!r}")

        start_time = ensure_aware(start_time, 'start_time')
        if is_full_day and end_time is None:
            end_time = start_time
        end_time = ensure_aware(end_time, 'end_time')

        if not is_full_day and start_time >= end_time:
            raise ValidationError("Exception start time must be before end time")

        rule = None
        if is_recurring:
            rule = parse_rule(recurrence_rule).to_dict()

        return {
            'exception_type': exception_type,
            'start_time': start_time,
            'end_time': end_time,
            'is_full_day': bool(is_full_day),
            'is_recurring': bool(is_recurring),
            'recurrence_rule': rule,
        }

    def _require_staff(self, business_id: uuid.UUID, staff_id: uuid.UUID) -> Staff:
        staff = Staff.objects.alive().filter(pk=staff_id).first()
        if staff is None:
            raise NotFoundError(f"Staff member {staff_id} not found")
        if str(staff.business_id) != str(business_id):
            raise ValidationError(f"Staff member {staff_id} does not belong to business {business_id}")
        return staff

    # ==========================================================================
    # Resolution
    # ==========================================================================

    def unavailable_intervals(
        self,
        subject_id: uuid.UUID,
        range_start: datetime,
        range_end: datetime,
        kind: BookingKind = APPOINTMENT,
    ) -> List[Interval]:
        """
        Unavailable intervals of a staff member or resource intersecting
        ``[range_start, range_end)``, ordered by start. Intervals may overlap.

        Staff are blocked by their availability exceptions and by time
        outside their weekly working hours. Resources only by working hours.
        A subject with no working hours configured is always working.
        """
        range_start = ensure_aware(range_start, 'range_start')
        range_end = ensure_aware(range_end, 'range_end')
        if range_start >= range_end:
            return []

        intervals: List[Interval] = []
        days = list(days_touching(range_start, range_end, lead_days=1))

        if kind is APPOINTMENT:
            for exception in self.exceptions.query_for_staff(subject_id, range_start, range_end):
                intervals.extend(self._expand_exception(exception, days, range_start, range_end))

        subject = kind.subject_model.objects.filter(pk=subject_id).first()
        hours = subject.weekly_hours if subject is not None else None
        if hours is not None:
            for day in days:
                intervals.extend(
                    gap for gap in hours.off_duty_intervals(day)
                    if overlaps(gap.start, gap.end, range_start, range_end)
                )

        return sort_intervals(intervals)

    def _expand_exception(
        self,
        exception: AvailabilityException,
        days: list,
        range_start: datetime,
        range_end: datetime,
    ) -> List[Interval]:
        if not exception.is_recurring:
            windows = [exception.effective_window()]
        else:
            rule = exception.rule
            anchor = exception.anchor_date
            windows = [
                exception.window_on(day) for day in days
                if occurs(rule, day, anchor)
            ]

        return [
            Interval(start, end, exception.id, exception.exception_type)
            for start, end in windows
            if overlaps(start, end, range_start, range_end)
        ]

    # ==========================================================================
    # Availability Checks
    # ==========================================================================

    def check_availability(
        self,
        subject_id: uuid.UUID,
        start: datetime,
        end: datetime,
        kind: BookingKind = APPOINTMENT,
        exclude_booking_id: uuid.UUID = None,
    ) -> bool:
        """True iff ``[start, end)`` could be scheduled: no unavailable interval, no active booking within the buffer, no rule limit broken."""
        return self.explain_availability(
            subject_id, start, end, kind=kind, exclude_booking_id=exclude_booking_id
        )['available']

    def explain_availability(
        self,
        subject_id: uuid.UUID,
        start: datetime,
        end: datetime,
        kind: BookingKind = APPOINTMENT,
        exclude_booking_id: uuid.UUID = None,
    ) -> Dict[str, Any]:
        """
        Availability verdict with the intervals, bookings and booking rule
        limits that block it.

        Appointments are held to the business's booking rule the same way
        the scheduler holds them: bookings within the buffer around
        ``[start, end)`` conflict, and minimum notice and maximum advance
        violations are reported under ``rule_violations``.
        """
        start = ensure_aware(start, 'start')
        end = ensure_aware(end, 'end')
        if start >= end:
            raise ValidationError("Start time must be before end time")

        candidate = Interval(start, end)
        blocked = find_conflicts(candidate, self.unavailable_intervals(subject_id, start, end, kind=kind))

        rule = self.booking_rule_for(subject_id, kind=kind)
        window = candidate.padded(rule.buffer if rule else timedelta(0))
        bookings = BookingStore(kind).query_overlapping(
            subject_id, window.start, window.end, exclude_id=exclude_booking_id
        )
        violations = rule.violations(start) if rule else []

        return {
            'available': not blocked and not bookings and not violations,
            'unavailable_intervals': blocked,
            'conflicts': bookings,
            'rule_violations': violations,
        }

    def booking_rule_for(self, subject_id: uuid.UUID, kind: BookingKind = APPOINTMENT) -> Optional[BookingRule]:
        """The booking rule governing appointments of a staff member. Resources have none."""
        if kind is not APPOINTMENT:
            return None
        business_id = Staff.objects.filter(pk=subject_id).values_list('business_id', flat=True).first()
        if business_id is None:
            return None
        return BookingRule.for_business(business_id)
