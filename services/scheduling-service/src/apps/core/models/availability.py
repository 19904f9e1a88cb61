# services/scheduling-service/src/apps/core/models/availability.py
"""
Availability Exception Model

Time during which a staff member cannot be booked: vacations, holidays,
custom hours and recurring breaks.
"""

from datetime import date, datetime, time, timedelta

from django.db import models
from django.utils import timezone

from shared.common.mixins import (
    AuditMixin,
    BusinessMixin,
    SoftDeleteMixin,
    SoftDeleteQuerySet,
    UUIDPrimaryKeyMixin,
)


class AvailabilityExceptionQuerySet(SoftDeleteQuerySet):

    def active(self):
        return self.alive()

    def for_staff(self, staff_id):
        return self.filter(staff_id=staff_id)


class AvailabilityException(UUIDPrimaryKeyMixin, BusinessMixin, AuditMixin, SoftDeleteMixin):
    """
    An interval (or recurring set of intervals) when a staff member is unavailable.

    ``start_time``/``end_time`` give the time-of-day window for partial-day
    exceptions. Full-day exceptions block the whole calendar day of
    ``start_time`` and ignore ``end_time``. Recurring exceptions repeat the
    same window on every day matched by ``recurrence_rule``.
    """

    class ExceptionType(models.TextChoices):
        TIME_OFF = 'time_off', 'Time Off'
        HOLIDAY = 'holiday', 'Holiday'
        CUSTOM_HOURS = 'custom_hours', 'Custom Hours'

    staff_id = models.UUIDField(db_index=True)

    exception_type = models.CharField(
        max_length=20,
        choices=ExceptionType.choices
    )

    # Time Range
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    is_full_day = models.BooleanField(default=False)

    # Recurrence (structured, see apps.core.services.recurrence)
    is_recurring = models.BooleanField(default=False)
    recurrence_rule = models.JSONField(blank=True, null=True)

    notes = models.TextField(blank=True, default='')

    objects = AvailabilityExceptionQuerySet.as_manager()

    class Meta:
        db_table = 'availability_exceptions'
        ordering = ['start_time']
        indexes = [
            models.Index(fields=['staff_id', 'start_time'], name='exc_staff_start_idx'),
            models.Index(fields=['business_id', 'start_time'], name='exc_business_start_idx'),
            models.Index(fields=['staff_id', 'is_recurring'], name='exc_staff_recurring_idx'),
        ]

    def __str__(self):
        return f"{self.get_exception_type_display()} for {self.staff_id} from {self.start_time:%Y-%m-%d}"

    @property
    def rule(self):
        """The parsed RecurrenceRule, or None for one-off exceptions."""
        from apps.core.services.recurrence import parse_rule

        if not self.is_recurring:
            return None
        return parse_rule(self.recurrence_rule)

    @rule.setter
    def rule(self, value):
        self.recurrence_rule = value.to_dict() if value is not None else None

    @property
    def anchor_date(self) -> date:
        return timezone.localtime(self.start_time).date()

    def window_on(self, day: date) -> tuple:
        """The blocked ``(start, end)`` datetimes this exception projects onto ``day``."""
        if self.is_full_day:
            start = timezone.make_aware(datetime.combine(day, time.min))
            return start, timezone.make_aware(datetime.combine(day + timedelta(days=1), time.min))

        local_start = timezone.localtime(self.start_time)
        local_end = timezone.localtime(self.end_time)
        offset = day - local_start.date()
        start = timezone.make_aware(datetime.combine(day, local_start.time()))
        end = timezone.make_aware(datetime.combine(local_end.date() + offset, local_end.time()))
        return start, end

    def effective_window(self) -> tuple:
        """The one-off blocked window, expanded to whole days when full-day."""
        if self.is_full_day:
            return self.window_on(self.anchor_date)
        return self.start_time, self.end_time
