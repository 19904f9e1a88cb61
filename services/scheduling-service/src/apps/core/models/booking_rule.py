# services/scheduling-service/src/apps/core/models/booking_rule.py
"""
Booking Rule Model

Per-business booking policy: buffer between bookings and advance limits.
"""

from datetime import datetime, timedelta
from typing import List

from django.db import models
from django.utils import timezone

from shared.common.mixins import AuditMixin, BusinessMixin, UUIDPrimaryKeyMixin


class BookingRule(UUIDPrimaryKeyMixin, BusinessMixin, AuditMixin):
    """
    Booking rules for a business. Absent rule means no buffer and no limits.
    """

    buffer_time_minutes = models.PositiveIntegerField(
        default=0,
        help_text="Minimum gap between consecutive bookings of one staff member or resource"
    )
    min_advance_booking_hours = models.PositiveIntegerField(
        default=0,
        help_text="Bookings must start at least this many hours from now"
    )
    max_advance_booking_days = models.PositiveIntegerField(
        blank=True,
        null=True,
        help_text="Bookings may start at most this many days from now"
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'booking_rules'
        constraints = [
            models.UniqueConstraint(fields=['business_id'], name='one_booking_rule_per_business'),
        ]

    def __str__(self):
        return f"BookingRule for {self.business_id}"

    @classmethod
    def for_business(cls, business_id) -> 'BookingRule':
        """The active rule for ``business_id``, or None."""
        return cls.objects.filter(business_id=business_id, is_active=True).first()

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_time_minutes)

    def validate_notice(self, hours_until_start: float) -> tuple:
        """Validate notice period. Returns (valid, message)."""
        if self.min_advance_booking_hours and hours_until_start < self.min_advance_booking_hours:
            return False, f"Minimum {self.min_advance_booking_hours} hours notice required"

        return True, None

    def validate_advance(self, days_until_start: float) -> tuple:
        """Validate advance booking. Returns (valid, message)."""
        if self.max_advance_booking_days and days_until_start > self.max_advance_booking_days:
            return False, f"Cannot book more than {self.max_advance_booking_days} days in advance"

        return True, None

    def violations(self, start_time: datetime) -> List[str]:
        """Messages for each advance limit a booking starting at ``start_time`` breaks."""
        until_start = (start_time - timezone.now()).total_seconds()
        checks = (
            self.validate_notice(until_start / 3600),
            self.validate_advance(until_start / 86400),
        )
        return [message for valid, message in checks if not valid]
