# services/scheduling-service/src/apps/core/models/booking.py
"""
Booking Models

Appointments (staff time) and resource bookings (room/equipment time).
Both share the booking lifecycle, half-open ``[start_time, end_time)``
intervals and the active predicate used by conflict detection.
"""

from datetime import datetime

from django.db import models

from shared.common.mixins import (
    AuditMixin,
    BusinessMixin,
    SoftDeleteMixin,
    SoftDeleteQuerySet,
    UUIDPrimaryKeyMixin,
)


class BookingStatus(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'
    CONFIRMED = 'confirmed', 'Confirmed'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    NO_SHOW = 'no_show', 'No Show'


INACTIVE_STATUSES = (BookingStatus.CANCELLED, BookingStatus.NO_SHOW)

TERMINAL_STATUSES = (
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.NO_SHOW,
)

ALLOWED_TRANSITIONS = {
    BookingStatus.SCHEDULED: {
        BookingStatus.CONFIRMED,
        BookingStatus.IN_PROGRESS,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    },
    BookingStatus.CONFIRMED: {
        BookingStatus.IN_PROGRESS,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    },
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.NO_SHOW: set(),
}


class BookingQuerySet(SoftDeleteQuerySet):
    """Booking queries shared by appointments and resource bookings."""

    def active(self):
        """Bookings that hold their slot: not tombstoned, not cancelled or no-show."""
        return self.alive().exclude(status__in=INACTIVE_STATUSES)

    def overlapping(self, start: datetime, end: datetime):
        """Bookings whose interval overlaps ``[start, end)``."""
        return self.filter(start_time__lt=end, end_time__gt=start)

    def starting_between(self, start: datetime, end: datetime):
        """Bookings whose start lies in ``[start, end)``."""
        return self.filter(start_time__gte=start, start_time__lt=end)


class BaseBooking(UUIDPrimaryKeyMixin, BusinessMixin, AuditMixin, SoftDeleteMixin):
    """
    Common booking columns and lifecycle.

    Status changes go through the service layer, which validates them
    against ``ALLOWED_TRANSITIONS`` before calling ``set_status``.
    """

    Status = BookingStatus

    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()

    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.SCHEDULED,
        db_index=True
    )

    notes = models.TextField(blank=True, default='')

    objects = BookingQuerySet.as_manager()

    # Column holding the identifier of the staff member or resource whose
    # time this booking occupies.
    subject_field = None

    class Meta:
        abstract = True
        ordering = ['start_time']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F('start_time')),
                name='%(class)s_valid_times'
            ),
        ]

    def __str__(self):
        return f"{self.__class__.__name__} {self.id}: {self.start_time:%Y-%m-%d %H:%M}"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def subject_id(self):
        return getattr(self, self.subject_field)

    @property
    def is_active(self) -> bool:
        """Whether the booking still holds its slot."""
        return not self.is_deleted and self.status not in INACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    def can_transition_to(self, status: str) -> bool:
        return status in ALLOWED_TRANSITIONS.get(self.status, set())

    def set_status(self, status: str, actor_id=None):
        """Apply a status already validated by the caller and persist it."""
        self.status = status
        self.touch(actor_id)
        self.save(update_fields=['status', 'updated_at', 'updated_by'])


class Appointment(BaseBooking):
    """
    A staff member's time reserved for a client and service.
    """

    staff_id = models.UUIDField(db_index=True)
    service_id = models.UUIDField(blank=True, null=True)
    client_id = models.UUIDField(blank=True, null=True, db_index=True)

    cancelled_at = models.DateTimeField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, default='')

    subject_field = 'staff_id'

    class Meta(BaseBooking.Meta):
        db_table = 'appointments'
        indexes = [
            models.Index(fields=['business_id', 'start_time'], name='appt_business_start_idx'),
            models.Index(fields=['staff_id', 'start_time', 'end_time'], name='appt_staff_window_idx'),
            models.Index(fields=['client_id', 'start_time'], name='appt_client_start_idx'),
            models.Index(fields=['status', 'start_time'], name='appt_status_start_idx'),
        ]


class ResourceBooking(BaseBooking):
    """
    A physical resource's time, optionally tied to the appointment it serves.
    """

    class BookingType(models.TextChoices):
        APPOINTMENT = 'appointment', 'Appointment'
        MAINTENANCE = 'maintenance', 'Maintenance'
        BLOCK = 'block', 'Block'
        OTHER = 'other', 'Other'

    resource_id = models.UUIDField(db_index=True)
    appointment_id = models.UUIDField(blank=True, null=True, db_index=True)
    staff_id = models.UUIDField(blank=True, null=True)

    booking_type = models.CharField(
        max_length=20,
        choices=BookingType.choices,
        default=BookingType.APPOINTMENT
    )

    subject_field = 'resource_id'

    class Meta(BaseBooking.Meta):
        db_table = 'resource_bookings'
        indexes = [
            models.Index(fields=['business_id', 'start_time'], name='rbook_business_start_idx'),
            models.Index(fields=['resource_id', 'start_time', 'end_time'], name='rbook_resource_window_idx'),
        ]
