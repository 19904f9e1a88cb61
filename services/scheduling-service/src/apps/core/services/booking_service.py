# services/scheduling-service/src/apps/core/services/booking_service.py
"""
Booking Service

The scheduler: validates booking requests, consults availability and
conflict detection, and commits reservations atomically.

A request passes four gates in order and is rejected at the first that
fails:

1. validation   -- times, references, business rules   (ValidationError / NotFoundError)
2. availability -- unavailable intervals               (AvailabilityError)
3. conflict     -- active bookings of the same subject (ConflictError)
4. commit       -- subject row lock, conflict re-check, write

Serialization failures during commit retry the whole request up to
``SCHEDULER_MAX_RETRIES`` times; a write rejected by the database's
overlap constraint surfaces as ConflictError.
"""

import uuid
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from apps.core.models import (
    ALLOWED_TRANSITIONS,
    Appointment,
    BookingRule,
    BookingStatus,
    Client,
    ResourceBooking,
    Service,
    Staff,
)
from .availability_service import AvailabilityService
from .conflicts import Interval, find_conflicts
from .exceptions import (
    AvailabilityError,
    BookingStateError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from .store import APPOINTMENT, BOOKING_KINDS, RESOURCE_BOOKING, BookingKind, BookingStore
from .timeutils import ensure_aware

logger = logging.getLogger(__name__)


class BookingService:
    """
    Service for managing bookings.

    Handles:
    - Scheduling appointments and resource bookings
    - Rescheduling and other updates through the same gates
    - Status transitions and cancellation
    - Soft deletion
    """

    def __init__(
        self,
        availability_service: AvailabilityService = None,
        max_retries: int = None,
    ):
        self.availability = availability_service or AvailabilityService()
        self.max_retries = max_retries or getattr(settings, 'SCHEDULER_MAX_RETRIES', 3)
        self.stores = {name: BookingStore(kind) for name, kind in BOOKING_KINDS.items()}

    # ==========================================================================
    # Scheduling
    # ==========================================================================

    def schedule(self, kind: str = APPOINTMENT.name, **kwargs):
        """Schedule a booking of the given kind (``appointment`` or ``resource_booking``)."""
        if kind == APPOINTMENT.name:
            return self.schedule_appointment(**kwargs)
        if kind == RESOURCE_BOOKING.name:
            return self.schedule_resource_booking(**kwargs)
        raise ValidationError(f"Unknown booking kind: {kind!r}")

    def schedule_appointment(
        self,
        business_id: uuid.UUID,
        staff_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        service_id: uuid.UUID = None,
        client_id: uuid.UUID = None,
        notes: str = '',
        created_by: uuid.UUID = None,
    ) -> Appointment:
        """Schedule an appointment for a staff member."""
        start_time, end_time = self._validate_times(start_time, end_time)
        self._require_subject(APPOINTMENT, business_id, staff_id)
        if service_id:
            self._require_reference(Service, 'Service', business_id, service_id)
        if client_id:
            self._require_reference(Client, 'Client', business_id, client_id)
        rule = self._validate_rules(business_id, start_time)

        fields = {
            'business_id': business_id,
            'staff_id': staff_id,
            'service_id': service_id,
            'client_id': client_id,
            'start_time': start_time,
            'end_time': end_time,
            'status': BookingStatus.SCHEDULED,
            'notes': notes or '',
            'created_by': created_by,
            'updated_by': created_by,
        }

        store = self.stores[APPOINTMENT.name]
        appointment = self._commit(
            APPOINTMENT,
            staff_id,
            start_time,
            end_time,
            buffer=rule.buffer if rule else timedelta(0),
            write=lambda: store.insert(**fields),
        )

        logger.info(
            f"Scheduled appointment {appointment.id} for staff {staff_id} "
            f"{start_time:%Y-%m-%d %H:%M}-{end_time:%H:%M}"
        )

        return appointment

    def schedule_resource_booking(
        self,
        business_id: uuid.UUID,
        resource_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        booking_type: str = ResourceBooking.BookingType.APPOINTMENT,
        appointment_id: uuid.UUID = None,
        staff_id: uuid.UUID = None,
        notes: str = '',
        created_by: uuid.UUID = None,
    ) -> ResourceBooking:
        """Schedule a resource, optionally for an existing appointment."""
        start_time, end_time = self._validate_times(start_time, end_time)
        self._require_subject(RESOURCE_BOOKING, business_id, resource_id)
        self._validate_booking_type(booking_type)
        if appointment_id:
            self._require_appointment(business_id, appointment_id)
        if staff_id:
            self._require_reference(Staff, 'Staff member', business_id, staff_id)

        fields = {
            'business_id': business_id,
            'resource_id': resource_id,
            'appointment_id': appointment_id,
            'staff_id': staff_id,
            'booking_type': booking_type,
            'start_time': start_time,
            'end_time': end_time,
            'status': BookingStatus.SCHEDULED,
            'notes': notes or '',
            'created_by': created_by,
            'updated_by': created_by,
        }

        store = self.stores[RESOURCE_BOOKING.name]
        booking = self._commit(
            RESOURCE_BOOKING,
            resource_id,
            start_time,
            end_time,
            buffer=timedelta(0),
            write=lambda: store.insert(**fields),
        )

        logger.info(
            f"Scheduled resource booking {booking.id} for resource {resource_id} "
            f"{start_time:%Y-%m-%d %H:%M}-{end_time:%H:%M}"
        )

        return booking

    # ==========================================================================
    # Retrieval
    # ==========================================================================

    def get_booking(
        self,
        booking_id: uuid.UUID,
        include_deleted: bool = False,
        kind: Optional[str] = None,
    ):
        """Get an appointment or resource booking by ID."""
        names = [kind] if kind else list(self.stores)
        for name in names:
            booking = self.stores[name].get(booking_id, include_deleted=include_deleted)
            if booking is not None:
                return booking
        raise NotFoundError(f"Booking {booking_id} not found")

    def find_conflicts(
        self,
        subject_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        kind: str = APPOINTMENT.name,
        exclude_booking_id: uuid.UUID = None,
    ) -> List[Any]:
        """Active bookings of the subject overlapping ``[start_time, end_time)``."""
        start_time, end_time = self._validate_times(start_time, end_time)
        return self.stores[kind].query_overlapping(
            subject_id, start_time, end_time, exclude_id=exclude_booking_id
        )

    # ==========================================================================
    # Updates
    # ==========================================================================

    def update_booking(
        self,
        booking_id: uuid.UUID,
        updated_by: uuid.UUID = None,
        **kwargs
    ):
        """
        Update a booking. Changes to its time or subject pass through the
        availability and conflict gates again, ignoring the booking itself.
        """
        booking = self.get_booking(booking_id)
        kind = self._kind_of(booking)
        store = self.stores[kind.name]

        if not booking.is_active or booking.is_terminal:
            raise BookingStateError(f"Cannot update booking in {booking.status} status")

        if kind is APPOINTMENT:
            allowed_fields = {'start_time', 'end_time', 'staff_id', 'service_id', 'client_id', 'notes'}
        else:
            allowed_fields = {
                'start_time', 'end_time', 'resource_id', 'appointment_id',
                'staff_id', 'booking_type', 'notes',
            }

        unknown = set(kwargs) - allowed_fields
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        changes = {
            name: value for name, value in kwargs.items()
            if getattr(booking, name) != value
        }
        if not changes:
            return booking

        business_id = booking.business_id
        start_time, end_time = self._validate_times(
            changes.get('start_time', booking.start_time),
            changes.get('end_time', booking.end_time),
        )
        if 'start_time' in changes:
            changes['start_time'] = start_time
        if 'end_time' in changes:
            changes['end_time'] = end_time

        subject_field = kind.subject_field
        subject_id = changes.get(subject_field, getattr(booking, subject_field))
        if subject_field in changes:
            self._require_subject(kind, business_id, subject_id)

        if kind is APPOINTMENT:
            if changes.get('service_id'):
                self._require_reference(Service, 'Service', business_id, changes['service_id'])
            if changes.get('client_id'):
                self._require_reference(Client, 'Client', business_id, changes['client_id'])
        else:
            if 'booking_type' in changes:
                self._validate_booking_type(changes['booking_type'])
            if changes.get('appointment_id'):
                self._require_appointment(business_id, changes['appointment_id'])
            if changes.get('staff_id'):
                self._require_reference(Staff, 'Staff member', business_id, changes['staff_id'])

        def write():
            return store.update_fields(booking, actor_id=updated_by, **changes)

        if not ({'start_time', 'end_time', subject_field} & set(changes)):
            with transaction.atomic():
                booking = write()
            logger.info(f"Updated booking {booking.id}: {', '.join(sorted(changes))}")
            return booking

        buffer = timedelta(0)
        if kind is APPOINTMENT:
            rule = self._validate_rules(business_id, start_time)
            buffer = rule.buffer if rule else buffer

        booking = self._commit(
            kind,
            subject_id,
            start_time,
            end_time,
            buffer=buffer,
            write=write,
            exclude_id=booking.id,
        )

        logger.info(f"Rescheduled booking {booking.id}: {', '.join(sorted(changes))}")
        return booking

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    @transaction.atomic
    def cancel_booking(
        self,
        booking_id: uuid.UUID,
        cancelled_by: uuid.UUID = None,
        reason: str = '',
    ):
        """Cancel a booking, freeing its slot. Cancels resource bookings tied to an appointment."""
        booking = self.get_booking(booking_id)
        self._check_transition(booking, BookingStatus.CANCELLED)

        store = self.stores[self._kind_of(booking).name]
        fields = {'status': BookingStatus.CANCELLED}
        if isinstance(booking, Appointment):
            fields['cancelled_at'] = timezone.now()
            fields['cancellation_reason'] = reason or ''
        booking = store.update_fields(booking, actor_id=cancelled_by, **fields)

        if isinstance(booking, Appointment):
            linked = self.stores[RESOURCE_BOOKING.name].query(
                active_only=True, appointment_id=booking.id
            )
            for resource_booking in linked:
                resource_booking.set_status(BookingStatus.CANCELLED, actor_id=cancelled_by)

        logger.info(f"Cancelled booking {booking.id}")
        return booking

    @transaction.atomic
    def confirm_booking(self, booking_id: uuid.UUID, confirmed_by: uuid.UUID = None):
        return self._transition(booking_id, BookingStatus.CONFIRMED, confirmed_by)

    @transaction.atomic
    def start_booking(self, booking_id: uuid.UUID, started_by: uuid.UUID = None):
        return self._transition(booking_id, BookingStatus.IN_PROGRESS, started_by)

    @transaction.atomic
    def complete_booking(self, booking_id: uuid.UUID, completed_by: uuid.UUID = None):
        return self._transition(booking_id, BookingStatus.COMPLETED, completed_by)

    @transaction.atomic
    def mark_no_show(self, booking_id: uuid.UUID, marked_by: uuid.UUID = None):
        return self._transition(booking_id, BookingStatus.NO_SHOW, marked_by)

    @transaction.atomic
    def delete_booking(self, booking_id: uuid.UUID, deleted_by: uuid.UUID = None):
        """Tombstone a booking. It no longer blocks its slot or appears in listings."""
        booking = self.get_booking(booking_id)
        self.stores[self._kind_of(booking).name].soft_delete(booking, actor_id=deleted_by)
        logger.info(f"Deleted booking {booking_id}")
        return booking

    def _transition(self, booking_id: uuid.UUID, status: str, actor_id: uuid.UUID = None):
        booking = self.get_booking(booking_id)
        self._check_transition(booking, status)
        booking.set_status(status, actor_id=actor_id)
        logger.info(f"Booking {booking.id} -> {status}")
        return booking

    def _check_transition(self, booking, status: str):
        if not booking.can_transition_to(status):
            allowed = ', '.join(sorted(ALLOWED_TRANSITIONS.get(booking.status, ()))) or 'none'
            raise BookingStateError(
                f"Cannot move booking from {booking.status} to {status} (allowed: {allowed})"
            )

    # ==========================================================================
    # Gates
    # ==========================================================================

    def _commit(
        self,
        kind: BookingKind,
        subject_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        buffer: timedelta,
        write: Callable[[], Any],
        exclude_id: uuid.UUID = None,
    ):
        """
        Run the availability and conflict gates, then write under the
        subject lock after re-checking conflicts.
        """
        store = self.stores[kind.name]

        for attempt in range(1, self.max_retries + 1):
            self._check_availability(kind, subject_id, start_time, end_time)
            self._check_conflicts(kind, subject_id, start_time, end_time, buffer, exclude_id)

            try:
                with store.atomic():
                    store.lock_subject(subject_id)
                    self._check_conflicts(kind, subject_id, start_time, end_time, buffer, exclude_id)
                    return write()

            except IntegrityError as e:
                logger.warning(f"Overlap constraint rejected {kind.name} for {subject_id}: {e}")
                raise self._conflict_error(kind, subject_id, start_time, end_time, exclude_id) from e

            except OperationalError as e:
                if attempt >= self.max_retries:
                    logger.warning(
                        f"Giving up on {kind.name} for {subject_id} after {attempt} attempts: {e}"
                    )
                    raise self._conflict_error(kind, subject_id, start_time, end_time, exclude_id) from e
                logger.info(f"Retrying {kind.name} for {subject_id} (attempt {attempt}): {e}")

    def _check_availability(
        self,
        kind: BookingKind,
        subject_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
    ):
        blocked = find_conflicts(
            Interval(start_time, end_time),
            self.availability.unavailable_intervals(subject_id, start_time, end_time, kind=kind),
        )
        if blocked:
            first = blocked[0]
            raise AvailabilityError(
                f"{kind.subject_label} {subject_id} is unavailable from "
                f"{first.start:%Y-%m-%d %H:%M} to {first.end:%Y-%m-%d %H:%M}"
                + (f" ({first.reason})" if first.reason else ''),
                intervals=blocked,
            )

    def _check_conflicts(
        self,
        kind: BookingKind,
        subject_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        buffer: timedelta,
        exclude_id: uuid.UUID = None,
    ):
        window = Interval(start_time, end_time).padded(buffer)
        conflicts = self.stores[kind.name].query_overlapping(
            subject_id, window.start, window.end, exclude_id=exclude_id
        )
        if conflicts:
            raise self._conflict_error(kind, subject_id, start_time, end_time, exclude_id, conflicts)

    def _conflict_error(
        self,
        kind: BookingKind,
        subject_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        exclude_id: uuid.UUID = None,
        conflicts: List[Any] = None,
    ) -> ConflictError:
        if conflicts is None:
            conflicts = self.stores[kind.name].query_overlapping(
                subject_id, start_time, end_time, exclude_id=exclude_id
            )
        if not conflicts:
            return ConflictError(
                f"{kind.subject_label} {subject_id} could not be booked for the requested time"
            )

        blocker = conflicts[0]
        return ConflictError(
            f"{kind.subject_label} {subject_id} is already booked from "
            f"{blocker.start_time:%Y-%m-%d %H:%M} to {blocker.end_time:%Y-%m-%d %H:%M} "
            f"(booking {blocker.id})",
            conflicting_booking_id=blocker.id,
        )

    # ==========================================================================
    # Validation
    # ==========================================================================

    def _validate_times(self, start_time: datetime, end_time: datetime) -> tuple:
        """Validate booking times."""
        start_time = ensure_aware(start_time, 'start_time')
        end_time = ensure_aware(end_time, 'end_time')

        if start_time >= end_time:
            raise ValidationError("Start time must be before end time")

        return start_time, end_time

    def _validate_rules(self, business_id: uuid.UUID, start_time: datetime) -> Optional[BookingRule]:
        """Check the business's advance booking limits. Returns the rule, if any."""
        rule = BookingRule.for_business(business_id)
        if rule is None:
            return None

        violations = rule.violations(start_time)
        if violations:
            raise ValidationError(violations[0])

        return rule

    def _validate_booking_type(self, booking_type: str):
        if booking_type not in ResourceBooking.BookingType.values:
            raise ValidationError(f"Invalid booking type: {booking_type!r}")

    def _require_subject(self, kind: BookingKind, business_id: uuid.UUID, subject_id: uuid.UUID):
        return self._require_reference(kind.subject_model, kind.subject_label, business_id, subject_id)

    def _require_reference(self, model, label: str, business_id: uuid.UUID, reference_id: uuid.UUID):
        """Referenced directory entry must exist, be live and belong to the business."""
        if not reference_id:
            raise ValidationError(f"{label} is required")

        entry = model.objects.alive().filter(pk=reference_id).first()
        if entry is None:
            raise NotFoundError(f"{label} {reference_id} not found")
        if str(entry.business_id) != str(business_id):
            raise ValidationError(f"{label} {reference_id} does not belong to business {business_id}")
        if not entry.is_bookable:
            raise ValidationError(f"{label} {reference_id} is not active")
        return entry

    def _require_appointment(self, business_id: uuid.UUID, appointment_id: uuid.UUID) -> Appointment:
        appointment = self.stores[APPOINTMENT.name].get(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        if str(appointment.business_id) != str(business_id):
            raise ValidationError(
                f"Appointment {appointment_id} does not belong to business {business_id}"
            )
        return appointment

    def _kind_of(self, booking) -> BookingKind:
        return APPOINTMENT if isinstance(booking, Appointment) else RESOURCE_BOOKING


def booking_summary(booking) -> Dict[str, Any]:
    """Compact description of a booking for conflict payloads."""
    return {
        'booking_id': booking.id,
        'subject_id': booking.subject_id,
        'start_time': booking.start_time,
        'end_time': booking.end_time,
        'status': booking.status,
    }
