# services/scheduling-service/src/tests/unit/test_booking_service.py
"""
Unit Tests for Booking Service

The scheduler: validation, availability, conflicts and the commit path.
"""

import random
import threading
import uuid
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from django.db import IntegrityError, OperationalError, connection
from django.utils import timezone

from apps.core.events import EventType, event_publisher
from apps.core.models import Appointment, AvailabilityException, BookingStatus, ResourceBooking
from apps.core.services import (
    AvailabilityError,
    AvailabilityService,
    BookingService,
    BookingStateError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from apps.core.services.store import BookingStore


def at(year, month, day, hour=0, minute=0):
    return timezone.make_aware(datetime(year, month, day, hour, minute))


@pytest.mark.django_db
class TestScheduleAppointment:
    """Tests for scheduling appointments."""

    def setup_method(self):
        self.service = BookingService()

    def schedule(self, business_id, staff, start, end, **kwargs):
        return self.service.schedule_appointment(
            business_id=business_id,
            staff_id=staff.id,
            start_time=start,
            end_time=end,
            **kwargs
        )

    def test_schedule_success(self, business_id, staff, user_id):
        appointment = self.schedule(
            business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11), created_by=user_id
        )

        assert appointment.id is not None
        assert appointment.status == BookingStatus.SCHEDULED
        assert appointment.is_active
        assert appointment.created_by == user_id
        assert appointment.duration_minutes == 60

    def test_back_to_back_is_legal(self, business_id, staff):
        self.schedule(business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11))
        second = self.schedule(business_id, staff, at(2025, 3, 3, 11), at(2025, 3, 3, 12))
        third = self.schedule(business_id, staff, at(2025, 3, 3, 9), at(2025, 3, 3, 10))

        assert second.id and third.id
        assert Appointment.objects.active().filter(staff_id=staff.id).count() == 3

    def test_overlap_raises_conflict_with_blocker_id(self, business_id, staff):
        first = self.schedule(business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11))

        with pytest.raises(ConflictError) as exc_info:
            self.schedule(business_id, staff, at(2025, 3, 3, 10, 30), at(2025, 3, 3, 11, 30))

        assert exc_info.value.conflicting_booking_id == first.id
        assert Appointment.objects.filter(staff_id=staff.id).count() == 1

    def test_other_staff_is_independent(self, business_id, staff, create_staff):
        other = create_staff(name='Other')
        self.schedule(business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11))

        assert self.schedule(business_id, other, at(2025, 3, 3, 10), at(2025, 3, 3, 11)).id

    def test_cancelling_frees_the_slot(self, business_id, staff):
        first = self.schedule(business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11))
        self.service.cancel_booking(first.id, reason='Client called')

        second = self.schedule(business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11))

        first.refresh_from_db()
        assert first.status == BookingStatus.CANCELLED
        assert first.cancellation_reason == 'Client called'
        assert first.cancelled_at is not None
        assert second.is_active

    def test_no_show_and_deleted_do_not_block(self, business_id, staff, create_appointment):
        create_appointment(start_time=at(2025, 3, 3, 10), status=BookingStatus.NO_SHOW)
        deleted = create_appointment(start_time=at(2025, 3, 3, 10))
        deleted.soft_delete()

        assert self.schedule(business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11)).id

    def test_full_day_exception_blocks(self, business_id, staff, create_exception):
        create_exception(
            exception_type=AvailabilityException.ExceptionType.HOLIDAY,
            start_time=at(2025, 12, 25),
            is_full_day=True,
        )

        with pytest.raises(AvailabilityError) as exc_info:
            self.schedule(business_id, staff, at(2025, 12, 25, 10), at(2025, 12, 25, 10, 10))

        assert exc_info.value.intervals[0].reason == 'holiday'

    def test_availability_checked_before_conflicts(self, business_id, staff, create_appointment, create_exception):
        create_appointment(start_time=at(2025, 3, 3, 10))
        create_exception(start_time=at(2025, 3, 3, 10))

        with pytest.raises(AvailabilityError):
            self.schedule(business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11))

    def test_outside_working_hours(self, business_id, create_staff):
        staff = create_staff(working_hours={'monday': [['09:00', '17:00']]})

        with pytest.raises(AvailabilityError):
            self.schedule(business_id, staff, at(2025, 3, 3, 16, 30), at(2025, 3, 3, 17, 30))

    @pytest.mark.parametrize('start, end', [
        (at(2025, 3, 3, 11), at(2025, 3, 3, 10)),
        (at(2025, 3, 3, 10), at(2025, 3, 3, 10)),
        (None, at(2025, 3, 3, 10)),
    ])
    def test_invalid_times(self, business_id, staff, start, end):
        with pytest.raises(ValidationError):
            self.schedule(business_id, staff, start, end)

    def test_naive_times_are_made_aware(self, business_id, staff):
        appointment = self.schedule(business_id, staff, datetime(2025, 3, 3, 10), datetime(2025, 3, 3, 11))

        assert timezone.is_aware(appointment.start_time)

    def test_unknown_staff(self, business_id):
        with pytest.raises(NotFoundError):
            self.service.schedule_appointment(
                business_id=business_id,
                staff_id=uuid.uuid4(),
                start_time=at(2025, 3, 3, 10),
                end_time=at(2025, 3, 3, 11),
            )

    def test_inactive_staff(self, business_id, create_staff):
        staff = create_staff(is_active=False)

        with pytest.raises(ValidationError):
            self.schedule(business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11))

    def test_staff_of_other_business(self, staff):
        with pytest.raises(ValidationError):
            self.schedule(uuid.uuid4(), staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11))

    def test_unknown_client(self, business_id, staff):
        with pytest.raises(NotFoundError):
            self.schedule(
                business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11), client_id=uuid.uuid4()
            )

    def test_known_client(self, business_id, staff, client_entry):
        appointment = self.schedule(
            business_id, staff, at(2025, 3, 3, 10), at(2025, 3, 3, 11), client_id=client_entry.id
        )

        assert appointment.client_id == client_entry.id

    def test_buffer_rule(self, business_id, staff, create_rule, next_monday):
        create_rule(buffer_time_minutes=15)
        self.schedule(business_id, staff, next_monday, next_monday + timedelta(hours=1))

        with pytest.raises(ConflictError):
            self.schedule(
                business_id, staff,
                next_monday + timedelta(hours=1, minutes=10),
                next_monday + timedelta(hours=2),
            )

        assert self.schedule(
            business_id, staff,
            next_monday + timedelta(hours=1, minutes=15),
            next_monday + timedelta(hours=2),
        ).id

    def test_min_notice_rule(self, business_id, staff, create_rule):
        create_rule(min_advance_booking_hours=24)
        soon = timezone.now() + timedelta(hours=2)

        with pytest.raises(ValidationError):
            self.schedule(business_id, staff, soon, soon + timedelta(hours=1))

    def test_max_advance_rule(self, business_id, staff, create_rule):
        create_rule(max_advance_booking_days=30)
        later = timezone.now() + timedelta(days=60)

        with pytest.raises(ValidationError):
            self.schedule(business_id, staff, later, later + timedelta(hours=1))

    def test_availability_check_agrees_with_scheduling(self, business_id, staff, create_rule, next_monday):
        create_rule(buffer_time_minutes=30)
        self.schedule(business_id, staff, next_monday, next_monday + timedelta(hours=1))
        availability = AvailabilityService()

        for minutes in range(60, 150, 10):
            start = next_monday + timedelta(minutes=minutes)
            end = start + timedelta(hours=1)
            expected = availability.check_availability(staff.id, start, end)

            try:
                booking = self.schedule(business_id, staff, start, end)
            except ConflictError:
                scheduled = False
            else:
                scheduled = True
                self.service.delete_booking(booking.id)

            assert scheduled == expected, minutes


@pytest.mark.django_db
class TestCommitPath:
    """Tests for retries and constraint translation during commit."""

    def setup_method(self):
        self.service = BookingService(max_retries=3)

    def test_operational_error_is_retried(self, business_id, staff):
        real_insert = BookingStore.insert
        calls = []

        def flaky_insert(store, **fields):
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError('could not serialize access')
            return real_insert(store, **fields)

        with patch.object(BookingStore, 'insert', autospec=True, side_effect=flaky_insert):
            appointment = self.service.schedule_appointment(
                business_id=business_id,
                staff_id=staff.id,
                start_time=at(2025, 3, 3, 10),
                end_time=at(2025, 3, 3, 11),
            )

        assert len(calls) == 3
        assert appointment.id is not None

    def test_retries_exhausted_raise_conflict(self, business_id, staff):
        with patch.object(BookingStore, 'insert', side_effect=OperationalError('deadlock detected')) as insert:
            with pytest.raises(ConflictError):
                self.service.schedule_appointment(
                    business_id=business_id,
                    staff_id=staff.id,
                    start_time=at(2025, 3, 3, 10),
                    end_time=at(2025, 3, 3, 11),
                )

        assert insert.call_count == 3

    def test_integrity_error_becomes_conflict(self, business_id, staff):
        with patch.object(BookingStore, 'insert', side_effect=IntegrityError('appointments_no_overlap')):
            with pytest.raises(ConflictError):
                self.service.schedule_appointment(
                    business_id=business_id,
                    staff_id=staff.id,
                    start_time=at(2025, 3, 3, 10),
                    end_time=at(2025, 3, 3, 11),
                )

    def test_conflict_rechecked_under_lock(self, business_id, staff, create_appointment):
        """A booking committed between the pre-check and the lock is still caught."""
        blocker = create_appointment(start_time=at(2025, 3, 3, 10))
        store = self.service.stores['appointment']
        real_query = store.query_overlapping
        calls = []

        def stale_first_check(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                return []
            return real_query(*args, **kwargs)

        with patch.object(store, 'query_overlapping', side_effect=stale_first_check):
            with pytest.raises(ConflictError) as exc_info:
                self.service.schedule_appointment(
                    business_id=business_id,
                    staff_id=staff.id,
                    start_time=at(2025, 3, 3, 10, 30),
                    end_time=at(2025, 3, 3, 11, 30),
                )

        assert exc_info.value.conflicting_booking_id == blocker.id
        assert Appointment.objects.count() == 1

    def test_random_schedule_and_cancel_never_overlaps(self, business_id, staff):
        rng = random.Random(20250303)
        day = at(2025, 3, 3, 8)

        for _ in range(200):
            active = list(Appointment.objects.active().filter(staff_id=staff.id))
            if active and rng.random() < 0.3:
                self.service.cancel_booking(rng.choice(active).id)
                continue

            start = day + timedelta(minutes=15 * rng.randrange(40))
            end = start + timedelta(minutes=15 * rng.randint(1, 8))
            try:
                self.service.schedule_appointment(
                    business_id=business_id,
                    staff_id=staff.id,
                    start_time=start,
                    end_time=end,
                )
            except ConflictError:
                pass

        bookings = sorted(
            Appointment.objects.active().filter(staff_id=staff.id),
            key=lambda booking: booking.start_time,
        )
        assert bookings
        for earlier, later in zip(bookings, bookings[1:]):
            assert earlier.end_time <= later.start_time


@pytest.mark.skipif(connection.vendor != 'postgresql', reason='row locks need PostgreSQL')
@pytest.mark.django_db(transaction=True)
class TestConcurrentScheduling:
    """Competing requests from separate connections for the same staff member."""

    def test_overlapping_requests_book_once(self, business_id, staff):
        offsets = [0, 10, 20, 30, 40]
        barrier = threading.Barrier(len(offsets))
        outcomes = []

        def attempt(offset):
            try:
                barrier.wait()
                booking = BookingService().schedule_appointment(
                    business_id=business_id,
                    staff_id=staff.id,
                    start_time=at(2025, 3, 3, 10, offset),
                    end_time=at(2025, 3, 3, 11, offset),
                )
                outcomes.append(booking.id)
            except ConflictError:
                outcomes.append(None)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(offset,)) for offset in offsets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(outcomes) == len(offsets)
        assert len([booking_id for booking_id in outcomes if booking_id]) == 1
        assert Appointment.objects.active().filter(staff_id=staff.id).count() == 1

    def test_back_to_back_requests_all_succeed(self, business_id, staff):
        hours = [9, 10, 11, 12]
        barrier = threading.Barrier(len(hours))
        errors = []

        def attempt(hour):
            try:
                barrier.wait()
                BookingService().schedule_appointment(
                    business_id=business_id,
                    staff_id=staff.id,
                    start_time=at(2025, 3, 3, hour),
                    end_time=at(2025, 3, 3, hour + 1),
                )
            except ConflictError as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(hour,)) for hour in hours]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert Appointment.objects.active().filter(staff_id=staff.id).count() == len(hours)


@pytest.mark.django_db
class TestResourceBookings:
    """Tests for scheduling resource bookings."""

    def setup_method(self):
        self.service = BookingService()

    def test_schedule_and_conflict(self, business_id, resource):
        first = self.service.schedule_resource_booking(
            business_id=business_id,
            resource_id=resource.id,
            start_time=at(2025, 3, 3, 10),
            end_time=at(2025, 3, 3, 11),
            booking_type=ResourceBooking.BookingType.MAINTENANCE,
        )

        with pytest.raises(ConflictError) as exc_info:
            self.service.schedule_resource_booking(
                business_id=business_id,
                resource_id=resource.id,
                start_time=at(2025, 3, 3, 10, 45),
                end_time=at(2025, 3, 3, 12),
            )

        assert exc_info.value.conflicting_booking_id == first.id

    def test_appointment_and_resource_are_separate(self, business_id, staff, resource):
        self.service.schedule_appointment(
            business_id=business_id,
            staff_id=staff.id,
            start_time=at(2025, 3, 3, 10),
            end_time=at(2025, 3, 3, 11),
        )

        booking = self.service.schedule('resource_booking',
            business_id=business_id,
            resource_id=resource.id,
            start_time=at(2025, 3, 3, 10),
            end_time=at(2025, 3, 3, 11),
        )

        assert booking.resource_id == resource.id

    def test_invalid_booking_type(self, business_id, resource):
        with pytest.raises(ValidationError):
            self.service.schedule_resource_booking(
                business_id=business_id,
                resource_id=resource.id,
                start_time=at(2025, 3, 3, 10),
                end_time=at(2025, 3, 3, 11),
                booking_type='party',
            )

    def test_unknown_kind(self, business_id):
        with pytest.raises(ValidationError):
            self.service.schedule('invoice', business_id=business_id)

    def test_cancelling_appointment_cascades(self, business_id, staff, resource):
        appointment = self.service.schedule_appointment(
            business_id=business_id,
            staff_id=staff.id,
            start_time=at(2025, 3, 3, 10),
            end_time=at(2025, 3, 3, 11),
        )
        linked = self.service.schedule_resource_booking(
            business_id=business_id,
            resource_id=resource.id,
            start_time=at(2025, 3, 3, 10),
            end_time=at(2025, 3, 3, 11),
            appointment_id=appointment.id,
        )

        self.service.cancel_booking(appointment.id)

        linked.refresh_from_db()
        assert linked.status == BookingStatus.CANCELLED


@pytest.mark.django_db
class TestUpdatesAndTransitions:
    """Tests for rescheduling, status transitions and deletion."""

    def setup_method(self):
        self.service = BookingService()

    def test_reschedule_ignores_itself(self, create_appointment):
        booking = create_appointment(start_time=at(2025, 3, 3, 10))

        moved = self.service.update_booking(
            booking.id, start_time=at(2025, 3, 3, 10, 30), end_time=at(2025, 3, 3, 11, 30)
        )

        assert moved.start_time == at(2025, 3, 3, 10, 30)

    def test_reschedule_into_conflict(self, create_appointment):
        blocker = create_appointment(start_time=at(2025, 3, 3, 12))
        booking = create_appointment(start_time=at(2025, 3, 3, 10))

        with pytest.raises(ConflictError) as exc_info:
            self.service.update_booking(booking.id, start_time=at(2025, 3, 3, 11, 30), end_time=at(2025, 3, 3, 12, 30))

        assert exc_info.value.conflicting_booking_id == blocker.id
        booking.refresh_from_db()
        assert booking.start_time == at(2025, 3, 3, 10)

    def test_notes_only_update_skips_gates(self, create_appointment, user_id):
        booking = create_appointment(start_time=at(2025, 3, 3, 10))

        updated = self.service.update_booking(booking.id, updated_by=user_id, notes='Bring forms')

        assert updated.notes == 'Bring forms'
        assert updated.updated_by == user_id

    def test_update_unknown_field(self, create_appointment):
        booking = create_appointment()

        with pytest.raises(ValidationError):
            self.service.update_booking(booking.id, resource_id=uuid.uuid4())

    def test_update_cancelled_booking(self, create_appointment):
        booking = create_appointment(status=BookingStatus.CANCELLED)

        with pytest.raises(BookingStateError):
            self.service.update_booking(booking.id, notes='x')

    def test_lifecycle(self, create_appointment):
        booking = create_appointment()

        assert self.service.confirm_booking(booking.id).status == BookingStatus.CONFIRMED
        assert self.service.start_booking(booking.id).status == BookingStatus.IN_PROGRESS
        assert self.service.complete_booking(booking.id).status == BookingStatus.COMPLETED

        with pytest.raises(BookingStateError):
            self.service.cancel_booking(booking.id)

    def test_no_show_from_scheduled(self, create_appointment):
        booking = create_appointment()

        assert self.service.mark_no_show(booking.id).status == BookingStatus.NO_SHOW

        with pytest.raises(BookingStateError):
            self.service.confirm_booking(booking.id)

    def test_delete_is_a_tombstone(self, create_appointment, user_id):
        booking = create_appointment()

        self.service.delete_booking(booking.id, deleted_by=user_id)

        with pytest.raises(NotFoundError):
            self.service.get_booking(booking.id)
        tombstone = self.service.get_booking(booking.id, include_deleted=True)
        assert tombstone.is_deleted
        assert tombstone.audit.deleted_by == user_id

    def test_get_booking_finds_either_kind(self, business_id, resource):
        booking = ResourceBooking.objects.create(
            business_id=business_id,
            resource_id=resource.id,
            start_time=at(2025, 3, 3, 10),
            end_time=at(2025, 3, 3, 11),
        )

        assert self.service.get_booking(booking.id) == booking
        with pytest.raises(NotFoundError):
            self.service.get_booking(booking.id, kind='appointment')

    def test_find_conflicts(self, staff, create_appointment):
        booking = create_appointment(start_time=at(2025, 3, 3, 10))

        assert self.service.find_conflicts(staff.id, at(2025, 3, 3, 10, 59), at(2025, 3, 3, 12)) == [booking]
        assert self.service.find_conflicts(staff.id, at(2025, 3, 3, 11), at(2025, 3, 3, 12)) == []


@pytest.mark.django_db
class TestBookingEvents:
    """Domain events are published once the transaction commits."""

    def setup_method(self):
        self.service = BookingService()

    def test_created_and_cancelled(self, business_id, staff, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            booking = self.service.schedule_appointment(
                business_id=business_id,
                staff_id=staff.id,
                start_time=at(2025, 3, 3, 10),
                end_time=at(2025, 3, 3, 11),
            )
        with django_capture_on_commit_callbacks(execute=True):
            self.service.cancel_booking(booking.id)

        types = [event['event_type'] for event in event_publisher.published]
        assert types == [EventType.BOOKING_CREATED, EventType.BOOKING_CANCELLED]
        assert event_publisher.published[0]['payload']['booking_id'] == str(booking.id)
        assert event_publisher.published[1]['payload']['previous_status'] == BookingStatus.SCHEDULED

    def test_failed_schedule_publishes_nothing(self, business_id, staff, create_appointment,
                                               django_capture_on_commit_callbacks):
        create_appointment(start_time=at(2025, 3, 3, 10))

        with django_capture_on_commit_callbacks(execute=True):
            with pytest.raises(ConflictError):
                self.service.schedule_appointment(
                    business_id=business_id,
                    staff_id=staff.id,
                    start_time=at(2025, 3, 3, 10),
                    end_time=at(2025, 3, 3, 11),
                )

        assert event_publisher.published == []
