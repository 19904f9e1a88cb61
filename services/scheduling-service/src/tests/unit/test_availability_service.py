# services/scheduling-service/src/tests/unit/test_availability_service.py
"""
Unit Tests for Availability Service

Exception management and unavailable interval resolution.
"""

import uuid
from datetime import date, datetime, timedelta

import pytest
from django.utils import timezone

from apps.core.models import AvailabilityException
from apps.core.services import (
    AvailabilityService,
    NotFoundError,
    RecurrenceParseError,
    ValidationError,
)
from apps.core.services.store import RESOURCE_BOOKING


def at(year, month, day, hour=0, minute=0):
    return timezone.make_aware(datetime(year, month, day, hour, minute))


@pytest.mark.django_db
class TestExceptionManagement:
    """Tests for creating, updating and deleting exceptions."""

    def setup_method(self):
        self.service = AvailabilityService()

    def test_create_time_off(self, business_id, staff, user_id):
        exception = self.service.create_availability_exception(
            business_id=business_id,
            staff_id=staff.id,
            exception_type='time_off',
            start_time=at(2025, 7, 1, 9),
            end_time=at(2025, 7, 1, 12),
            notes='Dentist',
            created_by=user_id,
        )

        assert exception.id is not None
        assert exception.audit.created_by == user_id
        assert exception.notes == 'Dentist'
        assert not exception.is_recurring
        assert exception.recurrence_rule is None

    def test_full_day_without_end(self, business_id, staff):
        exception = self.service.create_availability_exception(
            business_id=business_id,
            staff_id=staff.id,
            exception_type='holiday',
            start_time=at(2025, 12, 25),
            is_full_day=True,
        )

        assert exception.end_time == exception.start_time
        assert exception.effective_window() == (at(2025, 12, 25), at(2025, 12, 26))

    def test_recurring_rule_is_normalized(self, business_id, staff):
        exception = self.service.create_availability_exception(
            business_id=business_id,
            staff_id=staff.id,
            exception_type='custom_hours',
            start_time=at(2025, 1, 6, 12),
            end_time=at(2025, 1, 6, 13),
            is_recurring=True,
            recurrence_rule='FREQ=WEEKLY;BYDAY=MO',
        )

        assert exception.recurrence_rule == {'frequency': 'weekly', 'days': ['monday']}

    def test_recurring_without_rule(self, business_id, staff):
        with pytest.raises(RecurrenceParseError):
            self.service.create_availability_exception(
                business_id=business_id,
                staff_id=staff.id,
                exception_type='time_off',
                start_time=at(2025, 1, 6, 12),
                end_time=at(2025, 1, 6, 13),
                is_recurring=True,
            )

    def test_invalid_type(self, business_id, staff):
        with pytest.raises(ValidationError):
            self.service.create_availability_exception(
                business_id=business_id,
                staff_id=staff.id,
                exception_type='sabbatical',
                start_time=at(2025, 1, 6, 12),
                end_time=at(2025, 1, 6, 13),
            )

    def test_end_before_start(self, business_id, staff):
        with pytest.raises(ValidationError):
            self.service.create_availability_exception(
                business_id=business_id,
                staff_id=staff.id,
                exception_type='time_off',
                start_time=at(2025, 1, 6, 13),
                end_time=at(2025, 1, 6, 12),
            )

    def test_unknown_staff(self, business_id):
        with pytest.raises(NotFoundError):
            self.service.create_availability_exception(
                business_id=business_id,
                staff_id=uuid.uuid4(),
                exception_type='time_off',
                start_time=at(2025, 1, 6, 12),
                end_time=at(2025, 1, 6, 13),
            )

    def test_staff_of_other_business(self, staff):
        with pytest.raises(ValidationError):
            self.service.create_availability_exception(
                business_id=uuid.uuid4(),
                staff_id=staff.id,
                exception_type='time_off',
                start_time=at(2025, 1, 6, 12),
                end_time=at(2025, 1, 6, 13),
            )

    def test_update_revalidates_merged_fields(self, create_exception):
        exception = create_exception(start_time=at(2025, 3, 3, 9))

        with pytest.raises(ValidationError):
            self.service.update_exception(exception.id, end_time=at(2025, 3, 3, 8))

        updated = self.service.update_exception(exception.id, end_time=at(2025, 3, 3, 11), notes='Longer')

        assert updated.end_time == at(2025, 3, 3, 11)
        assert updated.notes == 'Longer'

    def test_update_rejects_unknown_fields(self, create_exception):
        exception = create_exception()

        with pytest.raises(ValidationError):
            self.service.update_exception(exception.id, staff_id=uuid.uuid4())

    def test_delete_tombstones(self, create_exception, user_id):
        exception = create_exception()

        self.service.delete_exception(exception.id, deleted_by=user_id)

        exception.refresh_from_db()
        assert exception.is_deleted
        assert exception.deleted_by == user_id
        with pytest.raises(NotFoundError):
            self.service.get_exception(exception.id)
        assert self.service.get_exception(exception.id, include_deleted=True) == exception

    def test_list_exceptions_for_staff(self, staff, create_exception):
        inside = create_exception(start_time=at(2025, 4, 2, 9))
        create_exception(start_time=at(2025, 5, 2, 9))
        weekly = create_exception(
            start_time=at(2024, 1, 1, 12),
            is_recurring=True,
            recurrence_rule={'frequency': 'weekly', 'days': ['friday']},
        )

        found = self.service.list_exceptions_for_staff(staff.id, at(2025, 4, 1), at(2025, 4, 30))

        assert set(found) == {inside, weekly}


@pytest.mark.django_db
class TestUnavailableIntervals:
    """Tests for resolving exceptions and working hours into intervals."""

    def setup_method(self):
        self.service = AvailabilityService()

    def test_full_day_exception_blocks_ten_minutes(self, staff, create_exception):
        create_exception(
            exception_type=AvailabilityException.ExceptionType.HOLIDAY,
            start_time=at(2025, 12, 25),
            is_full_day=True,
        )

        assert not self.service.check_availability(staff.id, at(2025, 12, 25, 10), at(2025, 12, 25, 10, 10))
        assert self.service.check_availability(staff.id, at(2025, 12, 26, 10), at(2025, 12, 26, 10, 10))

    def test_weekly_monday_blocks_only_mondays_for_six_months(self, staff, create_exception):
        create_exception(
            start_time=at(2025, 1, 6, 12),
            end_time=at(2025, 1, 6, 13),
            is_recurring=True,
            recurrence_rule={'frequency': 'weekly', 'days': ['monday']},
        )

        day = date(2025, 1, 1)
        while day <= date(2025, 6, 30):
            start = timezone.make_aware(datetime(day.year, day.month, day.day, 12, 15))
            available = self.service.check_availability(staff.id, start, start + timedelta(minutes=30))
            assert available == (day.weekday() != 0), day
            day += timedelta(days=1)

    def test_recurring_window_edges_are_half_open(self, staff, create_exception):
        create_exception(
            start_time=at(2025, 1, 6, 12),
            end_time=at(2025, 1, 6, 13),
            is_recurring=True,
            recurrence_rule={'frequency': 'weekly', 'days': ['monday']},
        )

        assert self.service.check_availability(staff.id, at(2025, 1, 13, 11), at(2025, 1, 13, 12))
        assert self.service.check_availability(staff.id, at(2025, 1, 13, 13), at(2025, 1, 13, 14))
        assert not self.service.check_availability(staff.id, at(2025, 1, 13, 12, 59), at(2025, 1, 13, 14))

    def test_yearly_full_day(self, staff, create_exception):
        create_exception(
            exception_type=AvailabilityException.ExceptionType.HOLIDAY,
            start_time=at(2024, 12, 25),
            is_full_day=True,
            is_recurring=True,
            recurrence_rule={'frequency': 'yearly'},
        )

        assert not self.service.check_availability(staff.id, at(2027, 12, 25, 15), at(2027, 12, 25, 16))
        assert self.service.check_availability(staff.id, at(2027, 12, 24, 15), at(2027, 12, 24, 16))

    def test_deleted_exception_no_longer_blocks(self, staff, create_exception):
        exception = create_exception(start_time=at(2025, 2, 3, 9))
        exception.soft_delete()

        assert self.service.check_availability(staff.id, at(2025, 2, 3, 9), at(2025, 2, 3, 10))

    def test_intervals_are_sorted_and_tagged(self, staff, create_exception):
        later = create_exception(start_time=at(2025, 2, 3, 15))
        earlier = create_exception(
            exception_type=AvailabilityException.ExceptionType.CUSTOM_HOURS,
            start_time=at(2025, 2, 3, 9),
        )

        intervals = self.service.unavailable_intervals(staff.id, at(2025, 2, 3), at(2025, 2, 4))

        assert [i.source_id for i in intervals] == [earlier.id, later.id]
        assert intervals[0].reason == 'custom_hours'

    def test_working_hours_gaps(self, create_staff):
        staff = create_staff(working_hours={'monday': [['09:00', '17:00']]})

        assert self.service.check_availability(staff.id, at(2025, 3, 3, 9), at(2025, 3, 3, 17))
        assert not self.service.check_availability(staff.id, at(2025, 3, 3, 16), at(2025, 3, 3, 18))
        assert not self.service.check_availability(staff.id, at(2025, 3, 4, 10), at(2025, 3, 4, 11))

    def test_resource_working_hours(self, create_resource):
        resource = create_resource(working_hours={'tuesday': [['08:00', '12:00']]})

        assert self.service.check_availability(
            resource.id, at(2025, 3, 4, 8), at(2025, 3, 4, 9), kind=RESOURCE_BOOKING
        )
        assert not self.service.check_availability(
            resource.id, at(2025, 3, 3, 8), at(2025, 3, 3, 9), kind=RESOURCE_BOOKING
        )

    def test_empty_range(self, staff):
        assert self.service.unavailable_intervals(staff.id, at(2025, 3, 3), at(2025, 3, 3)) == []

    def test_explain_reports_bookings(self, staff, create_appointment):
        booking = create_appointment(start_time=at(2025, 3, 3, 10))

        result = self.service.explain_availability(staff.id, at(2025, 3, 3, 10, 30), at(2025, 3, 3, 11, 30))

        assert result['available'] is False
        assert result['unavailable_intervals'] == []
        assert result['conflicts'] == [booking]
        assert self.service.check_availability(
            staff.id, at(2025, 3, 3, 10, 30), at(2025, 3, 3, 11, 30), exclude_booking_id=booking.id
        )

    def test_explain_rejects_inverted_range(self, staff):
        with pytest.raises(ValidationError):
            self.service.explain_availability(staff.id, at(2025, 3, 3, 11), at(2025, 3, 3, 10))


@pytest.mark.django_db
class TestBookingRulesInChecks:
    """Availability checks apply the same booking rule as the scheduler."""

    def setup_method(self):
        self.service = AvailabilityService()

    def test_buffer_widens_conflict_window(self, staff, create_rule, create_appointment, next_monday):
        create_rule(buffer_time_minutes=30)
        booking = create_appointment(start_time=next_monday)
        after = next_monday + timedelta(hours=1)

        result = self.service.explain_availability(
            staff.id, after + timedelta(minutes=10), after + timedelta(hours=1, minutes=10)
        )

        assert result['available'] is False
        assert result['conflicts'] == [booking]
        assert self.service.check_availability(
            staff.id, after + timedelta(minutes=30), after + timedelta(hours=1, minutes=30)
        )

    def test_reports_notice_violation(self, staff, create_rule):
        create_rule(min_advance_booking_hours=24)
        soon = timezone.now() + timedelta(hours=2)

        result = self.service.explain_availability(staff.id, soon, soon + timedelta(hours=1))

        assert result['available'] is False
        assert result['rule_violations'] == ['Minimum 24 hours notice required']

    def test_reports_advance_violation(self, staff, create_rule):
        create_rule(max_advance_booking_days=30)
        later = timezone.now() + timedelta(days=60)

        assert not self.service.check_availability(staff.id, later, later + timedelta(hours=1))

    def test_resources_ignore_booking_rule(self, business_id, resource, create_rule):
        create_rule(min_advance_booking_hours=24)
        soon = timezone.now() + timedelta(hours=2)

        result = self.service.explain_availability(
            resource.id, soon, soon + timedelta(hours=1), kind=RESOURCE_BOOKING
        )

        assert result['available'] is True
        assert result['rule_violations'] == []
