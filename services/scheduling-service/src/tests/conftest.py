# services/scheduling-service/src/tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for scheduling service tests.
"""

import uuid
from datetime import datetime, timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from shared.common.authentication import generate_access_token


def at(year, month, day, hour=0, minute=0):
    """Aware datetime in the current time zone."""
    return timezone.make_aware(datetime(year, month, day, hour, minute))


@pytest.fixture
def business_id():
    """Provide a test business ID."""
    return uuid.uuid4()


@pytest.fixture
def user_id():
    """Provide a test user ID."""
    return uuid.uuid4()


@pytest.fixture(autouse=True)
def clear_events():
    """Start every test with an empty in-memory event log."""
    from apps.core.events import event_publisher

    event_publisher.clear()
    yield
    event_publisher.clear()


@pytest.fixture
def create_staff(business_id):
    """Factory fixture for creating staff members."""
    from apps.core.models import Staff

    def _create_staff(**kwargs):
        defaults = {
            'business_id': business_id,
            'name': 'Test Staff',
            'email': 'staff@example.com',
        }
        defaults.update(kwargs)

        return Staff.objects.create(**defaults)

    return _create_staff


@pytest.fixture
def create_resource(business_id):
    """Factory fixture for creating resources."""
    from apps.core.models import Resource

    def _create_resource(**kwargs):
        defaults = {
            'business_id': business_id,
            'name': 'Room 1',
            'resource_type': 'room',
        }
        defaults.update(kwargs)

        return Resource.objects.create(**defaults)

    return _create_resource


@pytest.fixture
def staff(create_staff):
    return create_staff()


@pytest.fixture
def resource(create_resource):
    return create_resource()


@pytest.fixture
def client_entry(business_id):
    from apps.core.models import Client

    return Client.objects.create(business_id=business_id, name='Test Client')


@pytest.fixture
def create_appointment(business_id, staff):
    """Factory fixture for creating appointments directly, bypassing the scheduler."""
    from apps.core.models import Appointment

    def _create_appointment(**kwargs):
        start = kwargs.pop('start_time', at(2025, 1, 5, 10))
        defaults = {
            'business_id': business_id,
            'staff_id': staff.id,
            'start_time': start,
            'end_time': start + timedelta(hours=1),
            'status': Appointment.Status.SCHEDULED,
        }
        defaults.update(kwargs)

        return Appointment.objects.create(**defaults)

    return _create_appointment


@pytest.fixture
def create_exception(business_id, staff):
    """Factory fixture for creating availability exceptions directly."""
    from apps.core.models import AvailabilityException

    def _create_exception(**kwargs):
        start = kwargs.pop('start_time', at(2025, 12, 25))
        defaults = {
            'business_id': business_id,
            'staff_id': staff.id,
            'exception_type': AvailabilityException.ExceptionType.TIME_OFF,
            'start_time': start,
            'end_time': start + timedelta(hours=1),
        }
        defaults.update(kwargs)

        return AvailabilityException.objects.create(**defaults)

    return _create_exception


@pytest.fixture
def create_rule(business_id):
    """Factory fixture for creating booking rules."""
    from apps.core.models import BookingRule

    def _create_rule(**kwargs):
        defaults = {
            'business_id': business_id,
            'is_active': True,
        }
        defaults.update(kwargs)

        return BookingRule.objects.create(**defaults)

    return _create_rule


@pytest.fixture
def api_client():
    """Provide API client for testing."""
    return APIClient()


@pytest.fixture
def auth_client(api_client, business_id, user_id):
    """API client carrying a bearer token scoped to the test business."""
    token = generate_access_token(user_id, business_id=business_id)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    return api_client


@pytest.fixture
def next_monday():
    """10:00 on the first Monday at least a week from now."""
    day = (timezone.localtime() + timedelta(days=7)).date()
    day += timedelta(days=(7 - day.weekday()) % 7)
    return timezone.make_aware(datetime(day.year, day.month, day.day, 10, 0))
