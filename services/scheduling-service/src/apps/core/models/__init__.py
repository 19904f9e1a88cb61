# services/scheduling-service/src/apps/core/models/__init__.py
"""
Scheduling Service Models
"""

from .booking import (
    ALLOWED_TRANSITIONS,
    INACTIVE_STATUSES,
    Appointment,
    BookingStatus,
    ResourceBooking,
)
from .availability import AvailabilityException
from .booking_rule import BookingRule
from .directory import Client, Resource, Service, Staff

__all__ = [
    'ALLOWED_TRANSITIONS',
    'INACTIVE_STATUSES',
    'Appointment',
    'BookingStatus',
    'ResourceBooking',
    'AvailabilityException',
    'BookingRule',
    'Client',
    'Resource',
    'Service',
    'Staff',
]
