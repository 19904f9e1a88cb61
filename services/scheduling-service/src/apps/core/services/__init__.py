# services/scheduling-service/src/apps/core/services/__init__.py
"""
Scheduling Service Business Logic
"""

from .exceptions import (
    SchedulingError,
    ValidationError,
    RecurrenceParseError,
    BookingStateError,
    NotFoundError,
    AvailabilityError,
    ConflictError,
)
from .recurrence import RecurrenceRule, occurs, parse_rule
from .conflicts import Interval, find_conflicts, has_conflict
from .working_hours import WeeklyHours
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .query_service import Page, QueryService


__all__ = [
    # Services
    'AvailabilityService',
    'BookingService',
    'QueryService',

    # Values
    'Interval',
    'Page',
    'RecurrenceRule',
    'WeeklyHours',

    # Functions
    'find_conflicts',
    'has_conflict',
    'occurs',
    'parse_rule',

    # Exceptions
    'SchedulingError',
    'ValidationError',
    'RecurrenceParseError',
    'BookingStateError',
    'NotFoundError',
    'AvailabilityError',
    'ConflictError',
]
