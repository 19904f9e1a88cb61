# services/scheduling-service/src/apps/core/services/exceptions.py
"""
Scheduling Service Exceptions
"""


class SchedulingError(Exception):
    """Base exception for scheduling service errors."""
    pass


class ValidationError(SchedulingError):
    """Request is malformed or references invalid data."""
    pass


class RecurrenceParseError(ValidationError):
    """Recurrence rule is missing or cannot be interpreted."""
    pass


class BookingStateError(ValidationError):
    """Invalid booking status transition."""
    pass


class NotFoundError(SchedulingError):
    """Referenced entity does not exist or is tombstoned."""
    pass


class AvailabilityError(SchedulingError):
    """Requested interval falls inside an unavailable interval."""

    def __init__(self, message: str, intervals=None):
        super().__init__(message)
        self.intervals = list(intervals or [])


class ConflictError(SchedulingError):
    """Requested interval overlaps an active booking."""

    def __init__(self, message: str, conflicting_booking_id=None):
        super().__init__(message)
        self.conflicting_booking_id = conflicting_booking_id
