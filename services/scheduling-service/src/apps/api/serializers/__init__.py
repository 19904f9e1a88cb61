# services/scheduling-service/src/apps/api/serializers/__init__.py
"""
Scheduling API Serializers
"""

from .booking_serializers import (
    AppointmentSerializer,
    AppointmentCreateSerializer,
    AppointmentUpdateSerializer,
    ResourceBookingSerializer,
    ResourceBookingCreateSerializer,
    ResourceBookingUpdateSerializer,
    BookingCancelSerializer,
    BookingSummarySerializer,
    ConflictCheckSerializer,
)

from .availability_serializers import (
    AvailabilityExceptionSerializer,
    AvailabilityExceptionCreateSerializer,
    AvailabilityExceptionUpdateSerializer,
    AvailabilityCheckSerializer,
    IntervalSerializer,
)

from .query_serializers import (
    RangeQuerySerializer,
    ExceptionListQuerySerializer,
    IntervalQuerySerializer,
)


__all__ = [
    # Bookings
    'AppointmentSerializer',
    'AppointmentCreateSerializer',
    'AppointmentUpdateSerializer',
    'ResourceBookingSerializer',
    'ResourceBookingCreateSerializer',
    'ResourceBookingUpdateSerializer',
    'BookingCancelSerializer',
    'BookingSummarySerializer',
    'ConflictCheckSerializer',

    # Availability
    'AvailabilityExceptionSerializer',
    'AvailabilityExceptionCreateSerializer',
    'AvailabilityExceptionUpdateSerializer',
    'AvailabilityCheckSerializer',
    'IntervalSerializer',

    # Queries
    'RangeQuerySerializer',
    'ExceptionListQuerySerializer',
    'IntervalQuerySerializer',
]
