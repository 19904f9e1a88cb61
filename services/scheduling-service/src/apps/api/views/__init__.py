# services/scheduling-service/src/apps/api/views/__init__.py
"""
Scheduling API Views
"""

from .booking_views import (
    AppointmentViewSet,
    ResourceBookingViewSet,
    ConflictCheckView,
)

from .availability_views import (
    AvailabilityExceptionViewSet,
    AvailabilityCheckView,
    UnavailableIntervalsView,
)

from .query_views import (
    StaffAppointmentsView,
    ClientAppointmentsView,
    ResourceBookingsView,
    BusinessScheduleView,
)


__all__ = [
    # Bookings
    'AppointmentViewSet',
    'ResourceBookingViewSet',
    'ConflictCheckView',

    # Availability
    'AvailabilityExceptionViewSet',
    'AvailabilityCheckView',
    'UnavailableIntervalsView',

    # Range queries
    'StaffAppointmentsView',
    'ClientAppointmentsView',
    'ResourceBookingsView',
    'BusinessScheduleView',
]
