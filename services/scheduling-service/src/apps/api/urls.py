# services/scheduling-service/src/apps/api/urls.py
"""
Scheduling API URL Configuration
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    # Bookings
    AppointmentViewSet,
    ResourceBookingViewSet,
    ConflictCheckView,
    # Availability
    AvailabilityExceptionViewSet,
    AvailabilityCheckView,
    UnavailableIntervalsView,
    # Range queries
    StaffAppointmentsView,
    ClientAppointmentsView,
    ResourceBookingsView,
    BusinessScheduleView,
)

app_name = 'api'

# Create router and register viewsets
router = DefaultRouter()
router.register(r'appointments', AppointmentViewSet, basename='appointment')
router.register(r'resource-bookings', ResourceBookingViewSet, basename='resource-booking')
router.register(r'availability-exceptions', AvailabilityExceptionViewSet, basename='availability-exception')

urlpatterns = [
    # Router URLs
    path('', include(router.urls)),

    # Availability and conflicts
    path('availability/check/', AvailabilityCheckView.as_view(), name='availability-check'),
    path('availability/unavailable/', UnavailableIntervalsView.as_view(), name='unavailable-intervals'),
    path('conflicts/', ConflictCheckView.as_view(), name='conflict-check'),

    # Range queries
    path('schedule/', BusinessScheduleView.as_view(), name='business-schedule'),
    path('staff/<uuid:staff_id>/appointments/', StaffAppointmentsView.as_view(), name='staff-appointments'),
    path('clients/<uuid:client_id>/appointments/', ClientAppointmentsView.as_view(), name='client-appointments'),
    path('resources/<uuid:resource_id>/bookings/', ResourceBookingsView.as_view(), name='resource-bookings'),
]
