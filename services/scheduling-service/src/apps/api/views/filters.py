# services/scheduling-service/src/apps/api/views/filters.py
"""
API Filters

Django Filter classes for the scheduling API.
"""

import django_filters

from apps.core.models import Appointment, BookingStatus, ResourceBooking


class BookingFilter(django_filters.FilterSet):
    """Filters shared by appointment and resource booking listings."""

    # Date filters
    date_from = django_filters.DateFilter(
        field_name='start_time',
        lookup_expr='date__gte'
    )
    date_to = django_filters.DateFilter(
        field_name='start_time',
        lookup_expr='date__lte'
    )

    # Time range
    start_after = django_filters.DateTimeFilter(
        field_name='start_time',
        lookup_expr='gte'
    )
    start_before = django_filters.DateTimeFilter(
        field_name='start_time',
        lookup_expr='lt'
    )

    # Status filters
    status = django_filters.ChoiceFilter(
        choices=BookingStatus.choices
    )
    status_in = django_filters.BaseInFilter(
        field_name='status'
    )
    active = django_filters.BooleanFilter(
        method='filter_active'
    )

    def filter_active(self, queryset, name, value):
        """Bookings still holding their slot, or the ones that no longer do."""
        active = queryset.active()
        if value:
            return active
        return queryset.exclude(pk__in=active.values('pk'))


class AppointmentFilter(BookingFilter):

    staff_id = django_filters.UUIDFilter()
    client_id = django_filters.UUIDFilter()
    service_id = django_filters.UUIDFilter()

    class Meta:
        model = Appointment
        fields = ['staff_id', 'client_id', 'service_id', 'status']


class ResourceBookingFilter(BookingFilter):

    resource_id = django_filters.UUIDFilter()
    appointment_id = django_filters.UUIDFilter()
    staff_id = django_filters.UUIDFilter()
    booking_type = django_filters.ChoiceFilter(
        choices=ResourceBooking.BookingType.choices
    )

    class Meta:
        model = ResourceBooking
        fields = ['resource_id', 'appointment_id', 'staff_id', 'booking_type', 'status']
