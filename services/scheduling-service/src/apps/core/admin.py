from django.contrib import admin
from .models import (
    Appointment,
    AvailabilityException,
    BookingRule,
    Client,
    Resource,
    ResourceBooking,
    Service,
    Staff,
)

@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'staff_id', 'status', 'start_time', 'end_time', 'is_deleted']
    list_filter = ['status', 'is_deleted']

@admin.register(ResourceBooking)
class ResourceBookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'resource_id', 'booking_type', 'status', 'start_time', 'end_time']
    list_filter = ['status', 'booking_type', 'is_deleted']

@admin.register(AvailabilityException)
class AvailabilityExceptionAdmin(admin.ModelAdmin):
    list_display = ['id', 'staff_id', 'exception_type', 'start_time', 'is_full_day', 'is_recurring']
    list_filter = ['exception_type', 'is_full_day', 'is_recurring']

@admin.register(BookingRule)
class BookingRuleAdmin(admin.ModelAdmin):
    list_display = ['business_id', 'buffer_time_minutes', 'min_advance_booking_hours', 'is_active']

@admin.register(Staff, Resource, Service, Client)
class DirectoryEntryAdmin(admin.ModelAdmin):
    list_display = ['name', 'business_id', 'is_active', 'is_deleted']
    list_filter = ['is_active', 'is_deleted']
    search_fields = ['name']
