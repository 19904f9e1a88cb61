# services/scheduling-service/src/apps/api/serializers/booking_serializers.py
"""
Booking Serializers

Appointments and resource bookings. Write serializers only shape input;
the scheduler decides whether a booking may exist.
"""

from rest_framework import serializers

from apps.core.models import Appointment, BookingStatus, ResourceBooking


class BookingSerializer(serializers.ModelSerializer):
    """Columns shared by both booking kinds."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    duration_minutes = serializers.IntegerField(read_only=True)
    is_active = serializers.BooleanField(read_only=True)

    class Meta:
        fields = [
            'id', 'business_id',
            'start_time', 'end_time', 'duration_minutes',
            'status', 'status_display', 'is_active',
            'notes',
            'created_at', 'created_by', 'updated_at', 'updated_by',
        ]
        read_only_fields = fields


class AppointmentSerializer(BookingSerializer):

    class Meta(BookingSerializer.Meta):
        model = Appointment
        fields = BookingSerializer.Meta.fields + [
            'staff_id', 'service_id', 'client_id',
            'cancelled_at', 'cancellation_reason',
        ]
        read_only_fields = fields


class ResourceBookingSerializer(BookingSerializer):

    booking_type_display = serializers.CharField(
        source='get_booking_type_display',
        read_only=True
    )

    class Meta(BookingSerializer.Meta):
        model = ResourceBooking
        fields = BookingSerializer.Meta.fields + [
            'resource_id', 'appointment_id', 'staff_id',
            'booking_type', 'booking_type_display',
        ]
        read_only_fields = fields


class TimeRangeMixin:
    """Rejects ranges whose end is not after their start."""

    def validate(self, attrs):
        start_time = attrs.get('start_time')
        end_time = attrs.get('end_time')

        if start_time and end_time and end_time <= start_time:
            raise serializers.ValidationError({
                'end_time': "End time must be after start time"
            })

        return attrs


class AppointmentCreateSerializer(TimeRangeMixin, serializers.Serializer):
    staff_id = serializers.UUIDField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    service_id = serializers.UUIDField(required=False, allow_null=True)
    client_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AppointmentUpdateSerializer(TimeRangeMixin, serializers.Serializer):
    """Reschedule or edit an appointment. Omitted fields are left alone."""

    staff_id = serializers.UUIDField(required=False)
    start_time = serializers.DateTimeField(required=False)
    end_time = serializers.DateTimeField(required=False)
    service_id = serializers.UUIDField(required=False, allow_null=True)
    client_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class ResourceBookingCreateSerializer(TimeRangeMixin, serializers.Serializer):
    resource_id = serializers.UUIDField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    booking_type = serializers.ChoiceField(
        choices=ResourceBooking.BookingType.choices,
        default=ResourceBooking.BookingType.APPOINTMENT
    )
    appointment_id = serializers.UUIDField(required=False, allow_null=True)
    staff_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ResourceBookingUpdateSerializer(TimeRangeMixin, serializers.Serializer):
    resource_id = serializers.UUIDField(required=False)
    start_time = serializers.DateTimeField(required=False)
    end_time = serializers.DateTimeField(required=False)
    booking_type = serializers.ChoiceField(
        choices=ResourceBooking.BookingType.choices,
        required=False
    )
    appointment_id = serializers.UUIDField(required=False, allow_null=True)
    staff_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(
        required=False,
        allow_blank=True,
        default='',
        max_length=1000
    )


class ConflictCheckSerializer(TimeRangeMixin, serializers.Serializer):
    """Which active bookings would a proposed interval collide with."""

    kind = serializers.ChoiceField(
        choices=['appointment', 'resource_booking'],
        default='appointment'
    )
    subject_id = serializers.UUIDField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    exclude_booking_id = serializers.UUIDField(required=False, allow_null=True)


class BookingSummarySerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()
    subject_id = serializers.UUIDField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    status = serializers.ChoiceField(choices=BookingStatus.choices)
