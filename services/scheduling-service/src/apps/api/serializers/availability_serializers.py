# services/scheduling-service/src/apps/api/serializers/availability_serializers.py
"""
Availability Serializers

Availability exceptions, availability checks and unavailable intervals.
"""

from rest_framework import serializers

from apps.core.models import AvailabilityException
from apps.core.services import RecurrenceParseError, parse_rule


class AvailabilityExceptionSerializer(serializers.ModelSerializer):

    exception_type_display = serializers.CharField(
        source='get_exception_type_display',
        read_only=True
    )

    class Meta:
        model = AvailabilityException
        fields = [
            'id', 'business_id', 'staff_id',
            'exception_type', 'exception_type_display',
            'start_time', 'end_time', 'is_full_day',
            'is_recurring', 'recurrence_rule',
            'notes',
            'created_at', 'created_by', 'updated_at', 'updated_by',
        ]
        read_only_fields = fields


class RecurrenceRuleField(serializers.JSONField):
    """
    Accepts ``{"frequency": "weekly", "days": ["monday"]}``,
    ``{"frequency": "yearly"}`` or an RRULE string such as
    ``"FREQ=WEEKLY;BYDAY=MO"``. Parse failures are field errors.
    """

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if value in (None, '', {}):
            return None
        try:
            return parse_rule(value).to_dict()
        except RecurrenceParseError as e:
            raise serializers.ValidationError(str(e))


class AvailabilityExceptionCreateSerializer(serializers.Serializer):
    staff_id = serializers.UUIDField()
    exception_type = serializers.ChoiceField(
        choices=AvailabilityException.ExceptionType.choices
    )
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField(required=False, allow_null=True)
    is_full_day = serializers.BooleanField(default=False)
    is_recurring = serializers.BooleanField(default=False)
    recurrence_rule = RecurrenceRuleField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not attrs.get('is_full_day') and not attrs.get('end_time'):
            raise serializers.ValidationError({
                'end_time': "End time is required unless the exception is full-day"
            })
        if attrs.get('is_recurring') and not attrs.get('recurrence_rule'):
            raise serializers.ValidationError({
                'recurrence_rule': "Recurring exceptions need a recurrence rule"
            })
        return attrs


class AvailabilityExceptionUpdateSerializer(serializers.Serializer):
    exception_type = serializers.ChoiceField(
        choices=AvailabilityException.ExceptionType.choices,
        required=False
    )
    start_time = serializers.DateTimeField(required=False)
    end_time = serializers.DateTimeField(required=False, allow_null=True)
    is_full_day = serializers.BooleanField(required=False)
    is_recurring = serializers.BooleanField(required=False)
    recurrence_rule = RecurrenceRuleField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class AvailabilityCheckSerializer(serializers.Serializer):
    """Is ``[start_time, end_time)`` bookable for a staff member or resource?"""

    kind = serializers.ChoiceField(
        choices=['appointment', 'resource_booking'],
        default='appointment'
    )
    subject_id = serializers.UUIDField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    exclude_booking_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['end_time'] <= attrs['start_time']:
            raise serializers.ValidationError({
                'end_time': "End time must be after start time"
            })
        return attrs


class IntervalSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    source_id = serializers.UUIDField(allow_null=True)
    reason = serializers.CharField(allow_blank=True)
