# services/scheduling-service/src/apps/api/serializers/query_serializers.py
"""
Range Query Serializers
"""

from rest_framework import serializers

from apps.core.models import BookingStatus


class RangeQuerySerializer(serializers.Serializer):
    """
    Query parameters of a range listing.

    Either ``start_date``/``end_date`` (whole days, inclusive) or
    ``start``/``end`` (half-open datetimes) must be given.
    """

    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)

    kind = serializers.ChoiceField(
        choices=['appointment', 'resource_booking'],
        default='appointment'
    )
    status = serializers.ChoiceField(choices=BookingStatus.choices, required=False)
    active_only = serializers.BooleanField(default=False)
    page = serializers.IntegerField(min_value=1, default=1)
    page_size = serializers.IntegerField(min_value=1, default=20)

    def validate(self, attrs):
        start = attrs.pop('start', None) or attrs.pop('start_date', None)
        end = attrs.pop('end', None) or attrs.pop('end_date', None)
        attrs.pop('start_date', None)
        attrs.pop('end_date', None)

        if start is None or end is None:
            raise serializers.ValidationError(
                "Provide start_date and end_date, or start and end"
            )

        attrs['range_start'] = start
        attrs['range_end'] = end
        return attrs


class ExceptionListQuerySerializer(serializers.Serializer):
    staff_id = serializers.UUIDField(required=False)
    page = serializers.IntegerField(min_value=1, default=1)
    page_size = serializers.IntegerField(min_value=1, default=20)


class IntervalQuerySerializer(serializers.Serializer):
    kind = serializers.ChoiceField(
        choices=['appointment', 'resource_booking'],
        default='appointment'
    )
    subject_id = serializers.UUIDField()
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs['end'] <= attrs['start']:
            raise serializers.ValidationError({'end': "End must be after start"})
        return attrs
