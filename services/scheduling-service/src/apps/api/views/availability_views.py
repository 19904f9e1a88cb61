# services/scheduling-service/src/apps/api/views/availability_views.py
"""
Availability API Views

Availability exception management, availability checks and
unavailable interval listings.
"""

import logging

from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated

from shared.common.pagination import page_response
from apps.core.models import AvailabilityException
from apps.core.services import AvailabilityService, QueryService
from apps.core.services.booking_service import booking_summary
from apps.core.services.store import BOOKING_KINDS
from apps.api.serializers import (
    AvailabilityExceptionSerializer,
    AvailabilityExceptionCreateSerializer,
    AvailabilityExceptionUpdateSerializer,
    AvailabilityCheckSerializer,
    BookingSummarySerializer,
    ExceptionListQuerySerializer,
    IntervalQuerySerializer,
    IntervalSerializer,
)
from .base import SchedulingAPIMixin

logger = logging.getLogger(__name__)


class AvailabilityExceptionViewSet(SchedulingAPIMixin, viewsets.ModelViewSet):
    """
    ViewSet for staff availability exceptions.

    Time off, holidays and custom hours, one-off or recurring.
    """

    queryset = AvailabilityException.objects.all()
    serializer_class = AvailabilityExceptionSerializer
    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.availability_service = AvailabilityService()
        self.query_service = QueryService()

    def get_queryset(self):
        return AvailabilityException.objects.active().filter(business_id=self.get_business_id())

    def get_serializer_class(self):
        if self.action == 'create':
            return AvailabilityExceptionCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return AvailabilityExceptionUpdateSerializer
        return AvailabilityExceptionSerializer

    def list(self, request, *args, **kwargs):
        """Exceptions of the business, optionally for one staff member."""
        params = ExceptionListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)

        page = self.query_service.list_exceptions_by_business(
            self.get_business_id(),
            **params.validated_data
        )
        return page_response(page, AvailabilityExceptionSerializer(page.items, many=True).data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        exception = self.availability_service.create_availability_exception(
            business_id=self.get_business_id(),
            created_by=self.get_actor_id(),
            **serializer.validated_data
        )

        return Response(
            AvailabilityExceptionSerializer(exception).data,
            status=status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        exception = self.availability_service.update_exception(
            instance.id,
            updated_by=self.get_actor_id(),
            **serializer.validated_data
        )

        return Response(AvailabilityExceptionSerializer(exception).data)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        self.availability_service.delete_exception(instance.id, deleted_by=self.get_actor_id())
        return Response(status=status.HTTP_204_NO_CONTENT)


class AvailabilityCheckView(SchedulingAPIMixin, APIView):
    """Whether a staff member or resource can be booked for an interval, and why not."""

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.availability_service = AvailabilityService()

    def post(self, request):
        serializer = AvailabilityCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        kind = BOOKING_KINDS[data['kind']]
        self.require_subject(kind, data['subject_id'])

        result = self.availability_service.explain_availability(
            data['subject_id'],
            data['start_time'],
            data['end_time'],
            kind=kind,
            exclude_booking_id=data.get('exclude_booking_id'),
        )

        return Response({
            'available': result['available'],
            'unavailable_intervals': IntervalSerializer(
                result['unavailable_intervals'], many=True
            ).data,
            'conflicts': BookingSummarySerializer(
                [booking_summary(b) for b in result['conflicts']], many=True
            ).data,
            'rule_violations': result['rule_violations'],
        })


class UnavailableIntervalsView(SchedulingAPIMixin, APIView):
    """Unavailable intervals of a staff member or resource within a range."""

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.availability_service = AvailabilityService()

    def get(self, request):
        params = IntervalQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        data = params.validated_data
        kind = BOOKING_KINDS[data['kind']]
        self.require_subject(kind, data['subject_id'])

        intervals = self.availability_service.unavailable_intervals(
            data['subject_id'],
            data['start'],
            data['end'],
            kind=kind,
        )

        return Response({
            'subject_id': str(data['subject_id']),
            'start': data['start'],
            'end': data['end'],
            'intervals': IntervalSerializer(intervals, many=True).data,
        })
