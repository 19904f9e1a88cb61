# services/scheduling-service/src/apps/api/views/booking_views.py
"""
Booking API Views

Appointments and resource bookings. Every write goes through the
BookingService so availability and conflict rules are always applied.
"""

import logging

from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from shared.common.pagination import StandardPagination
from apps.core.models import Appointment, ResourceBooking
from apps.core.services import BookingService
from apps.core.services.booking_service import booking_summary
from apps.core.services.store import BOOKING_KINDS
from apps.api.serializers import (
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
from .base import SchedulingAPIMixin
from .filters import AppointmentFilter, ResourceBookingFilter

logger = logging.getLogger(__name__)


class BaseBookingViewSet(SchedulingAPIMixin, viewsets.ModelViewSet):
    """
    CRUD and lifecycle actions for one booking kind.

    Subclasses set the model, serializers and ``schedule`` hook.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    ordering_fields = ['start_time', 'end_time', 'created_at', 'status']
    ordering = ['start_time']

    create_serializer_class = None
    update_serializer_class = None

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.booking_service = BookingService()

    def get_queryset(self):
        """Live bookings of the caller's business."""
        return self.queryset.model.objects.alive().filter(business_id=self.get_business_id())

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'create':
            return self.create_serializer_class
        elif self.action in ['update', 'partial_update']:
            return self.update_serializer_class
        elif self.action == 'cancel':
            return BookingCancelSerializer
        return self.serializer_class

    def schedule(self, data):
        raise NotImplementedError

    def create(self, request, *args, **kwargs):
        """Schedule a new booking."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.schedule(dict(serializer.validated_data))

        return Response(
            self.serializer_class(booking).data,
            status=status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        """Update or reschedule a booking."""
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.update_booking(
            instance.id,
            updated_by=self.get_actor_id(),
            **serializer.validated_data
        )

        return Response(self.serializer_class(booking).data)

    def destroy(self, request, *args, **kwargs):
        """Soft-delete a booking."""
        instance = self.get_object()
        self.booking_service.delete_booking(instance.id, deleted_by=self.get_actor_id())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel a booking, freeing its slot."""
        instance = self.get_object()
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.cancel_booking(
            instance.id,
            cancelled_by=self.get_actor_id(),
            reason=serializer.validated_data.get('reason', ''),
        )
        return Response(self.serializer_class(booking).data)

    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        """Confirm a booking."""
        booking = self.booking_service.confirm_booking(self.get_object().id, self.get_actor_id())
        return Response(self.serializer_class(booking).data)

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        """Mark a booking as in progress."""
        booking = self.booking_service.start_booking(self.get_object().id, self.get_actor_id())
        return Response(self.serializer_class(booking).data)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        """Complete a booking."""
        booking = self.booking_service.complete_booking(self.get_object().id, self.get_actor_id())
        return Response(self.serializer_class(booking).data)

    @action(detail=True, methods=['post'])
    def no_show(self, request, pk=None):
        """Mark booking as no-show."""
        booking = self.booking_service.mark_no_show(self.get_object().id, self.get_actor_id())
        return Response(self.serializer_class(booking).data)


class AppointmentViewSet(BaseBookingViewSet):
    """ViewSet for staff appointments."""

    queryset = Appointment.objects.all()
    serializer_class = AppointmentSerializer
    create_serializer_class = AppointmentCreateSerializer
    update_serializer_class = AppointmentUpdateSerializer
    filterset_class = AppointmentFilter

    def schedule(self, data):
        return self.booking_service.schedule_appointment(
            business_id=self.get_business_id(),
            created_by=self.get_actor_id(),
            **data
        )


class ResourceBookingViewSet(BaseBookingViewSet):
    """ViewSet for resource bookings."""

    queryset = ResourceBooking.objects.all()
    serializer_class = ResourceBookingSerializer
    create_serializer_class = ResourceBookingCreateSerializer
    update_serializer_class = ResourceBookingUpdateSerializer
    filterset_class = ResourceBookingFilter

    def schedule(self, data):
        return self.booking_service.schedule_resource_booking(
            business_id=self.get_business_id(),
            created_by=self.get_actor_id(),
            **data
        )


class ConflictCheckView(SchedulingAPIMixin, APIView):
    """View for checking which bookings a proposed interval collides with."""

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.booking_service = BookingService()

    def post(self, request):
        serializer = ConflictCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self.require_subject(BOOKING_KINDS[data['kind']], data['subject_id'])

        conflicts = self.booking_service.find_conflicts(
            data['subject_id'],
            data['start_time'],
            data['end_time'],
            kind=data['kind'],
            exclude_booking_id=data.get('exclude_booking_id'),
        )

        return Response({
            'has_conflicts': bool(conflicts),
            'conflicts': BookingSummarySerializer(
                [booking_summary(b) for b in conflicts], many=True
            ).data,
        })
