# services/scheduling-service/src/apps/api/views/query_views.py
"""
Range Query Views

Date-bounded booking listings by staff member, client, resource or the
whole business, ordered by start time.
"""

import logging

from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated

from shared.common.pagination import page_response
from apps.core.models import Client, Resource, Staff
from apps.core.services import QueryService
from apps.api.serializers import (
    AppointmentSerializer,
    RangeQuerySerializer,
    ResourceBookingSerializer,
)
from .base import SchedulingAPIMixin

logger = logging.getLogger(__name__)


class BaseRangeView(SchedulingAPIMixin, APIView):

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.query_service = QueryService()

    def get_params(self) -> dict:
        params = RangeQuerySerializer(data=self.request.query_params)
        params.is_valid(raise_exception=True)
        return dict(params.validated_data)

    def respond(self, page, serializer_class):
        return page_response(page, serializer_class(page.items, many=True).data)

    def list_kwargs(self, params: dict) -> dict:
        return {
            'page': params['page'],
            'page_size': params['page_size'],
            'active_only': params['active_only'],
            'status': params.get('status'),
        }


class StaffAppointmentsView(BaseRangeView):
    """Appointments of one staff member."""

    def get(self, request, staff_id):
        self.require_owned(Staff, 'Staff member', staff_id)
        params = self.get_params()

        page = self.query_service.list_by_staff_and_date_range(
            staff_id, params['range_start'], params['range_end'], **self.list_kwargs(params)
        )
        return self.respond(page, AppointmentSerializer)


class ClientAppointmentsView(BaseRangeView):
    """Appointments of one client."""

    def get(self, request, client_id):
        self.require_owned(Client, 'Client', client_id)
        params = self.get_params()

        page = self.query_service.list_by_client_and_date_range(
            client_id, params['range_start'], params['range_end'], **self.list_kwargs(params)
        )
        return self.respond(page, AppointmentSerializer)


class ResourceBookingsView(BaseRangeView):
    """Bookings of one resource."""

    def get(self, request, resource_id):
        self.require_owned(Resource, 'Resource', resource_id)
        params = self.get_params()

        page = self.query_service.list_by_resource_and_date_range(
            resource_id, params['range_start'], params['range_end'], **self.list_kwargs(params)
        )
        return self.respond(page, ResourceBookingSerializer)


class BusinessScheduleView(BaseRangeView):
    """All appointments (or resource bookings, with ``kind``) of the business."""

    def get(self, request):
        params = self.get_params()

        page = self.query_service.list_by_business_and_date_range(
            self.get_business_id(),
            params['range_start'],
            params['range_end'],
            kind=params['kind'],
            **self.list_kwargs(params)
        )
        serializer_class = AppointmentSerializer if params['kind'] == 'appointment' else ResourceBookingSerializer
        return self.respond(page, serializer_class)
