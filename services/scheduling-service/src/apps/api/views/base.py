# services/scheduling-service/src/apps/api/views/base.py
"""
Shared view plumbing: tenant scoping and translation of scheduling
errors into API exceptions.
"""

import uuid
import logging

from shared.common.exceptions import (
    BadRequestException,
    BaseAPIException,
    BookingConflictException,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from apps.core.services import (
    AvailabilityError,
    BookingStateError,
    ConflictError,
    NotFoundError,
    RecurrenceParseError,
    SchedulingError,
)

logger = logging.getLogger(__name__)


def to_api_exception(exc: SchedulingError) -> BaseAPIException:
    """Map a scheduling error onto the HTTP error it should produce."""
    if isinstance(exc, ConflictError):
        return BookingConflictException(str(exc), conflicting_booking_id=exc.conflicting_booking_id)
    if isinstance(exc, AvailabilityError):
        return SlotUnavailableException(
            str(exc),
            extra_data={'unavailable_intervals': [i.to_dict() for i in exc.intervals]},
        )
    if isinstance(exc, NotFoundError):
        return NotFoundException(str(exc))
    if isinstance(exc, BookingStateError):
        return BadRequestException(str(exc), error_code='INVALID_STATE')
    if isinstance(exc, RecurrenceParseError):
        return BadRequestException(str(exc), error_code='INVALID_RECURRENCE')
    return ValidationException(detail=str(exc))


class SchedulingAPIMixin:
    """
    For APIView subclasses. Scheduling errors raised by handlers are
    converted before DRF's exception handling sees them.
    """

    def handle_exception(self, exc):
        if isinstance(exc, SchedulingError):
            logger.info(f"{type(exc).__name__}: {exc}")
            exc = to_api_exception(exc)
        return super().handle_exception(exc)

    def get_business_id(self) -> uuid.UUID:
        """Business from the token, falling back to the X-Business-ID header."""
        value = getattr(self.request.user, 'business_id', None) or \
            self.request.headers.get('X-Business-ID')

        if not value:
            raise BadRequestException('Business ID required')

        try:
            return uuid.UUID(str(value))
        except ValueError:
            raise BadRequestException(f"Invalid business ID: {value}")

    def require_owned(self, model, label: str, pk):
        """404 unless ``pk`` is a live entry of the caller's business."""
        if not model.objects.alive().filter(pk=pk, business_id=self.get_business_id()).exists():
            raise NotFoundException(f"{label} {pk} not found")

    def require_subject(self, kind, subject_id):
        """Same check for the staff member or resource a booking kind is keyed by."""
        self.require_owned(kind.subject_model, kind.subject_label, subject_id)

    def get_actor_id(self):
        """Acting user for audit columns; None when the subject is not a UUID."""
        value = getattr(self.request.user, 'id', None)
        try:
            return uuid.UUID(str(value)) if value else None
        except ValueError:
            return None
