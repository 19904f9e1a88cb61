# services/scheduling-service/src/apps/core/events.py
"""
Scheduling Service Events

Event definitions and publishing for the scheduling service.
Events are emitted after the surrounding transaction commits.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

import redis
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


class EventType:
    """Event type constants for scheduling service."""

    # Booking lifecycle events
    BOOKING_CREATED = 'booking.created'
    BOOKING_UPDATED = 'booking.updated'
    BOOKING_CONFIRMED = 'booking.confirmed'
    BOOKING_STARTED = 'booking.started'
    BOOKING_COMPLETED = 'booking.completed'
    BOOKING_CANCELLED = 'booking.cancelled'
    BOOKING_NO_SHOW = 'booking.no_show'
    BOOKING_DELETED = 'booking.deleted'

    # Availability exception events
    EXCEPTION_CREATED = 'availability_exception.created'
    EXCEPTION_UPDATED = 'availability_exception.updated'
    EXCEPTION_DELETED = 'availability_exception.deleted'


STATUS_EVENTS = {
    'confirmed': EventType.BOOKING_CONFIRMED,
    'in_progress': EventType.BOOKING_STARTED,
    'completed': EventType.BOOKING_COMPLETED,
    'cancelled': EventType.BOOKING_CANCELLED,
    'no_show': EventType.BOOKING_NO_SHOW,
}


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for event payloads."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


class EventPublisher:
    """
    Event publisher for scheduling service.

    Backends (``EVENT_BACKEND`` setting):
        log     -- log the payload (default)
        redis   -- Redis pub/sub on channel ``<EVENT_CHANNEL_PREFIX><event_type>``
        memory  -- keep events in ``self.published`` (tests)
    """

    def __init__(self):
        self.service_name = getattr(settings, 'SERVICE_NAME', 'scheduling-service')
        self.published: List[Dict[str, Any]] = []
        self._redis = None

    @property
    def enabled(self) -> bool:
        return getattr(settings, 'EVENT_PUBLISHING_ENABLED', True)

    def publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        business_id: UUID = None,
        metadata: Dict[str, Any] = None
    ) -> bool:
        """
        Publish an event to the configured backend.

        Returns:
            True if published successfully, False otherwise
        """
        if not self.enabled:
            logger.debug(f"Event publishing disabled, skipping: {event_type}")
            return False

        event = {
            'event_type': event_type,
            'service': self.service_name,
            'timestamp': timezone.now().isoformat(),
            'business_id': str(business_id) if business_id else None,
            'payload': payload,
            'metadata': metadata or {},
        }

        logger.info(f"Publishing event: {event_type}", extra={
            'event_type': event_type,
            'business_id': event['business_id'],
        })

        try:
            self._publish_to_backend(event_type, event)
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.error(f"Failed to publish event {event_type}: {e}")
            return False

        return True

    def _publish_to_backend(self, event_type: str, event: Dict[str, Any]):
        backend = getattr(settings, 'EVENT_BACKEND', 'log')
        event_json = json.dumps(event, cls=JSONEncoder)

        if backend == 'redis':
            self._publish_redis(event_type, event_json)
        elif backend == 'memory':
            self.published.append(json.loads(event_json))
        else:
            logger.debug(f"Event payload: {event_json[:500]}")

    def _publish_redis(self, event_type: str, event_json: str):
        """Publish to Redis pub/sub."""
        if self._redis is None:
            self._redis = redis.Redis.from_url(settings.REDIS_URL)

        prefix = getattr(settings, 'EVENT_CHANNEL_PREFIX', 'scheduling.')
        self._redis.publish(f"{prefix}{event_type}", event_json)

    def clear(self):
        self.published.clear()


# Global publisher instance
event_publisher = EventPublisher()


# ==========================================================================
# Payload helpers
# ==========================================================================

def booking_payload(booking) -> Dict[str, Any]:
    payload = {
        'booking_id': booking.id,
        'kind': booking._meta.model_name,
        'subject_id': booking.subject_id,
        'start_time': booking.start_time,
        'end_time': booking.end_time,
        'status': booking.status,
    }
    for field in ('staff_id', 'client_id', 'service_id', 'resource_id', 'appointment_id'):
        if hasattr(booking, field):
            payload[field] = getattr(booking, field)
    return payload


def publish_booking_created(booking):
    event_publisher.publish(
        EventType.BOOKING_CREATED,
        booking_payload(booking),
        business_id=booking.business_id,
        metadata={'created_by': booking.created_by},
    )


def publish_booking_updated(booking, changed_fields=None):
    event_publisher.publish(
        EventType.BOOKING_UPDATED,
        {**booking_payload(booking), 'changed_fields': sorted(changed_fields or [])},
        business_id=booking.business_id,
        metadata={'updated_by': booking.updated_by},
    )


def publish_booking_status_changed(booking, old_status: str):
    event_type = STATUS_EVENTS.get(booking.status)
    if event_type is None:
        return

    event_publisher.publish(
        event_type,
        {**booking_payload(booking), 'previous_status': old_status},
        business_id=booking.business_id,
        metadata={'updated_by': booking.updated_by},
    )


def publish_booking_deleted(booking):
    event_publisher.publish(
        EventType.BOOKING_DELETED,
        booking_payload(booking),
        business_id=booking.business_id,
        metadata={'deleted_by': booking.deleted_by},
    )


def publish_exception_changed(exception, event_type: str):
    event_publisher.publish(
        event_type,
        {
            'exception_id': exception.id,
            'staff_id': exception.staff_id,
            'exception_type': exception.exception_type,
            'start_time': exception.start_time,
            'end_time': exception.end_time,
            'is_full_day': exception.is_full_day,
            'is_recurring': exception.is_recurring,
            'recurrence_rule': exception.recurrence_rule,
        },
        business_id=exception.business_id,
    )
