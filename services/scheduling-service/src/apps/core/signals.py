# services/scheduling-service/src/apps/core/signals.py
"""
Django Signals for Scheduling Service

Publishes domain events once the saving transaction commits.
"""

import logging
from functools import partial

from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Appointment, AvailabilityException, ResourceBooking
from .events import (
    EventType,
    publish_booking_created,
    publish_booking_deleted,
    publish_booking_status_changed,
    publish_booking_updated,
    publish_exception_changed,
)

logger = logging.getLogger(__name__)


# ==========================================================================
# Booking Signals
# ==========================================================================

@receiver(pre_save, sender=Appointment)
@receiver(pre_save, sender=ResourceBooking)
def booking_pre_save(sender, instance, **kwargs):
    """Track status and tombstone changes before save."""
    instance._old_status = None
    instance._old_is_deleted = False

    if instance._state.adding:
        return

    previous = sender.objects.filter(pk=instance.pk).values('status', 'is_deleted').first()
    if previous:
        instance._old_status = previous['status']
        instance._old_is_deleted = previous['is_deleted']


@receiver(post_save, sender=Appointment)
@receiver(post_save, sender=ResourceBooking)
def booking_post_save(sender, instance, created, update_fields=None, **kwargs):
    """Publish booking lifecycle events."""
    if created:
        logger.info(f"{sender.__name__} created: {instance.id}")
        transaction.on_commit(partial(publish_booking_created, instance))
        return

    if instance.is_deleted and not getattr(instance, '_old_is_deleted', False):
        logger.info(f"{sender.__name__} deleted: {instance.id}")
        transaction.on_commit(partial(publish_booking_deleted, instance))
        return

    old_status = getattr(instance, '_old_status', None)
    if old_status and old_status != instance.status:
        logger.info(f"{sender.__name__} {instance.id} status {old_status} -> {instance.status}")
        transaction.on_commit(partial(publish_booking_status_changed, instance, old_status))
        return

    transaction.on_commit(partial(publish_booking_updated, instance, update_fields))


# ==========================================================================
# Availability Exception Signals
# ==========================================================================

@receiver(post_save, sender=AvailabilityException)
def exception_post_save(sender, instance, created, **kwargs):
    """Publish availability exception changes."""
    if created:
        event_type = EventType.EXCEPTION_CREATED
    elif instance.is_deleted:
        event_type = EventType.EXCEPTION_DELETED
    else:
        event_type = EventType.EXCEPTION_UPDATED

    transaction.on_commit(partial(publish_exception_changed, instance, event_type))
