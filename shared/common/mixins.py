# shared/common/mixins.py
"""
Reusable Model Mixins

Identity, tenancy, audit and tombstone columns shared by scheduling models.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import models
from django.utils import timezone


# =============================================================================
# VALUE OBJECTS
# =============================================================================

@dataclass(frozen=True)
class AuditInfo:
    """Who touched a record and when."""

    created_at: Optional[datetime] = None
    created_by: Optional[uuid.UUID] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[uuid.UUID] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[uuid.UUID] = None

    def to_dict(self) -> dict:
        return {
            'created_at': self.created_at,
            'created_by': self.created_by,
            'updated_at': self.updated_at,
            'updated_by': self.updated_by,
            'deleted_at': self.deleted_at,
            'deleted_by': self.deleted_by,
        }


# =============================================================================
# QUERYSETS
# =============================================================================

class SoftDeleteQuerySet(models.QuerySet):
    """QuerySet aware of the tombstone flag."""

    def alive(self):
        """Records that have not been tombstoned."""
        return self.filter(is_deleted=False)

    def tombstoned(self):
        return self.filter(is_deleted=True)


# =============================================================================
# MODEL MIXINS
# =============================================================================

class UUIDPrimaryKeyMixin(models.Model):
    """
    Mixin that provides UUID as primary key instead of auto-increment integer.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record"
    )

    class Meta:
        abstract = True


class BusinessMixin(models.Model):
    """
    Mixin for multi-tenant models that belong to a business.
    """

    business_id = models.UUIDField(
        db_index=True,
        help_text="Business this record belongs to"
    )

    class Meta:
        abstract = True


class AuditMixin(models.Model):
    """
    Audit columns exposed as a single AuditInfo value through ``audit``.
    """

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    created_by = models.UUIDField(null=True, blank=True)
    updated_at = models.DateTimeField(default=timezone.now)
    updated_by = models.UUIDField(null=True, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.UUIDField(null=True, blank=True)

    class Meta:
        abstract = True

    @property
    def audit(self) -> AuditInfo:
        return AuditInfo(
            created_at=self.created_at,
            created_by=self.created_by,
            updated_at=self.updated_at,
            updated_by=self.updated_by,
            deleted_at=self.deleted_at,
            deleted_by=self.deleted_by,
        )

    @audit.setter
    def audit(self, value: AuditInfo):
        self.created_at = value.created_at or self.created_at
        self.created_by = value.created_by
        self.updated_at = value.updated_at or self.updated_at
        self.updated_by = value.updated_by
        self.deleted_at = value.deleted_at
        self.deleted_by = value.deleted_by

    def touch(self, actor_id: uuid.UUID = None):
        """Stamp the record as updated by ``actor_id``."""
        self.updated_at = timezone.now()
        self.updated_by = actor_id


class SoftDeleteMixin(models.Model):
    """
    Mixin that provides soft delete functionality.
    Records are marked as deleted instead of being removed from database.
    Requires AuditMixin for the deleted_at/deleted_by columns.
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft-deleted"
    )

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    def soft_delete(self, deleted_by: uuid.UUID = None):
        """Mark record as deleted"""
        now = timezone.now()
        self.is_deleted = True
        self.deleted_at = now
        self.deleted_by = deleted_by
        self.updated_at = now
        self.updated_by = deleted_by
        self.save(update_fields=[
            'is_deleted', 'deleted_at', 'deleted_by', 'updated_at', 'updated_by'
        ])
