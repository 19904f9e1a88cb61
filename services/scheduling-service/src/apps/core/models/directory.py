# services/scheduling-service/src/apps/core/models/directory.py
"""
Directory Models

Local reference rows for the staff, resources, services and clients a
booking points at. Owned upstream; the scheduler only needs existence,
business membership, tombstone state and weekly working hours.
"""

from django.db import models

from shared.common.mixins import (
    AuditMixin,
    BusinessMixin,
    SoftDeleteMixin,
    UUIDPrimaryKeyMixin,
)


class DirectoryEntry(UUIDPrimaryKeyMixin, BusinessMixin, AuditMixin, SoftDeleteMixin):
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)

    class Meta:
        abstract = True
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_bookable(self) -> bool:
        return self.is_active and not self.is_deleted


class WorkingHoursMixin(models.Model):
    """JSON working hours, read and written as a WeeklyHours value."""

    working_hours = models.JSONField(blank=True, null=True)

    class Meta:
        abstract = True

    @property
    def weekly_hours(self):
        from apps.core.services.working_hours import WeeklyHours

        return WeeklyHours.from_json(self.working_hours)

    @weekly_hours.setter
    def weekly_hours(self, value):
        self.working_hours = value.to_json() if value is not None else None


class Staff(DirectoryEntry, WorkingHoursMixin):
    email = models.EmailField(blank=True, default='')

    class Meta(DirectoryEntry.Meta):
        db_table = 'staff'
        verbose_name_plural = 'staff'


class Resource(DirectoryEntry, WorkingHoursMixin):
    resource_type = models.CharField(max_length=50, blank=True, default='')

    class Meta(DirectoryEntry.Meta):
        db_table = 'resources'


class Service(DirectoryEntry):
    duration_minutes = models.PositiveIntegerField(default=60)

    class Meta(DirectoryEntry.Meta):
        db_table = 'services'


class Client(DirectoryEntry):
    email = models.EmailField(blank=True, default='')

    class Meta(DirectoryEntry.Meta):
        db_table = 'clients'
