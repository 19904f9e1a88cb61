import uuid

import django.utils.timezone
from django.db import migrations, models


def audit_fields():
    return [
        ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
        ('created_by', models.UUIDField(blank=True, null=True)),
        ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
        ('updated_by', models.UUIDField(blank=True, null=True)),
        ('deleted_at', models.DateTimeField(blank=True, null=True)),
        ('deleted_by', models.UUIDField(blank=True, null=True)),
    ]


def identity_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for this record', primary_key=True, serialize=False)),
        ('business_id', models.UUIDField(db_index=True, help_text='Business this record belongs to')),
    ]


def tombstone_field():
    return ('is_deleted', models.BooleanField(db_index=True, default=False, help_text='Whether this record has been soft-deleted'))


def booking_fields():
    return [
        *identity_fields(),
        *audit_fields(),
        tombstone_field(),
        ('start_time', models.DateTimeField(db_index=True)),
        ('end_time', models.DateTimeField()),
        ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('confirmed', 'Confirmed'), ('in_progress', 'In Progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('no_show', 'No Show')], db_index=True, default='scheduled', max_length=20)),
        ('notes', models.TextField(blank=True, default='')),
    ]


def directory_fields():
    return [
        *identity_fields(),
        *audit_fields(),
        tombstone_field(),
        ('name', models.CharField(max_length=255)),
        ('is_active', models.BooleanField(default=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Staff',
            fields=[
                *directory_fields(),
                ('working_hours', models.JSONField(blank=True, null=True)),
                ('email', models.EmailField(blank=True, default='', max_length=254)),
            ],
            options={
                'db_table': 'staff',
                'ordering': ['name'],
                'abstract': False,
                'verbose_name_plural': 'staff',
            },
        ),
        migrations.CreateModel(
            name='Resource',
            fields=[
                *directory_fields(),
                ('working_hours', models.JSONField(blank=True, null=True)),
                ('resource_type', models.CharField(blank=True, default='', max_length=50)),
            ],
            options={
                'db_table': 'resources',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Service',
            fields=[
                *directory_fields(),
                ('duration_minutes', models.PositiveIntegerField(default=60)),
            ],
            options={
                'db_table': 'services',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Client',
            fields=[
                *directory_fields(),
                ('email', models.EmailField(blank=True, default='', max_length=254)),
            ],
            options={
                'db_table': 'clients',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='BookingRule',
            fields=[
                *identity_fields(),
                *audit_fields(),
                ('buffer_time_minutes', models.PositiveIntegerField(default=0, help_text='Minimum gap between consecutive bookings of one staff member or resource')),
                ('min_advance_booking_hours', models.PositiveIntegerField(default=0, help_text='Bookings must start at least this many hours from now')),
                ('max_advance_booking_days', models.PositiveIntegerField(blank=True, null=True, help_text='Bookings may start at most this many days from now')),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'booking_rules',
                'constraints': [
                    models.UniqueConstraint(fields=('business_id',), name='one_booking_rule_per_business'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AvailabilityException',
            fields=[
                *identity_fields(),
                *audit_fields(),
                tombstone_field(),
                ('staff_id', models.UUIDField(db_index=True)),
                ('exception_type', models.CharField(choices=[('time_off', 'Time Off'), ('holiday', 'Holiday'), ('custom_hours', 'Custom Hours')], max_length=20)),
                ('start_time', models.DateTimeField(db_index=True)),
                ('end_time', models.DateTimeField()),
                ('is_full_day', models.BooleanField(default=False)),
                ('is_recurring', models.BooleanField(default=False)),
                ('recurrence_rule', models.JSONField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
            ],
            options={
                'db_table': 'availability_exceptions',
                'ordering': ['start_time'],
                'indexes': [
                    models.Index(fields=['staff_id', 'start_time'], name='exc_staff_start_idx'),
                    models.Index(fields=['business_id', 'start_time'], name='exc_business_start_idx'),
                    models.Index(fields=['staff_id', 'is_recurring'], name='exc_staff_recurring_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                *booking_fields(),
                ('staff_id', models.UUIDField(db_index=True)),
                ('service_id', models.UUIDField(blank=True, null=True)),
                ('client_id', models.UUIDField(blank=True, db_index=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True, default='')),
            ],
            options={
                'db_table': 'appointments',
                'ordering': ['start_time'],
                'abstract': False,
                'indexes': [
                    models.Index(fields=['business_id', 'start_time'], name='appt_business_start_idx'),
                    models.Index(fields=['staff_id', 'start_time', 'end_time'], name='appt_staff_window_idx'),
                    models.Index(fields=['client_id', 'start_time'], name='appt_client_start_idx'),
                    models.Index(fields=['status', 'start_time'], name='appt_status_start_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(end_time__gt=models.F('start_time')), name='appointment_valid_times'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ResourceBooking',
            fields=[
                *booking_fields(),
                ('resource_id', models.UUIDField(db_index=True)),
                ('appointment_id', models.UUIDField(blank=True, db_index=True, null=True)),
                ('staff_id', models.UUIDField(blank=True, null=True)),
                ('booking_type', models.CharField(choices=[('appointment', 'Appointment'), ('maintenance', 'Maintenance'), ('block', 'Block'), ('other', 'Other')], default='appointment', max_length=20)),
            ],
            options={
                'db_table': 'resource_bookings',
                'ordering': ['start_time'],
                'abstract': False,
                'indexes': [
                    models.Index(fields=['business_id', 'start_time'], name='rbook_business_start_idx'),
                    models.Index(fields=['resource_id', 'start_time', 'end_time'], name='rbook_resource_window_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(end_time__gt=models.F('start_time')), name='resourcebooking_valid_times'),
                ],
            },
        ),
    ]
