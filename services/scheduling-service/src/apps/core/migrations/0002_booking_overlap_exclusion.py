"""
Database-level backstop for the no-overlap invariant on PostgreSQL.

Two active bookings of the same staff member (or resource) may not have
overlapping ``[start_time, end_time)`` ranges. Other backends rely on the
scheduler's row lock alone.
"""

from django.db import migrations


EXCLUSIONS = [
    ('appointments', 'appointments_no_overlap', 'staff_id'),
    ('resource_bookings', 'resource_bookings_no_overlap', 'resource_id'),
]


def add_exclusion_constraints(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return

    schema_editor.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
    for table, name, subject in EXCLUSIONS:
        schema_editor.execute(
            f'ALTER TABLE {table} ADD CONSTRAINT {name} '
            f'EXCLUDE USING gist ({subject} WITH =, '
            f"tstzrange(start_time, end_time, '[)') WITH &&) "
            f"WHERE (NOT is_deleted AND status NOT IN ('cancelled', 'no_show'))"
        )


def drop_exclusion_constraints(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return

    for table, name, _subject in EXCLUSIONS:
        schema_editor.execute(f'ALTER TABLE {table} DROP CONSTRAINT IF EXISTS {name}')


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(add_exclusion_constraints, drop_exclusion_constraints),
    ]
