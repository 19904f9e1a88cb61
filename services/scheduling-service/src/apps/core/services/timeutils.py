# services/scheduling-service/src/apps/core/services/timeutils.py
"""
Calendar helpers. Calendar days are taken in the service timezone
(``TIME_ZONE`` setting).
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from django.utils import timezone

from .exceptions import ValidationError


def ensure_aware(value: Optional[datetime], name: str = 'timestamp') -> datetime:
    """Return ``value`` as an aware datetime, assuming the service timezone if naive."""
    if value is None:
        raise ValidationError(f"{name} is required")
    if not isinstance(value, datetime):
        raise ValidationError(f"{name} must be a datetime")
    if timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


def local_date(value: datetime) -> date:
    return timezone.localtime(value).date()


def start_of_day(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.min))


def days_touching(start: datetime, end: datetime, lead_days: int = 0) -> Iterator[date]:
    """
    Calendar days touched by ``[start, end)``, optionally starting
    ``lead_days`` earlier to catch windows spilling over midnight.
    """
    first = local_date(start) - timedelta(days=lead_days)
    last = local_date(end - timedelta(microseconds=1)) if end > start else local_date(start)
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)


def date_range_bounds(start_date: date, end_date: date) -> tuple:
    """``[start_date 00:00, end_date + 1 00:00)`` for an inclusive date range."""
    return start_of_day(start_date), start_of_day(end_date + timedelta(days=1))
