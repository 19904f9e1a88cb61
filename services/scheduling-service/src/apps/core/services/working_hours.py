# services/scheduling-service/src/apps/core/services/working_hours.py
"""
Weekly working hours for staff and resources.

Stored as JSON keyed by weekday name, each day holding a list of
``[start, end]`` time-of-day windows::

    {"monday": [["09:00", "12:00"], ["13:00", "17:00"]], "saturday": []}

A weekday missing from the mapping is a day off. ``None`` (no hours
configured at all) means the subject is always working.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple

from django.utils import timezone

from .conflicts import Interval
from .exceptions import ValidationError
from .recurrence import WEEKDAY_NAMES

Window = Tuple[time, time]

# A window ending at 00:00 runs to the end of the day.
END_OF_DAY = ("24:00", "24:00:00")


def _parse_time(value, end_of_day_ok: bool = False) -> time:
    if isinstance(value, time):
        return value
    if end_of_day_ok and str(value).strip() in END_OF_DAY:
        return time.min
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid time of day: {value!r}")


def _format_end(value: time) -> str:
    return END_OF_DAY[0] if value == time.min else value.strftime('%H:%M')


@dataclass(frozen=True)
class WeeklyHours:
    """Working windows per Python weekday (0=Monday)."""

    days: Dict[int, Tuple[Window, ...]] = field(default_factory=dict)

    def windows_for(self, day: date) -> Tuple[Window, ...]:
        return self.days.get(day.weekday(), ())

    def working_intervals(self, day: date) -> List[Interval]:
        """Working windows of ``day`` as aware datetimes in the service timezone."""
        intervals = []
        for start, end in self.windows_for(day):
            start_dt = timezone.make_aware(datetime.combine(day, start))
            end_day = day + timedelta(days=1) if end == time.min else day
            end_dt = timezone.make_aware(datetime.combine(end_day, end))
            intervals.append(Interval(start_dt, end_dt))
        return intervals

    def off_duty_intervals(self, day: date) -> List[Interval]:
        """Complement of the working windows within the calendar day."""
        day_start = timezone.make_aware(datetime.combine(day, time.min))
        day_end = timezone.make_aware(datetime.combine(day + timedelta(days=1), time.min))

        gaps = []
        cursor = day_start
        for window in self.working_intervals(day):
            if window.start > cursor:
                gaps.append(Interval(cursor, window.start, reason='off_duty'))
            cursor = max(cursor, window.end)
        if cursor < day_end:
            gaps.append(Interval(cursor, day_end, reason='off_duty'))
        return gaps

    def to_json(self) -> dict:
        return {
            WEEKDAY_NAMES[weekday]: [
                [start.strftime('%H:%M'), _format_end(end)] for start, end in windows
            ]
            for weekday, windows in sorted(self.days.items())
        }

    @classmethod
    def from_json(cls, data: Optional[dict]) -> Optional['WeeklyHours']:
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ValidationError("Working hours must be a mapping of weekday to windows")

        days = {}
        for name, windows in data.items():
            key = str(name).strip().lower()
            if key not in WEEKDAY_NAMES:
                raise ValidationError(f"Invalid weekday in working hours: {name!r}")
            parsed = []
            for window in windows or []:
                if len(window) != 2:
                    raise ValidationError(f"Working window must be [start, end]: {window!r}")
                start, end = _parse_time(window[0]), _parse_time(window[1], end_of_day_ok=True)
                if end != time.min and start >= end:
                    raise ValidationError(f"Working window start must precede end: {window!r}")
                parsed.append((start, end))
            days[WEEKDAY_NAMES.index(key)] = tuple(sorted(parsed))
        return cls(days)
