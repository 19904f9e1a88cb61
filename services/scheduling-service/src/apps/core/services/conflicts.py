# services/scheduling-service/src/apps/core/services/conflicts.py
"""
Conflict Detector

Half-open interval arithmetic shared by bookings and unavailable intervals.
``[s1, e1)`` and ``[s2, e2)`` overlap iff ``s1 < e2 and s2 < e1``, so a
booking ending at 10:00 and another starting at 10:00 do not conflict.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, List


@dataclass(frozen=True)
class Interval:
    """A half-open time interval ``[start, end)``."""

    start: datetime
    end: datetime
    source_id: Any = None
    reason: str = ''

    def overlaps(self, other: 'Interval') -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def padded(self, buffer: timedelta) -> 'Interval':
        """The interval widened by ``buffer`` on both sides."""
        return Interval(self.start - buffer, self.end + buffer, self.source_id, self.reason)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {
            'start': self.start,
            'end': self.end,
            'source_id': self.source_id,
            'reason': self.reason,
        }


def sort_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    return sorted(intervals, key=lambda interval: (interval.start, interval.end))


def overlaps(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open overlap test."""
    return start1 < end2 and start2 < end1


def as_interval(item: Any) -> Interval:
    """Coerce an Interval or a booking-like object with start/end times."""
    if isinstance(item, Interval):
        return item
    return Interval(item.start_time, item.end_time, getattr(item, 'id', None))


def find_conflicts(candidate: Interval, existing: Iterable[Any]) -> List[Interval]:
    """All members of ``existing`` overlapping ``candidate``, ordered by start."""
    return sort_intervals(
        interval for interval in map(as_interval, existing)
        if candidate.overlaps(interval)
    )


def has_conflict(candidate: Interval, existing: Iterable[Any]) -> bool:
    return any(candidate.overlaps(as_interval(item)) for item in existing)
