# services/scheduling-service/src/apps/core/services/recurrence.py
"""
Recurrence Expander

Structured recurrence rules for availability exceptions and the pure
functions that decide whether a calendar date is an occurrence.

Rules are stored as JSON mappings::

    {"frequency": "weekly", "days": ["monday", "wednesday"]}
    {"frequency": "yearly"}

RRULE strings with the same meaning (``FREQ=WEEKLY;BYDAY=MO,WE``) are
accepted on input and normalized to the mapping form.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, FrozenSet, Iterator

from .exceptions import RecurrenceParseError


WEEKLY = 'weekly'
YEARLY = 'yearly'
FREQUENCIES = (WEEKLY, YEARLY)

# Python weekday numbering: 0=Monday ... 6=Sunday
WEEKDAY_NAMES = (
    'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday',
)
_WEEKDAY_ALIASES = {}
for _index, _name in enumerate(WEEKDAY_NAMES):
    _WEEKDAY_ALIASES[_name] = _index
    _WEEKDAY_ALIASES[_name[:3]] = _index
    _WEEKDAY_ALIASES[_name[:2]] = _index


@dataclass(frozen=True)
class RecurrenceRule:
    """A weekly-by-weekday or yearly-by-anchor-date rule."""

    frequency: str
    weekdays: FrozenSet[int] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.frequency not in FREQUENCIES:
            raise RecurrenceParseError(f"Unsupported recurrence frequency: {self.frequency!r}")
        if self.frequency == WEEKLY and not self.weekdays:
            raise RecurrenceParseError("Weekly recurrence requires at least one weekday")
        if any(day not in range(7) for day in self.weekdays):
            raise RecurrenceParseError(f"Invalid weekday in {sorted(self.weekdays)}")

    @classmethod
    def weekly(cls, *days) -> 'RecurrenceRule':
        return cls(WEEKLY, frozenset(_parse_weekday(day) for day in days))

    @classmethod
    def yearly(cls) -> 'RecurrenceRule':
        return cls(YEARLY)

    def to_dict(self) -> dict:
        data = {'frequency': self.frequency}
        if self.frequency == WEEKLY:
            data['days'] = [WEEKDAY_NAMES[day] for day in sorted(self.weekdays)]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'RecurrenceRule':
        frequency = str(data.get('frequency', '')).strip().lower()
        days = data.get('days') or []
        if isinstance(days, (str, int)):
            days = [days]
        elif not isinstance(days, (list, tuple)):
            raise RecurrenceParseError(f"Recurrence days must be a list of weekdays: {days!r}")
        return cls(frequency, frozenset(_parse_weekday(day) for day in days))


def _parse_weekday(value: Any) -> int:
    """Weekday name/abbreviation or ISO number (1=Monday, 7=Sunday)."""
    if isinstance(value, bool):
        raise RecurrenceParseError(f"Invalid weekday: {value!r}")
    if isinstance(value, int):
        if 1 <= value <= 7:
            return value - 1
        raise RecurrenceParseError(f"Invalid ISO weekday number: {value}")
    if isinstance(value, str):
        key = value.strip().lower()
        if key.isdigit():
            return _parse_weekday(int(key))
        if key in _WEEKDAY_ALIASES:
            return _WEEKDAY_ALIASES[key]
    raise RecurrenceParseError(f"Invalid weekday: {value!r}")


def _parse_rrule(text: str) -> RecurrenceRule:
    parts = {}
    for chunk in text.strip().rstrip(';').split(';'):
        if '=' not in chunk:
            raise RecurrenceParseError(f"Malformed recurrence rule: {text!r}")
        key, _, value = chunk.partition('=')
        parts[key.strip().upper()] = value.strip()

    frequency = parts.get('FREQ', '').lower()
    if frequency == WEEKLY:
        days = [day for day in parts.get('BYDAY', '').split(',') if day]
        return RecurrenceRule(WEEKLY, frozenset(_parse_weekday(day) for day in days))
    if frequency == YEARLY:
        return RecurrenceRule(YEARLY)
    raise RecurrenceParseError(f"Unsupported recurrence rule: {text!r}")


def parse_rule(value: Any) -> RecurrenceRule:
    """
    Build a RecurrenceRule from its stored or submitted form.

    Raises:
        RecurrenceParseError: if the rule is absent or cannot be interpreted.
    """
    if isinstance(value, RecurrenceRule):
        return value
    if value is None or value == '' or value == {}:
        raise RecurrenceParseError("Recurring exception requires a recurrence rule")
    if isinstance(value, dict):
        return RecurrenceRule.from_dict(value)
    if isinstance(value, str):
        return _parse_rrule(value)
    raise RecurrenceParseError(f"Unsupported recurrence rule type: {type(value).__name__}")


def occurs(rule: RecurrenceRule, candidate: date, anchor: date) -> bool:
    """
    Whether ``candidate`` is an occurrence of ``rule`` anchored at ``anchor``.

    Yearly rules match on the anchor's month and day, so a Feb 29 anchor
    has no occurrence in non-leap years. A rule applies on every matching
    date, before or after the anchor.
    """
    if rule.frequency == WEEKLY:
        return candidate.weekday() in rule.weekdays

    return (candidate.month, candidate.day) == (anchor.month, anchor.day)


def occurrences_between(
    rule: RecurrenceRule,
    anchor: date,
    start_date: date,
    end_date: date,
) -> Iterator[date]:
    """Yield occurrence dates in the closed range ``[start_date, end_date]``."""
    current = start_date
    while current <= end_date:
        if occurs(rule, current, anchor):
            yield current
        current += timedelta(days=1)
