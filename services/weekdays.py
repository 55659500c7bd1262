# services/weekdays.py
"""
Weekday helpers. Weekdays are integers 0-6, Sunday-first (0 = Sunday).
"""
from datetime import date
from typing import Iterable, Tuple

WEEKDAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
ALL_WEEKDAYS = tuple(range(7))

_LOOKUP = {name: i for i, name in enumerate(WEEKDAY_NAMES)}
_LOOKUP.update({name[:3]: i for i, name in enumerate(WEEKDAY_NAMES)})


def parse_weekday(value) -> int:
    """Accept 0-6, "3", "wednesday" or "Wed"."""
    if isinstance(value, bool):
        raise ValueError(f"invalid weekday: {value!r}")
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValueError(f"weekday out of range: {value}")
    if isinstance(value, str):
        v = value.strip().lower()
        if v.isdigit():
            return parse_weekday(int(v))
        if v in _LOOKUP:
            return _LOOKUP[v]
    raise ValueError(f"invalid weekday: {value!r}")


def normalize_weekdays(values: Iterable) -> Tuple[int, ...]:
    return tuple(sorted({parse_weekday(v) for v in values}))


def weekday_of(d: date) -> int:
    # date.weekday() is Monday-first
    return (d.weekday() + 1) % 7


def weekday_name(day: int) -> str:
    return WEEKDAY_NAMES[day]
