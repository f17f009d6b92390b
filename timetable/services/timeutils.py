"""Time-of-day arithmetic for ``HH:MM`` booking windows."""

from __future__ import annotations

import re

from timetable.domain.errors import InvalidTimeRangeError, MalformedTimeError

_TIME_PATTERN = re.compile(r"([0-1]?[0-9]|2[0-3]):[0-5][0-9]")


def is_valid_time(value: object) -> bool:
    return isinstance(value, str) and _TIME_PATTERN.fullmatch(value) is not None


def to_minutes(value: str) -> int:
    """Convert ``HH:MM`` to minutes since midnight, in ``[0, 1440)``.

    Raises ``MalformedTimeError`` if *value* is not a 24-hour ``HH:MM`` string.
    """
    if not is_valid_time(value):
        raise MalformedTimeError(value)
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Return True if ``[start_a, end_a)`` and ``[start_b, end_b)`` overlap.

    Windows that only touch (one ends exactly when the other starts) do NOT
    overlap.
    """
    return to_minutes(start_a) < to_minutes(end_b) and to_minutes(end_a) > to_minutes(
        start_b
    )


def format_time(value: str) -> str:
    """Zero-pad a valid time, e.g. ``"9:05"`` -> ``"09:05"``."""
    minutes = to_minutes(value)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_window(start: str, end: str) -> str:
    return f"{format_time(start)}-{format_time(end)}"


def check_window(start: str, end: str) -> None:
    """Raise if either bound is malformed or the window has no length."""
    if to_minutes(start) >= to_minutes(end):
        raise InvalidTimeRangeError(start, end)
