"""Clock and calendar-day normalization.

Kept as a collaborator so tests can pin "now" and the reference zone.
"""

from __future__ import annotations

from datetime import date, datetime

from dateutil import tz
from dateutil.parser import isoparse


class Clock:
    """Wall clock bound to a single reference timezone."""

    def __init__(self, tz_name: str = "UTC") -> None:
        zone = tz.gettz(tz_name)
        if zone is None:
            raise ValueError(f"Unknown timezone {tz_name!r}")
        self.tz_name = tz_name
        self.zone = zone

    def now(self) -> datetime:
        return datetime.now(self.zone)

    def calendar_day(self, value: date | datetime | str) -> date:
        """Normalize *value* to a calendar day in the reference zone.

        Aware datetimes are converted into the reference zone first; naive
        datetimes are taken to already be in it.  Strings are parsed as ISO 8601.
        """
        if isinstance(value, str):
            value = isoparse(value)
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(self.zone)
            return value.date()
        return value


class FixedClock(Clock):
    """Clock that always reports the same instant."""

    def __init__(self, now: datetime, tz_name: str = "UTC") -> None:
        super().__init__(tz_name)
        if now.tzinfo is None:
            now = now.replace(tzinfo=self.zone)
        self._now = now

    def now(self) -> datetime:
        return self._now
