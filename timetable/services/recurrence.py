"""Weekly recurrence expansion for booking series.

Only one pattern is supported: every week on a fixed weekday, over an
inclusive date range, minus an explicit list of excluded days.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Iterable

from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from timetable.domain.models import SeriesRequest
from timetable.services.clock import Clock

# Indexed by day_of_week (0=Sunday .. 6=Saturday)
_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)
_DAY_ABBR = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")


def generate_dates(
    start_date: date,
    end_date: date,
    weekday: int,
    exclude_dates: Iterable[date | datetime] = (),
) -> list[date]:
    """Return every *weekday* in ``[start_date, end_date]`` not in *exclude_dates*.

    *weekday* uses 0=Sunday .. 6=Saturday.  Exclusions match by calendar day;
    datetimes are reduced to their date.  A reversed range yields ``[]``.
    """
    if not 0 <= weekday <= 6:
        raise ValueError(f"weekday must be in 0..6, got {weekday}")
    if start_date > end_date:
        return []

    excluded = {d.date() if isinstance(d, datetime) else d for d in exclude_dates}
    rule = rrule(
        WEEKLY,
        dtstart=datetime.combine(start_date, time()),
        until=datetime.combine(end_date, time()),
        byweekday=_WEEKDAYS[weekday],
    )
    return [dt.date() for dt in rule if dt.date() not in excluded]


def expand_series(series: SeriesRequest, clock: Clock) -> list[date]:
    """Expand *series* into occurrence dates, normalizing exclusions via *clock*."""
    excluded = {clock.calendar_day(d) for d in series.exclude_dates}
    return generate_dates(series.start_date, series.end_date, series.day_of_week, excluded)


def series_rrule(series: SeriesRequest) -> str:
    """Render *series* as an RRULE string, e.g. ``FREQ=WEEKLY;BYDAY=WE;UNTIL=20230131``."""
    return (
        f"FREQ=WEEKLY;BYDAY={_DAY_ABBR[series.day_of_week]}"
        f";UNTIL={series.end_date.strftime('%Y%m%d')}"
    )
