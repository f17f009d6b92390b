"""Domain events emitted by the scheduling coordinator."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from timetable.domain.errors import Outcome


class BookingCommitted(BaseModel):
    """Fired when a single booking is written."""

    booking_id: str
    instructor_id: str
    location: str
    date: dt.date


class SeriesCommitted(BaseModel):
    """Fired when a series wrote at least one occurrence."""

    series_id: str
    instructor_id: str
    location: str
    booking_ids: list[str]
    skipped_count: int = 0


class ConflictDetected(BaseModel):
    """Fired whenever a request is turned away or an occurrence skipped.

    ``outcome`` tells where the clash was caught: at pre-flight, at the final
    check, or by the store's uniqueness constraint.
    """

    outcome: Outcome
    instructor_id: str
    location: str
    date: dt.date | None = None
    conflicting_booking_ids: list[str] = Field(default_factory=list)
