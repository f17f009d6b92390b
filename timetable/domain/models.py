"""Domain models for the timetable conflict engine."""

from __future__ import annotations

import datetime as dt
import uuid
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from timetable.domain.errors import Outcome
from timetable.services.timeutils import check_window


class ConflictKind(StrEnum):
    ROOM = "room"
    INSTRUCTOR = "instructor"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def day_of_week(day: dt.date) -> int:
    """Weekday of *day* with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


class CamelModel(BaseModel):
    """Snake-case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Persisted booking
# ---------------------------------------------------------------------------


class Booking(CamelModel):
    id: str = Field(default_factory=_new_id)
    date: dt.date
    start_time: str
    end_time: str
    location: str
    instructor_id: str
    day_of_week: int | None = None
    series_id: str | None = None
    recurrence_rule: str | None = None
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_invariants(self) -> Booking:
        check_window(self.start_time, self.end_time)
        self.day_of_week = day_of_week(self.date)
        return self


# ---------------------------------------------------------------------------
# Transient request shapes
# ---------------------------------------------------------------------------


class OccurrenceFields(CamelModel):
    date: dt.date
    start_time: str
    end_time: str
    location: str
    instructor_id: str


class CandidateOccurrence(OccurrenceFields):
    # Set only when re-validating an edited booking against its own row.
    exclude_id: str | None = None


class SeriesRequest(CamelModel):
    location: str
    instructor_id: str
    start_date: dt.date
    end_date: dt.date
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    exclude_dates: list[dt.datetime | dt.date] = Field(default_factory=list)

    def occurrence(self, day: dt.date) -> CandidateOccurrence:
        return CandidateOccurrence(
            date=day,
            start_time=self.start_time,
            end_time=self.end_time,
            location=self.location,
            instructor_id=self.instructor_id,
        )


class BookingRequest(OccurrenceFields):
    force_create: bool = False


class RescheduleRequest(OccurrenceFields):
    force_update: bool = False


class SeriesBookingRequest(SeriesRequest):
    force_create: bool = False


# ---------------------------------------------------------------------------
# Conflict reports
# ---------------------------------------------------------------------------


class Conflict(CamelModel):
    kind: ConflictKind
    conflicting_booking_id: str
    date: dt.date
    location: str
    instructor_id: str
    existing_window: str
    candidate_window: str


class ConflictReport(CamelModel):
    has_conflicts: bool = False
    room_conflicts: list[Conflict] = Field(default_factory=list)
    instructor_conflicts: list[Conflict] = Field(default_factory=list)

    @classmethod
    def build(
        cls, room: list[Conflict], instructor: list[Conflict], **extra
    ) -> ConflictReport:
        return cls(
            has_conflicts=bool(room or instructor),
            room_conflicts=room,
            instructor_conflicts=instructor,
            **extra,
        )

    @property
    def total_conflicts(self) -> int:
        return len(self.room_conflicts) + len(self.instructor_conflicts)

    @property
    def conflicting_booking_ids(self) -> list[str]:
        return [
            c.conflicting_booking_id
            for c in (*self.room_conflicts, *self.instructor_conflicts)
        ]


class SeriesConflictReport(ConflictReport):
    occurrence_dates: list[dt.date] = Field(default_factory=list)


class ConflictSummary(CamelModel):
    total: int
    room: int
    instructor: int
    messages: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class SkippedOccurrence(CamelModel):
    date: dt.date
    reason: Outcome
    detail: str | None = None


class ScheduleResult(CamelModel):
    outcome: Outcome
    booking: Booking | None = None
    report: ConflictReport | None = None


class SeriesResult(CamelModel):
    outcome: Outcome
    series_id: str | None = None
    inserted_count: int = 0
    booking_ids: list[str] = Field(default_factory=list)
    skipped: list[SkippedOccurrence] = Field(default_factory=list)
    report: SeriesConflictReport | None = None


class OutcomeEntry(CamelModel):
    """One row of the scheduling outcome log."""

    id: str = Field(default_factory=_new_id)
    timestamp: dt.datetime = Field(default_factory=_utcnow)
    outcome: Outcome
    location: str
    instructor_id: str
    date: dt.date | None = None
    booking_ids: list[str] = Field(default_factory=list)
    payload: dict = Field(default_factory=dict)
