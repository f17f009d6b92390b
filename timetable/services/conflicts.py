"""Service for detecting room and instructor conflicts between bookings."""

from __future__ import annotations

import logging

from timetable.domain.errors import InvalidDateRangeError
from timetable.domain.models import (
    Booking,
    CandidateOccurrence,
    Conflict,
    ConflictKind,
    ConflictReport,
    ConflictSummary,
    SeriesConflictReport,
    SeriesRequest,
)
from timetable.repos.base import BookingStore
from timetable.services.clock import Clock
from timetable.services.recurrence import expand_series
from timetable.services.timeutils import check_window, format_window, overlaps

logger = logging.getLogger(__name__)


def find_overlapping(start_time: str, end_time: str, existing: list[Booking]) -> list[Booking]:
    """Return existing bookings whose window overlaps ``[start_time, end_time)``.

    Exact boundary touches (end == start) are NOT considered conflicts.
    """
    return [
        booking
        for booking in existing
        if overlaps(start_time, end_time, booking.start_time, booking.end_time)
    ]


def check_series_range(series: SeriesRequest) -> None:
    """Reject malformed windows and empty date ranges before any I/O."""
    check_window(series.start_time, series.end_time)
    if series.end_date <= series.start_date:
        raise InvalidDateRangeError(series.start_date, series.end_date)


def summarize_conflicts(report: ConflictReport) -> ConflictSummary:
    """Totals per kind plus one display message per conflict."""
    messages = [
        f"Room {c.location} is already booked on {c.date.isoformat()} "
        f"from {c.existing_window}"
        for c in report.room_conflicts
    ]
    messages += [
        f"Instructor {c.instructor_id} is already scheduled on {c.date.isoformat()} "
        f"from {c.existing_window} in {c.location}"
        for c in report.instructor_conflicts
    ]
    return ConflictSummary(
        total=report.total_conflicts,
        room=len(report.room_conflicts),
        instructor=len(report.instructor_conflicts),
        messages=messages,
    )


class ConflictDetector:
    """Read-only conflict queries against an injected booking store."""

    def __init__(self, store: BookingStore, clock: Clock | None = None) -> None:
        self.store = store
        self.clock = clock or Clock()

    def check_room_conflicts(
        self, occurrence: CandidateOccurrence, exclude_id: str | None = None
    ) -> list[Conflict]:
        existing = self.store.find_overlapping_candidates(
            occurrence.date,
            location=occurrence.location,
            exclude_id=exclude_id,
        )
        return [
            self._conflict(ConflictKind.ROOM, occurrence, booking)
            for booking in find_overlapping(occurrence.start_time, occurrence.end_time, existing)
        ]

    def check_instructor_conflicts(
        self, occurrence: CandidateOccurrence, exclude_id: str | None = None
    ) -> list[Conflict]:
        """Instructor clashes in a *different* room.

        Same-room clashes are already reported as room conflicts.
        """
        existing = [
            booking
            for booking in self.store.find_overlapping_candidates(
                occurrence.date,
                instructor_id=occurrence.instructor_id,
                exclude_id=exclude_id,
            )
            if booking.location != occurrence.location
        ]
        return [
            self._conflict(ConflictKind.INSTRUCTOR, occurrence, booking)
            for booking in find_overlapping(occurrence.start_time, occurrence.end_time, existing)
        ]

    def validate_single(
        self, occurrence: CandidateOccurrence, exclude_id: str | None = None
    ) -> ConflictReport:
        check_window(occurrence.start_time, occurrence.end_time)
        exclude_id = exclude_id or occurrence.exclude_id
        return ConflictReport.build(
            self.check_room_conflicts(occurrence, exclude_id),
            self.check_instructor_conflicts(occurrence, exclude_id),
        )

    def validate_series(self, series: SeriesRequest) -> SeriesConflictReport:
        """Check every occurrence of *series* and collect all conflicts found."""
        check_series_range(series)
        dates = expand_series(series, self.clock)

        room: list[Conflict] = []
        instructor: list[Conflict] = []
        for day in dates:
            report = self.validate_single(series.occurrence(day))
            room.extend(report.room_conflicts)
            instructor.extend(report.instructor_conflicts)

        logger.debug(
            "Checked %d occurrence(s) for %s/%s: %d room, %d instructor conflict(s)",
            len(dates),
            series.location,
            series.instructor_id,
            len(room),
            len(instructor),
        )
        return SeriesConflictReport.build(room, instructor, occurrence_dates=dates)

    def collision_report(
        self, occurrence: CandidateOccurrence, holder: Booking
    ) -> ConflictReport:
        """Report *holder*, the booking whose slot the store refused to share."""
        if holder.location == occurrence.location:
            return ConflictReport.build(
                [self._conflict(ConflictKind.ROOM, occurrence, holder)], []
            )
        return ConflictReport.build(
            [], [self._conflict(ConflictKind.INSTRUCTOR, occurrence, holder)]
        )

    def _conflict(
        self, kind: ConflictKind, occurrence: CandidateOccurrence, existing: Booking
    ) -> Conflict:
        return Conflict(
            kind=kind,
            conflicting_booking_id=existing.id,
            date=existing.date,
            location=existing.location,
            instructor_id=existing.instructor_id,
            existing_window=format_window(existing.start_time, existing.end_time),
            candidate_window=format_window(occurrence.start_time, occurrence.end_time),
        )
