"""Scheduling coordinator: accept/reject decisions and committed writes.

A single booking moves through::

    RECEIVED -> CHECKED -> {ACCEPTED | REJECTED_CONFLICT}
    ACCEPTED -> COMMITTED | COMMIT_FAILED

The pre-flight check and the final check right before the write narrow the
window in which a concurrent scheduler can slip in a colliding booking.  They
do not close it: the store's uniqueness constraint is the backstop, and a
veto from it is reported as ``duplicate_booking``.

Conflict-class outcomes are returned as data, never raised.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import date
from typing import Callable

from timetable.config import Settings
from timetable.domain.bus import EventBus
from timetable.domain.errors import BookingNotFoundError, DuplicateBookingError, Outcome
from timetable.domain.events import BookingCommitted, ConflictDetected, SeriesCommitted
from timetable.domain.models import (
    Booking,
    CandidateOccurrence,
    ConflictReport,
    ScheduleResult,
    SeriesConflictReport,
    SeriesRequest,
    SeriesResult,
    SkippedOccurrence,
)
from timetable.repos.base import BookingStore
from timetable.services.clock import Clock
from timetable.services.conflicts import ConflictDetector
from timetable.services.recurrence import series_rrule
from timetable.services.timeutils import check_window

logger = logging.getLogger(__name__)


class SchedulingCoordinator:
    """Stateless between calls; every decision is made from a fresh read."""

    def __init__(
        self,
        store: BookingStore,
        detector: ConflictDetector | None = None,
        clock: Clock | None = None,
        bus: EventBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store
        self.clock = clock or Clock(self.settings.timezone)
        self.detector = detector or ConflictDetector(store, self.clock)
        self.bus = bus or EventBus()

    # ------------------------------------------------------------------
    # Read-only validation
    # ------------------------------------------------------------------

    def validate_single(
        self, candidate: CandidateOccurrence, exclude_id: str | None = None
    ) -> ConflictReport:
        return self.detector.validate_single(candidate, exclude_id)

    def validate_series(self, series: SeriesRequest) -> SeriesConflictReport:
        return self.detector.validate_series(series)

    # ------------------------------------------------------------------
    # Single bookings
    # ------------------------------------------------------------------

    def schedule_single(
        self, candidate: CandidateOccurrence, force_create: bool = False
    ) -> ScheduleResult:
        """Check *candidate*, then commit it unless it conflicts.

        ``force_create`` suppresses the soft conflict rejection but never the
        store's uniqueness veto.
        """
        # A new booking has no row of its own to skip.
        candidate = candidate.model_copy(update={"exclude_id": None})
        report = self.detector.validate_single(candidate)
        if report.has_conflicts and not force_create:
            self._publish_conflict(
                Outcome.CONFLICT_DETECTED, candidate, report.conflicting_booking_ids
            )
            return ScheduleResult(outcome=Outcome.CONFLICT_DETECTED, report=report)
        if report.has_conflicts:
            logger.warning(
                "Forcing booking of %s on %s despite %d conflict(s)",
                candidate.location,
                candidate.date,
                report.total_conflicts,
            )

        now = self.clock.now()
        booking = Booking(
            date=candidate.date,
            start_time=candidate.start_time,
            end_time=candidate.end_time,
            location=candidate.location,
            instructor_id=candidate.instructor_id,
            created_at=now,
            updated_at=now,
        )
        return self._commit(
            candidate,
            booking,
            report,
            force=force_create,
            write=self.store.insert_one,
            created=True,
        )

    def reschedule(
        self,
        booking_id: str,
        candidate: CandidateOccurrence,
        force_update: bool = False,
    ) -> ScheduleResult:
        """Move an existing booking to *candidate*'s date, window and resources.

        The booking is excluded from its own conflict checks.
        """
        check_window(candidate.start_time, candidate.end_time)
        current = self.store.get(booking_id)
        if current is None:
            raise BookingNotFoundError(booking_id)

        report = self.detector.validate_single(candidate, exclude_id=booking_id)
        if report.has_conflicts and not force_update:
            self._publish_conflict(
                Outcome.CONFLICT_DETECTED, candidate, report.conflicting_booking_ids
            )
            return ScheduleResult(outcome=Outcome.CONFLICT_DETECTED, report=report)

        updated = Booking(
            id=current.id,
            date=candidate.date,
            start_time=candidate.start_time,
            end_time=candidate.end_time,
            location=candidate.location,
            instructor_id=candidate.instructor_id,
            series_id=current.series_id,
            recurrence_rule=current.recurrence_rule,
            created_at=current.created_at,
            updated_at=self.clock.now(),
        )
        return self._commit(
            candidate,
            updated,
            report,
            force=force_update,
            write=self.store.replace_one,
            exclude_id=booking_id,
        )

    def _commit(
        self,
        candidate: CandidateOccurrence,
        booking: Booking,
        report: ConflictReport,
        *,
        force: bool,
        write: Callable[[Booking], object],
        exclude_id: str | None = None,
        created: bool = False,
    ) -> ScheduleResult:
        # Final check; skipped when the caller already accepted conflicts.
        if not force:
            late = self.detector.validate_single(candidate, exclude_id)
            if late.has_conflicts:
                logger.warning(
                    "Late conflict for %s on %s %s-%s",
                    candidate.location,
                    candidate.date,
                    candidate.start_time,
                    candidate.end_time,
                )
                self._publish_conflict(
                    Outcome.CONFLICT_DETECTED_LATE, candidate, late.conflicting_booking_ids
                )
                return ScheduleResult(outcome=Outcome.CONFLICT_DETECTED_LATE, report=late)

        try:
            write(booking)
        except DuplicateBookingError as exc:
            logger.warning("Store rejected booking %s: %s", booking.id, exc)
            holders = [exc.existing_id] if exc.existing_id else []
            self._publish_conflict(Outcome.DUPLICATE_BOOKING, candidate, holders)
            holder = self.store.get(exc.existing_id) if exc.existing_id else None
            if holder is not None:
                report = self.detector.collision_report(candidate, holder)
            return ScheduleResult(outcome=Outcome.DUPLICATE_BOOKING, report=report)

        logger.info("Committed booking %s", booking.id)
        if created:
            self.bus.publish(
                BookingCommitted(
                    booking_id=booking.id,
                    instructor_id=booking.instructor_id,
                    location=booking.location,
                    date=booking.date,
                )
            )
        return ScheduleResult(outcome=Outcome.COMMITTED, booking=booking, report=report)

    # ------------------------------------------------------------------
    # Series
    # ------------------------------------------------------------------

    def schedule_series(
        self,
        series: SeriesRequest,
        force_create: bool = False,
        cancel: threading.Event | None = None,
    ) -> SeriesResult:
        """Expand, check and commit a weekly series in fixed-size batches.

        Occurrences are inserted independently: one rejected occurrence never
        aborts the rest of its batch.  If *cancel* is set, the remaining
        batches are skipped and reported as ``cancelled``.
        """
        report = self.detector.validate_series(series)
        if report.has_conflicts and not force_create:
            self._publish_conflict(
                Outcome.CONFLICT_DETECTED, series, report.conflicting_booking_ids
            )
            return SeriesResult(outcome=Outcome.CONFLICT_DETECTED, report=report)

        result = SeriesResult(
            outcome=Outcome.COMMITTED, series_id=str(uuid.uuid4()), report=report
        )
        dates = report.occurrence_dates
        if not dates:
            logger.info("Series for %s produced no occurrence dates", series.location)
            return result

        size = self.settings.batch_size
        try:
            for number, offset in enumerate(range(0, len(dates), size), start=1):
                if cancel is not None and cancel.is_set():
                    logger.warning(
                        "Series %s cancelled before batch %d", result.series_id, number
                    )
                    result.skipped.extend(
                        SkippedOccurrence(date=day, reason=Outcome.CANCELLED)
                        for day in dates[offset:]
                    )
                    break
                self._insert_batch(
                    series, dates[offset : offset + size], number, result, force_create
                )
        except Exception:
            logger.error(
                "Series %s aborted with %d booking(s) already committed: %s",
                result.series_id,
                len(result.booking_ids),
                result.booking_ids,
            )
            raise
        finally:
            # Rows already written are propagated even when a later batch fails.
            if result.booking_ids:
                self._publish_series(series, result)

        if result.skipped:
            result.outcome = Outcome.PARTIAL_BATCH_FAILURE
            result.skipped.sort(key=lambda s: s.date)
        logger.info(
            "Series %s: inserted %d of %d occurrence(s)",
            result.series_id,
            result.inserted_count,
            len(dates),
        )
        return result

    def _insert_batch(
        self,
        series: SeriesRequest,
        dates: list[date],
        number: int,
        result: SeriesResult,
        force: bool,
    ) -> None:
        rule = series_rrule(series)
        now = self.clock.now()
        bookings: list[Booking] = []
        for day in dates:
            occurrence = series.occurrence(day)
            if not force:
                late = self.detector.validate_single(occurrence)
                if late.has_conflicts:
                    result.skipped.append(
                        SkippedOccurrence(
                            date=day,
                            reason=Outcome.CONFLICT_DETECTED_LATE,
                            detail=", ".join(late.conflicting_booking_ids),
                        )
                    )
                    self._publish_conflict(
                        Outcome.CONFLICT_DETECTED_LATE, occurrence, late.conflicting_booking_ids
                    )
                    continue
            bookings.append(
                Booking(
                    date=day,
                    start_time=series.start_time,
                    end_time=series.end_time,
                    location=series.location,
                    instructor_id=series.instructor_id,
                    series_id=result.series_id,
                    recurrence_rule=rule,
                    created_at=now,
                    updated_at=now,
                )
            )

        if not bookings:
            return
        logger.info("Inserting batch %d with %d booking(s)", number, len(bookings))
        inserted = self.store.insert_many(bookings, continue_on_error=True)
        result.inserted_count += inserted.inserted_count
        result.booking_ids.extend(inserted.ids)

        for index, exc in inserted.failures:
            booking = bookings[index]
            if isinstance(exc, DuplicateBookingError):
                reason = Outcome.DUPLICATE_BOOKING
                holders = [exc.existing_id] if exc.existing_id else []
                self._publish_conflict(reason, series.occurrence(booking.date), holders)
            else:
                reason = Outcome.INSERT_FAILED
            logger.warning("Skipped occurrence on %s: %s", booking.date, exc)
            result.skipped.append(
                SkippedOccurrence(date=booking.date, reason=reason, detail=str(exc))
            )

    # ------------------------------------------------------------------

    def _publish_series(self, series: SeriesRequest, result: SeriesResult) -> None:
        failures = self.bus.publish(
            SeriesCommitted(
                series_id=result.series_id,
                instructor_id=series.instructor_id,
                location=series.location,
                booking_ids=result.booking_ids,
                skipped_count=len(result.skipped),
            )
        )
        if failures:
            logger.warning(
                "Series %s committed but %d bookkeeping handler(s) failed",
                result.series_id,
                failures,
            )

    def _publish_conflict(
        self,
        outcome: Outcome,
        subject: CandidateOccurrence | SeriesRequest,
        conflicting_ids: list[str],
    ) -> None:
        self.bus.publish(
            ConflictDetected(
                outcome=outcome,
                instructor_id=subject.instructor_id,
                location=subject.location,
                date=getattr(subject, "date", None),
                conflicting_booking_ids=conflicting_ids,
            )
        )
