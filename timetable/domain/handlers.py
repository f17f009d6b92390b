"""Domain event handlers - wired up at application startup."""

from __future__ import annotations

import logging

from timetable.domain.bus import EventBus
from timetable.domain.errors import Outcome
from timetable.domain.events import BookingCommitted, ConflictDetected, SeriesCommitted
from timetable.domain.models import OutcomeEntry
from timetable.repos.memory import InstructorRepository, OutcomeLogRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the owner repositories."""

    def __init__(
        self,
        bus: EventBus,
        instructor_repo: InstructorRepository,
        outcome_repo: OutcomeLogRepository,
    ) -> None:
        self.bus = bus
        self.instructor_repo = instructor_repo
        self.outcome_repo = outcome_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(BookingCommitted, self.on_booking_committed)
        self.bus.subscribe(SeriesCommitted, self.on_series_committed)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_booking_committed(self, event: BookingCommitted) -> None:
        self.outcome_repo.add(
            OutcomeEntry(
                outcome=Outcome.COMMITTED,
                location=event.location,
                instructor_id=event.instructor_id,
                date=event.date,
                booking_ids=[event.booking_id],
            )
        )
        self.instructor_repo.add_booking_ids(event.instructor_id, [event.booking_id])

    def on_series_committed(self, event: SeriesCommitted) -> None:
        outcome = (
            Outcome.PARTIAL_BATCH_FAILURE if event.skipped_count else Outcome.COMMITTED
        )
        self.outcome_repo.add(
            OutcomeEntry(
                outcome=outcome,
                location=event.location,
                instructor_id=event.instructor_id,
                booking_ids=event.booking_ids,
                payload={"series_id": event.series_id, "skipped": event.skipped_count},
            )
        )
        logger.info(
            "Linking %d booking(s) to instructor %s",
            len(event.booking_ids),
            event.instructor_id,
        )
        self.instructor_repo.add_booking_ids(event.instructor_id, event.booking_ids)

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        self.outcome_repo.add(
            OutcomeEntry(
                outcome=event.outcome,
                location=event.location,
                instructor_id=event.instructor_id,
                date=event.date,
                payload={"conflicting_booking_ids": event.conflicting_booking_ids},
            )
        )
