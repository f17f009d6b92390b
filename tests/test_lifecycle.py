"""Tests for the event bus and the bookkeeping handlers."""

from __future__ import annotations

from datetime import date

import pytest

from timetable.domain.bus import EventBus
from timetable.domain.errors import Outcome
from timetable.domain.events import BookingCommitted, ConflictDetected, SeriesCommitted
from timetable.domain.handlers import HandlerRegistry
from timetable.repos.memory import InstructorRepository, OutcomeLogRepository


@pytest.fixture()
def env():
    """Fresh bus + repos + registry for each test."""
    bus = EventBus()
    instructor_repo = InstructorRepository()
    outcome_repo = OutcomeLogRepository()
    registry = HandlerRegistry(
        bus=bus, instructor_repo=instructor_repo, outcome_repo=outcome_repo
    )

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.instructor_repo = instructor_repo
    e.outcome_repo = outcome_repo
    e.registry = registry
    return e


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------


def test_failing_handler_does_not_stop_the_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(str, broken)
    bus.subscribe(str, seen.append)

    assert bus.publish("hello") == 1
    assert seen == ["hello"]


def test_publish_without_subscribers():
    assert EventBus().publish(42) == 0


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def test_booking_committed_links_instructor(env):
    env.instructor_repo.register("instr-1")

    failures = env.bus.publish(
        BookingCommitted(
            booking_id="b-1", instructor_id="instr-1", location="Hall-1", date=date(2024, 1, 10)
        )
    )

    assert failures == 0
    assert env.instructor_repo.list_booking_ids("instr-1") == ["b-1"]
    assert env.outcome_repo.list_by_outcome(Outcome.COMMITTED)[0].booking_ids == ["b-1"]


def test_unknown_instructor_is_a_logged_failure(env):
    failures = env.bus.publish(
        SeriesCommitted(
            series_id="s-1",
            instructor_id="nobody",
            location="Hall-1",
            booking_ids=["b-1", "b-2"],
        )
    )

    assert failures == 1
    assert env.instructor_repo.list_booking_ids("nobody") == []
    # the outcome is still recorded
    assert len(env.outcome_repo.list_all()) == 1


def test_series_with_skips_is_logged_as_partial(env):
    env.instructor_repo.register("instr-1")

    env.bus.publish(
        SeriesCommitted(
            series_id="s-1",
            instructor_id="instr-1",
            location="Hall-1",
            booking_ids=["b-1"],
            skipped_count=2,
        )
    )

    entry = env.outcome_repo.list_all()[0]
    assert entry.outcome == Outcome.PARTIAL_BATCH_FAILURE
    assert entry.payload == {"series_id": "s-1", "skipped": 2}


def test_conflict_detected_is_logged(env):
    env.bus.publish(
        ConflictDetected(
            outcome=Outcome.CONFLICT_DETECTED_LATE,
            instructor_id="instr-1",
            location="Hall-1",
            date=date(2024, 1, 10),
            conflicting_booking_ids=["b-9"],
        )
    )

    entries = env.outcome_repo.list_by_outcome(Outcome.CONFLICT_DETECTED_LATE)
    assert len(entries) == 1
    assert entries[0].payload["conflicting_booking_ids"] == ["b-9"]
