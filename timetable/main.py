"""FastAPI application - entry point for the timetable scheduling service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from timetable.config import load_settings
from timetable.domain.bus import EventBus
from timetable.domain.errors import SchedulingError, status_code_for
from timetable.domain.handlers import HandlerRegistry
from timetable.domain.models import (
    Booking,
    BookingRequest,
    CandidateOccurrence,
    ConflictReport,
    OutcomeEntry,
    RescheduleRequest,
    ScheduleResult,
    SeriesBookingRequest,
    SeriesConflictReport,
    SeriesRequest,
    SeriesResult,
)
from timetable.repos.memory import (
    BookingRepository,
    InstructorRepository,
    OutcomeLogRepository,
)
from timetable.services.clock import Clock
from timetable.services.conflicts import ConflictDetector, summarize_conflicts
from timetable.services.scheduling import SchedulingCoordinator

settings = load_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Timetable Scheduling Service")

# ── Collaborators (created at import time, injected explicitly) ───────
clock = Clock(settings.timezone)
event_bus = EventBus()
booking_repo = BookingRepository()
instructor_repo = InstructorRepository()
outcome_repo = OutcomeLogRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    instructor_repo=instructor_repo,
    outcome_repo=outcome_repo,
)
coordinator = SchedulingCoordinator(
    store=booking_repo,
    detector=ConflictDetector(booking_repo, clock),
    clock=clock,
    bus=event_bus,
    settings=settings,
)


@app.exception_handler(SchedulingError)
def _scheduling_error(request: Request, exc: SchedulingError) -> JSONResponse:
    status = status_code_for(exc.outcome)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"outcome": exc.outcome.value, "error": str(exc)},
    )


def _respond(result: ScheduleResult | SeriesResult) -> JSONResponse:
    body = result.model_dump(mode="json", by_alias=True)
    if result.report is not None and result.report.has_conflicts:
        body["summary"] = summarize_conflicts(result.report).model_dump(
            mode="json", by_alias=True
        )
    return JSONResponse(status_code=status_code_for(result.outcome), content=body)


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/bookings/validate", response_model=ConflictReport)
def validate_booking(payload: CandidateOccurrence) -> ConflictReport:
    """Report conflicts for a candidate booking without writing anything."""
    return coordinator.validate_single(payload)


@app.post("/series/validate", response_model=SeriesConflictReport)
def validate_series(payload: SeriesRequest) -> SeriesConflictReport:
    """Report conflicts across every occurrence of a weekly series."""
    return coordinator.validate_series(payload)


@app.post("/bookings", response_model=ScheduleResult)
def create_booking(payload: BookingRequest) -> JSONResponse:
    candidate = CandidateOccurrence.model_validate(
        payload.model_dump(exclude={"force_create"})
    )
    result = coordinator.schedule_single(candidate, force_create=payload.force_create)
    return _respond(result)


@app.put("/bookings/{booking_id}", response_model=ScheduleResult)
def update_booking(booking_id: str, payload: RescheduleRequest) -> JSONResponse:
    candidate = CandidateOccurrence.model_validate(
        payload.model_dump(exclude={"force_update"})
    )
    return _respond(
        coordinator.reschedule(booking_id, candidate, force_update=payload.force_update)
    )


@app.post("/series", response_model=SeriesResult)
def create_series(payload: SeriesBookingRequest) -> JSONResponse:
    series = SeriesRequest.model_validate(payload.model_dump(exclude={"force_create"}))
    result = coordinator.schedule_series(series, force_create=payload.force_create)
    return _respond(result)


@app.get("/bookings", response_model=list[Booking])
def list_bookings() -> list[Booking]:
    """Return all stored bookings ordered by date and start time."""
    return booking_repo.list_all()


@app.get("/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: str) -> Booking:
    booking = booking_repo.get(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@app.get("/outcomes", response_model=list[OutcomeEntry])
def list_outcomes() -> list[OutcomeEntry]:
    """Return the scheduling outcome log, oldest first."""
    return outcome_repo.list_all()


@app.put("/instructors/{instructor_id}", status_code=204)
def register_instructor(instructor_id: str) -> None:
    """Register an instructor so committed bookings are linked to them."""
    instructor_repo.register(instructor_id)


@app.get("/instructors/{instructor_id}/bookings", response_model=list[str])
def list_instructor_bookings(instructor_id: str) -> list[str]:
    return instructor_repo.list_booking_ids(instructor_id)
