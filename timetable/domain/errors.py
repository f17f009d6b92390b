"""Error taxonomy for the scheduling engine.

Every variant carries an ``Outcome`` tag.  Transport layers map that tag to a
status code through ``STATUS_CODES`` instead of inspecting error messages.
"""

from __future__ import annotations

from enum import StrEnum


class Outcome(StrEnum):
    COMMITTED = "committed"
    CONFLICT_DETECTED = "conflict_detected"
    CONFLICT_DETECTED_LATE = "conflict_detected_late"
    DUPLICATE_BOOKING = "duplicate_booking"
    PARTIAL_BATCH_FAILURE = "partial_batch_failure"
    MALFORMED_TIME = "malformed_time"
    INVALID_TIME_RANGE = "invalid_time_range"
    INVALID_DATE_RANGE = "invalid_date_range"
    BOOKING_NOT_FOUND = "booking_not_found"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    # Skip reasons only; never the outcome of a whole request.
    INSERT_FAILED = "insert_failed"
    CANCELLED = "cancelled"


STATUS_CODES: dict[Outcome, int] = {
    Outcome.COMMITTED: 201,
    Outcome.CONFLICT_DETECTED: 409,
    Outcome.CONFLICT_DETECTED_LATE: 409,
    Outcome.DUPLICATE_BOOKING: 409,
    Outcome.PARTIAL_BATCH_FAILURE: 207,
    Outcome.MALFORMED_TIME: 400,
    Outcome.INVALID_TIME_RANGE: 400,
    Outcome.INVALID_DATE_RANGE: 400,
    Outcome.BOOKING_NOT_FOUND: 404,
    Outcome.STORAGE_UNAVAILABLE: 503,
}


def status_code_for(outcome: Outcome) -> int:
    """Return the HTTP status for *outcome* (500 for anything unmapped)."""
    return STATUS_CODES.get(outcome, 500)


class SchedulingError(Exception):
    """Base class for every error raised by the engine."""

    outcome: Outcome = Outcome.STORAGE_UNAVAILABLE


class MalformedTimeError(SchedulingError, ValueError):
    """A time-of-day string does not match the 24-hour ``HH:MM`` pattern."""

    outcome = Outcome.MALFORMED_TIME

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Malformed time {value!r}, expected HH:MM (24-hour)")


class InvalidTimeRangeError(SchedulingError, ValueError):
    outcome = Outcome.INVALID_TIME_RANGE

    def __init__(self, start_time: str, end_time: str) -> None:
        self.start_time = start_time
        self.end_time = end_time
        super().__init__(f"Start time {start_time} must be before end time {end_time}")


class InvalidDateRangeError(SchedulingError, ValueError):
    outcome = Outcome.INVALID_DATE_RANGE

    def __init__(self, start_date: object, end_date: object) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"End date {end_date} must be after start date {start_date}")


class BookingNotFoundError(SchedulingError, LookupError):
    outcome = Outcome.BOOKING_NOT_FOUND

    def __init__(self, booking_id: str) -> None:
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class DuplicateBookingError(SchedulingError):
    """The store's uniqueness constraint rejected a write.

    Raised by store implementations only.  The coordinator turns it into a
    ``duplicate_booking`` result, since the cause is a real scheduling
    collision that slipped past the final check.
    """

    outcome = Outcome.DUPLICATE_BOOKING

    def __init__(self, key: tuple, existing_id: str | None = None) -> None:
        self.key = key
        self.existing_id = existing_id
        super().__init__(f"Duplicate booking for {key}")


class StorageUnavailableError(SchedulingError):
    """The booking store cannot be reached.  Fatal, never retried here."""

    outcome = Outcome.STORAGE_UNAVAILABLE
