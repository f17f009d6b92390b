"""Storage contract consumed by the scheduling engine."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Protocol

from timetable.domain.models import Booking

# A store must reject a second booking sharing either key.  This is the
# deterministic backstop behind the engine's conflict checks.
UNIQUE_KEYS: tuple[tuple[str, ...], ...] = (
    ("location", "date", "start_time"),
    ("instructor_id", "date", "start_time"),
)


def unique_keys(booking: Booking) -> list[tuple]:
    """Return the uniqueness keys a store must index *booking* under."""
    return [
        (fields, *(getattr(booking, name) for name in fields)) for fields in UNIQUE_KEYS
    ]


@dataclass
class InsertManyResult:
    inserted_count: int = 0
    ids: list[str] = field(default_factory=list)
    # (position in the submitted batch, error raised for that booking)
    failures: list[tuple[int, Exception]] = field(default_factory=list)


class BookingStore(Protocol):
    """Booking persistence.

    ``insert_one``, ``insert_many`` and ``replace_one`` must enforce
    ``UNIQUE_KEYS`` atomically and raise ``DuplicateBookingError`` on
    violation.  Any backend outage surfaces as ``StorageUnavailableError``.
    """

    def find_overlapping_candidates(
        self,
        day: dt.date,
        *,
        location: str | None = None,
        instructor_id: str | None = None,
        exclude_id: str | None = None,
    ) -> list[Booking]: ...

    def insert_one(self, booking: Booking) -> str: ...

    def insert_many(
        self, bookings: list[Booking], continue_on_error: bool = True
    ) -> InsertManyResult: ...

    def replace_one(self, booking: Booking) -> None: ...

    def get(self, booking_id: str) -> Booking | None: ...

    def list_all(self) -> list[Booking]: ...
