"""In-memory repositories for bookings, instructors and scheduling outcomes."""

from __future__ import annotations

import datetime as dt
import threading

from timetable.domain.errors import BookingNotFoundError, DuplicateBookingError, Outcome
from timetable.domain.models import Booking, OutcomeEntry
from timetable.repos.base import InsertManyResult, unique_keys


class BookingRepository:
    """Dict-backed ``BookingStore``.

    A key index enforces the store's uniqueness constraint.  Every write
    checks and claims its keys under one lock, so of two writers racing for
    the same slot exactly one wins.
    """

    def __init__(self) -> None:
        self._store: dict[str, Booking] = {}
        self._keys: dict[tuple, str] = {}
        self._lock = threading.RLock()

    def get(self, booking_id: str) -> Booking | None:
        return self._store.get(booking_id)

    def list_all(self) -> list[Booking]:
        with self._lock:
            return sorted(self._store.values(), key=lambda b: (b.date, b.start_time))

    def find_overlapping_candidates(
        self,
        day: dt.date,
        *,
        location: str | None = None,
        instructor_id: str | None = None,
        exclude_id: str | None = None,
    ) -> list[Booking]:
        """Return bookings on *day* for the given location and/or instructor."""
        with self._lock:
            rows = list(self._store.values())
        return [
            b
            for b in rows
            if b.date == day
            and (location is None or b.location == location)
            and (instructor_id is None or b.instructor_id == instructor_id)
            and b.id != exclude_id
        ]

    def insert_one(self, booking: Booking) -> str:
        with self._lock:
            if booking.id in self._store:
                raise DuplicateBookingError(("id", booking.id), booking.id)
            keys = self._claimable_keys(booking)
            for key in keys:
                self._keys[key] = booking.id
            self._store[booking.id] = booking
        return booking.id

    def insert_many(
        self, bookings: list[Booking], continue_on_error: bool = True
    ) -> InsertManyResult:
        """Insert each booking independently.

        With ``continue_on_error`` a rejected booking does not stop the rest of
        the batch; otherwise insertion stops at the first failure.
        """
        result = InsertManyResult()
        for index, booking in enumerate(bookings):
            try:
                result.ids.append(self.insert_one(booking))
            except DuplicateBookingError as exc:
                result.failures.append((index, exc))
                if not continue_on_error:
                    break
            else:
                result.inserted_count += 1
        return result

    def replace_one(self, booking: Booking) -> None:
        with self._lock:
            current = self._store.get(booking.id)
            if current is None:
                raise BookingNotFoundError(booking.id)
            keys = self._claimable_keys(booking)
            for key in unique_keys(current):
                self._keys.pop(key, None)
            for key in keys:
                self._keys[key] = booking.id
            self._store[booking.id] = booking

    def _claimable_keys(self, booking: Booking) -> list[tuple]:
        keys = unique_keys(booking)
        for key in keys:
            holder = self._keys.get(key)
            if holder is not None and holder != booking.id:
                raise DuplicateBookingError(key, holder)
        return keys


class InstructorRepository:
    """Owning aggregate: each instructor's list of booking ids."""

    def __init__(self) -> None:
        self._booking_ids: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def register(self, instructor_id: str) -> None:
        with self._lock:
            self._booking_ids.setdefault(instructor_id, [])

    def add_booking_ids(self, instructor_id: str, booking_ids: list[str]) -> None:
        with self._lock:
            if instructor_id not in self._booking_ids:
                raise LookupError(f"Instructor {instructor_id} not found")
            self._booking_ids[instructor_id].extend(booking_ids)

    def list_booking_ids(self, instructor_id: str) -> list[str]:
        return list(self._booking_ids.get(instructor_id, []))


class OutcomeLogRepository:
    """List-backed store for OutcomeEntry instances."""

    def __init__(self) -> None:
        self._entries: list[OutcomeEntry] = []

    def add(self, entry: OutcomeEntry) -> None:
        self._entries.append(entry)

    def list_all(self) -> list[OutcomeEntry]:
        return sorted(self._entries, key=lambda e: e.timestamp)

    def list_by_outcome(self, outcome: Outcome) -> list[OutcomeEntry]:
        return [e for e in self.list_all() if e.outcome == outcome]
