"""Thread-safe in-memory collaborators."""

from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Any
from uuid import UUID

from backend.core import errors
from backend.scheduling.entities import MUTABLE_RESERVATION_FIELDS, Availability, Reservation, User
from backend.scheduling.locks import KeyedLock


class InMemoryUserDirectory:
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: dict[UUID, User] = {}

    def insert(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user
        return user

    def find_by_id(self, user_id: UUID) -> User | None:
        with self._lock:
            return self._users.get(user_id)


class InMemoryAvailabilityStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._availabilities: dict[UUID, Availability] = {}

    def find_covering(
        self,
        provider_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Availability]:
        with self._lock:
            matches = [
                availability
                for availability in self._availabilities.values()
                if availability.provider_id == provider_id
                and (start is None or availability.start <= start)
                and (end is None or availability.end >= end)
            ]
        return sorted(matches, key=lambda availability: availability.start)

    def insert(self, availability: Availability) -> Availability:
        with self._lock:
            self._availabilities[availability.id] = availability
        return availability


class InMemoryReservationLedger:
    def __init__(self) -> None:
        self._lock = Lock()
        self._reservations: dict[UUID, Reservation] = {}
        self._slot_locks = KeyedLock()

    def find_live(self, provider_id: UUID, slot_time: datetime, now: datetime) -> list[Reservation]:
        with self._lock:
            return [
                reservation
                for reservation in self._reservations.values()
                if reservation.provider_id == provider_id
                and reservation.reservation_time == slot_time
                and reservation.is_live(now)
            ]

    def insert(self, reservation: Reservation) -> Reservation:
        with self._lock:
            self._reservations[reservation.id] = reservation
        return reservation

    def find_by_id(self, reservation_id: UUID) -> Reservation | None:
        with self._lock:
            return self._reservations.get(reservation_id)

    def update(self, reservation_id: UUID, fields: dict[str, Any]) -> Reservation:
        unknown = set(fields) - MUTABLE_RESERVATION_FIELDS
        if unknown:
            raise ValueError(f'Reservation fields are immutable: {sorted(unknown)}')

        with self._lock:
            existing = self._reservations.get(reservation_id)
            if existing is None:
                raise errors.ReservationNotFound(reservation_id=reservation_id)
            updated = replace(existing, **fields)
            self._reservations[reservation_id] = updated
        return updated

    def hold(self, provider_id: UUID, slot_time: datetime, timeout: float | None = None):
        return self._slot_locks.hold((provider_id, slot_time), timeout=timeout)
