"""Collaborator contracts consumed by the booking service.

The service only depends on these protocols, so it runs the same against the
SQLAlchemy-backed stores and the in-memory ones used in tests.
"""

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Protocol, Sequence
from uuid import UUID

from backend.scheduling.entities import Availability, Reservation, User


class UserDirectory(Protocol):
    def insert(self, user: User) -> User:
        ...

    def find_by_id(self, user_id: UUID) -> User | None:
        ...


class AvailabilityStore(Protocol):
    def find_covering(
        self,
        provider_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Sequence[Availability]:
        """Windows of ``provider_id`` with ``window.start <= start`` and ``window.end >= end``.

        A bound left as ``None`` is not filtered on.
        """
        ...

    def insert(self, availability: Availability) -> Availability:
        ...


class ReservationLedger(Protocol):
    def find_live(self, provider_id: UUID, slot_time: datetime, now: datetime) -> Sequence[Reservation]:
        """Reservations for the slot that are confirmed or whose hold ends after ``now``."""
        ...

    def insert(self, reservation: Reservation) -> Reservation:
        ...

    def find_by_id(self, reservation_id: UUID) -> Reservation | None:
        ...

    def update(self, reservation_id: UUID, fields: dict[str, Any]) -> Reservation:
        ...

    def hold(
        self,
        provider_id: UUID,
        slot_time: datetime,
        timeout: float | None = None,
    ) -> AbstractContextManager[None]:
        """Serialize check-then-insert for one ``(provider_id, slot_time)`` key."""
        ...
