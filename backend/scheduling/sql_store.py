"""SQLAlchemy-backed collaborators.

Each store wraps the request's ``Session``. Database failures are rolled back,
logged, and re-raised as ``CollaboratorUnavailable`` so no driver text reaches
callers and no half-written row is left behind.
"""

import hashlib
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import errors
from backend.models import availability as availability_model
from backend.models import reservation as reservation_model
from backend.models import user as user_model
from backend.models.types import to_utc
from backend.scheduling.entities import MUTABLE_RESERVATION_FIELDS, Availability, Reservation, User, UserRole
from backend.scheduling.locks import KeyedLock

logger = logging.getLogger(__name__)

# Shared by every request in this process; sessions are per request.
_slot_locks = KeyedLock()


@contextmanager
def _collaborator_errors(db: Session, operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation %s failed', operation)
        raise errors.CollaboratorUnavailable(operation=operation) from exc


def _to_user(row: user_model.User) -> User:
    return User(id=row.id, role=UserRole(row.role))


def _to_availability(row: availability_model.Availability) -> Availability:
    return Availability(id=row.id, provider_id=row.provider_id, start=row.start_time, end=row.end_time)


def _to_reservation(row: reservation_model.Reservation) -> Reservation:
    return Reservation(
        id=row.id,
        client_id=row.client_id,
        provider_id=row.provider_id,
        reservation_time=row.reservation_time,
        expiration=row.expiration,
        confirmed=bool(row.confirmed),
    )


def advisory_lock_key(provider_id: UUID, slot_time: datetime) -> int:
    digest = hashlib.blake2b(f'{provider_id}:{to_utc(slot_time).isoformat()}'.encode(), digest_size=8).digest()
    return int.from_bytes(digest, 'big', signed=True)


class SqlUserDirectory:
    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(self, user: User) -> User:
        with _collaborator_errors(self.db, 'insert_user'):
            row = user_model.User(id=user.id, role=user.role)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return _to_user(row)

    def find_by_id(self, user_id: UUID) -> User | None:
        with _collaborator_errors(self.db, 'find_user'):
            row = self.db.get(user_model.User, user_id)
            return _to_user(row) if row else None


class SqlAvailabilityStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_covering(
        self,
        provider_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Availability]:
        Row = availability_model.Availability

        with _collaborator_errors(self.db, 'find_availability'):
            query = self.db.query(Row).filter(Row.provider_id == provider_id)
            if start is not None:
                query = query.filter(Row.start_time <= start)
            if end is not None:
                query = query.filter(Row.end_time >= end)
            rows = query.order_by(Row.start_time.asc()).all()
            return [_to_availability(row) for row in rows]

    def insert(self, availability: Availability) -> Availability:
        with _collaborator_errors(self.db, 'insert_availability'):
            row = availability_model.Availability(
                id=availability.id,
                provider_id=availability.provider_id,
                start_time=availability.start,
                end_time=availability.end,
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return _to_availability(row)


class SqlReservationLedger:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_live(self, provider_id: UUID, slot_time: datetime, now: datetime) -> list[Reservation]:
        Row = reservation_model.Reservation

        with _collaborator_errors(self.db, 'find_live_reservations'):
            rows = self.db.query(Row).populate_existing().filter(
                Row.provider_id == provider_id,
                Row.reservation_time == slot_time,
                (Row.confirmed.is_(True)) | (Row.expiration > now),
            ).all()
            return [_to_reservation(row) for row in rows]

    def insert(self, reservation: Reservation) -> Reservation:
        with _collaborator_errors(self.db, 'insert_reservation'):
            row = reservation_model.Reservation(
                id=reservation.id,
                client_id=reservation.client_id,
                provider_id=reservation.provider_id,
                reservation_time=reservation.reservation_time,
                expiration=reservation.expiration,
                confirmed=reservation.confirmed,
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return _to_reservation(row)

    def find_by_id(self, reservation_id: UUID) -> Reservation | None:
        with _collaborator_errors(self.db, 'find_reservation'):
            # Re-reads under the slot lock must not be served from the identity map.
            row = self.db.get(reservation_model.Reservation, reservation_id, populate_existing=True)
            return _to_reservation(row) if row else None

    def update(self, reservation_id: UUID, fields: dict[str, Any]) -> Reservation:
        unknown = set(fields) - MUTABLE_RESERVATION_FIELDS
        if unknown:
            raise ValueError(f'Reservation fields are immutable: {sorted(unknown)}')

        with _collaborator_errors(self.db, 'update_reservation'):
            row = self.db.get(reservation_model.Reservation, reservation_id)
            if row is None:
                raise errors.ReservationNotFound(reservation_id=reservation_id)
            for name, value in fields.items():
                setattr(row, name, value)
            self.db.commit()
            self.db.refresh(row)
            return _to_reservation(row)

    @contextmanager
    def hold(self, provider_id: UUID, slot_time: datetime, timeout: float | None = None) -> Iterator[None]:
        # Keyed by instant: a naive request time and the stored UTC value share one lock.
        slot_time = to_utc(slot_time)
        with _slot_locks.hold((provider_id, slot_time), timeout=timeout):
            try:
                if self.db.get_bind().dialect.name == 'postgresql':
                    # Released by the next commit, or by the rollback below.
                    with _collaborator_errors(self.db, 'reservation_lock'):
                        self.db.execute(select(func.pg_advisory_xact_lock(advisory_lock_key(provider_id, slot_time))))
                yield
            finally:
                self.db.rollback()
