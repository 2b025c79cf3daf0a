"""Domain entities shared by the booking service and its collaborators."""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from backend.scheduling.slots import SlotRange


class UserRole(str, enum.Enum):
    PROVIDER = 'provider'
    CLIENT = 'client'


def can_publish_availability(role: UserRole) -> bool:
    if role is UserRole.PROVIDER:
        return True
    if role is UserRole.CLIENT:
        return False
    raise ValueError(f'Unhandled user role: {role!r}')


MUTABLE_RESERVATION_FIELDS = frozenset({'confirmed'})


class ReservationStatus(str, enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    EXPIRED = 'expired'


@dataclass(frozen=True)
class User:
    role: UserRole
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class Availability:
    """An open window during which a provider accepts bookings."""

    provider_id: UUID
    start: datetime
    end: datetime
    id: UUID = field(default_factory=uuid4)

    def slots(self) -> SlotRange:
        return SlotRange(self.start, self.end)


@dataclass(frozen=True)
class Reservation:
    """A single 15-minute slot held for a client with a provider.

    ``expiration`` is fixed when the reservation is created. A reservation keeps
    its slot while it is confirmed or its hold has not run out yet.
    """

    client_id: UUID
    provider_id: UUID
    reservation_time: datetime
    expiration: datetime
    confirmed: bool = False
    id: UUID = field(default_factory=uuid4)

    def is_live(self, now: datetime) -> bool:
        return self.confirmed or self.expiration > now

    def is_expired(self, now: datetime) -> bool:
        return self.expiration < now

    def status(self, now: datetime) -> ReservationStatus:
        if self.confirmed:
            return ReservationStatus.CONFIRMED
        if self.is_expired(now):
            return ReservationStatus.EXPIRED
        return ReservationStatus.PENDING
