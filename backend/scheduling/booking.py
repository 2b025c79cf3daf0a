"""Booking conciliation between provider availability and client reservations.

``BookingService`` validates a requested slot, checks it against the provider's
published windows and the live reservations for the same slot, and drives the
pending -> confirmed / expired lifecycle of a reservation.

All business-rule failures are raised as ``backend.core.errors`` types. Anything
unexpected coming out of a collaborator is logged and surfaced as
``CollaboratorUnavailable``.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, TypeVar
from uuid import UUID

from backend.core import config, errors
from backend.scheduling import slots
from backend.scheduling.entities import (
    Availability,
    Reservation,
    ReservationStatus,
    User,
    UserRole,
    can_publish_availability,
)
from backend.scheduling.locks import Deadline
from backend.scheduling.stores import AvailabilityStore, ReservationLedger, UserDirectory

logger = logging.getLogger(__name__)

T = TypeVar('T')

HOLD_DURATION = timedelta(minutes=config.HOLD_MINUTES)
MIN_LEAD_TIME = timedelta(hours=config.MIN_LEAD_HOURS)


def parse_id(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise errors.InvalidIdentifier(field=field, value=str(value)) from exc


def _align_clock(now: datetime, reference: datetime) -> datetime:
    """Express ``now`` with the same kind of tzinfo as ``reference``."""
    if reference.tzinfo is not None and now.tzinfo is None:
        return now.astimezone(reference.tzinfo)
    if reference.tzinfo is None and now.tzinfo is not None:
        return now.astimezone().replace(tzinfo=None)
    return now


class BookingService:
    def __init__(
        self,
        users: UserDirectory,
        availabilities: AvailabilityStore,
        reservations: ReservationLedger,
        clock: Callable[[], datetime] = datetime.now,
        timeout: float | None = config.COLLABORATOR_TIMEOUT_SECONDS,
    ) -> None:
        self.users = users
        self.availabilities = availabilities
        self.reservations = reservations
        self.clock = clock
        self.timeout = timeout

    def _deadline(self, timeout: float | None) -> Deadline:
        return Deadline(self.timeout if timeout is None else timeout)

    def _now(self, reference: datetime) -> datetime:
        return _align_clock(self.clock(), reference)

    def _call(self, deadline: Deadline, operation: str, func: Callable[..., T], *args: Any) -> T:
        deadline.check(operation)
        try:
            return func(*args)
        except errors.BookingError:
            raise
        except Exception as exc:
            logger.exception('Collaborator call %s failed', operation)
            raise errors.CollaboratorUnavailable(operation=operation) from exc

    # Users

    def create_user(self, role: UserRole | str, timeout: float | None = None) -> User:
        try:
            role = UserRole(role)
        except ValueError as exc:
            raise errors.ValidationError('Unknown user role.', field='role', value=str(role)) from exc

        deadline = self._deadline(timeout)
        user = self._call(deadline, 'insert_user', self.users.insert, User(role=role))
        logger.info('Created %s user %s', user.role.value, user.id)
        return user

    def get_user(self, user_id: UUID | str, timeout: float | None = None) -> User:
        user_id = parse_id(user_id, 'user_id')
        user = self._call(self._deadline(timeout), 'find_user', self.users.find_by_id, user_id)
        if user is None:
            raise errors.UserNotFound(user_id=user_id)
        return user

    # Availability

    def set_availability(
        self,
        provider_id: UUID | str,
        start: datetime,
        end: datetime,
        timeout: float | None = None,
    ) -> Availability:
        provider_id = parse_id(provider_id, 'provider_id')
        deadline = self._deadline(timeout)

        provider = self._call(deadline, 'find_user', self.users.find_by_id, provider_id)
        if provider is None:
            raise errors.UserNotFound(user_id=provider_id)
        if not can_publish_availability(provider.role):
            logger.debug('User %s with role %s tried to publish availability', provider_id, provider.role.value)
            raise errors.NotAProvider(user_id=provider_id, role=provider.role.value)

        for field, value in (('start', start), ('end', end)):
            if not slots.is_quantized(value):
                raise errors.InvalidSlotAlignment(field=field, value=value, nearest_valid=slots.quantize(value))

        if start >= end:
            raise errors.InvalidAvailabilityWindow(start=start, end=end)

        availability = self._call(
            deadline,
            'insert_availability',
            self.availabilities.insert,
            Availability(provider_id=provider_id, start=start, end=end),
        )
        logger.info('Provider %s published availability %s -> %s', provider_id, start, end)
        return availability

    def get_availabilities(
        self,
        provider_id: UUID | str,
        start: datetime | None = None,
        end: datetime | None = None,
        expand: bool = False,
        timeout: float | None = None,
    ) -> list[Availability] | list[slots.SlotRange]:
        """Windows of the provider that cover ``[start, end]``.

        With ``expand`` each window is returned as the ``SlotRange`` of its
        15-minute boundaries instead.
        """
        provider_id = parse_id(provider_id, 'provider_id')
        windows = self._call(
            self._deadline(timeout),
            'find_availability',
            self.availabilities.find_covering,
            provider_id,
            start,
            end,
        )
        windows = sorted(windows, key=lambda window: window.start)
        if expand:
            return [window.slots() for window in windows]
        return windows

    # Reservations

    def create_reservation(
        self,
        reservation_time: datetime,
        client_id: UUID | str,
        provider_id: UUID | str,
        timeout: float | None = None,
    ) -> Reservation:
        client_id = parse_id(client_id, 'client_id')
        provider_id = parse_id(provider_id, 'provider_id')

        if not slots.is_quantized(reservation_time):
            raise errors.InvalidSlotAlignment(
                field='reservation_time',
                value=reservation_time,
                nearest_valid=slots.quantize(reservation_time),
            )

        now = self._now(reservation_time)
        if reservation_time <= now:
            raise errors.PastReservation(reservation_time=reservation_time, now=now)

        if reservation_time - MIN_LEAD_TIME < now:
            raise errors.InsufficientLeadTime(
                reservation_time=reservation_time,
                earliest_allowed=now + MIN_LEAD_TIME,
                min_lead_hours=config.MIN_LEAD_HOURS,
            )

        deadline = self._deadline(timeout)
        slot_end = slots.slot_end(reservation_time)
        covering = self._call(
            deadline,
            'find_availability',
            self.availabilities.find_covering,
            provider_id,
            reservation_time,
            slot_end,
        )
        if not covering:
            logger.debug('No availability for provider %s at %s', provider_id, reservation_time)
            raise errors.NoAvailabilityForSlot(provider_id=provider_id, reservation_time=reservation_time)

        deadline.check('reservation_lock')
        with self.reservations.hold(provider_id, reservation_time, timeout=deadline.remaining()):
            # Liveness is judged as of the moment the slot lock is held.
            now = self._now(reservation_time)
            live = self._call(
                deadline,
                'find_live_reservations',
                self.reservations.find_live,
                provider_id,
                reservation_time,
                now,
            )
            if live:
                logger.debug('Slot %s for provider %s already held by %s', reservation_time, provider_id, live[0].id)
                raise errors.SlotAlreadyBooked(
                    provider_id=provider_id,
                    client_id=client_id,
                    reservation_time=reservation_time,
                )

            reservation = self._call(
                deadline,
                'insert_reservation',
                self.reservations.insert,
                Reservation(
                    client_id=client_id,
                    provider_id=provider_id,
                    reservation_time=reservation_time,
                    expiration=now + HOLD_DURATION,
                    confirmed=False,
                ),
            )

        logger.info(
            'Reserved %s with provider %s for client %s (hold until %s)',
            reservation.reservation_time,
            provider_id,
            client_id,
            reservation.expiration,
        )
        return reservation

    def reservation_status(self, reservation: Reservation) -> ReservationStatus:
        return reservation.status(self._now(reservation.expiration))

    def get_reservation(self, reservation_id: UUID | str, timeout: float | None = None) -> Reservation:
        reservation_id = parse_id(reservation_id, 'reservation_id')
        reservation = self._call(
            self._deadline(timeout),
            'find_reservation',
            self.reservations.find_by_id,
            reservation_id,
        )
        if reservation is None:
            raise errors.ReservationNotFound(reservation_id=reservation_id)
        return reservation

    def update_confirmation(
        self,
        reservation_id: UUID | str,
        confirmed: bool | None = None,
        timeout: float | None = None,
    ) -> Reservation:
        reservation_id = parse_id(reservation_id, 'reservation_id')
        deadline = self._deadline(timeout)

        reservation = self._call(deadline, 'find_reservation', self.reservations.find_by_id, reservation_id)
        if reservation is None:
            raise errors.ReservationNotFound(reservation_id=reservation_id)

        deadline.check('reservation_lock')
        with self.reservations.hold(
            reservation.provider_id,
            reservation.reservation_time,
            timeout=deadline.remaining(),
        ):
            # The expiry check and the write share the slot lock that rebooking takes.
            reservation = self._call(deadline, 'find_reservation', self.reservations.find_by_id, reservation_id)
            if reservation is None:
                raise errors.ReservationNotFound(reservation_id=reservation_id)

            # An expired hold is a soft delete: nothing on the row may change any more.
            now = self._now(reservation.expiration)
            if reservation.is_expired(now):
                logger.debug('Reservation %s expired at %s', reservation_id, reservation.expiration)
                raise errors.ReservationExpired(reservation_id=reservation_id, expiration=reservation.expiration)

            if confirmed is None or confirmed == reservation.confirmed:
                return reservation

            if not confirmed:
                raise errors.ReservationAlreadyConfirmed(reservation_id=reservation_id)

            updated = self._call(
                deadline,
                'update_reservation',
                self.reservations.update,
                reservation_id,
                {'confirmed': True},
            )

        logger.info('Confirmed reservation %s', reservation_id)
        return updated
