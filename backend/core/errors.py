"""Typed failures raised by the booking core.

Every failure carries a stable ``code`` and a ``detail`` dict naming the field,
identifier or boundary involved, so the transport layer can build an actionable
message without parsing strings.
"""

from datetime import datetime
from typing import Any


class BookingError(Exception):
    """Base class for every failure the booking core reports."""

    code = 'booking_error'
    message = 'Booking request failed.'

    def __init__(self, message: str | None = None, **detail: Any) -> None:
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            'code': self.code,
            'message': self.message,
            'detail': {key: _serialize(value) for key, value in self.detail.items()},
        }


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


# Categories

class ValidationError(BookingError):
    code = 'validation_error'


class NotFoundError(BookingError):
    code = 'not_found'


class ConflictError(BookingError):
    code = 'conflict'


class PolicyError(BookingError):
    code = 'policy_violation'


class CollaboratorError(BookingError):
    code = 'collaborator_error'
    retryable = True


# Validation

class InvalidSlotAlignment(ValidationError):
    code = 'invalid_slot_alignment'
    message = 'Times must be on 15-minute boundaries.'


class InvalidIdentifier(ValidationError):
    code = 'invalid_identifier'
    message = 'Provided ID is not a valid UUID.'


class InvalidAvailabilityWindow(ValidationError):
    code = 'invalid_availability_window'
    message = 'Availability start must be before its end.'


# Not found

class UserNotFound(NotFoundError):
    code = 'user_not_found'
    message = 'User not found.'


class ReservationNotFound(NotFoundError):
    code = 'reservation_not_found'
    message = 'Reservation not found.'


# Conflicts

class SlotAlreadyBooked(ConflictError):
    code = 'slot_already_booked'
    message = 'This time is already booked.'


class ReservationExpired(ConflictError):
    code = 'reservation_expired'
    message = 'Reservation has already expired.'


class ReservationAlreadyConfirmed(ConflictError):
    code = 'reservation_already_confirmed'
    message = 'A confirmed reservation cannot be unconfirmed.'


# Policy

class PastReservation(PolicyError):
    code = 'past_reservation'
    message = 'Reservations must be scheduled in the future.'


class InsufficientLeadTime(PolicyError):
    code = 'insufficient_lead_time'
    message = 'Reservations must be made further in advance.'


class NoAvailabilityForSlot(PolicyError):
    code = 'no_availability_for_slot'
    message = 'The provider is not available at this time.'


class NotAProvider(PolicyError):
    code = 'not_a_provider'
    message = 'Only providers can publish availability.'


# Collaborators

class CollaboratorUnavailable(CollaboratorError):
    code = 'collaborator_unavailable'
    message = 'Storage is temporarily unavailable. Try again.'
