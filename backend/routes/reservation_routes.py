from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from backend.core import errors
from backend.routes.common import get_booking_service, to_http_exception
from backend.scheduling.booking import BookingService
from backend.scheduling.entities import Reservation, ReservationStatus

router = APIRouter(tags=['reservations'])


class CreateReservationRequest(BaseModel):
    reservation_time: datetime
    client_id: UUID
    provider_id: UUID


class UpdateReservationRequest(BaseModel):
    confirmed: bool | None = None


class ReservationResponse(BaseModel):
    id: UUID
    client_id: UUID
    provider_id: UUID
    reservation_time: datetime
    expiration: datetime
    confirmed: bool
    status: ReservationStatus


def to_response(reservation: Reservation, service: BookingService) -> ReservationResponse:
    return ReservationResponse(
        id=reservation.id,
        client_id=reservation.client_id,
        provider_id=reservation.provider_id,
        reservation_time=reservation.reservation_time,
        expiration=reservation.expiration,
        confirmed=reservation.confirmed,
        status=service.reservation_status(reservation),
    )


@router.post('', response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(data: CreateReservationRequest, service: BookingService = Depends(get_booking_service)):
    try:
        reservation = service.create_reservation(data.reservation_time, data.client_id, data.provider_id)
    except errors.BookingError as exc:
        raise to_http_exception(exc) from exc

    return to_response(reservation, service)


@router.get('/{reservation_id}', response_model=ReservationResponse)
def get_reservation(reservation_id: str, service: BookingService = Depends(get_booking_service)):
    try:
        reservation = service.get_reservation(reservation_id)
    except errors.BookingError as exc:
        raise to_http_exception(exc) from exc

    return to_response(reservation, service)


@router.patch('/{reservation_id}', response_model=ReservationResponse)
def update_reservation_confirmation(
    reservation_id: str,
    data: UpdateReservationRequest,
    service: BookingService = Depends(get_booking_service),
):
    try:
        reservation = service.update_confirmation(reservation_id, confirmed=data.confirmed)
    except errors.BookingError as exc:
        raise to_http_exception(exc) from exc

    return to_response(reservation, service)
