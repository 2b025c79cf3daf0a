from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from fastapi import HTTPException

from backend.core import errors
from backend.routes.common import to_http_exception
from backend.routes.reservation_routes import (
    CreateReservationRequest,
    UpdateReservationRequest,
    create_reservation,
    get_reservation,
    update_reservation_confirmation,
)
from backend.scheduling.booking import BookingService
from backend.scheduling.entities import ReservationStatus

SLOT = datetime(2025, 1, 10, 9, 0)


@pytest.fixture
def published(service: BookingService, provider):
    return service.set_availability(provider.id, SLOT, SLOT + timedelta(minutes=15))


def _request(client, provider, reservation_time: datetime = SLOT) -> CreateReservationRequest:
    return CreateReservationRequest(reservation_time=reservation_time, client_id=client.id, provider_id=provider.id)


def test_create_reservation_returns_pending_reservation(service: BookingService, provider, client, published) -> None:
    response = create_reservation(_request(client, provider), service=service)

    assert response.status is ReservationStatus.PENDING
    assert response.confirmed is False
    assert response.expiration == datetime(2025, 1, 8, 9, 30)


@pytest.mark.parametrize(
    ('reservation_time', 'status_code', 'code'),
    [
        (datetime(2025, 1, 10, 9, 7), 400, 'invalid_slot_alignment'),
        (datetime(2025, 1, 7, 9, 0), 422, 'past_reservation'),
        (datetime(2025, 1, 8, 19, 0), 422, 'insufficient_lead_time'),
        (datetime(2025, 1, 10, 10, 0), 422, 'no_availability_for_slot'),
    ],
)
def test_create_reservation_maps_rejections(
    service: BookingService, provider, client, published, reservation_time, status_code, code
) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_reservation(_request(client, provider, reservation_time), service=service)

    assert exception_info.value.status_code == status_code
    assert exception_info.value.detail['code'] == code


def test_create_reservation_conflict_is_409(service: BookingService, provider, client, published) -> None:
    create_reservation(_request(client, provider), service=service)

    with pytest.raises(HTTPException) as exception_info:
        create_reservation(_request(client, provider), service=service)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['detail']['reservation_time'] == '2025-01-10T09:00:00'


def test_confirm_reservation(service: BookingService, provider, client, published) -> None:
    created = create_reservation(_request(client, provider), service=service)

    response = update_reservation_confirmation(
        str(created.id),
        UpdateReservationRequest(confirmed=True),
        service=service,
    )

    assert response.confirmed is True
    assert response.status is ReservationStatus.CONFIRMED
    assert get_reservation(str(created.id), service=service).confirmed is True


def test_confirm_expired_reservation_is_409(service: BookingService, provider, client, published, clock) -> None:
    created = create_reservation(_request(client, provider), service=service)
    clock.advance(hours=1)

    with pytest.raises(HTTPException) as exception_info:
        update_reservation_confirmation(str(created.id), UpdateReservationRequest(confirmed=True), service=service)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['code'] == 'reservation_expired'


def test_get_reservation_rejects_malformed_id(service: BookingService) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_reservation('12345', service=service)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail['code'] == 'invalid_identifier'


def test_get_reservation_not_found(service: BookingService) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_reservation(str(uuid4()), service=service)

    assert exception_info.value.status_code == 404


def test_collaborator_failures_map_to_503() -> None:
    exception = to_http_exception(errors.CollaboratorUnavailable(operation='find_reservation'))

    assert exception.status_code == 503
    assert exception.detail == {
        'code': 'collaborator_unavailable',
        'message': 'Storage is temporarily unavailable. Try again.',
        'detail': {'operation': 'find_reservation'},
    }
