from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, model_validator

from backend.auth.dependencies import get_current_user
from backend.core import errors
from backend.routes.common import get_booking_service, to_http_exception
from backend.scheduling.booking import BookingService
from backend.scheduling.entities import User

router = APIRouter(tags=['availability'])


class CreateAvailabilityRequest(BaseModel):
    start: datetime
    end: datetime

    @model_validator(mode='after')
    def check_offsets_match(self) -> 'CreateAvailabilityRequest':
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise ValueError('start and end must both include a UTC offset or both omit it.')
        return self


class AvailabilityResponse(BaseModel):
    id: UUID
    provider_id: UUID
    start: datetime
    end: datetime
    slots: list[datetime] | None = None

    class Config:
        from_attributes = True


@router.post('', response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
def set_availability(
    data: CreateAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    try:
        return service.set_availability(current_user.id, data.start, data.end)
    except errors.BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{provider_id}', response_model=list[AvailabilityResponse])
def get_availabilities(
    provider_id: str,
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    expand: bool = Query(default=False),
    service: BookingService = Depends(get_booking_service),
):
    try:
        windows = service.get_availabilities(provider_id, start=start, end=end)
    except errors.BookingError as exc:
        raise to_http_exception(exc) from exc

    if not expand:
        return windows

    return [
        AvailabilityResponse(
            id=window.id,
            provider_id=window.provider_id,
            start=window.start,
            end=window.end,
            slots=list(window.slots()),
        )
        for window in windows
    ]
