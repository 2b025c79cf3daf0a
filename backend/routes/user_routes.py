from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from backend.auth import jwt_handler
from backend.core import errors
from backend.routes.common import get_booking_service, to_http_exception
from backend.scheduling.booking import BookingService
from backend.scheduling.entities import UserRole

router = APIRouter(tags=['users'])


class CreateUserRequest(BaseModel):
    role: UserRole


class UserResponse(BaseModel):
    id: UUID
    role: UserRole

    class Config:
        from_attributes = True


class CreatedUserResponse(UserResponse):
    access_token: str
    token_type: str = 'bearer'


@router.post('', response_model=CreatedUserResponse, status_code=status.HTTP_201_CREATED)
def create_user(data: CreateUserRequest, service: BookingService = Depends(get_booking_service)):
    try:
        user = service.create_user(data.role)
    except errors.BookingError as exc:
        raise to_http_exception(exc) from exc

    return CreatedUserResponse(
        id=user.id,
        role=user.role,
        access_token=jwt_handler.create_access_token(user),
    )


@router.get('/{user_id}', response_model=UserResponse)
def get_user(user_id: str, service: BookingService = Depends(get_booking_service)):
    try:
        return service.get_user(user_id)
    except errors.BookingError as exc:
        raise to_http_exception(exc) from exc
