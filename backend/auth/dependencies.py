import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.auth import jwt_handler
from backend.core import errors
from backend.routes.common import get_booking_service, to_http_exception
from backend.scheduling.booking import BookingService
from backend.scheduling.entities import User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    service: BookingService = Depends(get_booking_service),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    try:
        user = service.get_user(user_id)
    except (errors.UserNotFound, errors.InvalidIdentifier) as exc:
        raise HTTPException(status_code=401, detail="User not found") from exc
    except errors.BookingError as exc:
        raise to_http_exception(exc) from exc

    if payload.get("role") != user.role.value:
        raise HTTPException(status_code=401, detail="Invalid token role")

    return user
