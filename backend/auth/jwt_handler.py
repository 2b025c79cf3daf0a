from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config
from backend.scheduling.entities import User

REQUIRED_CLAIMS = ["sub", "role", "exp"]


def create_access_token(user: User, expires_minutes: int | None = None) -> str:
    if expires_minutes is None:
        expires_minutes = config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )
