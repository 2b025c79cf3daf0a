from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import errors
from backend.database import ensure_reservation_schema, get_db
from backend.scheduling.booking import BookingService
from backend.scheduling.sql_store import SqlAvailabilityStore, SqlReservationLedger, SqlUserDirectory

ERROR_STATUS_CODES: list[tuple[type[errors.BookingError], int]] = [
    (errors.NotAProvider, status.HTTP_403_FORBIDDEN),
    (errors.ValidationError, status.HTTP_400_BAD_REQUEST),
    (errors.NotFoundError, status.HTTP_404_NOT_FOUND),
    (errors.ConflictError, status.HTTP_409_CONFLICT),
    (errors.PolicyError, 422),
    (errors.CollaboratorError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def to_http_exception(exc: errors.BookingError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.to_dict())
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.to_dict())


def ensure_database_ready() -> None:
    try:
        ensure_reservation_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    ensure_database_ready()
    return BookingService(
        users=SqlUserDirectory(db),
        availabilities=SqlAvailabilityStore(db),
        reservations=SqlReservationLedger(db),
    )
