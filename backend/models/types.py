"""Column types shared by the booking tables."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


def to_utc(value: datetime) -> datetime:
    """The same instant with ``timezone.utc`` attached.

    Naive values are read as local wall time, as the booking service reads them.
    """
    return value.astimezone(timezone.utc)


class UtcDateTime(TypeDecorator):
    """Timestamp stored as naive UTC and always loaded back as aware UTC.

    Neither SQLite nor a plain ``TIMESTAMP`` keeps an offset, so the instant is
    fixed before it reaches the driver and re-tagged on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
