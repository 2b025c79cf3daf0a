"""Reservation model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Uuid
from backend.database import Base
from backend.models.types import UtcDateTime


class Reservation(Base):
    """Represents a 15-minute slot held for a client."""
    __tablename__ = "reservations"

    id = Column(Uuid, primary_key=True)
    client_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    provider_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    reservation_time = Column(UtcDateTime, nullable=False)
    expiration = Column(UtcDateTime, nullable=False)
    confirmed = Column(Boolean, default=False, nullable=False)
