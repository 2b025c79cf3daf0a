"""Availability model definitions."""

from sqlalchemy import Column, ForeignKey, Uuid
from backend.database import Base
from backend.models.types import UtcDateTime


class Availability(Base):
    """Represents a window a provider has opened for bookings."""
    __tablename__ = "availability"

    id = Column(Uuid, primary_key=True)
    provider_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(UtcDateTime, nullable=False)
    end_time = Column(UtcDateTime, nullable=False)
