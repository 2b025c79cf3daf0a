"""User model definitions."""

from sqlalchemy import Column, Enum, Uuid
from backend.database import Base
from backend.scheduling.entities import UserRole


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, index=True)
    role = Column(Enum(UserRole, name="user_role", values_callable=lambda roles: [role.value for role in roles]), nullable=False)
