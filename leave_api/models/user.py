"""User model definitions."""

import enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from leave_api.database import Base
from leave_api.models.leave import Leave


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """Represents a registered employee or administrator."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    name = Column(String, nullable=True)
    role = Column(SQLEnum(Role, name="user_role"), nullable=False, default=Role.USER)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    leaves = relationship(
        Leave,
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
