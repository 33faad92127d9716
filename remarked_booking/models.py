"""Database models."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from .db import Base


class TimestampMixin:
    """Reusable created/updated columns."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True
    )


class Restaurant(Base, TimestampMixin):
    """Venue that may accept table bookings through ReMarked."""

    __tablename__ = "restaurants"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    city = Column(String, nullable=True)
    address = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    remarked_point_id = Column(Integer, nullable=True)
