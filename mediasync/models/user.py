"""SQLAlchemy ORM model for user profile documents."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String

from mediasync.database import Base
from .base import server_timestamp


class User(Base):
    __tablename__ = "users"

    uid = Column(String(128), primary_key=True)
    display_name = Column(String(150), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    photo_url = Column(String(1024), nullable=True)
    provider = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), default=server_timestamp, nullable=False)


__all__ = ["User"]
