"""
Database models for the local journey cache.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from journey_builder.core.database import Base


class CacheEntry(Base):
    """One cached JSON document keyed like ``journey:{id}:draft``."""

    __tablename__ = "journey_cache"

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="Cache key"
    )

    value: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        comment="Cached JSON document"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last write time"
    )

    def __repr__(self) -> str:
        return f"<CacheEntry(key={self.key})>"
