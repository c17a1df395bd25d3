"""
WriteUp Backend: History Item Model
===================================

What:  ORM model for the `history` table: accepted enhancements, newest first.
Why:   Lets the history panel search, filter, star, and export past results.

The table is capped (settings.history_limit); HistoryService trims the
oldest rows on insert.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from writeup.database import Base


class HistoryEntry(Base):
    __tablename__ = "history"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    original: Mapped[str] = mapped_column(Text, nullable=False)
    enhanced: Mapped[str] = mapped_column(Text, nullable=False)

    # Enhancement type and provider name, kept as plain strings so history
    # survives provider renames and new enhancement types
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    provider: Mapped[str] = mapped_column(String(100), nullable=False)

    processing_time: Mapped[float | None] = mapped_column(Float, nullable=True)
    tokens_used: Mapped[int | None] = mapped_column(Integer, nullable=True)

    favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_history_timestamp", timestamp.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<HistoryEntry(id={self.id}, type='{self.type}', "
            f"provider='{self.provider}', timestamp='{self.timestamp}')>"
        )
