from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum.db.base import Base


class ActivitySession(Base):
    """A timed activity block. `focus_quality` is self-rated 1-10."""

    __tablename__ = "activity_sessions"
    __table_args__ = (
        Index("ix_activity_sessions_user_start", "user_id", "start_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    activity: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # minutes
    focus_quality: Mapped[int | None] = mapped_column(Integer, nullable=True)
    distractions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
