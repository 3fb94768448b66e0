from datetime import datetime, date
from typing import Any

from sqlalchemy import Integer, String, Text, DateTime, Date, JSON, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum.db.base import Base


class EveningReview(Base):
    """End-of-day review. One per (user_id, day)."""

    __tablename__ = "evening_reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "day", name="uq_evening_review_user_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    accomplished: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    missed: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    reasons: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    mood: Mapped[int | None] = mapped_column(Integer, nullable=True)
    energy_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    insights: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
