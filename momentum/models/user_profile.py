"""
UserProfile — questionnaire answers plus the externally computed identity
alignment score (0-100) written by the identity collaborator.
"""
from datetime import datetime, time
from decimal import Decimal
from typing import Any

from sqlalchemy import Integer, String, Text, DateTime, Time, JSON, Numeric, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum.db.base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    target_identity: Mapped[str | None] = mapped_column(Text, nullable=True)
    academic_goals: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)
    skill_goals: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)
    wake_up_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    sleep_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    available_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    detailed_profile: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    identity_alignment_score: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2), nullable=True,
        comment="0-100, maintained by the identity collaborator",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
