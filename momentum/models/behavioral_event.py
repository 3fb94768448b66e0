"""
BehavioralEvent — discrete behavioral signals recorded by upstream collaborators.

Append-only and immutable once recorded. Owned by `user_id`; only removed by
bulk data-deletion requests handled outside this engine.

event_type values (payload schemas in momentum/schemas/events.py):
  "user_interaction"      — UI interaction (click, focus, blur, ...)
  "task_completion"       — a routine task finished or abandoned
  "productivity_metrics"  — self-reported focus quality / energy
  "suggestion_response"   — reaction to a system suggestion
  "contextual_factors"    — location / noise / social context sample
  "skip_pattern"          — a routine item was skipped
  "routine_modification"  — the user edited a generated routine
  "habit_completion"      — a habit check-in mirrored as an event
"""
import enum
from datetime import datetime
from typing import Any

from sqlalchemy import Integer, String, DateTime, JSON, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum.db.base import Base


class EventType(str, enum.Enum):
    user_interaction = "user_interaction"
    task_completion = "task_completion"
    productivity_metrics = "productivity_metrics"
    suggestion_response = "suggestion_response"
    contextual_factors = "contextual_factors"
    skip_pattern = "skip_pattern"
    routine_modification = "routine_modification"
    habit_completion = "habit_completion"


class BehavioralEvent(Base):
    __tablename__ = "behavioral_events"
    __table_args__ = (
        Index("ix_behavioral_events_user_timestamp", "user_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    event_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
