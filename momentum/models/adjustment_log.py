"""
AdjustmentRecord — system adjustments emitted by the Adaptive Feedback Analyzer.

Append-only. One row per (user_id, adjustment_type, emitted_on); the unique
constraint makes repeated analysis on the same day idempotent.

The baseline columns capture the tracked metric at emission time so that
adaptation effectiveness can later compare it with what followed.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, Float, DateTime, Date, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from momentum.db.base import Base


class AdjustmentRecord(Base):
    __tablename__ = "adjustment_log"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "adjustment_type", "emitted_on",
            name="uq_adjustment_log_user_type_date",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    adjustment_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    expected_impact: Mapped[float] = mapped_column(Float, nullable=False)
    tracked_metric: Mapped[str] = mapped_column(
        String(32), nullable=False,
        comment='"completion_rate" | "deep_work_hours"',
    )
    baseline_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    emitted_on: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
