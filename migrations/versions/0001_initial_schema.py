"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-03-02 00:00:00.000000

Behavioral events plus the records the engine reads: habits and their daily
completions, timed activity sessions, evening reviews and user profiles.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    completion_quality_enum = sa.Enum(
        "excellent", "good", "poor", name="completion_quality_enum"
    )
    completion_quality_enum.create(op.get_bind(), checkfirst=True)

    # --- behavioral_events ---
    op.create_table(
        "behavioral_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("event_data", sa.JSON(), nullable=False),
        sa.Column("context", sa.JSON(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_behavioral_events_id", "behavioral_events", ["id"])
    op.create_index("ix_behavioral_events_user_id", "behavioral_events", ["user_id"])
    op.create_index("ix_behavioral_events_event_type", "behavioral_events", ["event_type"])
    op.create_index(
        "ix_behavioral_events_user_timestamp", "behavioral_events", ["user_id", "timestamp"]
    )

    # --- habits ---
    op.create_table(
        "habits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("frequency", sa.String(32), nullable=False),
        sa.Column("cue", sa.Text(), nullable=True),
        sa.Column("reward", sa.Text(), nullable=True),
        sa.Column("stacked_after", sa.Integer(), sa.ForeignKey("habits.id"), nullable=True),
        sa.Column("reminder_time", sa.Time(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_habits_id", "habits", ["id"])
    op.create_index("ix_habits_user_id", "habits", ["user_id"])

    # --- habit_completions ---
    op.create_table(
        "habit_completions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "habit_id", sa.Integer(),
            sa.ForeignKey("habits.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("quality", sa.Enum(
            "excellent", "good", "poor", name="completion_quality_enum", create_type=False
        ), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("habit_id", "day", name="uq_habit_completion_habit_day"),
    )
    op.create_index("ix_habit_completions_id", "habit_completions", ["id"])
    op.create_index("ix_habit_completions_habit_id", "habit_completions", ["habit_id"])
    op.create_index("ix_habit_completions_user_id", "habit_completions", ["user_id"])
    op.create_index("ix_habit_completions_day", "habit_completions", ["day"])

    # --- activity_sessions ---
    op.create_table(
        "activity_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("activity", sa.String(255), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("focus_quality", sa.Integer(), nullable=True),
        sa.Column("distractions", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_sessions_id", "activity_sessions", ["id"])
    op.create_index("ix_activity_sessions_user_id", "activity_sessions", ["user_id"])
    op.create_index(
        "ix_activity_sessions_user_start", "activity_sessions", ["user_id", "start_time"]
    )

    # --- evening_reviews ---
    op.create_table(
        "evening_reviews",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("accomplished", sa.JSON(), nullable=False),
        sa.Column("missed", sa.JSON(), nullable=False),
        sa.Column("reasons", sa.JSON(), nullable=False),
        sa.Column("mood", sa.Integer(), nullable=True),
        sa.Column("energy_level", sa.Integer(), nullable=True),
        sa.Column("insights", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "day", name="uq_evening_review_user_day"),
    )
    op.create_index("ix_evening_reviews_id", "evening_reviews", ["id"])
    op.create_index("ix_evening_reviews_user_id", "evening_reviews", ["user_id"])
    op.create_index("ix_evening_reviews_day", "evening_reviews", ["day"])

    # --- user_profiles ---
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("target_identity", sa.Text(), nullable=True),
        sa.Column("academic_goals", sa.JSON(), nullable=True),
        sa.Column("skill_goals", sa.JSON(), nullable=True),
        sa.Column("wake_up_time", sa.Time(), nullable=True),
        sa.Column("sleep_time", sa.Time(), nullable=True),
        sa.Column("available_hours", sa.Integer(), nullable=True),
        sa.Column("detailed_profile", sa.JSON(), nullable=True),
        sa.Column(
            "identity_alignment_score", sa.Numeric(5, 2), nullable=True,
            comment="0-100, maintained by the identity collaborator",
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_profiles_id", "user_profiles", ["id"])
    op.create_index("ix_user_profiles_user_id", "user_profiles", ["user_id"], unique=True)


def downgrade() -> None:
    op.drop_table("user_profiles")
    op.drop_table("evening_reviews")
    op.drop_table("activity_sessions")
    op.drop_table("habit_completions")
    op.drop_table("habits")
    op.drop_table("behavioral_events")
    sa.Enum(name="completion_quality_enum").drop(op.get_bind(), checkfirst=True)
