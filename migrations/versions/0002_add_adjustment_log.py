"""add adjustment_log table

Revision ID: 0002
Revises: 0001
Create Date: 2026-03-09

Stores system adjustments emitted by the Adaptive Feedback Analyzer together
with the tracked metric's baseline at emission time.
Unique constraint (user_id, adjustment_type, emitted_on) enforces idempotency.
Append-only; downgrade drops cleanly.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "adjustment_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("adjustment_type", sa.String(32), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("expected_impact", sa.Float(), nullable=False),
        sa.Column(
            "tracked_metric", sa.String(32), nullable=False,
            comment='"completion_rate" | "deep_work_hours"',
        ),
        sa.Column("baseline_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("emitted_on", sa.Date(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_adjustment_log_user_id", "adjustment_log", ["user_id"])
    op.create_index("ix_adjustment_log_emitted_on", "adjustment_log", ["emitted_on"])
    op.create_unique_constraint(
        "uq_adjustment_log_user_type_date",
        "adjustment_log",
        ["user_id", "adjustment_type", "emitted_on"],
    )


def downgrade() -> None:
    op.drop_constraint("uq_adjustment_log_user_type_date", "adjustment_log", type_="unique")
    op.drop_index("ix_adjustment_log_emitted_on", table_name="adjustment_log")
    op.drop_index("ix_adjustment_log_user_id", table_name="adjustment_log")
    op.drop_table("adjustment_log")
