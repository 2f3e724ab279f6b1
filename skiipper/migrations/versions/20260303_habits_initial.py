"""dashboard habits and skips

Revision ID: 20260303_habits_initial
Revises: 20260302_core_initial
Create Date: 2026-03-03
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "20260303_habits_initial"
down_revision = "20260302_core_initial"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "habits_habit",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("cost_per_skip", sa.Numeric(10, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("cost_per_skip > 0", name="ck_habits_habit_cost_positive"),
    )
    op.create_index("ux_habits_habit_user_name", "habits_habit", ["user_id", "name"], unique=True)
    op.create_index("ix_habits_habit_user_created_at", "habits_habit", ["user_id", "created_at"])
    op.create_table(
        "habits_skip",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False, index=True),
        sa.Column(
            "habit_id",
            sa.Integer(),
            sa.ForeignKey("habits_habit.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("amount_saved", sa.Numeric(10, 2), nullable=False),
        sa.Column("skipped_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_habits_skip_user_skipped_at", "habits_skip", ["user_id", "skipped_at"])


def downgrade():
    op.drop_index("ix_habits_skip_user_skipped_at", table_name="habits_skip")
    op.drop_table("habits_skip")
    op.drop_index("ix_habits_habit_user_created_at", table_name="habits_habit")
    op.drop_index("ux_habits_habit_user_name", table_name="habits_habit")
    op.drop_table("habits_habit")
