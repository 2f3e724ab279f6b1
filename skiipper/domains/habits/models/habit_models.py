"""Dashboard habit tables (database-backed, separate from the wizard ledger)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Mapped, mapped_column, relationship

from skiipper.extensions import db


class Habit(db.Model):
    __tablename__ = "habits_habit"
    __table_args__ = (
        db.Index("ux_habits_habit_user_name", "user_id", "name", unique=True),
        db.Index("ix_habits_habit_user_created_at", "user_id", "created_at"),
        db.CheckConstraint("cost_per_skip > 0", name="ck_habits_habit_cost_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    cost_per_skip: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    skips: Mapped[list["HabitSkip"]] = relationship(
        "HabitSkip",
        back_populates="habit",
        cascade="all, delete-orphan",
    )


class HabitSkip(db.Model):
    __tablename__ = "habits_skip"
    __table_args__ = (
        db.Index("ix_habits_skip_user_skipped_at", "user_id", "skipped_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("user.id"), index=True, nullable=False)
    habit_id: Mapped[int] = mapped_column(
        db.ForeignKey("habits_habit.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    # Cost at the time of the skip, so later price edits don't rewrite history.
    amount_saved: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False)
    skipped_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    habit: Mapped[Habit] = relationship("Habit", back_populates="skips")
