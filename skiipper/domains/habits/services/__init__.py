"""Dashboard habit services: CRUD and skip recording with outbox events."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func

from skiipper.domains.habits.events import (
    HABITS_HABIT_CREATED,
    HABITS_HABIT_SKIPPED,
    HABITS_HABIT_UPDATED,
    HABITS_SKIP_REMOVED,
)
from skiipper.domains.habits.models.habit_models import Habit, HabitSkip
from skiipper.extensions import db
from skiipper.skiipper_platform.outbox import enqueue as enqueue_outbox


def _normalize_name(name: Optional[str]) -> str:
    name_norm = (name or "").strip()
    if not name_norm:
        raise ValueError("validation_error")
    return name_norm


def _normalize_cost(cost) -> Decimal:
    value = Decimal(str(cost))
    if value <= 0:
        raise ValueError("validation_error")
    return value.quantize(Decimal("0.01"))


def create_habit(user_id: int, *, name: str, cost_per_skip) -> Habit:
    name_norm = _normalize_name(name)
    cost = _normalize_cost(cost_per_skip)
    if Habit.query.filter_by(user_id=user_id, name=name_norm).first():
        raise ValueError("duplicate")

    habit = Habit(user_id=user_id, name=name_norm, cost_per_skip=cost)
    db.session.add(habit)
    db.session.flush()
    enqueue_outbox(
        HABITS_HABIT_CREATED,
        {
            "habit_id": habit.id,
            "user_id": user_id,
            "name": habit.name,
            "cost_per_skip": str(cost),
            "created_at": habit.created_at.isoformat(),
        },
        user_id=user_id,
    )
    db.session.commit()
    return habit


def update_habit(user_id: int, habit_id: int, **fields) -> Optional[Habit]:
    habit = Habit.query.filter_by(id=habit_id, user_id=user_id).first()
    if not habit:
        return None

    changed: Dict[str, str] = {}
    if fields.get("name") is not None:
        name_norm = _normalize_name(fields["name"])
        clash = Habit.query.filter(
            Habit.user_id == user_id, Habit.name == name_norm, Habit.id != habit.id
        ).first()
        if clash:
            raise ValueError("duplicate")
        habit.name = name_norm
        changed["name"] = name_norm
    if fields.get("cost_per_skip") is not None:
        habit.cost_per_skip = _normalize_cost(fields["cost_per_skip"])
        changed["cost_per_skip"] = str(habit.cost_per_skip)

    enqueue_outbox(
        HABITS_HABIT_UPDATED,
        {"habit_id": habit.id, "user_id": user_id, "fields": changed},
        user_id=user_id,
    )
    db.session.commit()
    return habit


def list_habits(user_id: int) -> List[Dict[str, object]]:
    """Habits newest first, each with its skip count and total saved."""
    rows = (
        db.session.query(
            Habit,
            func.count(HabitSkip.id),
            func.coalesce(func.sum(HabitSkip.amount_saved), 0),
        )
        .outerjoin(HabitSkip, HabitSkip.habit_id == Habit.id)
        .filter(Habit.user_id == user_id)
        .group_by(Habit.id)
        .order_by(Habit.created_at.desc(), Habit.id.desc())
        .all()
    )
    return [
        {"habit": habit, "skip_count": int(count or 0), "total_saved": Decimal(str(total or 0))}
        for habit, count, total in rows
    ]


def record_skip(user_id: int, habit_id: int, skipped_at: Optional[datetime] = None) -> HabitSkip:
    habit = Habit.query.filter_by(id=habit_id, user_id=user_id).first()
    if not habit:
        raise ValueError("not_found")

    if skipped_at is not None and skipped_at.tzinfo is not None:
        skipped_at = skipped_at.astimezone(timezone.utc).replace(tzinfo=None)
    skip = HabitSkip(
        user_id=user_id,
        habit_id=habit.id,
        amount_saved=habit.cost_per_skip,
        skipped_at=skipped_at or datetime.utcnow(),
    )
    db.session.add(skip)
    db.session.flush()
    enqueue_outbox(
        HABITS_HABIT_SKIPPED,
        {
            "skip_id": skip.id,
            "habit_id": habit.id,
            "user_id": user_id,
            "amount_saved": str(skip.amount_saved),
            "skipped_at": skip.skipped_at.isoformat(),
        },
        user_id=user_id,
    )
    db.session.commit()
    return skip


def list_skips(user_id: int, habit_id: int) -> Optional[List[HabitSkip]]:
    habit = Habit.query.filter_by(id=habit_id, user_id=user_id).first()
    if not habit:
        return None
    return (
        HabitSkip.query.filter_by(habit_id=habit.id)
        .order_by(HabitSkip.skipped_at.desc(), HabitSkip.id.desc())
        .all()
    )


def delete_skip(user_id: int, habit_id: int, skip_id: int) -> bool:
    skip = HabitSkip.query.filter_by(id=skip_id, habit_id=habit_id, user_id=user_id).first()
    if not skip:
        return False
    db.session.delete(skip)
    enqueue_outbox(
        HABITS_SKIP_REMOVED,
        {"skip_id": skip_id, "habit_id": habit_id, "user_id": user_id},
        user_id=user_id,
    )
    db.session.commit()
    return True
