"""Habits domain event catalog."""

from __future__ import annotations

HABITS_HABIT_CREATED = "habits.habit.created"
HABITS_HABIT_UPDATED = "habits.habit.updated"
HABITS_HABIT_SKIPPED = "habits.habit.skipped"
HABITS_SKIP_REMOVED = "habits.skip.removed"

EVENT_CATALOG = {
    HABITS_HABIT_CREATED: {
        "version": "v1",
        "payload": {
            "habit_id": "int",
            "user_id": "int",
            "name": "str",
            "cost_per_skip": "decimal",
            "created_at": "datetime",
        },
    },
    HABITS_HABIT_UPDATED: {
        "version": "v1",
        "payload": {
            "habit_id": "int",
            "user_id": "int",
            "fields": "dict",
        },
    },
    HABITS_HABIT_SKIPPED: {
        "version": "v1",
        "payload": {
            "skip_id": "int",
            "habit_id": "int",
            "user_id": "int",
            "amount_saved": "decimal",
            "skipped_at": "datetime",
        },
    },
    HABITS_SKIP_REMOVED: {
        "version": "v1",
        "payload": {
            "skip_id": "int",
            "habit_id": "int",
            "user_id": "int",
        },
    },
}

__all__ = [
    "EVENT_CATALOG",
    "HABITS_HABIT_CREATED",
    "HABITS_HABIT_UPDATED",
    "HABITS_HABIT_SKIPPED",
    "HABITS_SKIP_REMOVED",
]
