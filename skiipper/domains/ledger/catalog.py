"""Habit catalog: the seeded default habits plus user-added custom ones."""

from __future__ import annotations

import uuid
from typing import Dict, Iterator, List, Optional

from skiipper.domains.ledger.models import (
    FractionalSkip,
    Habit,
    Period,
    build_savings_model,
    savings_model_name,
)

DEFAULT_SAVINGS_MODEL = "full-skip"

# (id, name, expense, frequency, period, emoji)
DEFAULT_HABITS = (
    ("1", "Buying Coffee Daily", 5.0, 1, Period.DAILY, "☕"),
    ("2", "Frequent Takeout & Food Delivery", 15.0, 3, Period.WEEKLY, "🍔"),
    ("3", "Impulse Shopping (Retail Therapy)", 50.0, 1, Period.WEEKLY, "🛍️"),
    ("4", "Convenience Store & Gas Station Snacks", 5.0, 3, Period.WEEKLY, "🍫"),
    ("5", "Multiple Streaming Services", 15.0, 3, Period.MONTHLY, "📺"),
    ("6", "In-App Purchases & Microtransactions", 20.0, 1, Period.MONTHLY, "🎮"),
    ("7", "Gaming & Gambling", 50.0, 1, Period.WEEKLY, "🎰"),
    ("8", "Bars & Nightlife", 75.0, 2, Period.MONTHLY, "🍸"),
    ("9", "Frequent Clothing & Shoe Shopping", 100.0, 1, Period.MONTHLY, "👟"),
)

EDITABLE_FIELDS = (
    "name",
    "expense",
    "frequency",
    "period",
    "savings_model",
    "typical_weekly_spend",
    "weekly_savings_goal",
    "emoji",
)


class HabitValidationError(ValueError):
    """Raised when a habit definition is rejected; ``details`` lists each field error."""

    def __init__(self, details: List[dict]) -> None:
        super().__init__("validation_error")
        self.details = details


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_definition(definition: dict) -> dict:
    """Check a full habit definition and return it normalised.

    Raises HabitValidationError listing every offending field.
    """
    errors: List[dict] = []

    name = definition.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append({"field": "name", "message": "name is required"})

    expense = definition.get("expense")
    if not _is_number(expense) or expense <= 0:
        errors.append({"field": "expense", "message": "expense must be greater than 0"})

    frequency = definition.get("frequency")
    if _is_number(frequency) and float(frequency).is_integer():
        frequency = int(frequency)
    if not isinstance(frequency, int) or isinstance(frequency, bool) or frequency < 1:
        errors.append({"field": "frequency", "message": "frequency must be a whole number of at least 1"})

    period = definition.get("period")
    try:
        period = Period(period)
    except ValueError:
        errors.append({"field": "period", "message": f"unknown period {period!r}"})

    model_name = definition.get("savings_model") or DEFAULT_SAVINGS_MODEL
    typical = definition.get("typical_weekly_spend")
    goal = definition.get("weekly_savings_goal")
    model = None
    try:
        model = build_savings_model(model_name, typical, goal)
    except ValueError:
        errors.append({"field": "savings_model", "message": f"unknown savings model {model_name!r}"})
    if isinstance(model, FractionalSkip):
        if not _is_number(typical) or typical <= 0:
            errors.append(
                {"field": "typical_weekly_spend", "message": "typical_weekly_spend must be greater than 0"}
            )
        if not _is_number(goal) or goal <= 0:
            errors.append(
                {"field": "weekly_savings_goal", "message": "weekly_savings_goal must be greater than 0"}
            )

    if errors:
        raise HabitValidationError(errors)

    emoji = definition.get("emoji")
    if isinstance(emoji, str):
        emoji = emoji.strip() or None
    else:
        emoji = None
    return {
        "name": name.strip(),
        "expense": float(expense),
        "frequency": frequency,
        "period": period,
        "savings_model": model,
        "emoji": emoji,
    }


def _definition_of(habit: Habit) -> dict:
    model = habit.savings_model
    definition = {
        "name": habit.name,
        "expense": habit.expense,
        "frequency": habit.frequency,
        "period": habit.period.value,
        "savings_model": savings_model_name(model),
        "emoji": habit.emoji,
    }
    if isinstance(model, FractionalSkip):
        definition["typical_weekly_spend"] = model.typical_weekly_spend
        definition["weekly_savings_goal"] = model.weekly_savings_goal
    return definition


class HabitCatalog:
    """Ordered collection of habits keyed by id. Habits are never deleted."""

    def __init__(self, habits: Optional[List[Habit]] = None) -> None:
        self._habits: Dict[str, Habit] = {}
        for habit in habits or []:
            self._habits[habit.id] = habit

    @classmethod
    def seeded(cls) -> "HabitCatalog":
        return cls(
            [
                Habit(id=id_, name=name, expense=expense, frequency=frequency, period=period, emoji=emoji)
                for id_, name, expense, frequency, period, emoji in DEFAULT_HABITS
            ]
        )

    def __iter__(self) -> Iterator[Habit]:
        return iter(list(self._habits.values()))

    def __len__(self) -> int:
        return len(self._habits)

    def __contains__(self, habit_id: object) -> bool:
        return habit_id in self._habits

    def get(self, habit_id: str) -> Optional[Habit]:
        return self._habits.get(habit_id)

    def add_habit(self, **definition) -> Habit:
        fields = validate_definition(definition)
        habit = Habit(id=f"custom-{uuid.uuid4().hex[:12]}", **fields)
        self._habits[habit.id] = habit
        return habit

    def update_habit(self, habit_id: str, **changes) -> Optional[Habit]:
        """Merge ``changes`` into the habit and revalidate; skip history is kept.

        An explicit None clears an optional field such as ``emoji``.
        """
        habit = self._habits.get(habit_id)
        if habit is None:
            return None
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise HabitValidationError(
                [{"field": key, "message": "field cannot be updated"} for key in unknown]
            )
        merged = _definition_of(habit)
        merged.update(changes)
        fields = validate_definition(merged)
        for key, value in fields.items():
            setattr(habit, key, value)
        return habit
