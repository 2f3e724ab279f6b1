"""Habit catalog tests: seeded defaults, custom habits and edits."""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.unit

from skiipper.domains.ledger.catalog import DEFAULT_HABITS, HabitCatalog, HabitValidationError
from skiipper.domains.ledger.models import FractionalSkip, FullSkip, Period


def _fields(exc_info) -> set[str]:
    return {item["field"] for item in exc_info.value.details}


def test_seeded_catalog_has_default_habits():
    catalog = HabitCatalog.seeded()

    assert len(catalog) == len(DEFAULT_HABITS) == 9
    assert [habit.id for habit in catalog] == [str(n) for n in range(1, 10)]
    coffee = catalog.get("1")
    assert coffee.name == "Buying Coffee Daily"
    assert coffee.expense == 5.0
    assert coffee.period is Period.DAILY
    assert all(isinstance(habit.savings_model, FullSkip) for habit in catalog)
    assert all(habit.skipped == 0 and habit.skipped_days == [] for habit in catalog)


def test_seeded_catalogs_are_independent():
    first = HabitCatalog.seeded()
    second = HabitCatalog.seeded()

    first.get("1").skipped = 4

    assert second.get("1").skipped == 0


def test_add_habit_assigns_custom_id():
    catalog = HabitCatalog.seeded()

    habit = catalog.add_habit(name="  Vending machine  ", expense=2.5, frequency=5, period="weekly", emoji="🥤")

    assert habit.id.startswith("custom-")
    assert habit.id in catalog
    assert habit.name == "Vending machine"
    assert habit.period is Period.WEEKLY
    assert habit.emoji == "🥤"
    assert len(catalog) == 10


def test_add_habit_rejects_invalid_fields():
    catalog = HabitCatalog.seeded()

    with pytest.raises(HabitValidationError) as exc_info:
        catalog.add_habit(name="", expense=0, frequency=0, period="hourly")

    assert _fields(exc_info) == {"name", "expense", "frequency", "period"}
    assert len(catalog) == 9


def test_add_habit_rejects_unknown_savings_model():
    catalog = HabitCatalog.seeded()

    with pytest.raises(HabitValidationError) as exc_info:
        catalog.add_habit(name="Snacks", expense=3, frequency=1, period="daily", savings_model="half-skip")

    assert _fields(exc_info) == {"savings_model"}


def test_fractional_skip_requires_both_parameters():
    catalog = HabitCatalog.seeded()

    with pytest.raises(HabitValidationError) as exc_info:
        catalog.add_habit(
            name="Lunch out",
            expense=12,
            frequency=3,
            period="weekly",
            savings_model="fractional-skip",
            typical_weekly_spend=36,
        )

    assert _fields(exc_info) == {"weekly_savings_goal"}


def test_fractional_skip_habit_keeps_parameters():
    catalog = HabitCatalog.seeded()

    habit = catalog.add_habit(
        name="Lunch out",
        expense=12,
        frequency=3,
        period="weekly",
        savings_model="fractional-skip",
        typical_weekly_spend=36,
        weekly_savings_goal=20,
    )

    assert habit.savings_model == FractionalSkip(typical_weekly_spend=36.0, weekly_savings_goal=20.0)


def test_update_habit_merges_changes_and_keeps_history(ledger):
    ledger.toggle_habit("1")
    ledger.skip_habit("1")

    habit = ledger.update_habit("1", expense=6.0)

    assert habit.expense == 6.0
    assert habit.emoji == "☕"
    assert habit.skipped == 1
    assert len(habit.skipped_days) == 1


def test_update_habit_clears_emoji_with_explicit_none():
    catalog = HabitCatalog.seeded()

    habit = catalog.update_habit("1", emoji=None)

    assert habit.emoji is None
    assert habit.name == "Buying Coffee Daily"

    with pytest.raises(HabitValidationError) as exc_info:
        catalog.update_habit("1", name=None)
    assert _fields(exc_info) == {"name"}


def test_update_habit_unknown_id_returns_none():
    catalog = HabitCatalog.seeded()

    assert catalog.update_habit("missing", expense=3.0) is None


def test_update_habit_rejects_unknown_and_invalid_fields():
    catalog = HabitCatalog.seeded()

    with pytest.raises(HabitValidationError) as exc_info:
        catalog.update_habit("1", skipped=10)
    assert _fields(exc_info) == {"skipped"}

    with pytest.raises(HabitValidationError) as exc_info:
        catalog.update_habit("1", frequency=0)
    assert _fields(exc_info) == {"frequency"}
    assert catalog.get("1").frequency == 1


def test_update_habit_switches_to_fractional_model():
    catalog = HabitCatalog.seeded()

    habit = catalog.update_habit(
        "2", savings_model="fractional-skip", typical_weekly_spend=45.0, weekly_savings_goal=30.0
    )

    assert isinstance(habit.savings_model, FractionalSkip)
    assert habit.savings_model.weekly_savings_goal == 30.0
