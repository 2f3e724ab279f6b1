"""The per-session savings ledger.

A ``SavingsLedger`` owns one catalog of habits, the set of habits the user is
tracking, the wizard step and the simulated auto-invest plan. Every mutation
is a synchronous in-memory transition; limit violations come back as a
declined ``SkipOutcome`` with a user-facing reason instead of an exception.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Set

from skiipper.domains.ledger import projections, rules
from skiipper.domains.ledger.catalog import HabitCatalog, HabitValidationError
from skiipper.domains.ledger.models import (
    AUTO_INVEST_FREQUENCIES,
    DAY_CODES,
    AutoInvestPlan,
    Habit,
    Period,
    SkipLog,
    SkipOutcome,
    SkipProgress,
)
from skiipper.domains.ledger.windows import date_for_day, in_current_week

logger = logging.getLogger(__name__)

WIZARD_STEPS = (1, 2, 3, 4, 5)
UNDO_WINDOW_PASSED = "A forfeit can only be undone in the week it happened"
NOT_FORFEITED = "This habit is not forfeited"


class SavingsLedger:
    def __init__(self, catalog: Optional[HabitCatalog] = None, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.catalog = catalog if catalog is not None else HabitCatalog.seeded()
        self._clock = clock or datetime.now
        self._selected: Set[str] = set()
        self.step = WIZARD_STEPS[0]
        self.auto_invest = AutoInvestPlan()

    def now(self) -> datetime:
        return self._clock()

    # --- catalog and selection ---

    @property
    def habits(self) -> List[Habit]:
        return list(self.catalog)

    @property
    def selected_habits(self) -> List[Habit]:
        return [habit for habit in self.catalog if habit.id in self._selected]

    def get_habit(self, habit_id: str) -> Optional[Habit]:
        return self.catalog.get(habit_id)

    def is_selected(self, habit_id: str) -> bool:
        return habit_id in self._selected

    def toggle_habit(self, habit_id: str) -> Optional[bool]:
        """Flip selection of a habit; returns the new membership, or None for unknown ids."""
        if habit_id not in self.catalog:
            return None
        if habit_id in self._selected:
            self._selected.discard(habit_id)
            return False
        self._selected.add(habit_id)
        return True

    def add_habit(self, **definition) -> Habit:
        habit = self.catalog.add_habit(**definition)
        self._selected.add(habit.id)
        logger.info("Added custom habit %s", habit.id)
        return habit

    def update_habit(self, habit_id: str, **changes) -> Optional[Habit]:
        return self.catalog.update_habit(habit_id, **changes)

    def set_step(self, step: int) -> int:
        if step not in WIZARD_STEPS:
            raise ValueError("invalid_step")
        self.step = step
        return step

    # --- derived figures ---

    def annual_savings(self) -> float:
        return projections.annual_savings(self.selected_habits)

    def savings_breakdown(self) -> projections.SavingsBreakdown:
        return projections.savings_breakdown(self.selected_habits)

    def weekly_skip_savings(self) -> float:
        return projections.weekly_skip_savings(self.selected_habits, self.now())

    def total_savings(self) -> float:
        return sum(projections.total_savings(habit) for habit in self.selected_habits)

    def current_week_savings(self, habit: Habit) -> float:
        return projections.current_week_savings(habit, self.now())

    def progress(self, habit: Habit) -> SkipProgress:
        return projections.skip_goal_progress(habit, self.now())

    def days_till_next_skip(self, habit: Habit) -> int:
        return rules.days_till_next_skip(habit, self.now())

    def is_forfeited(self, habit: Habit) -> bool:
        return rules.forfeit_active(habit, self.now())

    # --- skip mutations ---

    def skip_habit(
        self,
        habit_id: str,
        amount_saved: Optional[float] = None,
        bonus: bool = False,
        label: Optional[str] = None,
    ) -> Optional[SkipOutcome]:
        """Log a skip for today. Unknown ids return None."""
        habit = self.get_habit(habit_id)
        if habit is None:
            return None
        return self._skip(habit, self.now(), amount_saved=amount_saved, bonus=bonus, label=label)

    def skip_habit_on_day(
        self, habit_id: str, day: str, amount_saved: Optional[float] = None
    ) -> Optional[SkipOutcome]:
        """Log a skip on a day of the current week; repeats for the same day are ignored."""
        habit = self.get_habit(habit_id)
        if habit is None:
            return None
        if day not in DAY_CODES:
            raise HabitValidationError([{"field": "day", "message": f"unknown day {day!r}"}])
        now = self.now()
        target = date_for_day(day, now)
        for log in habit.skipped_days:
            if log.counts_as_skip and log.day == day and log.date.date() == target.date():
                return SkipOutcome(accepted=False, duplicate=True, log=log)
        return self._skip(habit, target, amount_saved=amount_saved)

    def _skip(
        self,
        habit: Habit,
        target: datetime,
        amount_saved: Optional[float] = None,
        bonus: bool = False,
        label: Optional[str] = None,
    ) -> SkipOutcome:
        if amount_saved is not None and amount_saved <= 0:
            raise HabitValidationError([{"field": "amount_saved", "message": "amount_saved must be greater than 0"}])
        now = self.now()
        self._expire_forfeit(habit, now)
        decision = rules.check_skip(habit, target, now, bonus_requested=bonus)
        if not decision.allowed:
            logger.info("Declined skip for habit %s: %s", habit.id, decision.reason)
            return SkipOutcome.declined(decision.reason)

        amount = amount_saved if amount_saved is not None else projections.skip_amount(habit)
        log = SkipLog.at(habit.id, target, amount_saved=amount, label=label)
        self._append(habit, log)
        return SkipOutcome(accepted=True, log=log, bonus=decision.bonus)

    def unskip_log(self, habit_id: str, index: int) -> bool:
        """Remove the log at ``index`` of the habit's history. Forfeit markers stay."""
        habit = self.get_habit(habit_id)
        if habit is None or not 0 <= index < len(habit.skipped_days):
            return False
        if habit.skipped_days[index].is_forfeited:
            return False
        self._remove(habit, index)
        return True

    def unskip_habit_on_day(self, habit_id: str, day: str) -> bool:
        """Remove the latest skip or spent entry for ``day`` in the current week."""
        habit = self.get_habit(habit_id)
        if habit is None:
            return False
        now = self.now()
        for index in range(len(habit.skipped_days) - 1, -1, -1):
            log = habit.skipped_days[index]
            if log.day == day and not log.is_forfeited and in_current_week(log.date, now):
                self._remove(habit, index)
                return True
        return False

    def mark_habit_as_spent(self, habit_id: str) -> Optional[SkipOutcome]:
        """Record that the user gave in today; the entry takes a slot but saves nothing."""
        habit = self.get_habit(habit_id)
        if habit is None:
            return None
        now = self.now()
        self._expire_forfeit(habit, now)
        decision = rules.check_spent(habit, now)
        if not decision.allowed:
            logger.info("Declined spent entry for habit %s: %s", habit.id, decision.reason)
            return SkipOutcome.declined(decision.reason)
        log = SkipLog.at(habit.id, now, amount_saved=None, is_spent=True)
        self._append(habit, log)
        return SkipOutcome(accepted=True, log=log)

    def forfeit_habit(self, habit_id: str, undo: bool = False) -> Optional[SkipOutcome]:
        """Give up on a habit for the rest of the week, or take that back."""
        habit = self.get_habit(habit_id)
        if habit is None:
            return None
        now = self.now()
        expired = self._expire_forfeit(habit, now)

        if undo:
            if not habit.is_forfeited:
                return SkipOutcome.declined(UNDO_WINDOW_PASSED if expired else NOT_FORFEITED)
            habit.skipped_days = [
                log for log in habit.skipped_days if not (log.is_forfeited and in_current_week(log.date, now))
            ]
            habit.is_forfeited = False
            habit.forfeited_at = None
            self._sync_counter(habit)
            logger.info("Forfeit undone for habit %s", habit.id)
            return SkipOutcome(accepted=True)

        if habit.is_forfeited:
            return SkipOutcome(accepted=False, duplicate=True, reason=rules.FORFEITED)
        habit.is_forfeited = True
        habit.forfeited_at = now
        marker = SkipLog.at(habit.id, now, is_forfeited=True)
        self._append(habit, marker)
        logger.info("Habit %s forfeited for the week", habit.id)
        return SkipOutcome(accepted=True, log=marker)

    def super_skip(self) -> List[str]:
        """Skip every eligible daily habit once at its full expense; returns the skipped ids."""
        now = self.now()
        skipped: List[str] = []
        for habit in self.selected_habits:
            if habit.period is not Period.DAILY:
                continue
            self._expire_forfeit(habit, now)
            if habit.is_forfeited or rules.slots_on(habit, now) >= habit.frequency:
                continue
            outcome = self._skip(habit, now, amount_saved=habit.expense)
            if outcome.accepted:
                skipped.append(habit.id)
        return skipped

    def reset_skips(self) -> None:
        for habit in self.catalog:
            habit.skipped = 0
            habit.skipped_days = []
            habit.is_forfeited = False
            habit.forfeited_at = None
        logger.info("Skip history reset")

    # --- auto-invest ---

    def auto_invest_amount(self, frequency: Optional[str] = None) -> float:
        return projections.auto_invest_amount(self.weekly_skip_savings(), frequency or self.auto_invest.frequency)

    def configure_auto_invest(self, frequency: Optional[str] = None, enabled: Optional[bool] = None) -> AutoInvestPlan:
        plan = self.auto_invest
        if frequency is not None:
            if frequency not in AUTO_INVEST_FREQUENCIES:
                raise HabitValidationError([{"field": "frequency", "message": f"unknown frequency {frequency!r}"}])
            plan.frequency = frequency
        if enabled is not None:
            plan.enabled = enabled
            if not enabled:
                plan.activated_at = None
        plan.amount = self.auto_invest_amount()
        return plan

    def setup_auto_invest(self) -> AutoInvestPlan:
        """Activate the simulated plan. Raises ValueError('auto_invest_disabled') until enabled."""
        plan = self.auto_invest
        if not plan.enabled:
            raise ValueError("auto_invest_disabled")
        plan.amount = self.auto_invest_amount()
        plan.activated_at = self.now()
        logger.info("Auto-invest set up: %s %.2f", plan.frequency, plan.amount)
        return plan

    # --- helpers ---

    def _append(self, habit: Habit, log: SkipLog) -> None:
        habit.skipped_days.append(log)
        self._sync_counter(habit)

    def _remove(self, habit: Habit, index: int) -> None:
        del habit.skipped_days[index]
        self._sync_counter(habit)

    @staticmethod
    def _sync_counter(habit: Habit) -> None:
        habit.skipped = max(0, sum(1 for log in habit.skipped_days if log.counts_as_skip))

    @staticmethod
    def _expire_forfeit(habit: Habit, now: datetime) -> bool:
        """Clear a forfeit left over from an earlier week; True when one was cleared."""
        if habit.is_forfeited and not rules.forfeit_active(habit, now):
            habit.is_forfeited = False
            habit.forfeited_at = None
            return True
        return False
