"""Skip-limit rules applied before a skip is recorded."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from skiipper.domains.ledger.models import Habit, Period, SkipLog
from skiipper.domains.ledger.projections import skip_goal_progress
from skiipper.domains.ledger.windows import (
    format_days,
    is_windowed,
    next_window_last_day,
    skips_per_window,
    start_of_week,
    sub_window,
)

FORFEITED = "This habit has been forfeited for this week"
FUTURE_DAY = "You can't log a skip for a future day"
OUTSIDE_WEEK = "You can only log skips for the current week"
DAILY_LIMIT = format_days(1)
WEEKLY_SAME_DAY = "You can't skip this habit again today"
GOAL_FIRST = "Complete your weekly goal before logging bonus skips"
BONUS_LIMIT = "Bonus skip limit reached for this week"
SLOT_SPENT = "This day is already marked as spent"
NO_PENDING_SLOT = "There is no skip left to mark as spent today"


@dataclass(frozen=True)
class SkipDecision:
    allowed: bool
    reason: Optional[str] = None
    bonus: bool = False


def forfeit_active(habit: Habit, now: datetime) -> bool:
    """A forfeit holds until the week it happened in is over."""
    if not habit.is_forfeited:
        return False
    if habit.forfeited_at is None:
        return True
    return habit.forfeited_at >= start_of_week(now)


def _fills_slot(log: SkipLog, include_spent: bool) -> bool:
    return log.counts_as_skip or (include_spent and log.is_spent)


def skips_on(habit: Habit, when: datetime, include_spent: bool = False) -> int:
    return sum(
        1 for log in habit.skipped_days if _fills_slot(log, include_spent) and log.date.date() == when.date()
    )


def slots_on(habit: Habit, when: datetime) -> int:
    """Slots taken on the calendar day of ``when``; skips and spent entries both count."""
    return skips_on(habit, when, include_spent=True)


def day_capacity(habit: Habit) -> int:
    return habit.frequency if habit.period is Period.DAILY else 1


def window_wait(habit: Habit, target: datetime, now: datetime, include_spent: bool = True) -> int:
    """Days until a windowed habit can take an entry dated ``target``; 0 when open."""
    first, last = sub_window(habit.period, target)
    today = now.date()
    if today < last:
        return (last - today).days
    used = sum(
        1
        for log in habit.skipped_days
        if _fills_slot(log, include_spent) and first <= log.date.date() <= last
    )
    if used >= skips_per_window(habit.frequency, habit.period):
        return (next_window_last_day(habit.period, last) - today).days
    return 0


def days_till_next_skip(habit: Habit, now: datetime) -> int:
    """Countdown shown beside a habit; 0 means a skip for today would pass the period limits."""
    if is_windowed(habit.period):
        return window_wait(habit, now, now)
    return 0 if slots_on(habit, now) < day_capacity(habit) else 1


def _slot_decision(habit: Habit, target: datetime, now: datetime) -> SkipDecision:
    """Whether the day (or window) of ``target`` still has a free slot."""
    if is_windowed(habit.period):
        wait = window_wait(habit, target, now)
        if not wait:
            return SkipDecision(True)
        if window_wait(habit, target, now, include_spent=False) == 0:
            return SkipDecision(False, SLOT_SPENT)
        return SkipDecision(False, format_days(wait))

    capacity = day_capacity(habit)
    if slots_on(habit, target) < capacity:
        return SkipDecision(True)
    if skips_on(habit, target) < capacity:
        return SkipDecision(False, SLOT_SPENT)
    if habit.period is Period.DAILY:
        return SkipDecision(False, DAILY_LIMIT)
    return SkipDecision(False, WEEKLY_SAME_DAY)


def check_skip(habit: Habit, target: datetime, now: datetime, bonus_requested: bool = False) -> SkipDecision:
    """Decide whether a skip dated ``target`` may be recorded at ``now``."""
    if forfeit_active(habit, now):
        return SkipDecision(False, FORFEITED)
    if target.date() > now.date():
        return SkipDecision(False, FUTURE_DAY)
    if target < start_of_week(now):
        return SkipDecision(False, OUTSIDE_WEEK)

    slot = _slot_decision(habit, target, now)
    if not slot.allowed:
        return slot

    progress = skip_goal_progress(habit, now)
    if bonus_requested and not progress.goal_met:
        return SkipDecision(False, GOAL_FIRST)
    if progress.completed >= progress.total + progress.max_bonus:
        return SkipDecision(False, BONUS_LIMIT)
    return SkipDecision(True, bonus=progress.goal_met)


def check_spent(habit: Habit, now: datetime) -> SkipDecision:
    """Decide whether today's pending slot may be marked as spent."""
    if forfeit_active(habit, now):
        return SkipDecision(False, FORFEITED)
    slot = _slot_decision(habit, now, now)
    if slot.allowed:
        return slot
    if slot.reason == SLOT_SPENT or not is_windowed(habit.period):
        return SkipDecision(False, NO_PENDING_SLOT)
    return slot
