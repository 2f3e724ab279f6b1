"""Savings ledger entities: habits, skip logs and savings-model variants."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

DAY_CODES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class Period(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class FullSkip:
    """Every skip saves the habit's full expense."""


@dataclass(frozen=True)
class FractionalSkip:
    """Every skip saves a share of a weekly savings goal."""

    typical_weekly_spend: float
    weekly_savings_goal: float


@dataclass(frozen=True)
class LegacyFractional:
    """Savings derived from the skip counter times the expense."""


@dataclass(frozen=True)
class LegacyAllOrNothing:
    """Savings only for whole weeks of daily skips."""


SavingsModel = Union[FullSkip, FractionalSkip, LegacyFractional, LegacyAllOrNothing]

SAVINGS_MODEL_NAMES = {
    FullSkip: "full-skip",
    FractionalSkip: "fractional-skip",
    LegacyFractional: "fractional",
    LegacyAllOrNothing: "all-or-nothing",
}


def savings_model_name(model: SavingsModel) -> str:
    return SAVINGS_MODEL_NAMES[type(model)]


def build_savings_model(
    name: str,
    typical_weekly_spend: Optional[float] = None,
    weekly_savings_goal: Optional[float] = None,
) -> SavingsModel:
    """Instantiate a savings model from its wire name. Unknown names raise ValueError."""
    match name:
        case "full-skip":
            return FullSkip()
        case "fractional-skip":
            return FractionalSkip(
                typical_weekly_spend=float(typical_weekly_spend or 0),
                weekly_savings_goal=float(weekly_savings_goal or 0),
            )
        case "fractional":
            return LegacyFractional()
        case "all-or-nothing":
            return LegacyAllOrNothing()
    raise ValueError(f"unknown savings model: {name}")


def day_code(when: datetime) -> str:
    return DAY_CODES[when.weekday()]


@dataclass
class SkipLog:
    """One entry in a habit's skip history.

    A log is either a regular skip, a "spent" entry (the user gave in) or the
    forfeit marker for the week. Only regular skips count toward goals.
    """

    habit_id: str
    date: datetime
    day: str
    amount_saved: Optional[float] = None
    is_spent: bool = False
    is_forfeited: bool = False
    label: Optional[str] = None

    @classmethod
    def at(cls, habit_id: str, when: datetime, **kwargs) -> "SkipLog":
        return cls(habit_id=habit_id, date=when, day=day_code(when), **kwargs)

    @property
    def counts_as_skip(self) -> bool:
        return not self.is_spent and not self.is_forfeited

    @property
    def contribution(self) -> float:
        if not self.counts_as_skip:
            return 0.0
        return float(self.amount_saved or 0.0)


@dataclass
class Habit:
    id: str
    name: str
    expense: float
    frequency: int
    period: Period
    savings_model: SavingsModel = field(default_factory=FullSkip)
    skipped: int = 0
    skipped_days: List[SkipLog] = field(default_factory=list)
    is_forfeited: bool = False
    forfeited_at: Optional[datetime] = None
    emoji: Optional[str] = None

    @property
    def is_daily(self) -> bool:
        return self.period is Period.DAILY


@dataclass
class SkipOutcome:
    """Result of a ledger mutation. Declines carry a user-facing ``reason``."""

    accepted: bool
    reason: Optional[str] = None
    log: Optional[SkipLog] = None
    bonus: bool = False
    duplicate: bool = False

    @classmethod
    def declined(cls, reason: Optional[str]) -> "SkipOutcome":
        return cls(accepted=False, reason=reason)


@dataclass(frozen=True)
class SkipProgress:
    completed: int
    total: int
    max_bonus: int

    @property
    def goal_met(self) -> bool:
        return self.completed >= self.total

    @property
    def bonus_used(self) -> int:
        return max(0, self.completed - self.total)

    @property
    def bonus_remaining(self) -> int:
        return max(0, self.max_bonus - self.bonus_used)


AUTO_INVEST_FREQUENCIES = ("weekly", "monthly")


@dataclass
class AutoInvestPlan:
    """Simulated recurring Bitcoin purchase funded by skip savings."""

    frequency: str = "weekly"
    enabled: bool = False
    amount: float = 0.0
    activated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.activated_at is not None
