"""Derived savings figures. Pure functions evaluated on demand from habit state."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from skiipper.domains.ledger.models import (
    FractionalSkip,
    FullSkip,
    Habit,
    LegacyAllOrNothing,
    LegacyFractional,
    SkipLog,
    SkipProgress,
)
from skiipper.domains.ledger.windows import (
    PERIODS_PER_YEAR,
    expected_weekly_occurrences,
    in_current_week,
)

DEFAULT_BTC_PRICE = 70000.0
DEFAULT_ANNUAL_GROWTH_RATE = 0.40
DEFAULT_PROJECTION_MONTHS = 240

TIMEFRAME_MONTHS = {"1y": 12, "3y": 36, "5y": 60, "10y": 120, "20y": 240}
DEFAULT_TIMEFRAME = "5y"

# Monthly auto-invest approximates a month as four weekly buys.
WEEKS_PER_MONTH_DCA = 4


def annual_cost(habit: Habit) -> float:
    return habit.expense * habit.frequency * PERIODS_PER_YEAR[habit.period]


def annual_savings(habits: Iterable[Habit]) -> float:
    return sum(annual_cost(habit) for habit in habits)


@dataclass(frozen=True)
class SavingsBreakdown:
    annual: float
    monthly: float
    weekly: float
    daily: float
    lines: Tuple[Tuple[Habit, float], ...] = ()


def savings_breakdown(habits: Iterable[Habit]) -> SavingsBreakdown:
    lines = tuple((habit, annual_cost(habit)) for habit in habits)
    annual = sum(cost for _, cost in lines)
    return SavingsBreakdown(
        annual=annual,
        monthly=annual / 12,
        weekly=annual / 52,
        daily=annual / 365,
        lines=lines,
    )


def skip_amount(habit: Habit) -> Optional[float]:
    """Amount credited by a single skip, or None for counter-based legacy models."""
    match habit.savings_model:
        case FullSkip():
            return habit.expense
        case FractionalSkip(weekly_savings_goal=goal):
            return goal / expected_weekly_occurrences(habit.frequency, habit.period)
        case LegacyFractional() | LegacyAllOrNothing():
            return None
    raise TypeError(f"unsupported savings model {habit.savings_model!r}")


def current_week_logs(habit: Habit, now: datetime) -> List[SkipLog]:
    return [log for log in habit.skipped_days if in_current_week(log.date, now)]


def current_week_savings(habit: Habit, now: datetime) -> float:
    return sum(log.contribution for log in current_week_logs(habit, now))


def weekly_skip_savings(habits: Iterable[Habit], now: datetime) -> float:
    return sum(current_week_savings(habit, now) for habit in habits)


def total_savings(habit: Habit) -> float:
    match habit.savings_model:
        case FullSkip() | FractionalSkip():
            return sum(log.contribution for log in habit.skipped_days)
        case LegacyFractional():
            return habit.skipped * habit.expense
        case LegacyAllOrNothing():
            return (habit.skipped // 7) * habit.expense * habit.frequency
    raise TypeError(f"unsupported savings model {habit.savings_model!r}")


def skip_goal_total(habit: Habit) -> int:
    return habit.frequency * 7 if habit.is_daily else habit.frequency


def max_bonus_skips(habit: Habit) -> int:
    return habit.frequency


def skip_goal_progress(habit: Habit, now: datetime) -> SkipProgress:
    completed = sum(1 for log in current_week_logs(habit, now) if log.counts_as_skip)
    return SkipProgress(completed=completed, total=skip_goal_total(habit), max_bonus=max_bonus_skips(habit))


@dataclass(frozen=True)
class ProjectionPoint:
    month: int
    btc_price: float
    btc_accumulated: float
    contributed: float
    projected_value: float


def growth_projection(
    monthly_contribution: float,
    btc_price: float = DEFAULT_BTC_PRICE,
    annual_growth_rate: float = DEFAULT_ANNUAL_GROWTH_RATE,
    months: int = DEFAULT_PROJECTION_MONTHS,
) -> List[ProjectionPoint]:
    """Month-by-month DCA into a compounding price, months 0..``months`` inclusive."""
    points: List[ProjectionPoint] = []
    accumulated = 0.0
    contributed = 0.0
    for month in range(months + 1):
        price = btc_price * math.pow(1 + annual_growth_rate, month / 12)
        accumulated += monthly_contribution / price
        contributed += monthly_contribution
        points.append(
            ProjectionPoint(
                month=month,
                btc_price=price,
                btc_accumulated=accumulated,
                contributed=contributed,
                projected_value=accumulated * price,
            )
        )
    return points


@dataclass(frozen=True)
class GrowthSummary:
    timeframe: str
    points: List[ProjectionPoint] = field(default_factory=list)

    @property
    def projected_value(self) -> float:
        return self.points[-1].projected_value if self.points else 0.0

    @property
    def total_contributed(self) -> float:
        return self.points[-1].contributed if self.points else 0.0

    @property
    def profit(self) -> float:
        return self.projected_value - self.total_contributed


def summarize_timeframe(points: List[ProjectionPoint], timeframe: str = DEFAULT_TIMEFRAME) -> GrowthSummary:
    """Slice a projection to a named timeframe; unknown names raise KeyError."""
    months = TIMEFRAME_MONTHS[timeframe]
    return GrowthSummary(timeframe=timeframe, points=points[: months + 1])


def auto_invest_amount(weekly_savings: float, frequency: str) -> float:
    if frequency == "monthly":
        return weekly_savings * WEEKS_PER_MONTH_DCA
    return weekly_savings
