"""Ledger DTOs and response builders."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from skiipper.domains.ledger.ledger import SavingsLedger
from skiipper.domains.ledger.models import (
    FractionalSkip,
    Habit,
    SkipLog,
    SkipOutcome,
    savings_model_name,
)
from skiipper.domains.ledger.projections import GrowthSummary, SavingsBreakdown, annual_cost

PeriodName = Literal["daily", "weekly", "fortnightly", "monthly", "quarterly", "yearly"]
SavingsModelName = Literal["full-skip", "fractional-skip", "fractional", "all-or-nothing"]
DayCode = Literal["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _money(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    expense: float = Field(gt=0)
    frequency: int = Field(ge=1)
    period: PeriodName
    savings_model: SavingsModelName = "full-skip"
    typical_weekly_spend: Optional[float] = Field(default=None, gt=0)
    weekly_savings_goal: Optional[float] = Field(default=None, gt=0)
    emoji: Optional[str] = Field(default=None, max_length=16)


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    expense: Optional[float] = Field(default=None, gt=0)
    frequency: Optional[int] = Field(default=None, ge=1)
    period: Optional[PeriodName] = None
    savings_model: Optional[SavingsModelName] = None
    typical_weekly_spend: Optional[float] = Field(default=None, gt=0)
    weekly_savings_goal: Optional[float] = Field(default=None, gt=0)
    emoji: Optional[str] = Field(default=None, max_length=16)


class SkipCreate(BaseModel):
    amount_saved: Optional[float] = Field(default=None, gt=0)
    bonus: bool = False
    label: Optional[str] = Field(default=None, max_length=255)


class DaySkipCreate(BaseModel):
    amount_saved: Optional[float] = Field(default=None, gt=0)


class ForfeitRequest(BaseModel):
    undo: bool = False


class StepUpdate(BaseModel):
    step: int = Field(ge=1, le=5)


class AutoInvestUpdate(BaseModel):
    frequency: Optional[Literal["weekly", "monthly"]] = None
    enabled: Optional[bool] = None


class SkipLogResponse(BaseModel):
    habit_id: str
    date: datetime
    day: str
    amount_saved: Optional[float]
    is_spent: bool
    is_forfeited: bool
    label: Optional[str] = None


class ProgressResponse(BaseModel):
    completed: int
    total: int
    max_bonus: int
    bonus_remaining: int


class HabitResponse(BaseModel):
    id: str
    name: str
    emoji: Optional[str]
    expense: float
    frequency: int
    period: str
    savings_model: str
    typical_weekly_spend: Optional[float] = None
    weekly_savings_goal: Optional[float] = None
    selected: bool
    skipped: int
    is_forfeited: bool
    annual_cost: float
    current_week_savings: float
    days_till_next_skip: int
    progress: ProgressResponse
    skipped_days: List[SkipLogResponse]


class TotalsResponse(BaseModel):
    annual_savings: float
    weekly_skip_savings: float
    total_savings: float


class LedgerResponse(BaseModel):
    step: int
    habits: List[HabitResponse]
    totals: TotalsResponse


class SummaryLine(BaseModel):
    habit_id: str
    name: str
    annual_cost: float


class SummaryResponse(BaseModel):
    annual: float
    monthly: float
    weekly: float
    daily: float
    lines: List[SummaryLine]


class ProjectionPointResponse(BaseModel):
    month: int
    btc_price: float
    btc_accumulated: float
    contributed: float
    projected_value: float


class ProjectionResponse(BaseModel):
    timeframe: str
    monthly_contribution: float
    projected_value: float
    total_contributed: float
    profit: float
    points: List[ProjectionPointResponse]


class AutoInvestResponse(BaseModel):
    frequency: str
    enabled: bool
    amount: float
    weekly_amount: float
    monthly_amount: float
    activated_at: Optional[datetime] = None


def serialize_log(log: SkipLog) -> SkipLogResponse:
    return SkipLogResponse(
        habit_id=log.habit_id,
        date=log.date,
        day=log.day,
        amount_saved=_money(log.amount_saved),
        is_spent=log.is_spent,
        is_forfeited=log.is_forfeited,
        label=log.label,
    )


def serialize_habit(ledger: SavingsLedger, habit: Habit) -> HabitResponse:
    progress = ledger.progress(habit)
    model = habit.savings_model
    return HabitResponse(
        id=habit.id,
        name=habit.name,
        emoji=habit.emoji,
        expense=_money(habit.expense),
        frequency=habit.frequency,
        period=habit.period.value,
        savings_model=savings_model_name(model),
        typical_weekly_spend=model.typical_weekly_spend if isinstance(model, FractionalSkip) else None,
        weekly_savings_goal=model.weekly_savings_goal if isinstance(model, FractionalSkip) else None,
        selected=ledger.is_selected(habit.id),
        skipped=habit.skipped,
        is_forfeited=ledger.is_forfeited(habit),
        annual_cost=_money(annual_cost(habit)),
        current_week_savings=_money(ledger.current_week_savings(habit)),
        days_till_next_skip=ledger.days_till_next_skip(habit),
        progress=ProgressResponse(
            completed=progress.completed,
            total=progress.total,
            max_bonus=progress.max_bonus,
            bonus_remaining=progress.bonus_remaining,
        ),
        skipped_days=[serialize_log(log) for log in habit.skipped_days],
    )


def serialize_totals(ledger: SavingsLedger) -> TotalsResponse:
    return TotalsResponse(
        annual_savings=_money(ledger.annual_savings()),
        weekly_skip_savings=_money(ledger.weekly_skip_savings()),
        total_savings=_money(ledger.total_savings()),
    )


def serialize_ledger(ledger: SavingsLedger) -> LedgerResponse:
    return LedgerResponse(
        step=ledger.step,
        habits=[serialize_habit(ledger, habit) for habit in ledger.habits],
        totals=serialize_totals(ledger),
    )


def serialize_outcome(outcome: SkipOutcome) -> dict:
    return {
        "accepted": outcome.accepted,
        "bonus": outcome.bonus,
        "duplicate": outcome.duplicate,
        "reason": outcome.reason,
        "log": serialize_log(outcome.log).model_dump(mode="json") if outcome.log else None,
    }


def serialize_summary(breakdown: SavingsBreakdown) -> SummaryResponse:
    return SummaryResponse(
        annual=_money(breakdown.annual),
        monthly=_money(breakdown.monthly),
        weekly=_money(breakdown.weekly),
        daily=_money(breakdown.daily),
        lines=[
            SummaryLine(habit_id=habit.id, name=habit.name, annual_cost=_money(cost))
            for habit, cost in breakdown.lines
        ],
    )


def serialize_projection(summary: GrowthSummary, monthly_contribution: float) -> ProjectionResponse:
    return ProjectionResponse(
        timeframe=summary.timeframe,
        monthly_contribution=_money(monthly_contribution),
        projected_value=_money(summary.projected_value),
        total_contributed=_money(summary.total_contributed),
        profit=_money(summary.profit),
        points=[
            ProjectionPointResponse(
                month=point.month,
                btc_price=_money(point.btc_price),
                btc_accumulated=round(point.btc_accumulated, 8),
                contributed=_money(point.contributed),
                projected_value=_money(point.projected_value),
            )
            for point in summary.points
        ],
    )


def serialize_auto_invest(ledger: SavingsLedger) -> AutoInvestResponse:
    plan = ledger.auto_invest
    return AutoInvestResponse(
        frequency=plan.frequency,
        enabled=plan.enabled,
        amount=_money(plan.amount),
        weekly_amount=_money(ledger.auto_invest_amount("weekly")),
        monthly_amount=_money(ledger.auto_invest_amount("monthly")),
        activated_at=plan.activated_at,
    )
