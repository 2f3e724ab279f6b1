"""Dashboard habit DTOs."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    cost_per_skip: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    cost_per_skip: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)


class SkipCreate(BaseModel):
    skipped_at: Optional[datetime] = None


class SkipResponse(BaseModel):
    id: int
    habit_id: int
    amount_saved: float
    skipped_at: datetime


class HabitResponse(BaseModel):
    id: int
    name: str
    cost_per_skip: float
    created_at: datetime
    skip_count: int = 0
    total_saved: float = 0.0
