"""Admin reporting DTOs."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator


class WeekQuery(BaseModel):
    week_start: Optional[datetime] = None
    week_end: Optional[datetime] = None

    @model_validator(mode="after")
    def check_order(self) -> "WeekQuery":
        if (self.week_start is None) != (self.week_end is None):
            raise ValueError("week_start and week_end must be given together")
        if self.week_start and self.week_end and self.week_end < self.week_start:
            raise ValueError("week_end must not be before week_start")
        return self


class UserWeekStats(BaseModel):
    email: str
    total_skips: int
    total_savings: float


class WeeklyReportRequest(BaseModel):
    email: EmailStr
    skips: int = Field(ge=0)
    savings: float = Field(ge=0)
