"""Calendar arithmetic for skip weeks, periods and unlock windows.

All datetimes are naive local time. Weeks run Monday 00:00 through Sunday.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import Tuple

from skiipper.domains.ledger.models import DAY_CODES, Period

PERIODS_PER_YEAR = {
    Period.DAILY: 365,
    Period.WEEKLY: 52,
    Period.FORTNIGHTLY: 26,
    Period.MONTHLY: 12,
    Period.QUARTERLY: 4,
    Period.YEARLY: 1,
}

WEEKS_PER_PERIOD = {
    Period.DAILY: 1 / 7,
    Period.WEEKLY: 1.0,
    Period.FORTNIGHTLY: 2.0,
    Period.MONTHLY: 4.345,
    Period.QUARTERLY: 13.036,
    Period.YEARLY: 52.143,
}

PERIOD_DAYS = {
    Period.DAILY: 1.0,
    Period.WEEKLY: 7.0,
    Period.FORTNIGHTLY: 14.0,
    Period.MONTHLY: 30.42,
    Period.QUARTERLY: 91.25,
    Period.YEARLY: 365.0,
}

# Fortnightly and monthly periods are split into fixed-length windows that
# unlock one at a time.
SUB_WINDOW_DAYS = {
    Period.FORTNIGHTLY: 14,
    Period.MONTHLY: 7,
}

# Quarterly and yearly habits get one window per calendar quarter or year.
CALENDAR_WINDOW_PERIODS = (Period.QUARTERLY, Period.YEARLY)

# Fortnight parity is counted from this Monday.
FORTNIGHT_ANCHOR = date(2024, 1, 1)


def start_of_week(now: datetime) -> datetime:
    """Most recent Monday 00:00 at or before ``now``."""
    monday = now.date() - timedelta(days=now.weekday())
    return datetime.combine(monday, time.min)


def end_of_week(now: datetime) -> datetime:
    """Sunday 23:59:59.999999 of the week containing ``now``."""
    return start_of_week(now) + timedelta(days=7) - timedelta(microseconds=1)


def in_current_week(when: datetime, now: datetime) -> bool:
    return start_of_week(now) <= when <= now


def date_for_day(day: str, now: datetime) -> datetime:
    """Resolve a day code to a timestamp in the current week.

    Today resolves to ``now``; other days keep today's time of day. Unknown
    codes raise ValueError.
    """
    index = DAY_CODES.index(day)
    target = start_of_week(now).date() + timedelta(days=index)
    if target == now.date():
        return now
    return datetime.combine(target, now.time())


def expected_weekly_occurrences(frequency: int, period: Period) -> float:
    return frequency / WEEKS_PER_PERIOD[period]


def is_windowed(period: Period) -> bool:
    return period in SUB_WINDOW_DAYS or period in CALENDAR_WINDOW_PERIODS


def sub_window(period: Period, when: datetime) -> Tuple[date, date]:
    """First and last calendar day of the unlock window containing ``when``."""
    if period is Period.YEARLY:
        return date(when.year, 1, 1), date(when.year, 12, 31)
    if period is Period.QUARTERLY:
        first = date(when.year, 3 * ((when.month - 1) // 3) + 1, 1)
        return first, (first + timedelta(days=92)).replace(day=1) - timedelta(days=1)
    length = SUB_WINDOW_DAYS[period]
    week_start = start_of_week(when).date()
    if length == 14:
        weeks_since_anchor = (week_start - FORTNIGHT_ANCHOR).days // 7
        week_start -= timedelta(days=7 * (weeks_since_anchor % 2))
    return week_start, week_start + timedelta(days=length - 1)


def skips_per_window(frequency: int, period: Period) -> int:
    """Skips one unlocked window accepts, proportional to the period's frequency."""
    if period in CALENDAR_WINDOW_PERIODS:
        return frequency
    return max(1, math.ceil(frequency * SUB_WINDOW_DAYS[period] / PERIOD_DAYS[period]))


def days_until_unlock(period: Period, now: datetime) -> int:
    """Days until the window containing ``now`` reaches its last (unlocking) day."""
    if not is_windowed(period):
        return 0
    _, last_day = sub_window(period, now)
    return max(0, (last_day - now.date()).days)


def next_window_last_day(period: Period, last_day: date) -> date:
    """Unlock day of the window that follows the one ending on ``last_day``."""
    return sub_window(period, datetime.combine(last_day + timedelta(days=1), time.min))[1]


def format_days(days: int) -> str:
    return f"Next skip available in {days} day{'' if days == 1 else 's'}."
