"""Admin reporting: weekly per-user skip statistics and report requests."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, func

from skiipper.core.users.models import User
from skiipper.domains.habits.models.habit_models import HabitSkip
from skiipper.domains.ledger.windows import end_of_week, start_of_week
from skiipper.domains.reports.events import REPORTS_EMAIL_WEEKLY_REPORT
from skiipper.extensions import db
from skiipper.skiipper_platform.outbox import enqueue as enqueue_outbox
from skiipper.skiipper_platform.outbox.models import OutboxMessage

logger = logging.getLogger(__name__)


def current_week_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Monday 00:00 through Sunday 23:59:59.999999 of the week containing ``now`` (UTC)."""
    now = now or datetime.utcnow()
    return start_of_week(now), end_of_week(now)


def get_user_stats_for_week(week_start: datetime, week_end: datetime) -> List[dict]:
    """Per-user skip count and savings between the bounds, inclusive; users without skips report zeros."""
    rows = (
        db.session.query(
            User.email,
            func.count(HabitSkip.id),
            func.coalesce(func.sum(HabitSkip.amount_saved), 0),
        )
        .outerjoin(
            HabitSkip,
            and_(
                HabitSkip.user_id == User.id,
                HabitSkip.skipped_at >= week_start,
                HabitSkip.skipped_at <= week_end,
            ),
        )
        .group_by(User.id, User.email)
        .order_by(User.email)
        .all()
    )
    return [
        {"email": email, "total_skips": int(count or 0), "total_savings": round(float(total or 0), 2)}
        for email, count, total in rows
    ]


def request_weekly_report(
    email: str,
    skips: int,
    savings: float,
    week_start: datetime,
    week_end: datetime,
    requested_by: Optional[int] = None,
) -> OutboxMessage:
    """Stage a weekly report email for the outbox worker."""
    recipient = User.query.filter(func.lower(User.email) == email.strip().lower()).first()
    message = enqueue_outbox(
        REPORTS_EMAIL_WEEKLY_REPORT,
        {
            "email": email,
            "skips": skips,
            "savings": round(savings, 2),
            "week_start": week_start.isoformat(),
            "week_end": week_end.isoformat(),
            "requested_by": requested_by,
        },
        user_id=recipient.id if recipient else None,
    )
    db.session.commit()
    logger.info("Weekly report queued for %s (message %s)", email, message.id)
    return message
