"""Weekly report email delivery.

Delivery is a mock: the rendered message is written to the log instead of
being handed to a mail provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app, has_app_context

from skiipper.core.events.event_bus import EventBus
from skiipper.core.events.event_models import EventRecord
from skiipper.domains.reports.events import REPORTS_EMAIL_WEEKLY_REPORT

logger = logging.getLogger(__name__)

DEFAULT_SENDER = "reports@skiipper.app"


@dataclass(frozen=True)
class WeeklyReportEmail:
    sender: str
    recipient: str
    subject: str
    body: str


def render_weekly_report(payload: dict, sender: str = DEFAULT_SENDER) -> WeeklyReportEmail:
    recipient = payload.get("email")
    if not recipient:
        raise ValueError("invalid_payload")
    skips = int(payload.get("skips") or 0)
    savings = float(payload.get("savings") or 0)
    body = (
        f"This week you skipped {skips} time{'' if skips == 1 else 's'} "
        f"and saved ${savings:.2f}. Keep it up!"
    )
    return WeeklyReportEmail(
        sender=sender,
        recipient=recipient,
        subject="Your weekly Skiipper report",
        body=body,
    )


def deliver_weekly_report(event: EventRecord) -> WeeklyReportEmail:
    sender = DEFAULT_SENDER
    if has_app_context():
        sender = current_app.config.get("WEEKLY_REPORT_SENDER") or DEFAULT_SENDER
    email = render_weekly_report(event.payload or {}, sender=sender)
    logger.info(
        "Would send email to %s with skips: %s, savings: $%.2f",
        email.recipient,
        event.payload.get("skips"),
        float(event.payload.get("savings") or 0),
    )
    return email


def register_subscriptions(bus: EventBus) -> None:
    bus.subscribe(REPORTS_EMAIL_WEEKLY_REPORT, deliver_weekly_report)
