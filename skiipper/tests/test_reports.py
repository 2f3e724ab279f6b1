"""Admin weekly statistics and the mocked weekly report email."""

from __future__ import annotations

import logging
from datetime import datetime

import pytest

pytestmark = pytest.mark.integration

from skiipper.domains.habits import services as habit_services
from skiipper.domains.reports import services as report_services
from skiipper.domains.reports.events import REPORTS_EMAIL_WEEKLY_REPORT
from skiipper.domains.reports.mailer import render_weekly_report
from skiipper.extensions import db
from skiipper.skiipper_platform.outbox import dispatch_ready
from skiipper.skiipper_platform.outbox.models import OutboxMessage

WEEK_START = datetime(2026, 3, 9)
WEEK_END = datetime(2026, 3, 15, 23, 59, 59)


def _prime_csrf(client) -> str:
    """Insert CSRF token into client session."""
    token = "test-csrf-token"
    with client.session_transaction() as sess:
        sess["_csrf_token"] = token
    return token


def _auth_headers(access_token: str, csrf_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}", "X-CSRF-Token": csrf_token}


def _skip(user_id: int, habit, when: datetime):
    return habit_services.record_skip(user_id, habit.id, skipped_at=when)


# ==================== Services ====================


def test_current_week_bounds():
    start, end = report_services.current_week_bounds(datetime(2026, 3, 11, 8, 30))

    assert start == WEEK_START
    assert end.date() == WEEK_END.date()
    assert end > WEEK_END


def test_stats_include_every_user(app, user_with_tokens, admin_with_tokens):
    user_id = user_with_tokens["user_id"]
    habit = habit_services.create_habit(user_id, name="Coffee", cost_per_skip=5)
    _skip(user_id, habit, datetime(2026, 3, 9, 7))
    _skip(user_id, habit, datetime(2026, 3, 12, 7))
    _skip(user_id, habit, datetime(2026, 3, 8, 23))

    rows = report_services.get_user_stats_for_week(WEEK_START, WEEK_END)

    assert rows == [
        {"email": "admin@example.com", "total_skips": 0, "total_savings": 0.0},
        {"email": "skipper@example.com", "total_skips": 2, "total_savings": 10.0},
    ]


def test_render_weekly_report():
    email = render_weekly_report({"email": "sam@example.com", "skips": 1, "savings": 4.5})

    assert email.recipient == "sam@example.com"
    assert "skipped 1 time and saved $4.50" in email.body
    with pytest.raises(ValueError, match="invalid_payload"):
        render_weekly_report({"skips": 2})


# ==================== Admin API ====================


def test_weekly_stats_requires_token(client):
    assert client.get("/api/admin/weekly-stats").status_code == 401


def test_weekly_stats_requires_admin(client, user_with_tokens):
    headers = {"Authorization": f"Bearer {user_with_tokens['tokens']['access_token']}"}

    resp = client.get("/api/admin/weekly-stats", headers=headers)

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "forbidden"


def test_weekly_stats_for_admin(client, user_with_tokens, admin_with_tokens):
    user_id = user_with_tokens["user_id"]
    habit = habit_services.create_habit(user_id, name="Coffee", cost_per_skip="2.25")
    _skip(user_id, habit, datetime(2026, 3, 10, 9))
    headers = {"Authorization": f"Bearer {admin_with_tokens['tokens']['access_token']}"}

    resp = client.get(
        "/api/admin/weekly-stats",
        query_string={"week_start": WEEK_START.isoformat(), "week_end": WEEK_END.isoformat()},
        headers=headers,
    )

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["week_start"] == "2026-03-09T00:00:00"
    users = {row["email"]: row for row in body["users"]}
    assert users["skipper@example.com"] == {"email": "skipper@example.com", "total_skips": 1, "total_savings": 2.25}


def test_weekly_stats_rejects_half_open_range(client, admin_with_tokens):
    headers = {"Authorization": f"Bearer {admin_with_tokens['tokens']['access_token']}"}

    resp = client.get("/api/admin/weekly-stats", query_string={"week_start": "2026-03-09"}, headers=headers)

    assert resp.status_code == 400


def test_weekly_report_is_queued_and_logged(app, client, admin_with_tokens, caplog):
    headers = _auth_headers(admin_with_tokens["tokens"]["access_token"], _prime_csrf(client))

    resp = client.post(
        "/api/admin/weekly-report",
        json={"email": "skipper@example.com", "skips": 3, "savings": 15},
        headers=headers,
    )

    assert resp.status_code == 202
    message = db.session.get(OutboxMessage, resp.get_json()["message_id"])
    assert message.event_type == REPORTS_EMAIL_WEEKLY_REPORT
    assert message.payload["requested_by"] == admin_with_tokens["user_id"]

    caplog.set_level(logging.INFO, logger="skiipper.domains.reports.mailer")
    sent = dispatch_ready()

    assert message.id in sent
    assert "Would send email to skipper@example.com with skips: 3, savings: $15.00" in caplog.text
    db.session.refresh(message)
    assert message.status == "sent"


def test_weekly_report_requires_admin(client, user_with_tokens):
    headers = _auth_headers(user_with_tokens["tokens"]["access_token"], _prime_csrf(client))

    resp = client.post(
        "/api/admin/weekly-report",
        json={"email": "skipper@example.com", "skips": 3, "savings": 15},
        headers=headers,
    )

    assert resp.status_code == 403


def test_weekly_report_validates_payload(client, admin_with_tokens):
    headers = _auth_headers(admin_with_tokens["tokens"]["access_token"], _prime_csrf(client))

    resp = client.post(
        "/api/admin/weekly-report",
        json={"email": "not-an-email", "skips": -1, "savings": 15},
        headers=headers,
    )

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"
