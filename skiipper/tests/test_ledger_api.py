"""Savings wizard API tests.

Covers the session ledger endpoints under /api/ledger:
- GET /api/ledger - ledger state
- PUT /api/ledger/step - wizard step
- POST/PATCH /api/ledger/habits - custom habits
- POST /api/ledger/habits/<id>/toggle - selection
- POST/DELETE skips, day skips, spent and forfeit
- POST /api/ledger/super-skip and /reset
- GET /api/ledger/summary and /projection
- GET/PUT /api/ledger/auto-invest and POST /auto-invest/setup
"""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.integration


def _state(client) -> dict:
    resp = client.get("/api/ledger")
    assert resp.status_code == 200
    return resp.get_json()["ledger"]


def _habit(state: dict, habit_id: str) -> dict:
    return next(habit for habit in state["habits"] if habit["id"] == habit_id)


def _toggle(client, habit_id: str):
    return client.post(f"/api/ledger/habits/{habit_id}/toggle")


# ==================== State ====================


def test_fresh_session_gets_seeded_ledger(client):
    resp = client.get("/api/ledger")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["ok"] is True
    assert body["csrf_token"]
    ledger = body["ledger"]
    assert ledger["step"] == 1
    assert len(ledger["habits"]) == 9
    coffee = _habit(ledger, "1")
    assert coffee["emoji"] == "☕"
    assert coffee["selected"] is False
    assert coffee["savings_model"] == "full-skip"
    assert coffee["annual_cost"] == 1825.0
    assert ledger["totals"] == {"annual_savings": 0.0, "weekly_skip_savings": 0.0, "total_savings": 0.0}


def test_ledger_is_kept_per_session(app, client):
    _toggle(client, "1")

    other = app.test_client()

    assert _habit(_state(client), "1")["selected"] is True
    assert _habit(_state(other), "1")["selected"] is False


def test_set_step(client):
    resp = client.put("/api/ledger/step", json={"step": 3})

    assert resp.status_code == 200
    assert resp.get_json()["step"] == 3
    assert _state(client)["step"] == 3


def test_set_step_out_of_range(client):
    resp = client.put("/api/ledger/step", json={"step": 9})

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


# ==================== Habits ====================


def test_toggle_updates_totals(client):
    resp = _toggle(client, "1")

    body = resp.get_json()
    assert body["selected"] is True
    assert body["totals"]["annual_savings"] == 1825.0


def test_toggle_unknown_habit(client):
    resp = _toggle(client, "nope")

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"


def test_add_custom_habit(client):
    resp = client.post(
        "/api/ledger/habits",
        json={
            "name": "Lunch out",
            "expense": 12,
            "frequency": 3,
            "period": "weekly",
            "savings_model": "fractional-skip",
            "typical_weekly_spend": 36,
            "weekly_savings_goal": 20,
        },
    )

    assert resp.status_code == 201
    habit = resp.get_json()["habit"]
    assert habit["id"].startswith("custom-")
    assert habit["selected"] is True
    assert habit["savings_model"] == "fractional-skip"
    assert habit["weekly_savings_goal"] == 20.0
    assert len(_state(client)["habits"]) == 10


def test_add_custom_habit_validation(client):
    resp = client.post(
        "/api/ledger/habits",
        json={"name": "Lunch out", "expense": 12, "frequency": 3, "period": "weekly", "savings_model": "fractional-skip"},
    )

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "validation_error"
    assert {item["field"] for item in body["details"]} == {"typical_weekly_spend", "weekly_savings_goal"}


def test_add_custom_habit_rejects_bad_period(client):
    resp = client.post(
        "/api/ledger/habits",
        json={"name": "Lunch out", "expense": 12, "frequency": 3, "period": "hourly"},
    )

    assert resp.status_code == 400


def test_update_habit(client):
    resp = client.patch("/api/ledger/habits/2", json={"expense": 20})

    assert resp.status_code == 200
    assert resp.get_json()["habit"]["expense"] == 20.0
    assert client.patch("/api/ledger/habits/nope", json={"expense": 20}).status_code == 404


def test_update_habit_null_clears_emoji(client):
    resp = client.patch("/api/ledger/habits/2", json={"emoji": None})

    assert resp.status_code == 200
    habit = resp.get_json()["habit"]
    assert habit["emoji"] is None
    assert habit["expense"] == 15.0


# ==================== Skips ====================


def test_skip_and_decline(client):
    _toggle(client, "1")

    first = client.post("/api/ledger/habits/1/skips", json={})
    second = client.post("/api/ledger/habits/1/skips", json={})

    assert first.status_code == 200
    body = first.get_json()
    assert body["ok"] is True
    assert body["outcome"]["accepted"] is True
    assert body["outcome"]["log"]["amount_saved"] == 5.0
    assert body["habit"]["skipped"] == 1
    assert body["totals"]["total_savings"] == 5.0

    assert second.status_code == 200
    declined = second.get_json()
    assert declined["ok"] is False
    assert declined["error"] == "skip_declined"
    assert declined["reason"] == "Next skip available in 1 day."
    assert declined["habit"]["skipped"] == 1


def test_skip_unknown_habit(client):
    assert client.post("/api/ledger/habits/nope/skips", json={}).status_code == 404


def test_skip_rejects_non_positive_amount(client):
    resp = client.post("/api/ledger/habits/1/skips", json={"amount_saved": -3})

    assert resp.status_code == 400


def test_unskip_log(client):
    client.post("/api/ledger/habits/1/skips", json={})

    resp = client.delete("/api/ledger/habits/1/skips/0")

    assert resp.status_code == 200
    assert resp.get_json()["habit"]["skipped"] == 0
    assert client.delete("/api/ledger/habits/1/skips/0").status_code == 404


def test_day_skip_and_duplicate(client):
    first = client.put("/api/ledger/habits/1/days/Mon", json={})
    again = client.put("/api/ledger/habits/1/days/Mon", json={})

    assert first.get_json()["outcome"]["log"]["day"] == "Mon"
    body = again.get_json()
    assert body["ok"] is True
    assert body["outcome"]["duplicate"] is True
    assert body["habit"]["skipped"] == 1


def test_day_skip_future_and_unknown_day(client):
    future = client.put("/api/ledger/habits/1/days/Fri", json={})
    unknown = client.put("/api/ledger/habits/1/days/Funday", json={})

    assert future.get_json()["reason"] == "You can't log a skip for a future day"
    assert unknown.status_code == 400


def test_unskip_day(client):
    client.put("/api/ledger/habits/1/days/Tue", json={})

    resp = client.delete("/api/ledger/habits/1/days/Tue")

    assert resp.status_code == 200
    assert resp.get_json()["habit"]["skipped_days"] == []
    assert client.delete("/api/ledger/habits/1/days/Tue").status_code == 404


def test_spent_and_forfeit(client):
    spent = client.post("/api/ledger/habits/2/spent")
    forfeit = client.post("/api/ledger/habits/2/forfeit", json={})
    blocked = client.post("/api/ledger/habits/2/skips", json={})
    undo = client.post("/api/ledger/habits/2/forfeit", json={"undo": True})

    assert spent.get_json()["outcome"]["log"]["is_spent"] is True
    assert forfeit.get_json()["habit"]["is_forfeited"] is True
    assert blocked.get_json()["reason"] == "This habit has been forfeited for this week"
    assert undo.get_json()["habit"]["is_forfeited"] is False


def test_super_skip(client):
    _toggle(client, "1")
    _toggle(client, "2")

    resp = client.post("/api/ledger/super-skip")

    body = resp.get_json()
    assert body["skipped"] == ["1"]
    assert body["totals"]["total_savings"] == 5.0


def test_reset(client):
    client.post("/api/ledger/habits/1/skips", json={})

    resp = client.post("/api/ledger/reset")

    assert resp.status_code == 200
    assert _habit(resp.get_json()["ledger"], "1")["skipped"] == 0


# ==================== Summary and projection ====================


def test_summary(client):
    _toggle(client, "1")
    _toggle(client, "3")

    resp = client.get("/api/ledger/summary")

    summary = resp.get_json()["summary"]
    assert summary["annual"] == 4425.0
    assert summary["monthly"] == 368.75
    assert [line["habit_id"] for line in summary["lines"]] == ["1", "3"]


def test_projection(client):
    _toggle(client, "1")

    resp = client.get("/api/ledger/projection?timeframe=1y")

    projection = resp.get_json()["projection"]
    assert projection["timeframe"] == "1y"
    assert projection["monthly_contribution"] == pytest.approx(1825.0 / 12, abs=0.01)
    assert len(projection["points"]) == 13
    assert projection["points"][0]["btc_price"] == 70000.0
    assert projection["profit"] > 0


def test_projection_rejects_unknown_timeframe(client):
    resp = client.get("/api/ledger/projection?timeframe=7y")

    assert resp.status_code == 400


# ==================== Auto-invest ====================


def test_auto_invest_flow(client):
    client.post("/api/ledger/habits/1/skips", json={})

    disabled = client.post("/api/ledger/auto-invest/setup")
    configured = client.put("/api/ledger/auto-invest", json={"frequency": "monthly", "enabled": True})
    setup = client.post("/api/ledger/auto-invest/setup")

    assert disabled.status_code == 400
    assert disabled.get_json()["error"] == "auto_invest_disabled"
    plan = configured.get_json()["plan"]
    assert plan["enabled"] is True
    assert plan["frequency"] == "monthly"
    assert plan["amount"] == 20.0
    assert setup.get_json()["plan"]["activated_at"] is not None
    assert client.get("/api/ledger/auto-invest").get_json()["plan"]["weekly_amount"] == 5.0


# ==================== CSRF ====================


def test_mutations_require_csrf_token(app, client):
    app.config["WTF_CSRF_ENABLED"] = True
    token = client.get("/api/ledger").get_json()["csrf_token"]

    missing = client.post("/api/ledger/habits/1/toggle")
    wrong = client.post("/api/ledger/habits/1/toggle", headers={"X-CSRF-Token": "forged"})
    ok = client.post("/api/ledger/habits/1/toggle", headers={"X-CSRF-Token": token})

    assert missing.status_code == 403
    assert missing.get_json()["error"] == "csrf_failed"
    assert wrong.status_code == 403
    assert ok.status_code == 200
