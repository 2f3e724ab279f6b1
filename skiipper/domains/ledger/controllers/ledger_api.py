"""Savings wizard JSON API backed by the per-session ledger."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from flask import Blueprint, current_app, jsonify, request, session

from skiipper.core.auth.csrf import generate_csrf_token
from skiipper.core.utils.decorators import csrf_protected
from skiipper.domains.ledger.ledger import SavingsLedger
from skiipper.domains.ledger.projections import (
    DEFAULT_TIMEFRAME,
    TIMEFRAME_MONTHS,
    growth_projection,
    summarize_timeframe,
)
from skiipper.domains.ledger.schemas.ledger_schemas import (
    AutoInvestUpdate,
    DaySkipCreate,
    ForfeitRequest,
    HabitCreate,
    HabitUpdate,
    SkipCreate,
    StepUpdate,
    serialize_auto_invest,
    serialize_habit,
    serialize_ledger,
    serialize_outcome,
    serialize_projection,
    serialize_summary,
    serialize_totals,
)

ledger_api_bp = Blueprint("ledger_api", __name__)

LEDGER_SESSION_KEY = "ledger_id"


@contextmanager
def _session_ledger() -> Iterator[SavingsLedger]:
    store = current_app.extensions["ledger_store"]
    with store.checkout(session.get(LEDGER_SESSION_KEY)) as (ledger_id, ledger):
        session[LEDGER_SESSION_KEY] = ledger_id
        yield ledger


def _not_found():
    return jsonify({"ok": False, "error": "not_found"}), 404


def _outcome_response(ledger: SavingsLedger, habit_id: str, outcome):
    if outcome is None:
        return _not_found()
    body = {
        "ok": outcome.accepted or outcome.duplicate,
        "outcome": serialize_outcome(outcome),
        "habit": serialize_habit(ledger, ledger.get_habit(habit_id)).model_dump(mode="json"),
        "totals": serialize_totals(ledger).model_dump(mode="json"),
    }
    if not outcome.accepted and not outcome.duplicate:
        body.update({"error": "skip_declined", "reason": outcome.reason})
    return jsonify(body)


@ledger_api_bp.get("")
def get_ledger():
    with _session_ledger() as ledger:
        state = serialize_ledger(ledger).model_dump(mode="json")
    return jsonify({"ok": True, "ledger": state, "csrf_token": generate_csrf_token()})


@ledger_api_bp.put("/step")
@csrf_protected
def set_step():
    data = StepUpdate.model_validate(request.get_json(silent=True) or {})
    with _session_ledger() as ledger:
        step = ledger.set_step(data.step)
    return jsonify({"ok": True, "step": step})


@ledger_api_bp.post("/habits")
@csrf_protected
def add_habit():
    data = HabitCreate.model_validate(request.get_json(silent=True) or {})
    with _session_ledger() as ledger:
        habit = ledger.add_habit(**data.model_dump())
        body = serialize_habit(ledger, habit).model_dump(mode="json")
    return jsonify({"ok": True, "habit": body}), 201


@ledger_api_bp.patch("/habits/<habit_id>")
@csrf_protected
def update_habit(habit_id: str):
    data = HabitUpdate.model_validate(request.get_json(silent=True) or {})
    with _session_ledger() as ledger:
        habit = ledger.update_habit(habit_id, **data.model_dump(exclude_unset=True))
        if habit is None:
            return _not_found()
        body = serialize_habit(ledger, habit).model_dump(mode="json")
    return jsonify({"ok": True, "habit": body})


@ledger_api_bp.post("/habits/<habit_id>/toggle")
@csrf_protected
def toggle_habit(habit_id: str):
    with _session_ledger() as ledger:
        selected = ledger.toggle_habit(habit_id)
        if selected is None:
            return _not_found()
        totals = serialize_totals(ledger).model_dump(mode="json")
    return jsonify({"ok": True, "selected": selected, "totals": totals})


@ledger_api_bp.post("/habits/<habit_id>/skips")
@csrf_protected
def skip_habit(habit_id: str):
    data = SkipCreate.model_validate(request.get_json(silent=True) or {})
    with _session_ledger() as ledger:
        outcome = ledger.skip_habit(habit_id, amount_saved=data.amount_saved, bonus=data.bonus, label=data.label)
        return _outcome_response(ledger, habit_id, outcome)


@ledger_api_bp.delete("/habits/<habit_id>/skips/<int:index>")
@csrf_protected
def unskip_log(habit_id: str, index: int):
    with _session_ledger() as ledger:
        if not ledger.unskip_log(habit_id, index):
            return _not_found()
        body = serialize_habit(ledger, ledger.get_habit(habit_id)).model_dump(mode="json")
    return jsonify({"ok": True, "habit": body})


@ledger_api_bp.put("/habits/<habit_id>/days/<day>")
@csrf_protected
def skip_habit_on_day(habit_id: str, day: str):
    data = DaySkipCreate.model_validate(request.get_json(silent=True) or {})
    with _session_ledger() as ledger:
        outcome = ledger.skip_habit_on_day(habit_id, day, amount_saved=data.amount_saved)
        return _outcome_response(ledger, habit_id, outcome)


@ledger_api_bp.delete("/habits/<habit_id>/days/<day>")
@csrf_protected
def unskip_habit_on_day(habit_id: str, day: str):
    with _session_ledger() as ledger:
        if not ledger.unskip_habit_on_day(habit_id, day):
            return _not_found()
        body = serialize_habit(ledger, ledger.get_habit(habit_id)).model_dump(mode="json")
    return jsonify({"ok": True, "habit": body})


@ledger_api_bp.post("/habits/<habit_id>/spent")
@csrf_protected
def mark_spent(habit_id: str):
    with _session_ledger() as ledger:
        return _outcome_response(ledger, habit_id, ledger.mark_habit_as_spent(habit_id))


@ledger_api_bp.post("/habits/<habit_id>/forfeit")
@csrf_protected
def forfeit_habit(habit_id: str):
    data = ForfeitRequest.model_validate(request.get_json(silent=True) or {})
    with _session_ledger() as ledger:
        return _outcome_response(ledger, habit_id, ledger.forfeit_habit(habit_id, undo=data.undo))


@ledger_api_bp.post("/super-skip")
@csrf_protected
def super_skip():
    with _session_ledger() as ledger:
        skipped = ledger.super_skip()
        totals = serialize_totals(ledger).model_dump(mode="json")
    return jsonify({"ok": True, "skipped": skipped, "totals": totals})


@ledger_api_bp.post("/reset")
@csrf_protected
def reset_skips():
    with _session_ledger() as ledger:
        ledger.reset_skips()
        state = serialize_ledger(ledger).model_dump(mode="json")
    return jsonify({"ok": True, "ledger": state})


@ledger_api_bp.get("/summary")
def savings_summary():
    with _session_ledger() as ledger:
        summary = serialize_summary(ledger.savings_breakdown()).model_dump(mode="json")
    return jsonify({"ok": True, "summary": summary})


@ledger_api_bp.get("/projection")
def growth():
    timeframe = request.args.get("timeframe", DEFAULT_TIMEFRAME)
    if timeframe not in TIMEFRAME_MONTHS:
        return jsonify({"ok": False, "error": "validation_error", "details": [{"field": "timeframe"}]}), 400
    cfg = current_app.config
    with _session_ledger() as ledger:
        monthly = ledger.annual_savings() / 12
    points = growth_projection(
        monthly,
        btc_price=cfg["BTC_REFERENCE_PRICE"],
        annual_growth_rate=cfg["BTC_ANNUAL_GROWTH_RATE"],
        months=max(cfg["PROJECTION_MONTHS"], TIMEFRAME_MONTHS[timeframe]),
    )
    body = serialize_projection(summarize_timeframe(points, timeframe), monthly).model_dump(mode="json")
    return jsonify({"ok": True, "projection": body})


@ledger_api_bp.get("/auto-invest")
def get_auto_invest():
    with _session_ledger() as ledger:
        plan = serialize_auto_invest(ledger).model_dump(mode="json")
    return jsonify({"ok": True, "plan": plan})


@ledger_api_bp.put("/auto-invest")
@csrf_protected
def configure_auto_invest():
    data = AutoInvestUpdate.model_validate(request.get_json(silent=True) or {})
    with _session_ledger() as ledger:
        ledger.configure_auto_invest(frequency=data.frequency, enabled=data.enabled)
        plan = serialize_auto_invest(ledger).model_dump(mode="json")
    return jsonify({"ok": True, "plan": plan})


@ledger_api_bp.post("/auto-invest/setup")
@csrf_protected
def setup_auto_invest():
    with _session_ledger() as ledger:
        try:
            ledger.setup_auto_invest()
        except ValueError as exc:
            return jsonify({"ok": False, "error": str(exc)}), 400
        plan = serialize_auto_invest(ledger).model_dump(mode="json")
    return jsonify({"ok": True, "plan": plan})
