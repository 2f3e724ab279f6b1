"""Dashboard habits JSON API (thin, schema-validated)."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from skiipper.core.utils.decorators import csrf_protected
from skiipper.domains.habits import services as habit_services
from skiipper.domains.habits.schemas.habit_schemas import (
    HabitCreate,
    HabitResponse,
    HabitUpdate,
    SkipCreate,
    SkipResponse,
)

habit_api_bp = Blueprint("habit_api", __name__)


def _validation_error(exc: ValidationError):
    details = exc.errors(include_url=False, include_context=False, include_input=False)
    return jsonify({"ok": False, "error": "validation_error", "details": details}), 400


def _skip_payload(skip) -> dict:
    return SkipResponse(
        id=skip.id,
        habit_id=skip.habit_id,
        amount_saved=float(skip.amount_saved),
        skipped_at=skip.skipped_at,
    ).model_dump(mode="json")


@habit_api_bp.get("")
@jwt_required()
def list_habits():
    user_id = int(get_jwt_identity())
    payload = [
        HabitResponse(
            id=item["habit"].id,
            name=item["habit"].name,
            cost_per_skip=float(item["habit"].cost_per_skip),
            created_at=item["habit"].created_at,
            skip_count=item["skip_count"],
            total_saved=float(item["total_saved"]),
        ).model_dump(mode="json")
        for item in habit_services.list_habits(user_id)
    ]
    return jsonify({"ok": True, "habits": payload})


@habit_api_bp.post("")
@jwt_required()
@csrf_protected
def create_habit():
    try:
        data = HabitCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    try:
        habit = habit_services.create_habit(user_id, name=data.name, cost_per_skip=data.cost_per_skip)
    except ValueError as exc:
        if str(exc) == "duplicate":
            return jsonify({"ok": False, "error": "duplicate"}), 409
        return jsonify({"ok": False, "error": "validation_error"}), 400
    body = HabitResponse(
        id=habit.id,
        name=habit.name,
        cost_per_skip=float(habit.cost_per_skip),
        created_at=habit.created_at,
    ).model_dump(mode="json")
    return jsonify({"ok": True, "habit": body}), 201


@habit_api_bp.patch("/<int:habit_id>")
@jwt_required()
@csrf_protected
def update_habit(habit_id: int):
    try:
        data = HabitUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    try:
        habit = habit_services.update_habit(user_id, habit_id, **data.model_dump(exclude_none=True))
    except ValueError as exc:
        if str(exc) == "duplicate":
            return jsonify({"ok": False, "error": "duplicate"}), 409
        return jsonify({"ok": False, "error": "validation_error"}), 400
    if not habit:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True})


@habit_api_bp.get("/<int:habit_id>/skips")
@jwt_required()
def list_skips(habit_id: int):
    skips = habit_services.list_skips(int(get_jwt_identity()), habit_id)
    if skips is None:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "skips": [_skip_payload(skip) for skip in skips]})


@habit_api_bp.post("/<int:habit_id>/skips")
@jwt_required()
@csrf_protected
def record_skip(habit_id: int):
    try:
        data = SkipCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_error(exc)
    try:
        skip = habit_services.record_skip(int(get_jwt_identity()), habit_id, skipped_at=data.skipped_at)
    except ValueError:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "skip": _skip_payload(skip)}), 201


@habit_api_bp.delete("/<int:habit_id>/skips/<int:skip_id>")
@jwt_required()
@csrf_protected
def delete_skip(habit_id: int, skip_id: int):
    if not habit_services.delete_skip(int(get_jwt_identity()), habit_id, skip_id):
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True})
