"""Admin reporting endpoints."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity
from sqlalchemy.exc import SQLAlchemyError

from skiipper.core.utils.decorators import csrf_protected, require_roles
from skiipper.domains.reports import services as report_services
from skiipper.domains.reports.schemas import UserWeekStats, WeeklyReportRequest, WeekQuery
from skiipper.extensions import db

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin_api", __name__)


def _week_bounds(query: WeekQuery):
    if query.week_start and query.week_end:
        return query.week_start, query.week_end
    return report_services.current_week_bounds()


@admin_bp.get("/weekly-stats")
@require_roles({"admin"})
def weekly_stats():
    query = WeekQuery.model_validate(request.args.to_dict())
    week_start, week_end = _week_bounds(query)
    try:
        rows = report_services.get_user_stats_for_week(week_start, week_end)
    except SQLAlchemyError:
        logger.exception("Weekly stats query failed")
        return jsonify({"ok": False, "error": "stats_unavailable"}), 503
    return jsonify(
        {
            "ok": True,
            "week_start": week_start.isoformat(),
            "week_end": week_end.isoformat(),
            "users": [UserWeekStats(**row).model_dump() for row in rows],
        }
    )


@admin_bp.post("/weekly-report")
@require_roles({"admin"})
@csrf_protected
def send_weekly_report():
    data = WeeklyReportRequest.model_validate(request.get_json(silent=True) or {})
    week_start, week_end = report_services.current_week_bounds()
    try:
        message = report_services.request_weekly_report(
            data.email,
            data.skips,
            data.savings,
            week_start,
            week_end,
            requested_by=int(get_jwt_identity()),
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not queue weekly report for %s", data.email)
        return jsonify({"ok": False, "error": "report_failed"}), 503
    return jsonify({"ok": True, "message_id": message.id}), 202
