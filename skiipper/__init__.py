"""Skiipper application factory and bootstrap."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from flask import Flask
from sqlalchemy.engine import processors

from skiipper.config import config_by_name
from skiipper.core.auth.csrf import generate_csrf_token
from skiipper.core.events.event_bus import event_bus
from skiipper.extensions import init_extensions, jwt, login_manager


def _patch_str_to_datetime_processor() -> None:
    """Make SQLAlchemy tolerant of sqlite returning datetime objects.

    sqlite3 with detect_types enabled can emit datetime objects; SQLAlchemy's
    default str_to_datetime expects strings and will raise TypeError. This
    shim returns datetime values as-is while delegating normal parsing to the
    original processor for strings.
    """
    original = processors.str_to_datetime

    def _safe(value):
        if value is None or isinstance(value, datetime):
            return value
        try:
            return original(value)
        except TypeError:
            return value

    processors.str_to_datetime = _safe


_patch_str_to_datetime_processor()


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the Skiipper Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(
        __name__,
        instance_path=str(instance_root),
        instance_relative_config=True,
    )
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)

    # Normalize file-backed sqlite paths to absolute; in-memory databases stay as-is.
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    is_sqlite = db_uri.startswith("sqlite:")
    if is_sqlite and db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        db_path = Path(db_uri.replace("sqlite:///", "", 1))
        if not db_path.is_absolute():
            db_path = project_root / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{db_path}"

    engine_opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(engine_opts.get("connect_args") or {})
    if is_sqlite:
        # Keep sqlite datetime values as strings for SQLAlchemy's processors.
        connect_args["detect_types"] = 0
        connect_args.setdefault("timeout", 30)
        engine_opts["connect_args"] = connect_args
    else:
        # Remove sqlite-specific connect_args that break Postgres drivers
        connect_args.pop("detect_types", None)
        if "timeout" in connect_args:
            timeout_val = connect_args.pop("timeout")
            if db_uri.startswith("postgresql"):
                connect_args.setdefault("connect_timeout", timeout_val)
        if connect_args:
            engine_opts["connect_args"] = connect_args
        else:
            engine_opts.pop("connect_args", None)
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_opts

    init_extensions(app)
    _register_blueprints(app)
    _register_error_handlers(app)
    _register_auth_handlers(app)

    # Attach shared engines
    from skiipper.domains.ledger.store import LedgerStore

    app.extensions["event_bus"] = event_bus
    app.extensions["ledger_store"] = LedgerStore(
        ttl_seconds=app.config["LEDGER_SESSION_TTL_SECONDS"],
        max_sessions=app.config["LEDGER_MAX_SESSIONS"],
    )

    # Weekly report emails are delivered from outbox events
    from skiipper.domains.reports import mailer

    mailer.register_subscriptions(event_bus)

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    @app.get("/api/v1/ping")
    def ping():
        """Lightweight endpoint for load-balancer health checks."""
        return {"pong": True}, 200

    # Register CLI commands
    from skiipper.scripts.seed_admin import register_commands

    register_commands(app)

    return app


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from skiipper.core.admin.controllers import admin_bp
    from skiipper.core.auth.controllers import auth_bp  # local import to avoid circulars
    from skiipper.domains.habits.controllers.habit_api import habit_api_bp
    from skiipper.domains.ledger.controllers.ledger_api import ledger_api_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(ledger_api_bp, url_prefix="/api/ledger")
    app.register_blueprint(habit_api_bp, url_prefix="/api/habits")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")


def _register_error_handlers(app: Flask) -> None:
    """Basic JSON error responses."""
    from pydantic import ValidationError
    from werkzeug.exceptions import HTTPException

    from skiipper.domains.ledger.catalog import HabitValidationError

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(ValidationError)
    def _validation_error(exc: ValidationError):
        details = exc.errors(include_url=False, include_context=False, include_input=False)
        return {"ok": False, "error": "validation_error", "details": details}, 400

    @app.errorhandler(HabitValidationError)
    def _habit_validation_error(exc: HabitValidationError):
        return {"ok": False, "error": "validation_error", "details": exc.details}, 400

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500


def _register_auth_handlers(app: Flask) -> None:
    """Login manager, revoked-token lookup and template helpers."""
    login_manager.login_view = "auth_api.login"

    @login_manager.user_loader
    def _load_user(user_id: str):
        from skiipper.core.users.models import User
        from skiipper.extensions import db

        return db.session.get(User, int(user_id)) if user_id else None

    @jwt.token_in_blocklist_loader
    def _token_revoked(jwt_header, jwt_payload) -> bool:
        from skiipper.core.auth.models import JWTBlocklist

        return JWTBlocklist.query.filter_by(jti=jwt_payload.get("jti")).first() is not None

    @app.context_processor
    def inject_csrf_token():
        return {"csrf_token": generate_csrf_token}
