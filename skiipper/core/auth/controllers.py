"""Auth HTTP controllers (API only)."""

from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, get_jwt, get_jwt_identity, jwt_required
from flask_login import login_user, logout_user
from pydantic import ValidationError

from skiipper.core.auth.auth_service import (
    authenticate_user,
    issue_tokens,
    register_user,
    revoke_refresh_token,
    token_roles,
)
from skiipper.core.auth.csrf import generate_csrf_token, rotate_csrf_token
from skiipper.core.auth.schemas import RegisterRequest, SessionResponse
from skiipper.core.users.models import User
from skiipper.core.users.schemas import LoginRequest, serialize_user
from skiipper.core.utils.decorators import csrf_protected
from skiipper.extensions import db, limiter

auth_bp = Blueprint("auth_api", __name__)


def _jsonable_errors(exc: ValidationError) -> list[dict]:
    return exc.errors(include_url=False, include_context=False, include_input=False)


def _current_user():
    identity = get_jwt_identity()
    return db.session.get(User, int(identity)) if identity else None


@auth_bp.post("/register")
@limiter.limit("5/minute")
def register():
    payload = request.get_json(silent=True) or {}
    try:
        data = RegisterRequest.model_validate(payload)
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": _jsonable_errors(exc)}), 400
    try:
        result = register_user(
            data,
            auto_issue_tokens=current_app.config.get("AUTO_LOGIN_ON_REGISTER", False),
        )
    except ValueError as exc:
        code = str(exc)
        if code == "email_already_exists":
            return jsonify({"ok": False, "error": code}), 400
        return jsonify({"ok": False, "error": "registration_failed"}), 400

    user = result["user"]
    resp = {"ok": True, "user": serialize_user(user, token_roles(user)).model_dump(mode="json")}
    if "access_token" in result:
        resp.update(
            {
                "access_token": result["access_token"],
                "refresh_token": result.get("refresh_token"),
                "csrf_token": rotate_csrf_token(),
            }
        )
    return jsonify(resp), 201


@auth_bp.post("/login")
@limiter.limit("10/minute")
def login():
    payload = request.get_json(silent=True) or {}
    try:
        data = LoginRequest.model_validate(payload)
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": _jsonable_errors(exc)}), 400
    user = authenticate_user(data.email, data.password)
    if not user:
        return jsonify({"ok": False, "error": "invalid_credentials"}), 401
    tokens = issue_tokens(user)
    login_user(user)
    return jsonify(
        {
            "ok": True,
            **tokens,
            "csrf_token": rotate_csrf_token(),
            "user": serialize_user(user, token_roles(user)).model_dump(mode="json"),
        }
    )


@auth_bp.post("/refresh")
@jwt_required(refresh=True)
@limiter.limit("30/minute")
def refresh():
    claims = get_jwt()
    new_access = create_access_token(
        identity=str(get_jwt_identity()), additional_claims={"roles": claims.get("roles") or []}
    )
    return jsonify({"ok": True, "access_token": new_access})


@auth_bp.post("/logout")
@jwt_required(refresh=True)
@csrf_protected
def logout():
    jti = get_jwt().get("jti")
    if jti:
        revoke_refresh_token(jti, user_id=int(get_jwt_identity()))
    # The wizard ledger survives sign-out; only the login session ends.
    logout_user()
    return jsonify({"ok": True})


@auth_bp.get("/me")
@jwt_required()
def me():
    user = _current_user()
    if not user:
        return jsonify({"ok": False, "error": "not_found"}), 404
    roles = get_jwt().get("roles")
    return jsonify({"ok": True, "user": serialize_user(user, roles).model_dump(mode="json")})


@auth_bp.get("/session")
@jwt_required(optional=True)
def current_session():
    """Current session or ``null``; never an error for anonymous callers."""
    user = _current_user()
    if not user:
        return jsonify({"ok": True, "session": None, "csrf_token": generate_csrf_token()})
    claims = get_jwt()
    expires = claims.get("exp")
    data = SessionResponse(
        user=serialize_user(user, claims.get("roles")),
        expires_at=datetime.utcfromtimestamp(expires) if expires else None,
    )
    return jsonify({"ok": True, "session": data.model_dump(mode="json"), "csrf_token": generate_csrf_token()})
