"""Authentication service layer."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from sqlalchemy import func

from skiipper.core.auth.events import (
    AUTH_SESSION_ENDED,
    AUTH_SESSION_STARTED,
    AUTH_STATE_EVENTS,
    AUTH_USER_REGISTERED,
)
from skiipper.core.auth.models import JWTBlocklist, Role, SessionToken
from skiipper.core.auth.schemas import RegisterRequest
from skiipper.core.events.event_bus import EventBus, event_bus
from skiipper.core.users.models import User
from skiipper.extensions import bcrypt, db
from skiipper.skiipper_platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
# Roles granted to every new account.
DEFAULT_REGISTER_ROLES = ("user",)

AuthStateCallback = Callable[[str, dict], None]


def hash_password(plain_password: str) -> str:
    return bcrypt.generate_password_hash(plain_password).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.check_password_hash(hashed_password, plain_password)


def is_admin_email(email: Optional[str]) -> bool:
    admin_email = (current_app.config.get("ADMIN_EMAIL") or "").strip().lower()
    return bool(admin_email) and (email or "").strip().lower() == admin_email


def token_roles(user: User) -> list[str]:
    """Role claims for a user: stored roles plus ``admin`` for the configured admin email."""
    roles = list(user.role_codes)
    if is_admin_email(user.email) and ADMIN_ROLE not in roles:
        roles.append(ADMIN_ROLE)
    return roles


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Return the user if credentials are valid."""
    user = User.query.filter(func.lower(User.email) == email.strip().lower()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def issue_tokens(user: User) -> dict[str, str]:
    """Create access and refresh tokens for a user and announce the new session."""
    identity = str(user.id)
    roles = token_roles(user)
    access_token = create_access_token(
        identity=identity, additional_claims={"roles": roles, "email": user.email}
    )
    refresh_token = create_refresh_token(identity=identity, additional_claims={"roles": roles})

    # Persist refresh jti for revocation checks
    decoded_refresh = decode_token(refresh_token)
    expires = decoded_refresh.get("exp")
    db.session.add(
        SessionToken(
            user_id=user.id,
            jti=decoded_refresh.get("jti"),
            expires_at=datetime.utcfromtimestamp(expires) if expires else None,
        )
    )
    user.last_login_at = datetime.utcnow()
    enqueue_outbox(
        AUTH_SESSION_STARTED,
        {"user_id": user.id, "email": user.email, "is_admin": ADMIN_ROLE in roles},
        user_id=user.id,
    )
    db.session.commit()

    return {"access_token": access_token, "refresh_token": refresh_token}


def revoke_refresh_token(jti: str, user_id: Optional[int] = None) -> None:
    """Revoke a refresh token by JTI and announce the ended session."""
    token = SessionToken.query.filter_by(jti=jti).first()
    if token:
        token.revoked = True
        user_id = user_id or token.user_id
    if not JWTBlocklist.query.filter_by(jti=jti).first():
        db.session.add(JWTBlocklist(jti=jti, created_by=user_id))
    if user_id is not None:
        enqueue_outbox(AUTH_SESSION_ENDED, {"user_id": user_id}, user_id=user_id)
    db.session.commit()


def register_user(payload: RegisterRequest, auto_issue_tokens: bool = False) -> dict:
    """Create a user with the default roles and emit the registration event."""
    existing = User.query.filter(func.lower(User.email) == payload.email).first()
    if existing:
        raise ValueError("email_already_exists")

    user = User(
        email=payload.email,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password),
    )
    db.session.add(user)
    assign_roles(user, DEFAULT_REGISTER_ROLES)
    db.session.flush()  # ensure user.id for events

    enqueue_outbox(
        AUTH_USER_REGISTERED,
        {"user_id": user.id, "email": user.email, "full_name": user.full_name},
        user_id=user.id,
    )
    db.session.commit()
    logger.info("Registered user %s", user.id)

    tokens = issue_tokens(user) if auto_issue_tokens else {}
    return {"user": user, **tokens}


def assign_roles(user: User, codes) -> None:
    for code in codes:
        role = Role.query.filter_by(name=code).first()
        if not role:
            role = Role(name=code, description=f"Auto-created role {code}")
            db.session.add(role)
        if role not in user.roles:
            user.roles.append(role)


def on_auth_state_change(callback: AuthStateCallback, bus: Optional[EventBus] = None) -> Callable[[], None]:
    """Call ``callback(event_type, payload)`` whenever a session starts or ends.

    Events arrive through the outbox dispatcher. Returns a callable that
    removes the subscription.
    """
    bus = bus or event_bus

    def _handler(event) -> None:
        callback(event.event_type, dict(event.payload or {}))

    unsubscribers = [bus.subscribe(event_type, _handler) for event_type in AUTH_STATE_EVENTS]

    def _unsubscribe() -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    return _unsubscribe
