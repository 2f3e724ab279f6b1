from __future__ import annotations

import pytest

pytestmark = pytest.mark.integration

from skiipper.core.auth.auth_service import on_auth_state_change
from skiipper.core.auth.events import AUTH_SESSION_ENDED, AUTH_SESSION_STARTED, AUTH_USER_REGISTERED
from skiipper.core.auth.models import JWTBlocklist, SessionToken
from skiipper.core.events.event_bus import EventBus
from skiipper.skiipper_platform.outbox import EventBusAdapter, dispatch_ready
from skiipper.skiipper_platform.outbox.models import OutboxMessage


def _prime_csrf(client) -> str:
    """Insert CSRF token into client session."""
    token = "test-csrf-token"
    with client.session_transaction() as sess:
        sess["_csrf_token"] = token
    return token


def _register(client, email="new@example.com", password="secret123", full_name="New Person"):
    return client.post(
        "/auth/register",
        json={"email": email, "password": password, "full_name": full_name},
    )


def _login(client, email="skipper@example.com", password="secret123"):
    return client.post("/auth/login", json={"email": email, "password": password})


# ==================== Register ====================


def test_register_signs_in(client):
    resp = _register(client)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["ok"] is True
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["role_codes"] == ["user"]
    assert body["user"]["is_admin"] is False
    assert body["access_token"]
    assert body["refresh_token"]
    assert body["csrf_token"]


def test_register_without_auto_login(app, client):
    app.config["AUTO_LOGIN_ON_REGISTER"] = False

    body = _register(client).get_json()

    assert "access_token" not in body
    assert body["user"]["email"] == "new@example.com"


def test_register_duplicate_email(client):
    _register(client)

    resp = _register(client, email="NEW@example.com")

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "email_already_exists"


def test_register_rejects_weak_password(client):
    resp = _register(client, password="short")

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "validation_error"
    assert any("password" in item["loc"] for item in body["details"])


def test_register_enqueues_event(app, client):
    _register(client)

    events = [message.event_type for message in OutboxMessage.query.order_by(OutboxMessage.id).all()]

    assert events[0] == AUTH_USER_REGISTERED
    assert AUTH_SESSION_STARTED in events


# ==================== Login and session ====================


def test_login_and_me(client, user_with_tokens):
    resp = _login(client)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["csrf_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.get_json()["user"]["full_name"] == "Sam Skipper"


def test_login_invalid_credentials(client, user_with_tokens):
    resp = _login(client, password="wrong-password1")

    assert resp.status_code == 401
    assert resp.get_json()["error"] == "invalid_credentials"


def test_login_email_is_case_insensitive(client, user_with_tokens):
    assert _login(client, email="  Skipper@Example.com ").status_code == 200


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401


def test_session_anonymous(client):
    resp = client.get("/auth/session")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["session"] is None
    assert body["csrf_token"]


def test_session_signed_in(client, user_with_tokens):
    access = user_with_tokens["tokens"]["access_token"]

    resp = client.get("/auth/session", headers={"Authorization": f"Bearer {access}"})

    session = resp.get_json()["session"]
    assert session["user"]["email"] == "skipper@example.com"
    assert session["expires_at"] is not None


def test_admin_email_gets_admin_claim(client, admin_with_tokens):
    resp = _login(client, email="admin@example.com")

    user = resp.get_json()["user"]
    assert user["is_admin"] is True
    assert "admin" in user["role_codes"]


def test_refresh_issues_access_token(client, user_with_tokens):
    refresh = user_with_tokens["tokens"]["refresh_token"]

    resp = client.post("/auth/refresh", headers={"Authorization": f"Bearer {refresh}"})

    assert resp.status_code == 200
    assert resp.get_json()["access_token"]


# ==================== Logout ====================


def test_logout_revokes_refresh_token(app, client, user_with_tokens):
    refresh = user_with_tokens["tokens"]["refresh_token"]
    csrf_token = _prime_csrf(client)
    headers = {"Authorization": f"Bearer {refresh}", "X-CSRF-Token": csrf_token}

    resp = client.post("/auth/logout", headers=headers)

    assert resp.status_code == 200
    assert JWTBlocklist.query.count() == 1
    assert SessionToken.query.filter_by(user_id=user_with_tokens["user_id"]).one().revoked is True
    again = client.post("/auth/refresh", headers={"Authorization": f"Bearer {refresh}"})
    assert again.status_code == 401


def test_logout_keeps_ledger(client, user_with_tokens):
    client.post("/api/ledger/habits/1/toggle")
    refresh = user_with_tokens["tokens"]["refresh_token"]

    client.post("/auth/logout", headers={"Authorization": f"Bearer {refresh}"})

    habits = client.get("/api/ledger").get_json()["ledger"]["habits"]
    assert next(h for h in habits if h["id"] == "1")["selected"] is True


# ==================== Auth state listeners ====================


def test_auth_state_listener_sees_sign_in_and_out(app, client, user_with_tokens):
    bus = EventBus()
    seen = []
    unsubscribe = on_auth_state_change(lambda event_type, payload: seen.append((event_type, payload)), bus=bus)
    refresh = user_with_tokens["tokens"]["refresh_token"]
    client.post("/auth/logout", headers={"Authorization": f"Bearer {refresh}"})

    dispatch_ready(bus_adapter=EventBusAdapter(bus))

    assert [event_type for event_type, _ in seen] == [AUTH_SESSION_STARTED, AUTH_SESSION_ENDED]
    assert seen[0][1]["email"] == "skipper@example.com"
    assert seen[1][1]["user_id"] == user_with_tokens["user_id"]

    unsubscribe()
    _login(client)
    dispatch_ready(bus_adapter=EventBusAdapter(bus))
    assert len(seen) == 2
