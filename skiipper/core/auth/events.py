"""Auth domain event catalog."""

from __future__ import annotations

AUTH_USER_REGISTERED = "auth.user.registered"
AUTH_SESSION_STARTED = "auth.session.started"
AUTH_SESSION_ENDED = "auth.session.ended"

# Event names delivered to on_auth_state_change listeners.
AUTH_STATE_EVENTS = (AUTH_SESSION_STARTED, AUTH_SESSION_ENDED)

EVENT_CATALOG = {
    AUTH_USER_REGISTERED: {
        "version": "v1",
        "payload": {
            "user_id": "int",
            "email": "str",
            "full_name": "str?",
        },
    },
    AUTH_SESSION_STARTED: {
        "version": "v1",
        "payload": {
            "user_id": "int",
            "email": "str",
            "is_admin": "bool",
        },
    },
    AUTH_SESSION_ENDED: {
        "version": "v1",
        "payload": {
            "user_id": "int",
        },
    },
}
