import sys
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from skiipper import create_app
from skiipper.core.auth.auth_service import issue_tokens, register_user
from skiipper.core.auth.schemas import RegisterRequest
from skiipper.domains.ledger.ledger import SavingsLedger
from skiipper.domains.ledger.store import LedgerStore
from skiipper.extensions import db

# Wednesday; the week runs Mon 2026-03-09 .. Sun 2026-03-15.
WEDNESDAY_NOON = datetime(2026, 3, 11, 12, 0)


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")
    config.addinivalue_line("markers", "slow: Slow running tests")


class FrozenClock:
    """Settable stand-in for datetime.now."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture()
def clock():
    return FrozenClock(WEDNESDAY_NOON)


@pytest.fixture()
def ledger(clock):
    return SavingsLedger(clock=clock)


@pytest.fixture()
def app(clock):
    """Per-test app on a fresh in-memory database with a frozen ledger clock."""
    app = create_app("testing")
    app.extensions["ledger_store"] = LedgerStore(
        ttl_seconds=3600, factory=lambda: SavingsLedger(clock=clock)
    )
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


def _make_user(email: str, full_name: str, password: str = "secret123"):
    result = register_user(RegisterRequest(email=email, password=password, full_name=full_name))
    user = result["user"]
    return {"user": user, "user_id": user.id, "tokens": issue_tokens(user)}


@pytest.fixture()
def user_with_tokens(app):
    """A registered user with access and refresh tokens."""
    return _make_user("skipper@example.com", "Sam Skipper")


@pytest.fixture()
def admin_with_tokens(app):
    """The account matching ADMIN_EMAIL, which receives the admin claim."""
    return _make_user(app.config["ADMIN_EMAIL"], "Ada Admin")
