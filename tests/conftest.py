"""
Shared pytest fixtures for the WorkHub core test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - clock: Deterministic clock, one second per reading
    - workspace: Fresh Workspace wired to the clock
    - admin: Workspace with the admin user logged in
"""

from datetime import datetime, timedelta, timezone

import pytest

from workhub import create_app
from workhub.models import db as _db
from workhub.services.workspace import Workspace


class FakeClock:
    """Returns a strictly increasing aware datetime on every call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


# ── Workspace fixtures ───────────────────────────────────────────────────


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def workspace(app, clock):
    return Workspace(
        activity_limit=app.config["ACTIVITY_LOG_LIMIT"],
        member_password=app.config["MEMBER_LOGIN_PASSWORD"],
        clock=clock,
    )


@pytest.fixture()
def admin(workspace):
    """Workspace with the static admin account logged in."""
    assert workspace.auth.login("admin", "admin123") is not None
    return workspace


