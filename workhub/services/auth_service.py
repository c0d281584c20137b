"""
Session identity for the core.

Authentication is deliberately thin: a username/password check against a
static user list, falling back to a member whose email matches the
username (all members share one configurable password). The only thing
the rest of the core needs from it is the ``CurrentUser`` used to
attribute activity-log entries and outgoing messages.

Usage:
    auth = AuthService(user_context, member_store, member_password="member123")
    user = auth.login("admin", "admin123")
    auth.logout()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: str
    email: str = ""


SYSTEM_USER = CurrentUser(id="system", name="System")

# Static accounts (username → profile + password hash)
STATIC_USERS: dict[str, dict] = {
    "admin": {
        "id": "user-1",
        "name": "Administrator",
        "email": "admin@example.com",
        "password_hash": generate_password_hash("admin123"),
    },
    "demo": {
        "id": "user-2",
        "name": "Demo User",
        "email": "demo@example.com",
        "password_hash": generate_password_hash("demo123"),
    },
}


class UserContext:
    """Holds the logged-in user for the lifetime of a session."""

    def __init__(self, user: CurrentUser | None = None) -> None:
        self.user = user

    @property
    def current(self) -> CurrentUser:
        """Logged-in user, or the system identity when nobody is logged in."""
        return self.user or SYSTEM_USER

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class AuthService:
    def __init__(self, context: UserContext, member_store, *, member_password: str) -> None:
        self.context = context
        self.member_store = member_store
        self._member_password_hash = generate_password_hash(member_password)

    def login(self, username: str, password: str) -> CurrentUser | None:
        """Authenticate and set the session user. Returns None on failure."""
        username = (username or "").strip()
        account = STATIC_USERS.get(username)
        if account and check_password_hash(account["password_hash"], password or ""):
            user = CurrentUser(id=account["id"], name=account["name"], email=account["email"])
            return self._start_session(user)

        wanted = username.lower()
        for member in self.member_store.list():
            if member.email and member.email.lower() == wanted:
                if check_password_hash(self._member_password_hash, password or ""):
                    user = CurrentUser(id=member.id, name=member.name, email=member.email)
                    return self._start_session(user)
                break

        logger.warning("Login failed for %r", username)
        return None

    def logout(self) -> None:
        if self.context.user is not None:
            logger.info("User %s logged out", self.context.user.id, extra={"actor": self.context.user.id})
        self.context.user = None

    def _start_session(self, user: CurrentUser) -> CurrentUser:
        self.context.user = user
        logger.info("User %s logged in", user.id, extra={"actor": user.id})
        return user
