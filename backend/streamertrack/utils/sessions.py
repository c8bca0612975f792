"""User registry loaded from AUTH_USERS and the in-process session table.

The session table is the only authoritative in-memory state: tokens are
added at login, removed at logout, and never expire on their own.
"""
from __future__ import annotations

import hmac
import logging
import secrets
import threading
from dataclasses import dataclass
from typing import Optional

from streamertrack.utils.scope import CallerScope, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    username: str
    password: str
    role: Role
    vessel_tag: Optional[str]
    is_global: bool

    def to_scope(self) -> CallerScope:
        return CallerScope(
            username=self.username,
            role=self.role,
            vessel_tag=self.vessel_tag,
            is_global=self.is_global,
        )


def load_users(raw: str) -> dict[str, UserRecord]:
    """Parse ``USERNAME:PASSWORD:ROLE:VESSEL_TAG[:GLOBAL]`` entries.

    Vessel tag ``ALL`` or empty means no vessel. A grand superuser is global
    unless GLOBAL is given explicitly; other roles with no vessel are treated
    as global with a warning. Malformed entries are skipped.
    """
    users: dict[str, UserRecord] = {}
    if not raw or not raw.strip():
        logger.warning("AUTH_USERS is empty; no users configured.")
        return users

    for entry in raw.split(","):
        parts = [p.strip() for p in entry.strip().split(":")]
        if len(parts) < 4:
            if parts and parts[0]:
                logger.warning(
                    "Skipping AUTH_USERS entry for %r: expected USERNAME:PASSWORD:ROLE:VESSEL_TAG[:GLOBAL]",
                    parts[0],
                )
            continue

        username, password, raw_role, raw_vessel = parts[:4]
        try:
            role = Role(raw_role.lower())
        except ValueError:
            logger.warning("Skipping AUTH_USERS entry for %r: unknown role %r", username, raw_role)
            continue

        vessel_tag = None if raw_vessel == "" or raw_vessel.upper() == "ALL" else raw_vessel

        if len(parts) >= 5:
            is_global = parts[4].lower() in ("true", "1", "yes")
        elif role == Role.GRAND_SUPER_USER:
            is_global = True
        elif vessel_tag is None:
            is_global = True
            logger.warning(
                "User %r has no vessel tag configured; treating as global until one is added.",
                username,
            )
        else:
            is_global = False

        users[username] = UserRecord(username, password, role, vessel_tag, is_global)

    return users


class SessionStore:
    """Token → CallerScope table shared by all request handlers."""

    def __init__(self, users: dict[str, UserRecord] | None = None):
        self._users = users or {}
        self._sessions: dict[str, CallerScope] = {}
        self._lock = threading.Lock()

    def authenticate(self, username: str, password: str) -> Optional[UserRecord]:
        user = self._users.get(username)
        if user is None or not hmac.compare_digest(user.password, password):
            return None
        return user

    def login(self, username: str, password: str) -> Optional[tuple[str, CallerScope]]:
        user = self.authenticate(username, password)
        if user is None:
            logger.info("Failed login for %r", username)
            return None
        token = secrets.token_hex(32)
        scope = user.to_scope()
        with self._lock:
            self._sessions[token] = scope
        logger.info("User %r logged in (role=%s, vessel=%s)", username, scope.role.value, scope.vessel_tag)
        return token, scope

    def lookup(self, token: str) -> Optional[CallerScope]:
        with self._lock:
            return self._sessions.get(token)

    def logout(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
