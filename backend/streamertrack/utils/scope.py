"""Caller scope: role and vessel restriction passed into every resolver.

Identity is produced upstream (the session table); the core only sees this
value object and asks it questions instead of comparing roles inline.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from streamertrack.errors import ScopeViolation


class Role(str, enum.Enum):
    GRAND_SUPER_USER = "grandsuperuser"
    SUPER_USER = "superuser"
    ADMIN = "admin"
    VIEWER = "viewer"


_RANK = {
    Role.VIEWER: 0,
    Role.ADMIN: 1,
    Role.SUPER_USER: 2,
    Role.GRAND_SUPER_USER: 3,
}


@dataclass(frozen=True)
class CallerScope:
    username: str
    role: Role
    vessel_tag: Optional[str] = None
    is_global: bool = False

    @classmethod
    def unrestricted(cls, username: str = "system") -> "CallerScope":
        """Scope for internal callers (CLI, scheduled jobs)."""
        return cls(username=username, role=Role.GRAND_SUPER_USER, vessel_tag=None, is_global=True)

    @property
    def is_unrestricted(self) -> bool:
        return self.is_global or self.role == Role.GRAND_SUPER_USER

    @property
    def vessel_scope(self) -> Optional[str]:
        """Vessel the caller is restricted to, or None for all vessels."""
        return None if self.is_unrestricted else self.vessel_tag

    def _at_least(self, role: Role) -> bool:
        return _RANK[self.role] >= _RANK[role]

    @property
    def can_write_events(self) -> bool:
        return self._at_least(Role.ADMIN)

    @property
    def can_manage_projects(self) -> bool:
        return self._at_least(Role.SUPER_USER)

    @property
    def can_clear_all_events(self) -> bool:
        return self.is_unrestricted and self._at_least(Role.SUPER_USER)

    @property
    def can_restore_backups(self) -> bool:
        return self.is_unrestricted and self._at_least(Role.SUPER_USER)

    def can_access_vessel(self, vessel_tag: Optional[str]) -> bool:
        scope = self.vessel_scope
        return scope is None or vessel_tag is None or vessel_tag == scope

    def require(self, allowed: bool, message: str = "Access denied") -> None:
        if not allowed:
            raise ScopeViolation(message)

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "role": self.role.value,
            "vesselTag": self.vessel_tag,
            "isGlobal": self.is_global,
        }
