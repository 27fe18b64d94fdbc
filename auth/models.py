"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
the domain shape; the directory, stores, strategies and gate do the work.

All records are frozen. A Session or Principal handed to a caller is a
snapshot: nothing outside the owning store can change it, and a role captured
at login stays fixed for the lifetime of that session or token.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Coarse permission tier. admin strictly supersedes user."""

    user = "user"
    admin = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def includes(self, other: Role) -> bool:
        """Return True if this role carries every privilege of `other`."""
        return self.rank >= other.rank


_ROLE_RANK = {Role.user: 0, Role.admin: 1}


class ResourceClass(str, Enum):
    """Protected resource classes known to the access gate.

    `unknown` is the explicit variant for anything else. Raw query strings are
    parsed once at the HTTP boundary and never re-stringified internally.
    """

    users = "users"
    admin = "admin"
    unknown = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> ResourceClass:
        if raw == cls.users.value:
            return cls.users
        if raw == cls.admin.value:
            return cls.admin
        return cls.unknown


@dataclass(frozen=True)
class User:
    """A directory entry. Passwords are plaintext in this demo scope."""

    username: str
    password: str
    role: Role


@dataclass(frozen=True)
class Principal:
    """An authenticated identity: the output of every successful strategy."""

    username: str
    role: Role


@dataclass(frozen=True)
class Session:
    """Server-held record binding an opaque id to a principal.

    csrf_secret is None when the session was created without session-bound
    CSRF protection.
    """

    id: str
    username: str
    role: Role
    created_at: datetime
    csrf_secret: str | None = None

    @property
    def principal(self) -> Principal:
        return Principal(username=self.username, role=self.role)


@dataclass(frozen=True)
class AnonymousCsrfToken:
    """Double-submit token for anonymous writes. The cookie is the only record."""

    value: str
    expires_at: datetime
