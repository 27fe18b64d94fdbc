"""
auth/strategies.py -- The AuthStrategy interface shared by token and session auth.

Both strategies converge on a Principal after successful verification, so the
route layer and the access gate never care which one is active. Which one is
active is a configuration decision (Settings.auth_strategy), made once at
startup by build_strategy().

Implementations:
  TokenStrategy   (auth/tokens.py)   -- Authorization: Bearer <jwt>
  SessionStrategy (auth/sessions.py) -- session_id cookie -> SessionStore

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from auth.models import Principal

if TYPE_CHECKING:
    from auth.csrf import CsrfGuard
    from auth.sessions import SessionStore
    from core.config import Settings


@dataclass(frozen=True)
class Evidence:
    """Raw authentication material pulled off a request by the router."""

    authorization: str | None = None
    session_id: str | None = None


@dataclass(frozen=True)
class LoginGrant:
    """What a successful login hands back to the transport layer.

    Exactly one of token / session_id is set, depending on the strategy.
    """

    principal: Principal
    token: str | None = None
    session_id: str | None = None


class AuthStrategy(Protocol):
    name: str

    def login(self, principal: Principal) -> LoginGrant:
        """Start an authenticated context for an already-validated principal."""
        ...

    def authenticate(self, evidence: Evidence) -> Principal:
        """Return the principal behind the evidence or raise Unauthenticated."""
        ...

    def logout(self, evidence: Evidence) -> None:
        """End the authenticated context. Must never fail."""
        ...

    def verify_csrf(self, evidence: Evidence, header_value: str | None) -> None:
        """Raise CsrfMismatch if an authenticated write lacks same-origin proof."""
        ...


def build_strategy(
    settings: Settings,
    signing_key: str,
    store: SessionStore,
    csrf: CsrfGuard,
    clock: Callable[[], float] = time.time,
) -> AuthStrategy:
    """Construct the strategy named by settings.auth_strategy."""
    from auth.sessions import SessionStrategy
    from auth.tokens import TokenStrategy

    if settings.auth_strategy == "token":
        return TokenStrategy(signing_key, ttl_seconds=settings.token_expire_seconds, clock=clock)
    if settings.auth_strategy == "session":
        return SessionStrategy(store, csrf, with_csrf=settings.session_csrf)
    raise ValueError(f"Unknown auth strategy: {settings.auth_strategy!r}")
