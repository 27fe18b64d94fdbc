"""
auth/tokens.py -- Stateless signed-token strategy (JWT).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (username), role and exp
       (integer epoch seconds). There is no server-side record: validity is a
       pure function of signature correctness and exp versus now.

  Opaque failure: verify() raises InvalidOrExpiredToken for every failure --
       bad encoding, bad signature, missing or malformed claims, unknown role,
       expiry. Callers cannot tell "expired" from "forged".

  Expiry: jose's own exp check is disabled and replaced by a comparison
       against the strategy's injectable clock, so exp > now is enforced with
       exactly one notion of "now".

  Signing key: acquired once at startup by load_signing_key() and injected
       into TokenStrategy. The strategy keeps it private and never rotates it.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable

from jose import JWTError, jwt

from auth.errors import InvalidOrExpiredToken, Unauthenticated
from auth.models import Principal, Role
from auth.strategies import Evidence, LoginGrant
from core.config import Settings

logger = logging.getLogger("authgate.auth")

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 60 * 60
BEARER_PREFIX = "Bearer "


def load_signing_key(settings: Settings) -> str:
    """Return the process-lifetime HMAC key.

    Uses SECRET_KEY when configured, otherwise generates a 256-bit key. Call
    exactly once during startup and inject the result.
    """
    if settings.secret_key:
        return settings.secret_key
    logger.warning("Using auto-generated signing key. Issued tokens will not survive a restart.")
    return secrets.token_hex(32)


class TokenStrategy:
    """Issue and verify self-contained HS256 tokens.

    Usage:
        tokens = TokenStrategy(load_signing_key(settings))
        token = tokens.issue(principal)
        principal = tokens.verify(token)
    """

    name = "token"

    def __init__(
        self,
        signing_key: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not signing_key:
            raise ValueError("signing_key must not be empty")
        self._key = signing_key
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, principal: Principal) -> str:
        payload = {
            "sub": principal.username,
            "role": principal.role.value,
            "exp": int(self._clock()) + self.ttl_seconds,
        }
        return jwt.encode(payload, self._key, algorithm=ALGORITHM)

    def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError:
            raise InvalidOrExpiredToken() from None

        sub = payload.get("sub")
        exp = payload.get("exp")
        if not isinstance(sub, str) or not sub:
            raise InvalidOrExpiredToken()
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise InvalidOrExpiredToken()
        if exp <= self._clock():
            raise InvalidOrExpiredToken()
        try:
            role = Role(payload.get("role"))
        except ValueError:
            raise InvalidOrExpiredToken() from None
        return Principal(username=sub, role=role)

    # ------------------------------------------------------------------
    # AuthStrategy
    # ------------------------------------------------------------------

    def login(self, principal: Principal) -> LoginGrant:
        return LoginGrant(principal=principal, token=self.issue(principal))

    def authenticate(self, evidence: Evidence) -> Principal:
        header = evidence.authorization or ""
        if not header.startswith(BEARER_PREFIX):
            raise Unauthenticated("Missing or invalid Authorization header")
        return self.verify(header[len(BEARER_PREFIX) :])

    def logout(self, evidence: Evidence) -> None:
        # Nothing to revoke: a token simply becomes unverifiable after exp.
        return None

    def verify_csrf(self, evidence: Evidence, header_value: str | None) -> None:
        # Bearer credentials are never attached by the browser on its own.
        return None
