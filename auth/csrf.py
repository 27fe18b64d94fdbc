"""
auth/csrf.py -- CSRF protection: session-bound secrets and anonymous double-submit.

Two independent flows:

  Session-bound: a secret is minted alongside a session (SessionStrategy) and
      handed to the legitimate client only through an authenticated read
      (GET /api/status). State-changing requests echo it in X-CSRF-Token and
      verify_session() compares it with the secret stored in the session.

  Anonymous double-submit: issue_anonymous() returns a random value that the
      route sets in a non-HttpOnly cookie. There is no server-side record --
      the cookie IS the record. verify_anonymous() accepts a request only if
      the cookie value and the X-CSRF-Token header are both present and
      byte-equal. A cross-origin page can make the browser send the cookie but
      cannot read it or set the custom header, so equality proves same-origin
      intent.

Tokens are not single-use: a valid pair keeps verifying until the cookie
expires in the browser.

All comparisons are constant-time over UTF-8 bytes.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hmac
import secrets
import time
from collections.abc import Callable
from datetime import datetime, timezone

from auth.errors import CsrfMismatch
from auth.models import AnonymousCsrfToken, Session

CSRF_COOKIE = "csrf_anon"
CSRF_HEADER = "X-CSRF-Token"
DEFAULT_ANON_MAX_AGE = 600


def _tokens_match(expected: str | None, supplied: str | None) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


class CsrfGuard:
    """Issue and verify CSRF tokens."""

    def __init__(self, anon_max_age: int = DEFAULT_ANON_MAX_AGE, clock: Callable[[], float] = time.time) -> None:
        self.anon_max_age = anon_max_age
        self._clock = clock

    @staticmethod
    def mint_secret() -> str:
        return secrets.token_urlsafe(32)

    def issue_anonymous(self) -> AnonymousCsrfToken:
        expires_at = datetime.fromtimestamp(self._clock() + self.anon_max_age, tz=timezone.utc)
        return AnonymousCsrfToken(value=self.mint_secret(), expires_at=expires_at)

    def verify_anonymous(self, cookie_value: str | None, header_value: str | None) -> None:
        """Raise CsrfMismatch unless cookie and header carry the same token."""
        if not _tokens_match(cookie_value, header_value):
            raise CsrfMismatch()

    def verify_session(self, session: Session, header_value: str | None) -> None:
        """Raise CsrfMismatch unless the header equals the session's secret.

        Sessions created without a secret reject every check.
        """
        if not _tokens_match(session.csrf_secret, header_value):
            raise CsrfMismatch()


def set_csrf_cookie(response, token: AnonymousCsrfToken, max_age: int, secure: bool = False) -> None:
    """Write the anonymous token as a client-readable (not HttpOnly) cookie."""
    response.set_cookie(
        CSRF_COOKIE,
        value=token.value,
        max_age=max_age,
        path="/",
        httponly=False,
        samesite="lax",
        secure=secure,
    )
