"""
auth/sessions.py -- In-memory session store and the cookie-session strategy.

Pattern: Repository. SessionStore exclusively owns the id -> Session mapping;
every other component receives frozen Session snapshots. The store is created
once in the application lifespan and reached through app.state -- there is no
module-level session map.

Concurrency: FastAPI runs sync route handlers in a thread pool, so create /
resolve / destroy may race. A single threading.Lock guards the dict; every
operation is O(1) and never blocks on I/O while holding it.

Expiry: in the default configuration (ttl_seconds=0) a session lives until
explicit destroy(). The cookie Max-Age bounds client-side retention only.
With ttl_seconds > 0, resolve() treats older records as missing and
purge_expired() sweeps them; api/main.py runs the sweep periodically.

Role capture: a session's role is copied from the principal at creation and is
never re-read from the user directory afterwards.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone

from auth.csrf import CsrfGuard
from auth.errors import NoSuchSession, Unauthenticated
from auth.models import Principal, Session
from auth.strategies import Evidence, LoginGrant

logger = logging.getLogger("authgate.auth")

SESSION_COOKIE = "session_id"


class SessionStore:
    """Thread-safe map of opaque session ids to Session records.

    Usage:
        store = SessionStore()
        sid = store.create(principal)
        session = store.resolve(sid)
        store.destroy(sid)
    """

    def __init__(self, ttl_seconds: int = 0, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}

    def create(self, principal: Principal, csrf_secret: str | None = None) -> str:
        """Insert a fresh session for `principal` and return its id."""
        created_at = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        with self._lock:
            session_id = secrets.token_urlsafe(32)
            while session_id in self._sessions:
                session_id = secrets.token_urlsafe(32)
            self._sessions[session_id] = Session(
                id=session_id,
                username=principal.username,
                role=principal.role,
                created_at=created_at,
                csrf_secret=csrf_secret,
            )
        return session_id

    def resolve(self, session_id: str) -> Session:
        """Return the live session for `session_id` or raise NoSuchSession."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise NoSuchSession()
            if self._is_expired(session, self._clock()):
                del self._sessions[session_id]
                raise NoSuchSession()
            return session

    def destroy(self, session_id: str) -> Session | None:
        """Remove a session and return it. Unknown or already-destroyed ids return None."""
        with self._lock:
            return self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        """Delete all sessions older than the TTL. Returns number removed."""
        if not self.ttl_seconds:
            return 0
        now = self._clock()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if self._is_expired(s, now)]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def close(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, session: Session, now: float) -> bool:
        if not self.ttl_seconds:
            return False
        return now - session.created_at.timestamp() >= self.ttl_seconds


class SessionStrategy:
    """AuthStrategy over a SessionStore, optionally minting a CSRF secret per session."""

    name = "session"

    def __init__(self, store: SessionStore, csrf: CsrfGuard, with_csrf: bool = True) -> None:
        self.store = store
        self.csrf = csrf
        self.with_csrf = with_csrf

    def login(self, principal: Principal) -> LoginGrant:
        secret = self.csrf.mint_secret() if self.with_csrf else None
        session_id = self.store.create(principal, csrf_secret=secret)
        return LoginGrant(principal=principal, session_id=session_id)

    def resolve(self, evidence: Evidence) -> Session:
        if not evidence.session_id:
            raise Unauthenticated("No session cookie")
        return self.store.resolve(evidence.session_id)

    def authenticate(self, evidence: Evidence) -> Principal:
        return self.resolve(evidence).principal

    def logout(self, evidence: Evidence) -> None:
        if not evidence.session_id:
            return
        session = self.store.destroy(evidence.session_id)
        if session is not None:
            logger.info("Session ended for %s", session.username)

    def verify_csrf(self, evidence: Evidence, header_value: str | None) -> None:
        self.csrf.verify_session(self.resolve(evidence), header_value)


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, session_id: str, max_age: int, secure: bool = False) -> None:
    """Write the session id as an HttpOnly, SameSite=Lax cookie scoped to /.

    max_age bounds how long the browser keeps the cookie. It does not bound
    server-side validity.
    """
    response.set_cookie(
        SESSION_COOKIE,
        value=session_id,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=secure,
    )


def clear_session_cookie(response, secure: bool = False) -> None:
    response.delete_cookie(
        SESSION_COOKIE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=secure,
    )
