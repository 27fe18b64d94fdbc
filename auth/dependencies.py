"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Evidence is pulled off the request in one place (evidence_from_request) and
handed to whichever AuthStrategy is active on app.state.strategy:
  - Authorization: Bearer <token> header -- token strategy.
  - session_id cookie -- session strategy.

try_get_principal() is the soft variant (returns None on failure).
get_current_principal() raises Unauthenticated (401) instead.
require_anonymous_csrf() / require_session_csrf() guard write endpoints.

Failures are raised as auth.errors exceptions; api/main.py turns them into
HTTP responses.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.csrf import CSRF_COOKIE, CSRF_HEADER, CsrfGuard
from auth.errors import CsrfMismatch, Unauthenticated
from auth.models import Principal, Session
from auth.sessions import SESSION_COOKIE, SessionStore
from auth.strategies import AuthStrategy, Evidence

logger = logging.getLogger("authgate.auth")


def evidence_from_request(request: Request) -> Evidence:
    return Evidence(
        authorization=request.headers.get("Authorization"),
        session_id=request.cookies.get(SESSION_COOKIE) or None,
    )


def try_get_principal(request: Request) -> Principal | None:
    """Authenticate via the active strategy. Returns None on any failure."""
    strategy: AuthStrategy = request.app.state.strategy
    try:
        return strategy.authenticate(evidence_from_request(request))
    except Unauthenticated:
        return None


def get_current_principal(request: Request) -> Principal:
    """Require authentication. Raises Unauthenticated if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    strategy: AuthStrategy = request.app.state.strategy
    return strategy.authenticate(evidence_from_request(request))


def get_current_session(request: Request) -> Session:
    """Resolve the session named by the session_id cookie or raise Unauthenticated."""
    store: SessionStore = request.app.state.sessions
    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        raise Unauthenticated("No session cookie")
    return store.resolve(session_id)


def try_get_session(request: Request) -> Session | None:
    try:
        return get_current_session(request)
    except Unauthenticated:
        return None


def require_anonymous_csrf(request: Request) -> None:
    """Reject the request unless the csrf_anon cookie and X-CSRF-Token header match."""
    guard: CsrfGuard = request.app.state.csrf
    try:
        guard.verify_anonymous(request.cookies.get(CSRF_COOKIE), request.headers.get(CSRF_HEADER))
    except CsrfMismatch:
        logger.warning("Anonymous CSRF check failed on %s", request.url.path)
        raise


def require_session_csrf(request: Request) -> Principal:
    """Authenticate, then demand same-origin proof appropriate to the strategy.

    Session strategy: X-CSRF-Token must equal the secret stored in the session.
    Token strategy: bearer credentials are not ambient, so no extra check.
    """
    strategy: AuthStrategy = request.app.state.strategy
    evidence = evidence_from_request(request)
    principal = strategy.authenticate(evidence)
    try:
        strategy.verify_csrf(evidence, request.headers.get(CSRF_HEADER))
    except CsrfMismatch:
        logger.warning("Session CSRF check failed for %s on %s", principal.username, request.url.path)
        raise
    return principal
