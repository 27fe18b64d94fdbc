"""
api/routes/auth.py -- Login, logout, session introspection and access checks.

Routes:
  POST /api/login             -- password login; token in body or session cookie
  POST /api/logout            -- ends the session (if any); clears cookie; always 200
  GET  /api/session           -- current session record (session cookie required)
  GET  /api/status            -- minimal login status; never fails
  GET  /api/check?resource=   -- role gate for "users" / "admin"

Security:
  [C1] authenticate_user() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on login responses.
  Wrong username and wrong password produce the same 401 bad_credentials.
  /api/check authenticates before looking at the resource name, so an
  unauthenticated caller always sees 401.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    CheckResponse,
    LoginRequest,
    LoginResponse,
    OkResponse,
    SessionInfo,
    SessionResponse,
    StatusResponse,
    UserInfo,
)
from auth.dependencies import (
    evidence_from_request,
    get_current_principal,
    get_current_session,
    try_get_principal,
    try_get_session,
)
from auth.directory import UserDirectory, authenticate_user
from auth.errors import InvalidCredentials
from auth.gate import AccessGate
from auth.models import Principal, ResourceClass, Session
from auth.sessions import clear_session_cookie, set_session_cookie
from auth.strategies import AuthStrategy
from core.config import Settings

logger = logging.getLogger("authgate.api")

# Auth policy:
# - POST /api/login:   public -- login endpoint must be unauthenticated
# - POST /api/logout:  public -- clearing a cookie needs no prior auth
# - GET  /api/status:  public -- reports anonymous state instead of failing
# - GET  /api/session: requires a session cookie (get_current_session)
# - GET  /api/check:   requires auth via the active strategy (get_current_principal)
router = APIRouter()


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password and start an authenticated context.

    Token strategy: the signed token is returned in the body.
    Session strategy: the session id is set as an HttpOnly cookie.
    """
    directory: UserDirectory = request.app.state.directory
    strategy: AuthStrategy = request.app.state.strategy
    settings: Settings = request.app.state.settings

    try:
        principal = authenticate_user(directory, body.username, body.password)
    except InvalidCredentials:
        logger.info("Login failed on %s from %s", request.url.path, _client_host(request))
        raise

    grant = strategy.login(principal)
    payload = LoginResponse(user=UserInfo.from_principal(principal))
    if grant.token is not None:
        payload = payload.model_copy(
            update={
                "token": grant.token,
                "token_type": "bearer",  # noqa: S106 -- OAuth token type, not a password
                "expires_in": settings.token_expire_seconds,
            }
        )

    resp = JSONResponse(status_code=200, content=_dump(payload))
    if grant.session_id is not None:
        set_session_cookie(
            resp,
            grant.session_id,
            max_age=settings.session_cookie_max_age,
            secure=settings.secure_cookies,
        )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    logger.info(
        "Login succeeded for %s (role=%s, strategy=%s)",
        principal.username,
        principal.role.value,
        strategy.name,
    )
    return resp


@router.post("/logout", response_model=OkResponse, response_model_exclude_none=True)
def logout(request: Request) -> JSONResponse:
    """End the session named by the cookie (if any) and clear the cookie.

    Always succeeds: a missing or unknown session is not an error.
    """
    strategy: AuthStrategy = request.app.state.strategy
    settings: Settings = request.app.state.settings

    strategy.logout(evidence_from_request(request))
    logger.info("Logout from %s (strategy=%s)", _client_host(request), strategy.name)
    resp = JSONResponse(content=_dump(OkResponse(message="Logged out")))
    clear_session_cookie(resp, secure=settings.secure_cookies)
    return resp


@router.get("/status", response_model=StatusResponse, response_model_exclude_none=True)
def status(request: Request) -> JSONResponse:
    """Report whether the caller is logged in.

    For a cookie session this also returns the session-bound CSRF secret --
    the only channel through which the legitimate client learns it.
    """
    session = try_get_session(request)
    if session is not None:
        payload = StatusResponse(
            logged_in=True,
            username=session.username,
            role=session.role,
            csrf=session.csrf_secret,
        )
        return JSONResponse(content=_dump(payload))

    principal = try_get_principal(request)
    if principal is None:
        return JSONResponse(content=_dump(StatusResponse(logged_in=False)))
    payload = StatusResponse(logged_in=True, username=principal.username, role=principal.role)
    return JSONResponse(content=_dump(payload))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/session", response_model=SessionResponse)
def session_info(session: Session = Depends(get_current_session)) -> SessionResponse:
    """Return the caller's session id and public session record."""
    return SessionResponse(session_id=session.id, session=SessionInfo.from_session(session))


@router.get("/check", response_model=CheckResponse)
def check(
    request: Request,
    resource: str = "users",
    principal: Principal = Depends(get_current_principal),
) -> CheckResponse:
    """Gate access to a resource class for the authenticated principal.

    The resource string is parsed into a ResourceClass here, once. Unknown
    names raise UnknownResource (400); a role below the requirement raises
    InsufficientRole (401).
    """
    gate: AccessGate = request.app.state.gate
    gate.enforce(principal, ResourceClass.parse(resource))
    return CheckResponse(username=principal.username, role=principal.role)
