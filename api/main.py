"""
api/main.py -- FastAPI application entry point for AuthGate.

Run with:      uvicorn api.main:app --reload
               python main.py --strategy token

Middleware stack (outermost to innermost):
  1. CORSMiddleware        -- adds CORS headers for allowed browser origins
  2. log_requests          -- method, path, status, latency per request

Lifespan handles startup (signing key, user directory, session store, CSRF
guard, access gate, active strategy, optional session purge task) and
shutdown (cancel purge task, empty the session store) symmetrically. All
components live on app.state for the lifetime of the app; request handlers
reach them through request.app.state.

create_app(settings) builds an independent app for the given settings. The
module-level `app` uses get_settings().
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.messages import router as messages_router
from auth.csrf import CSRF_HEADER, CsrfGuard
from auth.directory import UserDirectory
from auth.errors import (
    AuthError,
    CsrfMismatch,
    InsufficientRole,
    InvalidInput,
    Unauthenticated,
    UnknownResource,
)
from auth.gate import AccessGate
from auth.sessions import SessionStore
from auth.strategies import build_strategy
from auth.tokens import load_signing_key
from core.config import Settings, get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authgate.api")

# Checked in order; first isinstance match wins, so subclasses come first.
_STATUS_BY_ERROR: tuple[tuple[type[AuthError], int], ...] = (
    (InvalidInput, 400),
    (UnknownResource, 400),
    (Unauthenticated, 401),
    (InsufficientRole, 401),
    (CsrfMismatch, 403),
)

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Sweep expired sessions every `interval` seconds.

    Only started when SESSION_TTL_SECONDS > 0. CancelledError from
    task.cancel() during shutdown propagates out of asyncio.sleep and unwinds
    the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval)
        removed = app.state.sessions.purge_expired()
        if removed:
            logger.info("Purged %d expired session(s)", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Acquire auth components on startup and release them on shutdown.

    Startup order matters:
      1. Signing key first -- acquired exactly once, injected into the token
         strategy, never regenerated per request.
      2. Directory, store, CSRF guard, gate -- independent of each other.
      3. Strategy last -- wraps the key or the store depending on config.
      4. Purge task -- references app.state.sessions, so the store must exist.
    """
    settings: Settings = app.state.settings
    clock = app.state.clock
    logger.info("AuthGate API starting up (strategy=%s)", settings.auth_strategy)

    signing_key = load_signing_key(settings)
    app.state.directory = UserDirectory()
    app.state.sessions = SessionStore(ttl_seconds=settings.session_ttl_seconds, clock=clock)
    app.state.csrf = CsrfGuard(anon_max_age=settings.csrf_anon_max_age, clock=clock)
    app.state.gate = AccessGate()
    app.state.strategy = build_strategy(settings, signing_key, app.state.sessions, app.state.csrf, clock=clock)
    logger.info("Auth initialized (%d users in directory)", len(app.state.directory))

    app.state.purge_task = None
    if settings.session_ttl_seconds > 0:
        app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.session_purge_interval_seconds))

    yield

    if app.state.purge_task is not None:
        app.state.purge_task.cancel()
    app.state.sessions.close()
    logger.info("AuthGate API shutdown complete")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(exclude_none=True),
    )


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map the auth failure taxonomy onto HTTP status codes."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return _error(status_code, exc.code, exc.message)
    return _error(400, exc.code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or a body of the wrong shape is InvalidInput (400)."""
    return _error(400, InvalidInput.code, InvalidInput.default_message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured envelope for Starlette HTTP errors (unmatched route 404, 405)."""
    message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
    response = _error(exc.status_code, f"http_{exc.status_code}", message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged only, never written to the response body.
    Session store and key material survive: one failed request is never fatal.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, clock: Callable[[], float] = time.time) -> FastAPI:
    """Build an app for `settings`. `clock` drives token, session and CSRF expiry."""
    settings = settings or get_settings()

    app = FastAPI(
        title="AuthGate API",
        description="Token and cookie-session authentication with role gating and CSRF protection.",
        version=VERSION,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.clock = clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", CSRF_HEADER],
        max_age=3600,
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(auth_router, prefix="/api", tags=["Auth"])
    app.include_router(messages_router, prefix="/api", tags=["Messages"])

    @app.get("/api/health", tags=["Health"])
    async def health() -> HealthResponse:
        """Return API liveness, version and the active strategy."""
        return HealthResponse(version=VERSION, strategy=settings.auth_strategy)

    return app


app = create_app()
