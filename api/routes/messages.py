"""
api/routes/messages.py -- CSRF-protected write endpoints.

Routes:
  GET  /api/csrf-anon         -- issue an anonymous double-submit token + cookie
  POST /api/public-message    -- anonymous write; csrf_anon cookie must equal X-CSRF-Token
  POST /api/private-message   -- authenticated write; session strategy also
                                 requires X-CSRF-Token = session CSRF secret

The CSRF dependency runs before the body is read. Handlers parse the JSON body
themselves (instead of declaring a body parameter) because FastAPI decodes
declared bodies before running dependencies, which would let a forged request
with a malformed body get a 400 instead of the 403 it deserves.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from api.models import CsrfTokenResponse, OkResponse
from auth.csrf import CsrfGuard, set_csrf_cookie
from auth.dependencies import require_anonymous_csrf, require_session_csrf
from auth.errors import InvalidInput
from auth.models import Principal
from core.config import Settings

logger = logging.getLogger("authgate.api")

# Auth policy:
# - GET  /api/csrf-anon:        public
# - POST /api/public-message:   anonymous, double-submit CSRF (require_anonymous_csrf)
# - POST /api/private-message:  authenticated + strategy CSRF (require_session_csrf)
router = APIRouter()

_JSON_BODY = TypeAdapter(Any)


async def _read_message(request: Request) -> Any:
    """Return the body's `message` value, or None.

    Any well-formed JSON is accepted; only an unparseable body is InvalidInput.
    An empty body reads as an empty object.
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        payload = _JSON_BODY.validate_json(raw)
    except ValidationError as exc:
        raise InvalidInput() from exc
    if isinstance(payload, dict):
        return payload.get("message")
    return None


def _length(message: Any) -> int:
    return len(message) if isinstance(message, str) else 0


@router.get("/csrf-anon", response_model=CsrfTokenResponse)
def csrf_anon(request: Request) -> JSONResponse:
    """Issue a fresh anonymous CSRF token in both the body and a readable cookie."""
    guard: CsrfGuard = request.app.state.csrf
    settings: Settings = request.app.state.settings

    token = guard.issue_anonymous()
    resp = JSONResponse(content=CsrfTokenResponse(csrf_token=token.value).model_dump(by_alias=True))
    set_csrf_cookie(resp, token, max_age=guard.anon_max_age, secure=settings.secure_cookies)
    return resp


@router.post(
    "/public-message",
    response_model=OkResponse,
    dependencies=[Depends(require_anonymous_csrf)],
)
async def public_message(request: Request) -> OkResponse:
    """Accept an anonymous message once the double-submit check has passed."""
    message = await _read_message(request)
    logger.info("Anonymous message received (%d chars)", _length(message))
    return OkResponse(message="Thank you for your message!")


@router.post("/private-message", response_model=OkResponse)
async def private_message(
    request: Request,
    principal: Principal = Depends(require_session_csrf),
) -> OkResponse:
    """Accept a message from an authenticated principal."""
    message = await _read_message(request)
    logger.info("Message from %s received (%d chars)", principal.username, _length(message))
    return OkResponse(message="Message received")
