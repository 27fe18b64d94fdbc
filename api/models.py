"""
API request and response models for AuthGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire field names are camelCase (loggedIn, sessionId, csrfToken, createdAt).
Models use a to_camel alias generator so Python code keeps snake_case; routes
serialize with by_alias=True.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from auth.models import Principal, Role, Session

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/login.

    Fields are untyped at the schema level: a missing, non-string or
    oversized username or password is an authentication failure (401) raised
    by authenticate_user, not malformed input (400). Only a body that is not
    a JSON object is rejected here.
    """

    username: Any = None
    password: Any = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class UserInfo(_WireModel):
    username: str
    role: Role

    @classmethod
    def from_principal(cls, principal: Principal) -> "UserInfo":
        return cls(username=principal.username, role=principal.role)


class LoginResponse(_WireModel):
    """token / token_type / expires_in are present only under the token strategy."""

    message: str = "Login successful"
    user: UserInfo
    token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class OkResponse(_WireModel):
    ok: bool = True
    message: Optional[str] = None


class SessionInfo(_WireModel):
    """Public view of a session. The CSRF secret is never included."""

    username: str
    role: Role
    created_at: str

    @classmethod
    def from_session(cls, session: Session) -> "SessionInfo":
        return cls(
            username=session.username,
            role=session.role,
            created_at=session.created_at.isoformat(),
        )


class SessionResponse(_WireModel):
    session_id: str
    session: SessionInfo


class StatusResponse(_WireModel):
    logged_in: bool
    username: Optional[str] = None
    role: Optional[Role] = None
    csrf: Optional[str] = None


class CheckResponse(_WireModel):
    ok: bool = True
    username: str
    role: Role


class CsrfTokenResponse(_WireModel):
    csrf_token: str


class ErrorDetail(BaseModel):
    """Structured error detail returned in the error envelope."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Top-level error envelope for all API error responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(_WireModel):
    status: str = "ok"
    version: str
    strategy: str
