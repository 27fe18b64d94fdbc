"""
auth/errors.py -- Failure taxonomy for the auth core.

Every failure the core can produce is an AuthError subclass carrying a stable
machine-readable `code` and a human-readable default message. The API layer
maps each class to an HTTP status (see api/main.py); auth/ itself knows
nothing about HTTP.

Signature-invalid, malformed and expired tokens all raise the same
InvalidOrExpiredToken.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    code = "auth_error"
    default_message = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AuthError):
    code = "invalid_input"
    default_message = "Invalid JSON"


class Unauthenticated(AuthError):
    code = "unauthorized"
    default_message = "Unauthorized"


class InvalidCredentials(Unauthenticated):
    # Same message for unknown username and wrong password.
    code = "bad_credentials"
    default_message = "Invalid username or password"


class InvalidOrExpiredToken(Unauthenticated):
    default_message = "Invalid or expired token"


class NoSuchSession(Unauthenticated):
    default_message = "Session not found or expired"


class InsufficientRole(AuthError):
    code = "insufficient_role"
    default_message = "Insufficient role"


class CsrfMismatch(AuthError):
    code = "csrf_mismatch"
    default_message = "Invalid CSRF token"


class UnknownResource(AuthError):
    code = "unknown_resource"
    default_message = "Unknown resource"
