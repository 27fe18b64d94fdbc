"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AuthGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. auth_strategy -> AUTH_STRATEGY).

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Rejects short signing keys and non-positive lifetimes.

Signing key policy:
  SECRET_KEY is optional. When empty, the application generates an ephemeral
  key once during startup (see auth.tokens.load_signing_key). Tokens issued
  under an ephemeral key stop verifying after a restart, which matches the
  in-process-only state model. A configured key shorter than 32 chars is
  rejected outright.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string means "generate an ephemeral key at startup".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Strategy selection
    # ------------------------------------------------------------------

    # "token": stateless JWT via Authorization: Bearer.
    # "session": opaque session id in an HttpOnly cookie.
    auth_strategy: Literal["token", "session"] = "session"
    # Mint a CSRF secret alongside every session. Disable for the plain
    # cookie-session flavour with no session-bound CSRF.
    session_csrf: bool = True

    # ------------------------------------------------------------------
    # Lifetimes (seconds)
    # ------------------------------------------------------------------

    token_expire_seconds: int = 3600
    # Bounds client-side cookie retention only.
    session_cookie_max_age: int = 3600
    # 0 disables server-side session expiry: sessions live until logout.
    session_ttl_seconds: int = 0
    session_purge_interval_seconds: int = 300
    csrf_anon_max_age: int = 600

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject weak signing keys and nonsensical lifetimes at startup."""
        if self.secret_key and len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        for name in ("token_expire_seconds", "session_cookie_max_age", "csrf_anon_max_age"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be a positive number of seconds.")
        if self.session_ttl_seconds < 0:
            raise ValueError("SESSION_TTL_SECONDS must be 0 (disabled) or positive.")
        if self.session_purge_interval_seconds <= 0:
            raise ValueError("SESSION_PURGE_INTERVAL_SECONDS must be positive.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables, or pass a Settings instance
    straight to api.main.create_app().
    """
    settings = Settings()
    logger.info(
        "Settings loaded (strategy=%s, session_ttl=%ds, debug=%s)",
        settings.auth_strategy,
        settings.session_ttl_seconds,
        settings.debug,
    )
    return settings
