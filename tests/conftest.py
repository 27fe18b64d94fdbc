"""
tests/conftest.py -- Shared test fixtures for AuthGate tests.

This module provides:
  - FakeClock: a controllable time source for token / session / CSRF expiry
  - make_client(): TestClient factory over a fresh app for given settings
  - token_client / session_client / readable_session_client: one fresh app per
    test so cookie jars and session stores never leak between tests

Design: every fixture builds its own app via create_app(Settings(...)) instead
of patching the module-level app. The real lifespan runs inside the
TestClient context manager, so tests exercise the actual startup wiring.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from core.config import Settings

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"


class FakeClock:
    """Callable returning a settable epoch time."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_client(clock: FakeClock | None = None, **overrides) -> TestClient:
    settings = Settings(**{"secret_key": TEST_SECRET, **overrides})
    app = create_app(settings) if clock is None else create_app(settings, clock=clock)
    return TestClient(app, raise_server_exceptions=True)


@pytest.fixture
def token_client() -> Generator[TestClient, None, None]:
    with make_client(auth_strategy="token") as client:
        yield client


@pytest.fixture
def session_client() -> Generator[TestClient, None, None]:
    with make_client(auth_strategy="session") as client:
        yield client


@pytest.fixture
def readable_session_client() -> Generator[TestClient, None, None]:
    """Cookie sessions without a session-bound CSRF secret."""
    with make_client(auth_strategy="session", session_csrf=False) as client:
        yield client


@pytest.fixture
def client_factory():
    """Return make_client for tests that need non-default settings.

    Callers own the returned client and must use it as a context manager.
    """
    return make_client
