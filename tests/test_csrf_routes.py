"""
tests/test_csrf_routes.py -- Integration tests for the CSRF-protected write endpoints.

Coverage:
  - GET /api/csrf-anon sets a readable (not HttpOnly) csrf_anon cookie, 600s
  - POST /api/public-message succeeds with matching cookie + header, repeatedly
  - Missing header, missing cookie, or mismatch -> 403
  - CSRF is checked before the body: forged + malformed -> 403, valid + malformed -> 400
  - Any well-formed JSON body is accepted once CSRF passes
  - POST /api/private-message requires auth; session strategy also requires
    the session-bound secret from /api/status
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


def _issue(client: TestClient) -> str:
    resp = client.get("/api/csrf-anon")
    assert resp.status_code == 200
    return resp.json()["csrfToken"]


def _login(client: TestClient, username: str, password: str):
    return client.post("/api/login", json={"username": username, "password": password})


class TestCsrfAnon:
    def test_issue_sets_readable_cookie(self, session_client: TestClient) -> None:
        resp = session_client.get("/api/csrf-anon")
        token = resp.json()["csrfToken"]
        cookie = resp.headers["set-cookie"]
        assert cookie.startswith(f"csrf_anon={token}")
        lowered = cookie.lower()
        assert "httponly" not in lowered
        assert "samesite=lax" in lowered
        assert "path=/" in lowered
        assert "max-age=600" in lowered

    def test_each_issue_is_fresh(self, session_client: TestClient) -> None:
        assert _issue(session_client) != _issue(session_client)

    def test_no_login_required_under_either_strategy(self, token_client: TestClient) -> None:
        assert token_client.get("/api/csrf-anon").status_code == 200


class TestPublicMessage:
    def test_matching_pair_accepted_repeatedly(self, session_client: TestClient) -> None:
        token = _issue(session_client)
        for _ in range(3):
            resp = session_client.post(
                "/api/public-message",
                json={"message": "hello"},
                headers={"X-CSRF-Token": token},
            )
            assert resp.status_code == 200, resp.text
            assert resp.json() == {"ok": True, "message": "Thank you for your message!"}

    def test_missing_header_403(self, session_client: TestClient) -> None:
        _issue(session_client)
        resp = session_client.post("/api/public-message", json={"message": "hi"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "csrf_mismatch"

    def test_missing_cookie_403(self, session_client: TestClient) -> None:
        resp = session_client.post(
            "/api/public-message",
            json={"message": "hi"},
            headers={"X-CSRF-Token": "whatever"},
        )
        assert resp.status_code == 403

    def test_mismatch_403(self, session_client: TestClient) -> None:
        token = _issue(session_client)
        resp = session_client.post(
            "/api/public-message",
            json={"message": "hi"},
            headers={"X-CSRF-Token": token + "x"},
        )
        assert resp.status_code == 403

    def test_header_from_older_issue_rejected(self, session_client: TestClient) -> None:
        old = _issue(session_client)
        _issue(session_client)  # replaces the cookie
        resp = session_client.post("/api/public-message", json={}, headers={"X-CSRF-Token": old})
        assert resp.status_code == 403

    def test_csrf_checked_before_body(self, session_client: TestClient) -> None:
        resp = session_client.post(
            "/api/public-message",
            content="{broken",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 403

    def test_invalid_json_400(self, session_client: TestClient) -> None:
        token = _issue(session_client)
        resp = session_client.post(
            "/api/public-message",
            content="{broken",
            headers={"Content-Type": "application/json", "X-CSRF-Token": token},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Invalid JSON"

    @pytest.mark.parametrize(
        "body",
        [{"message": 5}, [], {"message": "x" * 2001}, {"message": None}, {}, "just a string"],
        ids=["number", "array", "long", "null", "empty-object", "string"],
    )
    def test_any_well_formed_json_accepted(self, session_client: TestClient, body) -> None:
        token = _issue(session_client)
        resp = session_client.post("/api/public-message", json=body, headers={"X-CSRF-Token": token})
        assert resp.status_code == 200, resp.text
        assert resp.json()["ok"] is True

    def test_empty_body_accepted(self, session_client: TestClient) -> None:
        token = _issue(session_client)
        resp = session_client.post("/api/public-message", headers={"X-CSRF-Token": token})
        assert resp.status_code == 200

    def test_works_under_token_strategy(self, token_client: TestClient) -> None:
        token = _issue(token_client)
        resp = token_client.post("/api/public-message", json={"message": "x"}, headers={"X-CSRF-Token": token})
        assert resp.status_code == 200


class TestPrivateMessage:
    def test_session_requires_login(self, session_client: TestClient) -> None:
        resp = session_client.post("/api/private-message", json={"message": "hi"})
        assert resp.status_code == 401

    def test_session_requires_csrf_secret(self, session_client: TestClient) -> None:
        _login(session_client, "alice", "alice123")
        resp = session_client.post("/api/private-message", json={"message": "hi"})
        assert resp.status_code == 403

    def test_session_with_secret_from_status(self, session_client: TestClient) -> None:
        _login(session_client, "alice", "alice123")
        secret = session_client.get("/api/status").json()["csrf"]
        resp = session_client.post(
            "/api/private-message",
            json={"message": "hi"},
            headers={"X-CSRF-Token": secret},
        )
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "message": "Message received"}

    def test_anonymous_token_does_not_satisfy_session_csrf(self, session_client: TestClient) -> None:
        _login(session_client, "alice", "alice123")
        anon = _issue(session_client)
        resp = session_client.post("/api/private-message", json={"message": "hi"}, headers={"X-CSRF-Token": anon})
        assert resp.status_code == 403

    def test_readable_sessions_cannot_write(self, readable_session_client: TestClient) -> None:
        _login(readable_session_client, "alice", "alice123")
        resp = readable_session_client.post(
            "/api/private-message",
            json={"message": "hi"},
            headers={"X-CSRF-Token": "guess"},
        )
        assert resp.status_code == 403

    def test_token_strategy_needs_only_bearer(self, token_client: TestClient) -> None:
        token = _login(token_client, "alice", "alice123").json()["token"]
        resp = token_client.post(
            "/api/private-message",
            json={"message": "hi"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 200

    def test_non_string_message_accepted(self, token_client: TestClient) -> None:
        token = _login(token_client, "alice", "alice123").json()["token"]
        resp = token_client.post(
            "/api/private-message",
            json={"message": {"nested": True}},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 200

    def test_token_strategy_without_bearer(self, token_client: TestClient) -> None:
        resp = token_client.post("/api/private-message", json={"message": "hi"})
        assert resp.status_code == 401
