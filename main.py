#!/usr/bin/env python3
"""
AuthGate -- token and cookie-session authentication demo server.

Usage:
  python main.py
  python main.py --strategy token
  python main.py --strategy session --no-session-csrf
  python main.py --port 9002 --host 0.0.0.0

Environment variables (see core/config.py for the full list):
  AUTH_STRATEGY   "token" or "session" (default: session)
  SECRET_KEY      HS256 signing key, >= 32 chars. Generated per process if unset.

Command-line flags override environment values.
"""

import argparse

import uvicorn

from api.main import create_app
from core.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="Run the AuthGate authentication API.",
    )
    parser.add_argument(
        "--strategy",
        choices=["token", "session"],
        default=None,
        help="Authentication strategy (default: AUTH_STRATEGY or session)",
    )
    parser.add_argument(
        "--no-session-csrf",
        action="store_true",
        help="Create sessions without a session-bound CSRF secret",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    args = parser.parse_args()

    overrides: dict = {}
    if args.strategy:
        overrides["auth_strategy"] = args.strategy
    if args.no_session_csrf:
        overrides["session_csrf"] = False
    settings = get_settings().model_copy(update=overrides)

    uvicorn.run(create_app(settings), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
