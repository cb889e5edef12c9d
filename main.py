#!/usr/bin/env python3
"""
UserAuth -- account registration and JWT session service.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  ACCESS_TOKEN_SECRET   HS256 key for access tokens (>= 32 chars, required unless DEBUG=true)
  REFRESH_TOKEN_SECRET  HS256 key for refresh tokens (>= 32 chars, must differ from the above)
  DATABASE_URL          SQLAlchemy URL, default sqlite:///userauth.db
  HOST, PORT            Bind address, default 127.0.0.1:5555
  DEBUG                 true to auto-generate secrets for local development
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the UserAuth API server.")
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
