#!/usr/bin/env python3
"""
VaultSync -- account, token and encrypted-vault synchronization backend.

Usage:
  python main.py
  python main.py --host 127.0.0.1 --port 9000
  python main.py --reload

Environment variables (or .env):
  SECRET_KEY         Required (>= 32 chars) unless DEBUG=true.
  DEBUG              true generates a throwaway SECRET_KEY for local use.
  DATABASE_URL       SQLAlchemy URL. Default: sqlite file at the repo root.
  CLEANUP_INTERVAL   Seconds between revocation sweeps. Default 600.
  LOG_LEVEL          Default INFO.
  HOST / PORT        Default 0.0.0.0 / 8080. Overridden by --host / --port.
"""

import argparse
import sys

import uvicorn
from pydantic import ValidationError

from core.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="vaultsync",
        description="Run the VaultSync API server.",
    )
    parser.add_argument("--host", help="Bind address (default: HOST setting)")
    parser.add_argument("--port", type=int, help="Bind port (default: PORT setting)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    # Fail before uvicorn starts if SECRET_KEY is missing or too short.
    try:
        settings = get_settings()
    except (ValidationError, ValueError) as e:
        print(f"  [!] Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    uvicorn.run(
        "api.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
