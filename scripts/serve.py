#!/usr/bin/env python3
"""
Run the users API under uvicorn.

Usage:
  python scripts/serve.py [--host 0.0.0.0] [--port 3000] [--data-file data/users.json] [--env prod]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import uvicorn

from users_api.app import create_app
from users_api.core.config import get_settings


def main() -> None:
    ap = argparse.ArgumentParser(description="Serve the users API")
    ap.add_argument("--host", help="Bind address (default: HOST or 127.0.0.1)")
    ap.add_argument("--port", type=int, help="Port (default: PORT or 3000)")
    ap.add_argument("--data-file", help="JSON file holding the user collection")
    ap.add_argument("--env", choices=["dev", "test", "prod"], help="Application environment")
    args = ap.parse_args()

    settings = get_settings().with_overrides(
        host=args.host,
        port=args.port,
        data_file=Path(args.data_file).expanduser() if args.data_file else None,
        app_env=args.env,
    )
    if not 0 < settings.port < 65536:
        raise SystemExit(f"Invalid port: {settings.port}")

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:  # pragma: no cover - CLI
        raise SystemExit(0)
    except Exception as exc:  # pragma: no cover - CLI
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
