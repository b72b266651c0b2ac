#!/usr/bin/env python3
"""CLI: Run the SparkGarden API server."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

import uvicorn

from sparkgarden import config


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the SparkGarden API server")
    parser.add_argument("--host", default=config.HOST, help=f"Bind address (default: {config.HOST})")
    parser.add_argument("--port", type=int, default=config.PORT, help=f"Port (default: {config.PORT})")
    parser.add_argument("--reload", action="store_true", help="Reload on source changes")
    args = parser.parse_args()

    if not config.GEMINI_API_KEY:
        print("Warning: GEMINI_API_KEY is not set; model calls will fail.", file=sys.stderr)

    if args.reload:
        # uvicorn needs an import string to re-import the app on reload
        uvicorn.run("sparkgarden.api.server:app", host=args.host, port=args.port, reload=True)
    else:
        from sparkgarden.api.server import app

        uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
