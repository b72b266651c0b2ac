#!/usr/bin/env python3
"""CLI: Import a legacy flat JSON list of ideas into the SQLite store."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from sparkgarden import config
from sparkgarden.storage.sqlite_store import SqliteStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Import legacy ideas into SQLite")
    parser.add_argument(
        "--legacy-path",
        type=Path,
        default=config.LEGACY_IDEAS_PATH,
        help=f"Legacy JSON export (default: {config.LEGACY_IDEAS_PATH})",
    )
    args = parser.parse_args()

    store = SqliteStore(config.SQLITE_PATH)
    store.init_db()

    before = store.count()
    if store.migrate_legacy(args.legacy_path):
        print(f"Imported {store.count()} idea(s) into {config.SQLITE_PATH}")
    elif before > 0:
        print(f"Store already holds {before} idea(s); nothing imported.")
    else:
        print(f"Nothing to import from {args.legacy_path}.")


if __name__ == "__main__":
    main()
