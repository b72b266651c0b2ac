"""SQLite storage for idea documents."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from sparkgarden.models import Idea

logger = logging.getLogger(__name__)


class SqliteStore:
    """Keyed store of idea documents (one JSON document per idea)."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        # The API touches the store from its event loop and from test client threads
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")

    def init_db(self) -> None:
        """Create the ideas table."""
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS ideas (
                id TEXT PRIMARY KEY,
                document TEXT NOT NULL,
                updated_at INTEGER NOT NULL DEFAULT 0
            );
            CREATE INDEX IF NOT EXISTS idx_ideas_updated_at ON ideas(updated_at);
            """
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # ── Ideas ──

    def get_all(self) -> list[Idea]:
        """Return every readable stored idea in insertion order.

        A row whose document cannot be parsed is logged and skipped.
        """
        cur = self._conn.execute("SELECT id, document FROM ideas ORDER BY rowid")
        ideas: list[Idea] = []
        for row in cur.fetchall():
            try:
                ideas.append(Idea.from_dict(json.loads(row["document"])))
            except Exception:
                logger.exception("Skipping unreadable idea document %s", row["id"])
        return ideas

    def get(self, idea_id: str) -> Idea | None:
        cur = self._conn.execute("SELECT document FROM ideas WHERE id = ?", (idea_id,))
        row = cur.fetchone()
        if row is None:
            return None
        return Idea.from_dict(json.loads(row["document"]))

    def put(self, idea: Idea) -> None:
        """Insert or replace one idea document."""
        self._conn.execute(
            "INSERT OR REPLACE INTO ideas (id, document, updated_at) VALUES (?, ?, ?)",
            (idea.id, json.dumps(idea.to_dict()), idea.updated_at),
        )
        self._conn.commit()

    def put_many(self, ideas: list[Idea]) -> None:
        """Insert or replace several ideas in one transaction."""
        if not ideas:
            return
        with self._conn:
            self._conn.executemany(
                "INSERT OR REPLACE INTO ideas (id, document, updated_at) VALUES (?, ?, ?)",
                [(i.id, json.dumps(i.to_dict()), i.updated_at) for i in ideas],
            )

    def count(self) -> int:
        cur = self._conn.execute("SELECT COUNT(*) FROM ideas")
        return cur.fetchone()[0]

    # ── Legacy import ──

    def migrate_legacy(self, legacy_path: Path) -> bool:
        """Import a flat JSON array of ideas, but only into an empty store.

        Returns True if anything was imported. Failures are logged and
        reported as False so startup can continue.
        """
        try:
            if self.count() > 0:
                return False
            if not legacy_path.is_file():
                return False
            data = json.loads(legacy_path.read_text())
            if not isinstance(data, list) or not data:
                return False
            ideas = [Idea.from_dict(d) for d in data]
            logger.info("Migrating %d idea(s) from %s", len(ideas), legacy_path)
            self.put_many(ideas)
            return True
        except Exception:
            logger.exception("Legacy migration from %s failed", legacy_path)
            return False
