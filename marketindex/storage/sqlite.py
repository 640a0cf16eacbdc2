"""SQLite backend: documents kept as JSON text in a key/value table."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, UTC
from pathlib import Path

from .base import DEFAULT_OUTPUT_DIR, AnalyticsNotFoundError, AnalyticsStorage

logger = logging.getLogger(__name__)


class SqliteStorage(AnalyticsStorage):
    """SQLite database holding the latest version of each analytics document."""

    name = "sqlite"

    def __init__(self, db_path: Path | None = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_OUTPUT_DIR / "analytics.db"
        self._init_db()

    def _init_db(self):
        """Initialize the database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    key TEXT PRIMARY KEY,
                    body TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def read_document(self, key: str) -> dict:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE key = ?",
                (key,),
            ).fetchone()

        if row is None:
            raise AnalyticsNotFoundError(f"No document '{key}' in {self.db_path}")
        return json.loads(row[0])

    def write_document(self, key: str, data: dict) -> None:
        now = datetime.now(UTC).isoformat()
        body = json.dumps(data, ensure_ascii=False)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO documents (key, body, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at
                """,
                (key, body, now),
            )
            conn.commit()

        logger.info(f"Saved '{key}' to {self.db_path}")

