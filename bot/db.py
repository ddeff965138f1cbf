"""
bot/db.py - SQLite storage for ladder channels.

Each channel is stored as one JSON document (LadderEngine.snapshot()).
One LadderDB per server lifetime, backed by a single SQLite file (or
:memory: for tests). Writes replace the whole table in one transaction so
a crash never leaves half a save behind.
"""

import json
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Any, Iterable


class LadderDB:
    """Thin wrapper around SQLite for channel snapshots."""

    def __init__(self, path: str = "ladder.db"):
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._write_lock = threading.Lock()
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS channels (
                channel_id TEXT PRIMARY KEY,
                document TEXT NOT NULL,
                updated_at TEXT
            );
            """
        )

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def load_all(self) -> list[dict[str, Any]]:
        """Every stored channel snapshot, ordered by channel id."""
        rows = self._conn.execute(
            "SELECT document FROM channels ORDER BY channel_id"
        ).fetchall()
        return [json.loads(row["document"]) for row in rows]

    def replace_all(self, snapshots: Iterable[dict[str, Any]]) -> int:
        """Make the table hold exactly these snapshots. Returns the row count."""
        now = _now()
        rows = [
            (str(snap["channel_id"]), json.dumps(snap, sort_keys=True), now)
            for snap in snapshots
        ]
        with self._write_lock:
            with self._conn:
                self._conn.execute("DELETE FROM channels")
                self._conn.executemany(
                    "INSERT INTO channels (channel_id, document, updated_at) VALUES (?, ?, ?)",
                    rows,
                )
        return len(rows)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def channel_count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM channels").fetchone()[0]


def _now() -> str:
    """ISO timestamp in UTC."""
    return datetime.now(timezone.utc).isoformat()
