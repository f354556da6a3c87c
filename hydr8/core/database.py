"""
SQLite document store.
Schema: documents (one JSON payload per named key).

Keys in use: WaterLogs, RiskEntries, UserProfile, RiskThrottle.
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

from hydr8.config import DB_PATH

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    key         TEXT    PRIMARY KEY,
    payload     TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL
);
"""

WATER_LOGS_KEY = "WaterLogs"
RISK_ENTRIES_KEY = "RiskEntries"
USER_PROFILE_KEY = "UserProfile"
RISK_THROTTLE_KEY = "RiskThrottle"


class DocumentStore:
    """Key -> JSON text store on a single SQLite file."""

    def __init__(self, path: Path = DB_PATH):
        self.path = Path(path)
        self._local = threading.local()

    def get_connection(self) -> sqlite3.Connection:
        """Thread-local SQLite connection with WAL mode."""
        if getattr(self._local, "conn", None) is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), check_same_thread=False, timeout=5.0)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA_SQL)
            self._local.conn = conn
        return self._local.conn

    @contextmanager
    def db_cursor(self):
        """Yield a cursor, auto-commit on success, rollback on error."""
        conn = self.get_connection()
        cur = conn.cursor()
        try:
            yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def init_db(self):
        """Open the connection (creates the schema) and report the location."""
        self.get_connection()
        print("[hydr8-db] Document store initialized at", self.path, flush=True)

    def close(self):
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    # --- CRUD helpers ---

    def get(self, key: str) -> Optional[str]:
        with self.db_cursor() as cur:
            cur.execute("SELECT payload FROM documents WHERE key=?", (key,))
            row = cur.fetchone()
            return row["payload"] if row else None

    def put(self, key: str, payload: str) -> None:
        with self.db_cursor() as cur:
            cur.execute(
                """INSERT INTO documents (key, payload, updated_at) VALUES (?,?,?)
                   ON CONFLICT(key) DO UPDATE SET
                       payload=excluded.payload, updated_at=excluded.updated_at""",
                (key, payload, datetime.now().isoformat()),
            )

    def delete(self, key: str) -> bool:
        with self.db_cursor() as cur:
            cur.execute("DELETE FROM documents WHERE key=?", (key,))
            return cur.rowcount > 0

    def keys(self) -> list[str]:
        with self.db_cursor() as cur:
            cur.execute("SELECT key FROM documents ORDER BY key")
            return [r["key"] for r in cur.fetchall()]
