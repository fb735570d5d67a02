"""
Key-value storage backends.
The registry keeps its whole state as one string value, so a store only
needs get/put/delete. SQLite is used when running, memory for tests.
"""
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Generator, Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract key-value store interface"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get value by key, None if absent"""
        pass

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Insert or replace value"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete key (no error if absent)"""
        pass


class MemoryStore(KeyValueStore):
    """In-memory store implementation"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteStore(KeyValueStore):
    """SQLite-backed store, one row per key"""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection context manager"""
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def get(self, key: str) -> Optional[str]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def put(self, key: str, value: str) -> None:
        now = datetime.now().isoformat()
        with self._get_conn() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, now)
            )
        logger.debug(f"Stored {key} ({len(value)} bytes)")

    def delete(self, key: str) -> None:
        with self._get_conn() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
