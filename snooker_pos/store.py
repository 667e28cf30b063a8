"""Key-value transport the ledger persists through."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

from snooker_pos.config import DB_PATH
from snooker_pos.errors import StorageFailure

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Opaque get/set storage of text blobs."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class SqliteKeyValueStore:
    """SQLite file holding one ``kv`` table of key/value text rows."""

    def __init__(self, path: str | Path = DB_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.bootstrap_schema()

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.path)

    def bootstrap_schema(self) -> None:
        """Create the kv table if it does not already exist."""
        try:
            with self._lock, self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
        except (sqlite3.Error, OSError) as exc:
            logger.error("kv bootstrap failed path=%s error=%r", self.path, exc)
            raise StorageFailure(f"Cannot open store at {self.path}: {exc}") from exc

    def get(self, key: str) -> str | None:
        try:
            with self._lock, self._connect() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except (sqlite3.Error, OSError) as exc:
            logger.error("kv read failed key=%s error=%r", key, exc)
            raise StorageFailure(f"Cannot read {key!r}: {exc}") from exc
        return None if row is None else str(row[0])

    def set(self, key: str, value: str) -> None:
        try:
            with self._lock, self._connect() as conn:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                        """,
                        (key, value),
                    )
        except (sqlite3.Error, OSError) as exc:
            logger.error("kv write failed key=%s error=%r", key, exc)
            raise StorageFailure(f"Cannot write {key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            with self._lock, self._connect() as conn:
                with conn:
                    conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except (sqlite3.Error, OSError) as exc:
            logger.error("kv delete failed key=%s error=%r", key, exc)
            raise StorageFailure(f"Cannot delete {key!r}: {exc}") from exc
