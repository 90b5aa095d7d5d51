"""SQLite key-value backend for the record store."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from inspection_drafts.errors import StorageError, StorageQuotaExceededError
from inspection_drafts.utils.time import utc_now_iso


class SqliteKeyValueStore:
    """Flat string key to JSON text mapping with an optional size quota.

    The quota is measured as the total UTF-8 size of all stored values, which
    mirrors the capacity limit of browser local storage that the record store
    layout was designed around.
    """

    def __init__(self, path: str, wal: bool = True, quota_bytes: int = 0) -> None:
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._closed = False
        self._quota_bytes = quota_bytes
        if wal and path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                size INTEGER NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        self._conn.commit()

    @property
    def quota_bytes(self) -> int:
        return self._quota_bytes

    def get(self, key: str) -> str | None:
        try:
            with self._lock:
                row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read {key!r}: {exc}") from exc
        if row is None:
            return None
        return row["value"]

    def set(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        try:
            with self._lock:
                if self._quota_bytes:
                    row = self._conn.execute(
                        "SELECT COALESCE(SUM(size), 0) AS total FROM kv WHERE key != ?", (key,)
                    ).fetchone()
                    if row["total"] + size > self._quota_bytes:
                        raise StorageQuotaExceededError(key, size, self._quota_bytes)
                self._conn.execute(
                    """
                    INSERT INTO kv (key, value, size, updated_at) VALUES (?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        size = excluded.size,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, size, utc_now_iso()),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to write {key!r}: {exc}") from exc

    def delete(self, key: str) -> bool:
        try:
            with self._lock:
                cursor = self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                self._conn.commit()
                return cursor.rowcount == 1
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to delete {key!r}: {exc}") from exc

    def total_size(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COALESCE(SUM(size), 0) AS total FROM kv").fetchone()
        return int(row["total"])

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True
