"""Durable local key-value cache (player state, inventory backup, catalog snapshot).

Values are JSON documents. Core logic treats the cache as optional: reads
fall back to in-process defaults and failed writes are reported, not raised.
"""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from typing import Any, Protocol

from backend.app.db.connection import get_connection

logger = logging.getLogger(__name__)


class CacheWriteError(Exception):
    """Raised by a cache backend when a write cannot be made durable."""


class LocalCache(Protocol):
    def get_json(self, key: str, default: Any = None) -> Any: ...

    def set_json(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


def player_state_key(user_id: str) -> str:
    return f"player_state:{user_id}"


def inventory_key(user_id: str) -> str:
    return f"inventory:{user_id}"


def player_class_key(user_id: str) -> str:
    return f"player_class:{user_id}"


MASTER_CATALOG_KEY = "master_catalog"


class MemoryLocalCache:
    """Process-local cache; stores serialized copies so callers cannot alias."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_json(self, key: str, default: Any = None) -> Any:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        encoded = json.dumps(value, ensure_ascii=False)
        with self._lock:
            self._data[key] = encoded

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SqliteLocalCache:
    """Single-table SQLite cache: ``kv(key TEXT PRIMARY KEY, value TEXT)``."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn = get_connection(db_path)
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS kv ("
            " key TEXT PRIMARY KEY,"
            " value TEXT NOT NULL,"
            " updated_at TEXT NOT NULL DEFAULT (datetime('now'))"
            ")"
        )
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def get_json(self, key: str, default: Any = None) -> Any:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Corrupt cache entry %s; using default", key)
            return default

    def set_json(self, key: str, value: Any) -> None:
        encoded = json.dumps(value, ensure_ascii=False)
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO kv (key, value, updated_at) VALUES (?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, encoded),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheWriteError(f"Cache write failed for {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            with self._lock:
                self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheWriteError(f"Cache delete failed for {key}: {exc}") from exc


def safe_read(cache: LocalCache | None, key: str, default: Any = None) -> Any:
    """Read through an optional cache; any backend error yields ``default``."""
    if cache is None:
        return default
    try:
        return cache.get_json(key, default)
    except Exception as exc:
        logger.warning("Local cache read failed for %s: %s", key, exc)
        return default


def safe_write(cache: LocalCache | None, key: str, value: Any) -> str | None:
    """Write through an optional cache. Returns an error message, or None on success."""
    if cache is None:
        return None
    try:
        cache.set_json(key, value)
    except Exception as exc:
        logger.warning("Local cache write failed for %s: %s", key, exc)
        return str(exc)
    return None
