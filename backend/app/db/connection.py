"""SQLite connection factory for the durable local cache.

Provides configured connections with:
- sqlite3.Row row factory (dict-like access)
- a busy timeout so a second process reading the cache does not fail fast
"""
import sqlite3
from pathlib import Path

MEMORY_DB = ":memory:"


def get_connection(db_path: str, timeout: float = 5.0) -> sqlite3.Connection:
    """Return a configured SQLite connection.

    Args:
        db_path: Path to the SQLite database file, or ``:memory:``. Parent
                 directories are created if they do not exist.
        timeout: Seconds to wait on a locked database.

    Note:
        The connection does not auto-close; callers must close it.
    """
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=timeout, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn
