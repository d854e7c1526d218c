"""
Durable cache tier

A DurableStore is any keyed store exposing get(key) and put(key, value, ttl)
for JSON-serializable dictionaries. Two implementations ship:

    SQLiteStore  - one table in a local SQLite file, rows expire by timestamp
    NullStore    - stores nothing, for running without persistence

Schema:
    lyrics_cache(key TEXT PRIMARY KEY, value TEXT, inserted_at REAL, expires_at REAL)

Every SQLite failure is raised as CacheUnavailableError; the cache layer
decides what to do with it.
"""

import json
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from ..utils.exceptions import CacheUnavailableError


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS lyrics_cache (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    inserted_at REAL NOT NULL,
    expires_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_lyrics_cache_expires ON lyrics_cache(expires_at);
"""


class DurableStore:
    """Interface for the durable cache tier"""

    name = "durable"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def put(self, key: str, value: Dict[str, Any], ttl: float) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> int:
        raise NotImplementedError

    def purge_expired(self) -> int:
        return 0

    def count(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        pass


class NullStore(DurableStore):
    """Durable tier that keeps nothing"""

    name = "none"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return None

    def put(self, key: str, value: Dict[str, Any], ttl: float) -> None:
        pass

    def delete(self, key: str) -> None:
        pass

    def clear(self) -> int:
        return 0

    def count(self) -> int:
        return 0


class SQLiteStore(DurableStore):
    """
    Thread-safe SQLite durable store

    Uses a single persistent connection with a lock; every public method
    acquires self._lock before touching it.
    """

    name = "sqlite"

    def __init__(self, db_path: Path, clock=None) -> None:
        self.db_path = Path(db_path)
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock, self._get_connection() as conn:
                conn.executescript(_SCHEMA_SQL)
        except (OSError, sqlite3.Error) as e:
            raise CacheUnavailableError(
                f"Failed to initialize cache database: {e}",
                details={'path': str(self.db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Persistent connection, created on first use and committed after each block"""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), timeout=10.0, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode = WAL")
        yield self._conn
        self._conn.commit()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            with self._lock, self._get_connection() as conn:
                row = conn.execute(
                    "SELECT value, expires_at FROM lyrics_cache WHERE key = ?", (key,)
                ).fetchone()
                if row is None:
                    return None
                if row[1] <= self._clock():
                    conn.execute("DELETE FROM lyrics_cache WHERE key = ?", (key,))
                    return None
                return json.loads(row[0])
        except (sqlite3.Error, ValueError) as e:
            raise CacheUnavailableError(f"Cache read failed: {e}", details={'key': key}) from e

    def put(self, key: str, value: Dict[str, Any], ttl: float) -> None:
        now = self._clock()
        try:
            payload = json.dumps(value, ensure_ascii=False)
            with self._lock, self._get_connection() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO lyrics_cache (key, value, inserted_at, expires_at) "
                    "VALUES (?, ?, ?, ?)",
                    (key, payload, now, now + ttl)
                )
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise CacheUnavailableError(f"Cache write failed: {e}", details={'key': key}) from e

    def delete(self, key: str) -> None:
        try:
            with self._lock, self._get_connection() as conn:
                conn.execute("DELETE FROM lyrics_cache WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise CacheUnavailableError(f"Cache delete failed: {e}", details={'key': key}) from e

    def clear(self) -> int:
        """Delete every row and return how many were removed"""
        try:
            with self._lock, self._get_connection() as conn:
                return conn.execute("DELETE FROM lyrics_cache").rowcount
        except sqlite3.Error as e:
            raise CacheUnavailableError(f"Cache clear failed: {e}") from e

    def purge_expired(self) -> int:
        """Delete expired rows and return how many were removed"""
        try:
            with self._lock, self._get_connection() as conn:
                return conn.execute(
                    "DELETE FROM lyrics_cache WHERE expires_at <= ?", (self._clock(),)
                ).rowcount
        except sqlite3.Error as e:
            raise CacheUnavailableError(f"Cache purge failed: {e}") from e

    def count(self) -> int:
        try:
            with self._lock, self._get_connection() as conn:
                return conn.execute(
                    "SELECT COUNT(*) FROM lyrics_cache WHERE expires_at > ?", (self._clock(),)
                ).fetchone()[0]
        except sqlite3.Error as e:
            raise CacheUnavailableError(f"Cache count failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
