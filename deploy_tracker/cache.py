# deploy_tracker/cache.py
import sqlite3
import time
from typing import Callable, Optional, Protocol

from deploy_tracker.errors import CacheError


class ReputationCache(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set_with_ttl(self, key: str, value: str, ttl: int) -> None:
        ...


class SQLiteTTLCache:
    """Shared key-value cache whose entries expire after a per-entry TTL.

    Entries are immutable once written and replaced wholesale on refresh, so
    concurrent readers never see a partial value. Expired rows are treated as
    absent and are overwritten by the next ``set_with_ttl`` for the key.
    """

    def __init__(self, db_path: str, clock: Callable[[], float] = time.time):
        self.db_path = db_path
        self.clock = clock
        self._init_db()

    def _get_db_connection(self):
        return sqlite3.connect(self.db_path, check_same_thread=False)

    def _init_db(self):
        conn = self._get_db_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    expires_at REAL NOT NULL
                );
            """)
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = self._get_db_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT value FROM cache_entries WHERE key = ? AND expires_at > ?",
                (key, self.clock()),
            )
            row = cursor.fetchone()
            return row[0] if row else None
        except sqlite3.Error as e:
            raise CacheError(f"cache read for {key} failed: {e}") from e
        finally:
            conn.close()

    def set_with_ttl(self, key: str, value: str, ttl: int) -> None:
        conn = self._get_db_connection()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO cache_entries (key, value, expires_at) VALUES (?, ?, ?)",
                (key, value, self.clock() + ttl),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise CacheError(f"cache write for {key} failed: {e}") from e
        finally:
            conn.close()
