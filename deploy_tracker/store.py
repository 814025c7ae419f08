# deploy_tracker/store.py
import sqlite3
import logging
from typing import Any, List, NamedTuple, Sequence, Tuple

from deploy_tracker.errors import StoreError
from deploy_tracker.models import Event


_YEAR = "CAST(substr(date_received, 1, 4) AS INTEGER)"
_MONTH = "CAST(substr(date_received, 6, 2) AS INTEGER)"

# Grouped views over the events table. Each view is the ordered list of
# column expressions that make up its key.
VIEWS = {
    "by_repo": ("repository_url", _YEAR, _MONTH),
    "by_repo_hash": ("repository_url_hash", "repository_url", _YEAR, _MONTH),
}


class GroupedRow(NamedTuple):
    key: Tuple[Any, ...]
    value: int


class EventStore:
    """Append-only event log with grouped, key-ordered count queries."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._init_db()
        logging.info(f"Event store ready at {db_path}")

    def _get_db_connection(self):
        return sqlite3.connect(self.db_path, check_same_thread=False)

    def _init_db(self):
        conn = self._get_db_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date_received TEXT NOT NULL,
                    repository_url TEXT,
                    repository_url_hash TEXT,
                    document TEXT NOT NULL
                );
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_url_hash ON events (repository_url_hash)"
            )
            conn.commit()
        finally:
            conn.close()

    def insert(self, event: Event) -> int:
        conn = self._get_db_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO events (date_received, repository_url, repository_url_hash, document) "
                "VALUES (?, ?, ?, ?)",
                (
                    event.date_received,
                    event.repository_url,
                    event.repository_url_hash,
                    event.model_dump_json(exclude_none=True),
                ),
            )
            conn.commit()
            return cursor.lastrowid
        except sqlite3.Error as e:
            raise StoreError(f"insert failed: {e}") from e
        finally:
            conn.close()

    def query_grouped(
        self, view: str, *, group_level: int, key_prefix: Sequence[Any] = ()
    ) -> List[GroupedRow]:
        """Count events grouped by the first ``group_level`` key columns of ``view``.

        ``key_prefix`` restricts the range to keys that start with the given
        values. Rows come back ordered by key, nulls first.
        """
        if view not in VIEWS:
            raise ValueError(f"unknown view: {view}")
        columns = VIEWS[view]
        if not 1 <= group_level <= len(columns):
            raise ValueError(f"group_level must be between 1 and {len(columns)}")
        if len(key_prefix) > len(columns):
            raise ValueError("key_prefix is longer than the view key")

        key_columns = columns[:group_level]
        positions = ", ".join(str(i + 1) for i in range(group_level))
        query = f"SELECT {', '.join(key_columns)}, COUNT(*) FROM events"
        if key_prefix:
            query += " WHERE " + " AND ".join(f"{col} IS ?" for col in columns[:len(key_prefix)])
        query += f" GROUP BY {positions} ORDER BY {positions}"

        conn = self._get_db_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, list(key_prefix))
            return [GroupedRow(tuple(row[:-1]), row[-1]) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"query on {view} failed: {e}") from e
        finally:
            conn.close()
