import datetime
import json
import sqlite3

import pytest

from deploy_tracker.errors import StoreError
from deploy_tracker.ingest import build_event, url_hash
from deploy_tracker.store import EventStore

URL = "https://github.com/a/b"


def when(year, month):
    return datetime.datetime(year, month, 15, tzinfo=datetime.timezone.utc)


def test_insert_keeps_full_document(store, db_path):
    event = build_event({"repository_url": URL, "application_name": "x"}, now=when(2024, 5))
    row_id = store.insert(event)

    conn = sqlite3.connect(db_path)
    try:
        document = conn.execute("SELECT document FROM events WHERE id = ?", (row_id,)).fetchone()[0]
    finally:
        conn.close()

    assert json.loads(document) == {
        "date_received": "2024-05-15T00:00:00.000Z",
        "repository_url": URL,
        "repository_url_hash": url_hash(URL),
        "application_name": "x",
    }


def test_group_levels_truncate_and_sum(store, seed):
    seed(when(2024, 1), repository_url=URL)
    seed(when(2024, 1), repository_url=URL)
    seed(when(2024, 2), repository_url=URL)
    seed(when(2025, 1), repository_url=URL)

    assert store.query_grouped("by_repo", group_level=3) == [
        ((URL, 2024, 1), 2),
        ((URL, 2024, 2), 1),
        ((URL, 2025, 1), 1),
    ]
    assert store.query_grouped("by_repo", group_level=2) == [((URL, 2024), 3), ((URL, 2025), 1)]
    assert store.query_grouped("by_repo", group_level=1) == [((URL,), 4)]


def test_null_keys_sort_first(store, seed):
    seed(when(2024, 1), repository_url="https://z.example/repo")
    seed(when(2024, 1))

    keys = [row.key for row in store.query_grouped("by_repo", group_level=3)]

    assert keys == [(None, 2024, 1), ("https://z.example/repo", 2024, 1)]


def test_key_prefix_bounds_the_range(store, seed):
    seed(when(2024, 1), repository_url=URL)
    seed(when(2024, 3), repository_url="https://github.com/other/repo")

    rows = store.query_grouped("by_repo_hash", group_level=4, key_prefix=(url_hash(URL),))

    assert rows == [((url_hash(URL), URL, 2024, 1), 1)]


def test_empty_store_returns_no_rows(store):
    assert store.query_grouped("by_repo_hash", group_level=1, key_prefix=("nope",)) == []


@pytest.mark.parametrize("kwargs", [
    {"group_level": 0},
    {"group_level": 5},
    {"group_level": 1, "key_prefix": ("a", "b", "c", "d", "e")},
])
def test_rejects_bad_query_shapes(store, kwargs):
    with pytest.raises(ValueError):
        store.query_grouped("by_repo_hash", **kwargs)


def test_rejects_unknown_view(store):
    with pytest.raises(ValueError):
        store.query_grouped("by_app", group_level=1)


def test_insert_failure_raises_store_error(tmp_path):
    store = EventStore(str(tmp_path / "events.db"))
    conn = sqlite3.connect(store.db_path)
    conn.execute("DROP TABLE events")
    conn.commit()
    conn.close()

    with pytest.raises(StoreError):
        store.insert(build_event({"application_name": "x"}))
