import json
from datetime import datetime, timezone

import pytest

from src.storage.database import DatabaseManager
from src.storage.record_store import (
    FEEDS,
    POSTS,
    CachedRecordStore,
    JsonFileRecordStore,
    SqlRecordStore,
)

CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc).isoformat()


def _feed(feed_id: str, url: str) -> dict:
    return {
        "id": feed_id,
        "title": f"Feed {feed_id}",
        "description": "",
        "url": url,
        "original_url": None,
        "created_at": CREATED,
        "last_fetched": CREATED,
        "last_updated": CREATED,
    }


def _post(post_id: str, feed_id: str, url: str) -> dict:
    return {
        "id": post_id,
        "feed_id": feed_id,
        "title": f"Post {post_id}",
        "content": "",
        "excerpt": "",
        "author": None,
        "published_at": CREATED,
        "url": url,
        "image_url": None,
        "created_at": CREATED,
    }


@pytest.fixture(params=["json", "sql"])
def store(request, tmp_path):
    if request.param == "json":
        yield JsonFileRecordStore(tmp_path / "data")
        return
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'records.db'}")
    yield SqlRecordStore(db_manager=manager)
    manager.dispose()


def test_empty_store_reads_nothing(store) -> None:
    assert store.read_all(FEEDS) == []
    assert store.read_all(POSTS) == []


def test_upsert_inserts_then_replaces(store) -> None:
    store.upsert(FEEDS, _feed("a", "https://a.example"))
    updated = _feed("a", "https://a.example")
    updated["title"] = "Renamed"
    store.upsert(FEEDS, updated)

    records = store.read_all(FEEDS)
    assert len(records) == 1
    assert records[0]["title"] == "Renamed"
    assert records[0]["created_at"].startswith("2024-05-01T12:00:00")


def test_write_all_replaces_contents(store) -> None:
    store.upsert(FEEDS, _feed("a", "https://a.example"))
    store.write_all(
        POSTS,
        [_post("1", "a", "https://a.example/p/1"), _post("2", "a", "https://a.example/p/2")],
    )
    store.write_all(POSTS, [_post("2", "a", "https://a.example/p/2")])
    assert [record["id"] for record in store.read_all(POSTS)] == ["2"]


def test_delete_by_key(store) -> None:
    store.upsert(FEEDS, _feed("a", "https://a.example"))
    assert store.delete_by_key(FEEDS, "a") is True
    assert store.delete_by_key(FEEDS, "a") is False
    assert store.read_all(FEEDS) == []


def test_unknown_kind_is_rejected(store) -> None:
    with pytest.raises(ValueError):
        store.read_all("comments")


def test_json_store_degrades_on_corrupt_file(tmp_path) -> None:
    store = JsonFileRecordStore(tmp_path)
    (tmp_path / "posts.json").write_text("{broken", encoding="utf-8")
    assert store.read_all(POSTS) == []


def test_json_store_writes_pretty_arrays(tmp_path) -> None:
    store = JsonFileRecordStore(tmp_path)
    store.upsert(FEEDS, _feed("a", "https://a.example"))
    payload = json.loads((tmp_path / "feeds.json").read_text(encoding="utf-8"))
    assert isinstance(payload, list) and payload[0]["id"] == "a"
    assert not list(tmp_path.glob(".*.tmp"))


def test_sql_store_cascades_posts_with_their_feed(tmp_path) -> None:
    store = SqlRecordStore(f"sqlite:///{tmp_path / 'cascade.db'}")
    store.upsert(FEEDS, _feed("a", "https://a.example"))
    store.write_all(POSTS, [_post("1", "a", "https://a.example/p/1")])
    store.delete_by_key(FEEDS, "a")
    assert store.read_all(POSTS) == []


class CountingStore:
    def __init__(self):
        self.records = {FEEDS: [], POSTS: []}
        self.reads = 0

    def read_all(self, kind):
        self.reads += 1
        return [dict(record) for record in self.records[kind]]

    def write_all(self, kind, records):
        self.records[kind] = [dict(record) for record in records]

    def upsert(self, kind, record):
        self.records[kind] = [r for r in self.records[kind] if r["id"] != record["id"]] + [record]

    def delete_by_key(self, kind, key):
        before = len(self.records[kind])
        self.records[kind] = [r for r in self.records[kind] if r["id"] != key]
        return len(self.records[kind]) != before


def test_cache_serves_reads_within_ttl_and_invalidates_on_write() -> None:
    clock = {"now": 0.0}
    inner = CountingStore()
    cache = CachedRecordStore(inner, ttl_seconds=30, clock=lambda: clock["now"])

    cache.read_all(FEEDS)
    cache.read_all(FEEDS)
    assert inner.reads == 1

    clock["now"] = 31.0
    cache.read_all(FEEDS)
    assert inner.reads == 2

    cache.upsert(FEEDS, _feed("a", "https://a.example"))
    assert [record["id"] for record in cache.read_all(FEEDS)] == ["a"]
    assert inner.reads == 3


def test_cache_returns_copies() -> None:
    inner = CountingStore()
    inner.records[FEEDS] = [_feed("a", "https://a.example")]
    cache = CachedRecordStore(inner, ttl_seconds=30, clock=lambda: 0.0)
    first = cache.read_all(FEEDS)
    first[0]["title"] = "mutated"
    assert cache.read_all(FEEDS)[0]["title"] == "Feed a"


def test_cache_disabled_with_zero_ttl() -> None:
    inner = CountingStore()
    cache = CachedRecordStore(inner, ttl_seconds=0)
    cache.read_all(POSTS)
    cache.read_all(POSTS)
    assert inner.reads == 2


def test_deleting_a_feed_invalidates_cached_posts() -> None:
    inner = CountingStore()
    cache = CachedRecordStore(inner, ttl_seconds=30, clock=lambda: 0.0)
    cache.read_all(POSTS)
    cache.delete_by_key(FEEDS, "a")
    cache.read_all(POSTS)
    assert inner.reads == 2
