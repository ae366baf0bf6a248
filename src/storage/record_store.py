# src/storage/record_store.py
# Key-value-like persistence for publication and article records
# ==============================================================

"""
The pipeline only needs four operations per record kind (``feeds`` and
``posts``): read everything, replace everything, upsert one record and
delete one record by key. Records are plain JSON-ready dicts keyed by
``id``.

Backends:

- ``JsonFileRecordStore``: ``feeds.json``/``posts.json`` in the data dir.
- ``SqlRecordStore``: the ``publications``/``articles`` tables.
- ``CachedRecordStore``: read-through TTL cache wrapping either of them.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from config.settings import STORAGE_CONFIG
from src.utils.datetime_utils import parse_to_utc
from src.utils.logger import get_logger

from .database import DatabaseManager
from .models import MODELS_BY_KIND

Record = Dict[str, Any]

FEEDS = "feeds"
POSTS = "posts"
RECORD_KINDS = (FEEDS, POSTS)
KEY_FIELD = "id"

_DATETIME_FIELDS = {
    FEEDS: ("created_at", "last_fetched", "last_updated"),
    POSTS: ("published_at", "created_at"),
}


def _check_kind(kind: str) -> None:
    if kind not in RECORD_KINDS:
        raise ValueError(f"Unknown record kind: {kind!r}")


class RecordStore(Protocol):
    """Persistence contract consumed by the ingestion pipeline."""

    def read_all(self, kind: str) -> List[Record]:
        ...

    def write_all(self, kind: str, records: List[Record]) -> None:
        ...

    def upsert(self, kind: str, record: Record) -> None:
        ...

    def delete_by_key(self, kind: str, key: str) -> bool:
        ...


# Flat JSON files
# ===============


class JsonFileRecordStore:
    """One pretty-printed JSON array per kind, rewritten atomically."""

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir or STORAGE_CONFIG["data_dir"])
        self.logger = get_logger().create_module_logger("storage.json_store")
        self._lock = threading.RLock()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for kind in RECORD_KINDS:
            path = self._path(kind)
            if not path.exists():
                self._write_file(path, [])

    def _path(self, kind: str) -> Path:
        return self.data_dir / f"{kind}.json"

    def read_all(self, kind: str) -> List[Record]:
        _check_kind(kind)
        path = self._path(kind)
        with self._lock:
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                self.logger.error(
                    {
                        "event": "store.read.failed",
                        "details": {"kind": kind, "path": str(path), "error": str(exc)},
                    }
                )
                return []
        if not isinstance(data, list):
            self.logger.error(
                {"event": "store.read.invalid", "details": {"kind": kind, "path": str(path)}}
            )
            return []
        return [record for record in data if isinstance(record, dict)]

    def write_all(self, kind: str, records: List[Record]) -> None:
        _check_kind(kind)
        with self._lock:
            self._write_file(self._path(kind), list(records))

    def upsert(self, kind: str, record: Record) -> None:
        _check_kind(kind)
        with self._lock:
            records = self.read_all(kind)
            for index, existing in enumerate(records):
                if existing.get(KEY_FIELD) == record[KEY_FIELD]:
                    records[index] = dict(record)
                    break
            else:
                records.append(dict(record))
            self.write_all(kind, records)

    def delete_by_key(self, kind: str, key: str) -> bool:
        _check_kind(kind)
        with self._lock:
            records = self.read_all(kind)
            remaining = [record for record in records if str(record.get(KEY_FIELD)) != str(key)]
            if len(remaining) == len(records):
                return False
            self.write_all(kind, remaining)
            return True

    def _write_file(self, path: Path, records: List[Record]) -> None:
        payload = json.dumps(records, indent=2, ensure_ascii=False, default=str)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except Exception as exc:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            self.logger.error(
                {"event": "store.write.failed", "details": {"path": str(path), "error": str(exc)}}
            )
            raise


# Relational tables
# =================


class SqlRecordStore:
    """Records mapped onto the SQLAlchemy ``publications``/``articles`` tables."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        *,
        db_manager: Optional[DatabaseManager] = None,
    ):
        self.db = db_manager or DatabaseManager(database_url)
        self.logger = get_logger().create_module_logger("storage.sql_store")

    @staticmethod
    def _to_columns(kind: str, record: Record) -> Record:
        model = MODELS_BY_KIND[kind]
        columns = {column.name for column in model.__table__.columns}
        values = {key: value for key, value in record.items() if key in columns}
        for field in _DATETIME_FIELDS[kind]:
            if field in values and isinstance(values[field], str):
                values[field] = parse_to_utc(values[field])
        if KEY_FIELD in values:
            values[KEY_FIELD] = str(values[KEY_FIELD])
        return values

    def read_all(self, kind: str) -> List[Record]:
        _check_kind(kind)
        model = MODELS_BY_KIND[kind]
        with self.db.get_session() as session:
            return [row.to_dict() for row in session.query(model).all()]

    def write_all(self, kind: str, records: List[Record]) -> None:
        _check_kind(kind)
        model = MODELS_BY_KIND[kind]
        keep = {str(record[KEY_FIELD]) for record in records}
        with self.db.get_session() as session:
            stale = session.query(model).filter(~model.id.in_(keep)) if keep else session.query(model)
            for row in stale.all():
                session.delete(row)
            session.flush()
            for record in records:
                session.merge(model(**self._to_columns(kind, record)))

    def upsert(self, kind: str, record: Record) -> None:
        _check_kind(kind)
        model = MODELS_BY_KIND[kind]
        with self.db.get_session() as session:
            session.merge(model(**self._to_columns(kind, record)))

    def delete_by_key(self, kind: str, key: str) -> bool:
        _check_kind(kind)
        model = MODELS_BY_KIND[kind]
        with self.db.get_session() as session:
            row = session.get(model, str(key))
            if row is None:
                return False
            session.delete(row)
            return True


# Read-through cache
# ==================


class CachedRecordStore:
    """
    TTL snapshot cache in front of another store.

    Reads within ``ttl_seconds`` of the previous read return a copy of the
    cached snapshot; every write invalidates. Deleting a feed also drops the
    cached posts, since backends may cascade.
    """

    def __init__(
        self,
        inner: RecordStore,
        ttl_seconds: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.inner = inner
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else STORAGE_CONFIG.get("cache_ttl_seconds", 30)
        )
        self._clock = clock
        self._cache: Dict[str, Tuple[float, List[Record]]] = {}
        self._lock = threading.RLock()

    def read_all(self, kind: str) -> List[Record]:
        if self.ttl_seconds <= 0:
            return self.inner.read_all(kind)
        with self._lock:
            cached = self._cache.get(kind)
            now = self._clock()
            if cached is not None and now < cached[0]:
                return [dict(record) for record in cached[1]]
            records = self.inner.read_all(kind)
            self._cache[kind] = (now + self.ttl_seconds, [dict(record) for record in records])
            return records

    def write_all(self, kind: str, records: List[Record]) -> None:
        with self._lock:
            self.invalidate(kind)
            self.inner.write_all(kind, records)

    def upsert(self, kind: str, record: Record) -> None:
        with self._lock:
            self.invalidate(kind)
            self.inner.upsert(kind, record)

    def delete_by_key(self, kind: str, key: str) -> bool:
        with self._lock:
            self.invalidate(kind)
            if kind == FEEDS:
                self.invalidate(POSTS)
            return self.inner.delete_by_key(kind, key)

    def invalidate(self, kind: Optional[str] = None) -> None:
        with self._lock:
            if kind is None:
                self._cache.clear()
            else:
                self._cache.pop(kind, None)


def create_record_store(config: Optional[Dict[str, Any]] = None) -> RecordStore:
    """Build the configured backend wrapped in the read-through cache."""
    config = config or STORAGE_CONFIG
    if config.get("backend", "json") == "sql":
        inner: RecordStore = SqlRecordStore(config.get("database_url"))
    else:
        inner = JsonFileRecordStore(config.get("data_dir"))
    return CachedRecordStore(inner, config.get("cache_ttl_seconds", 30))


__all__ = [
    "CachedRecordStore",
    "FEEDS",
    "JsonFileRecordStore",
    "POSTS",
    "RECORD_KINDS",
    "Record",
    "RecordStore",
    "SqlRecordStore",
    "create_record_store",
]
