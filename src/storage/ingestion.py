# src/storage/ingestion.py
# Dedup, merge and retention of the shared article pool
# =====================================================

"""
The article pool is global: item URLs are unique across every publication
and the store keeps only the ``limit`` most recent articles overall.

``merge`` is the pure core. ``IngestionStore`` wraps it with a record store
and an ``asyncio.Lock`` so that concurrent refreshes never interleave their
read-modify-write cycles.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from config.settings import RETENTION_CONFIG
from src.contracts import ArticleDraft, ArticleRecord, PublicationRecord
from src.utils.datetime_utils import utcnow
from src.utils.logger import get_logger
from src.utils.url_canonicalizer import canonicalize_url

from .record_store import FEEDS, POSTS, RecordStore

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class MergeResult:
    new_articles: List[ArticleRecord] = field(default_factory=list)
    final_set: List[ArticleRecord] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.new_articles)


def recency_key(article: ArticleRecord) -> Tuple[datetime, datetime]:
    """Sort key: effective date, then creation time (both descending when reversed)."""
    return (article.published_at or _EPOCH, article.created_at)


def sort_by_recency(articles: Iterable[ArticleRecord]) -> List[ArticleRecord]:
    return sorted(articles, key=recency_key, reverse=True)


def merge(
    existing: Sequence[ArticleRecord],
    incoming: Sequence[ArticleDraft],
    limit: Optional[int] = None,
    *,
    feed_id: str,
    now: Optional[datetime] = None,
) -> MergeResult:
    """
    Merge ``incoming`` drafts into ``existing`` records.

    Drafts whose URL is already stored, or repeated within the batch, are
    dropped. Survivors become records owned by ``feed_id``. The combined set
    is sorted by recency and truncated to ``limit``.
    """
    limit = limit if limit is not None else RETENTION_CONFIG.get("max_articles", 50)
    now = now or utcnow()

    seen = {canonicalize_url(article.url) for article in existing}
    new_articles: List[ArticleRecord] = []
    for draft in incoming:
        key = canonicalize_url(draft.url)
        if not key or key in seen:
            continue
        seen.add(key)
        new_articles.append(ArticleRecord.from_draft(draft, feed_id=feed_id, created_at=now))

    final_set = sort_by_recency([*existing, *new_articles])[: max(limit, 0)]
    return MergeResult(new_articles=new_articles, final_set=final_set)


class IngestionStore:
    """Single-writer facade over the record store for publications and articles."""

    def __init__(self, store: RecordStore, *, limit: Optional[int] = None):
        self.store = store
        self.limit = limit if limit is not None else RETENTION_CONFIG.get("max_articles", 50)
        self.logger = get_logger().create_module_logger("storage.ingestion")
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _writer_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    # Reads
    # =====

    def load_publications(self) -> List[PublicationRecord]:
        records = []
        for raw in self.store.read_all(FEEDS):
            try:
                records.append(PublicationRecord.model_validate(raw))
            except ValidationError as exc:
                self.logger.warning(
                    {
                        "event": "store.feed.invalid",
                        "details": {"id": raw.get("id"), "error": str(exc)},
                    }
                )
        return records

    def load_articles(self) -> List[ArticleRecord]:
        records = []
        for raw in self.store.read_all(POSTS):
            try:
                records.append(ArticleRecord.model_validate(raw))
            except ValidationError as exc:
                self.logger.warning(
                    {
                        "event": "store.post.invalid",
                        "details": {"id": raw.get("id"), "error": str(exc)},
                    }
                )
        return records

    def get_publication(self, publication_id: str) -> Optional[PublicationRecord]:
        for publication in self.load_publications():
            if publication.id == str(publication_id):
                return publication
        return None

    def find_publication_by_url(self, url: str) -> Optional[PublicationRecord]:
        for publication in self.load_publications():
            if publication.url == url:
                return publication
        return None

    def list_articles(
        self,
        feed_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ArticleRecord], int]:
        articles = self.load_articles()
        if feed_id:
            articles = [article for article in articles if article.feed_id == str(feed_id)]
        ordered = sort_by_recency(articles)
        offset = max(offset, 0)
        window = ordered[offset:] if limit is None else ordered[offset : offset + max(limit, 0)]
        return window, len(ordered)

    # Writes
    # ======

    async def add_publication(self, record: PublicationRecord) -> Tuple[PublicationRecord, bool]:
        """Store ``record`` unless its URL is already tracked (first write wins)."""
        async with self._writer_lock():
            existing = self.find_publication_by_url(record.url)
            if existing is not None:
                return existing, False
            self.store.upsert(FEEDS, record.model_dump_for_storage())
            return record, True

    async def save_publication(self, record: PublicationRecord) -> None:
        async with self._writer_lock():
            self.store.upsert(FEEDS, record.model_dump_for_storage())

    async def ingest(
        self,
        feed_id: str,
        drafts: Sequence[ArticleDraft],
        *,
        now: Optional[datetime] = None,
    ) -> MergeResult:
        """Merge ``drafts`` for ``feed_id`` into the pool and persist the retained set."""
        async with self._writer_lock():
            existing = self.load_articles()
            result = merge(existing, drafts, self.limit, feed_id=feed_id, now=now)
            if result.new_articles or len(existing) > self.limit:
                self.store.write_all(
                    POSTS, [article.model_dump_for_storage() for article in result.final_set]
                )
            self.logger.info(
                {
                    "event": "ingestion.merge.completed",
                    "details": {
                        "feed_id": feed_id,
                        "incoming": len(drafts),
                        "added": result.added_count,
                        "retained": len(result.final_set),
                    },
                }
            )
            return result

    async def replace_articles(self, articles: Sequence[ArticleRecord]) -> None:
        async with self._writer_lock():
            self.store.write_all(
                POSTS, [article.model_dump_for_storage() for article in sort_by_recency(articles)]
            )

    async def delete_publication(self, publication_id: str) -> Optional[int]:
        """
        Delete a publication and every article it owns.

        Returns the number of removed articles, or ``None`` when no such
        publication exists.
        """
        async with self._writer_lock():
            publication_id = str(publication_id)
            if not any(p.id == publication_id for p in self.load_publications()):
                return None
            articles = self.store.read_all(POSTS)
            remaining = [a for a in articles if str(a.get("feed_id")) != publication_id]
            removed = len(articles) - len(remaining)
            if removed:
                self.store.write_all(POSTS, remaining)
            self.store.delete_by_key(FEEDS, publication_id)
            return removed


__all__ = ["IngestionStore", "MergeResult", "merge", "recency_key", "sort_by_recency"]
