# src/pipeline/service.py
# Facade exposed to the HTTP endpoints and the CLI
# ================================================

"""
``BlogScoutService`` wires the pipeline together:

    classify -> resolve -> acquire -> store publication -> merge articles

Nothing is written until acquisition has succeeded, so a rejected or
unreachable URL leaves no trace in the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

import httpx

from config.settings import RETENTION_CONFIG
from src.collectors.engine import AcquisitionEngine
from src.collectors.fetcher import FetchResult
from src.contracts import ArticleRecord, PublicationRecord
from src.storage.ingestion import IngestionStore
from src.storage.record_store import RecordStore, create_record_store
from src.utils.datetime_utils import utcnow
from src.utils.logger import get_logger
from src.utils.url_canonicalizer import ensure_scheme

from .classifier import SourceClassifier, Verdict
from .date_resolver import DateResolver, get_date_resolver
from .errors import ClassificationRejected, FetchError, PublicationNotFound
from .resolver import SourceResolver
from .scheduler import RefreshReport, RefreshScheduler


@dataclass
class IngestResult:
    publication: PublicationRecord
    added_count: int
    created: bool


class BlogScoutService:
    def __init__(
        self,
        record_store: Optional[RecordStore] = None,
        *,
        engine: Optional[AcquisitionEngine] = None,
        classifier: Optional[SourceClassifier] = None,
        resolver: Optional[SourceResolver] = None,
        date_resolver: Optional[DateResolver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_articles: Optional[int] = None,
        cooldown_minutes: Optional[float] = None,
        max_concurrent_refreshes: Optional[int] = None,
    ):
        self.date_resolver = date_resolver or get_date_resolver()
        self.store = IngestionStore(
            record_store if record_store is not None else create_record_store(),
            limit=max_articles if max_articles is not None else RETENTION_CONFIG.get("max_articles", 50),
        )
        self.engine = engine or AcquisitionEngine(
            transport=transport, date_resolver=self.date_resolver
        )
        self.classifier = classifier or SourceClassifier()
        self.resolver = resolver or SourceResolver()
        self.scheduler = RefreshScheduler(
            self.engine,
            self.store,
            cooldown_minutes=cooldown_minutes,
            max_concurrent=max_concurrent_refreshes,
        )
        self.logger = get_logger().create_module_logger("pipeline.service")

    # Ingestion
    # =========

    async def ingest(self, url: str, *, now: Optional[datetime] = None) -> IngestResult:
        """
        Track the publication behind ``url`` and pull its latest articles.

        Raises ``ClassificationRejected``, ``FetchError`` or ``NoContentFound``;
        resubmitting a known publication returns it unchanged.
        """
        submitted = ensure_scheme(url or "")
        verdict = self.classifier.classify(submitted)
        if verdict is Verdict.BLOCKED:
            raise ClassificationRejected(submitted, "host is not a personal publication")

        canonical = self.resolver.resolve(submitted)
        existing = self.store.find_publication_by_url(canonical)
        if existing is not None:
            self.logger.info(
                {
                    "event": "ingest.publication.exists",
                    "details": {"url": canonical, "feed_id": existing.id},
                }
            )
            return IngestResult(publication=existing, added_count=0, created=False)

        page: Optional[FetchResult] = None
        if verdict is Verdict.CHECK_CONTENT:
            page = await self._check_content(canonical)

        result = await self.engine.acquire(canonical, page=page)

        stamp = now or utcnow()
        record = PublicationRecord.from_draft(
            result.publication, created_at=stamp, original_url=submitted
        )
        publication, created = await self.store.add_publication(record)
        merge_result = await self.store.ingest(publication.id, result.articles, now=stamp)

        self.logger.info(
            {
                "event": "ingest.completed",
                "details": {
                    "url": canonical,
                    "feed_id": publication.id,
                    "strategy": result.strategy,
                    "added": merge_result.added_count,
                    "created": created,
                },
            }
        )
        return IngestResult(
            publication=publication, added_count=merge_result.added_count, created=created
        )

    async def _check_content(self, canonical: str) -> Optional[FetchResult]:
        try:
            page = await self.engine.fetch_page(canonical)
        except FetchError as exc:
            # acquisition still probes feed endpoints blindly
            self.logger.info(
                {
                    "event": "ingest.content_check.skipped",
                    "details": {"url": canonical, "error": str(exc)},
                }
            )
            return None
        if not self.classifier.classify_content(page.text, url=canonical):
            raise ClassificationRejected(canonical, "page does not look like a blog")
        return page

    # Refresh
    # =======

    async def refresh_due(self, force: bool = False, *, now: Optional[datetime] = None) -> RefreshReport:
        return await self.scheduler.run(force=force, now=now)

    def due_publications(self, now: Optional[datetime] = None) -> List[PublicationRecord]:
        return self.scheduler.due_publications(now)

    # Queries
    # =======

    def list_publications(self) -> List[PublicationRecord]:
        return sorted(self.store.load_publications(), key=lambda p: p.created_at)

    def list_articles(
        self,
        publication_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ArticleRecord], int]:
        return self.store.list_articles(publication_id, limit=limit, offset=offset)

    # Mutations
    # =========

    async def delete_feed(self, publication_id: str) -> int:
        removed = await self.store.delete_publication(publication_id)
        if removed is None:
            raise PublicationNotFound(publication_id)
        self.logger.info(
            {
                "event": "feed.deleted",
                "details": {"feed_id": publication_id, "removed_articles": removed},
            }
        )
        return removed

    async def backfill_missing_dates(self) -> int:
        """Give every article without a usable ``published_at`` an effective date."""
        articles = self.store.load_articles()
        repaired = 0
        for article in articles:
            if article.published_at is not None:
                continue
            article.published_at = self.date_resolver.resolve_effective(
                url=article.url,
                body_text=article.content or article.excerpt,
                now=article.created_at,
            )
            repaired += 1
        if repaired:
            await self.store.replace_articles(articles)
        self.logger.info({"event": "dates.backfill.completed", "details": {"repaired": repaired}})
        return repaired


__all__ = ["BlogScoutService", "IngestResult"]
