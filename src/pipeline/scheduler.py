# src/pipeline/scheduler.py
# Periodic and forced refresh of tracked publications
# ===================================================

"""
A publication is ``DUE`` once its cooldown has elapsed since
``last_fetched`` (or it was never fetched), ``FRESH`` otherwise, and
``REFRESHING`` while a refresh for it is in flight. Forced runs treat every
idle publication as due.

Batch runs fan out over an ``asyncio.Semaphore``. A failing publication is
logged and reported, keeps its old ``last_fetched`` and never aborts the
batch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from config.settings import REFRESH_CONFIG
from src.contracts import UNKNOWN_BLOG_TITLE, UNKNOWN_FEED_TITLE, PublicationRecord
from src.utils.datetime_utils import ensure_utc, utcnow
from src.utils.logger import get_logger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from src.collectors.engine import AcquisitionEngine
    from src.storage.ingestion import IngestionStore, MergeResult


class RefreshState(str, Enum):
    FRESH = "fresh"
    DUE = "due"
    REFRESHING = "refreshing"


@dataclass
class RefreshReport:
    refreshed_count: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    skipped_count: int = 0
    added_count: int = 0


class RefreshScheduler:
    def __init__(
        self,
        engine: "AcquisitionEngine",
        store: "IngestionStore",
        *,
        cooldown_minutes: Optional[float] = None,
        max_concurrent: Optional[int] = None,
    ):
        self.engine = engine
        self.store = store
        self.cooldown = timedelta(
            minutes=(
                cooldown_minutes
                if cooldown_minutes is not None
                else REFRESH_CONFIG.get("cooldown_minutes", 60)
            )
        )
        self.max_concurrent = max(
            1,
            max_concurrent
            if max_concurrent is not None
            else REFRESH_CONFIG.get("max_concurrent_refreshes", 4),
        )
        self._in_flight: Set[str] = set()
        self.logger = get_logger().create_module_logger("pipeline.scheduler")

    # State
    # =====

    def state_of(
        self,
        publication: PublicationRecord,
        now: Optional[datetime] = None,
        *,
        force: bool = False,
    ) -> RefreshState:
        if publication.id in self._in_flight:
            return RefreshState.REFRESHING
        if force or publication.last_fetched is None:
            return RefreshState.DUE
        now = ensure_utc(now) if now else utcnow()
        if now - publication.last_fetched > self.cooldown:
            return RefreshState.DUE
        return RefreshState.FRESH

    def due_publications(
        self, now: Optional[datetime] = None, *, force: bool = False
    ) -> List[PublicationRecord]:
        return [
            publication
            for publication in self.store.load_publications()
            if self.state_of(publication, now, force=force) is RefreshState.DUE
        ]

    # Refresh
    # =======

    async def refresh_publication(
        self, publication: PublicationRecord, *, now: Optional[datetime] = None
    ) -> Optional["MergeResult"]:
        """
        Refresh one publication; returns ``None`` when it was already in flight.

        Acquisition errors propagate to the caller.
        """
        if publication.id in self._in_flight:
            return None
        self._in_flight.add(publication.id)
        try:
            result = await self.engine.acquire(publication.url)
            stamp = ensure_utc(now) if now else utcnow()
            if self.store.get_publication(publication.id) is None:
                # deleted while its acquisition was running
                return None
            merge_result = await self.store.ingest(publication.id, result.articles, now=stamp)
            update = {"last_fetched": stamp, "last_updated": stamp}
            if result.publication.title not in (UNKNOWN_FEED_TITLE, UNKNOWN_BLOG_TITLE):
                update["title"] = result.publication.title
            if result.publication.description:
                update["description"] = result.publication.description
            await self.store.save_publication(publication.model_copy(update=update))
            self.logger.info(
                {
                    "event": "refresh.publication.completed",
                    "details": {
                        "feed_id": publication.id,
                        "url": publication.url,
                        "strategy": result.strategy,
                        "added": merge_result.added_count,
                    },
                }
            )
            return merge_result
        finally:
            self._in_flight.discard(publication.id)

    async def run(self, force: bool = False, now: Optional[datetime] = None) -> RefreshReport:
        """Refresh every due publication (all of them when ``force``)."""
        report = RefreshReport()
        candidates = self.store.load_publications()
        due: List[PublicationRecord] = []
        for publication in candidates:
            state = self.state_of(publication, now, force=force)
            if state is RefreshState.DUE:
                due.append(publication)
            elif state is RefreshState.REFRESHING:
                report.skipped_count += 1

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def run_one(publication: PublicationRecord) -> None:
            async with semaphore:
                try:
                    merge_result = await self.refresh_publication(publication, now=now)
                except Exception as exc:  # noqa: BLE001 - isolate per-publication failures
                    report.errors.append(
                        {
                            "feed_id": publication.id,
                            "url": publication.url,
                            "error": f"{exc.__class__.__name__}: {exc}",
                        }
                    )
                    self.logger.warning(
                        {
                            "event": "refresh.publication.failed",
                            "details": {
                                "feed_id": publication.id,
                                "url": publication.url,
                                "error": str(exc),
                            },
                        }
                    )
                    return
                if merge_result is None:
                    report.skipped_count += 1
                    return
                report.refreshed_count += 1
                report.added_count += merge_result.added_count

        await asyncio.gather(*(run_one(publication) for publication in due))

        self.logger.info(
            {
                "event": "refresh.batch.completed",
                "details": {
                    "force": force,
                    "due": len(due),
                    "refreshed": report.refreshed_count,
                    "errors": len(report.errors),
                    "skipped": report.skipped_count,
                },
            }
        )
        return report


__all__ = ["RefreshReport", "RefreshScheduler", "RefreshState"]
