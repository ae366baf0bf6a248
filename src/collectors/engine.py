# src/collectors/engine.py
"""Orchestrates the acquisition strategy chain for one canonical URL."""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

import httpx

from config.settings import COLLECTION_CONFIG, RETENTION_CONFIG
from config.sources import FEED_PLATFORMS, match_host
from src.contracts import UNKNOWN_BLOG_TITLE, PublicationDraft
from src.pipeline.date_resolver import DateResolver, get_date_resolver
from src.pipeline.errors import NoContentFound
from src.pipeline.validator import ArticleValidator
from src.utils.logger import get_logger

from .base_collector import AcquisitionContext, AcquisitionResult, BaseStrategy, StrategyResult
from .fetcher import Fetcher, FetchResult
from .html_extractor import page_metadata
from .strategies import ArchiveCrawlStrategy, default_strategies


class AcquisitionEngine:
    """
    Run the ordered strategy chain until one produces articles.

    Each strategy gets its own timeout; failures and timeouts count as "no
    articles" and the chain moves on. When every primary strategy comes up
    empty the engine raises the landing-page ``FetchError`` if there was one,
    otherwise ``NoContentFound``.
    """

    def __init__(
        self,
        *,
        strategies: Optional[List[BaseStrategy]] = None,
        archive_strategy: Optional[BaseStrategy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        fetcher_factory: Optional[Callable[[], Fetcher]] = None,
        fetcher_options: Optional[Dict[str, Any]] = None,
        date_resolver: Optional[DateResolver] = None,
        validator: Optional[ArticleValidator] = None,
        strategy_timeout: Optional[float] = None,
        max_articles: Optional[int] = None,
        excerpt_length: Optional[int] = None,
    ) -> None:
        self.strategies = strategies if strategies is not None else default_strategies()
        self.archive_strategy = (
            archive_strategy
            if archive_strategy is not None
            else ArchiveCrawlStrategy(
                threshold=COLLECTION_CONFIG["archive_threshold"],
                page_budget=COLLECTION_CONFIG["archive_page_budget"],
            )
        )
        options = dict(fetcher_options or {})
        if transport is not None:
            options.setdefault("transport", transport)
        self._fetcher_factory = fetcher_factory or (lambda: Fetcher(**options))
        self.date_resolver = date_resolver or get_date_resolver()
        self.validator = validator or ArticleValidator()
        self.strategy_timeout = (
            strategy_timeout
            if strategy_timeout is not None
            else COLLECTION_CONFIG["strategy_timeout"]
        )
        self.max_articles = (
            max_articles
            if max_articles is not None
            else COLLECTION_CONFIG["max_articles_per_acquisition"]
        )
        self.excerpt_length = (
            excerpt_length
            if excerpt_length is not None
            else RETENTION_CONFIG.get("excerpt_length", 200)
        )
        self.module_logger = get_logger().create_module_logger("collectors.engine")

    async def acquire(
        self, canonical_url: str, *, page: Optional[FetchResult] = None
    ) -> AcquisitionResult:
        """
        Acquire articles for ``canonical_url``.

        ``page`` seeds the landing-page fetch when the caller already has it
        (the service fetches it to classify bare domains).
        """
        start = time.monotonic()
        host = (urlsplit(canonical_url).hostname or "").lower()

        async with self._fetcher_factory() as fetcher:
            context = AcquisitionContext(
                url=canonical_url,
                host=host,
                fetcher=fetcher,
                date_resolver=self.date_resolver,
                validator=self.validator,
                limit=self.max_articles,
                excerpt_length=self.excerpt_length,
                platform=match_host(host, FEED_PLATFORMS),
            )
            if page is not None:
                context.page = page
                context.page_attempted = True

            primary: Optional[StrategyResult] = None
            for strategy in self.strategies:
                result = await self._run_strategy(strategy, context)
                if result is not None and result.articles:
                    primary = result
                    break

            if primary is None:
                self._emit(
                    "warning",
                    "acquisition.exhausted",
                    canonical_url,
                    latency=time.monotonic() - start,
                    page_error=str(context.page_error) if context.page_error else None,
                )
                if context.page_error is not None:
                    raise context.page_error
                raise NoContentFound(canonical_url)

            articles = list(primary.articles[: self.max_articles])
            context.collected = list(articles)

            if self.archive_strategy is not None:
                extra = await self._run_strategy(self.archive_strategy, context)
                if extra is not None:
                    known = {article.url for article in articles}
                    for article in extra.articles:
                        if article.url not in known:
                            known.add(article.url)
                            articles.append(article)

            publication = await self._publication_for(primary, context)

        self._emit(
            "info",
            "acquisition.completed",
            canonical_url,
            latency=time.monotonic() - start,
            strategy=primary.strategy,
            articles=len(articles),
        )
        return AcquisitionResult(publication=publication, articles=articles, strategy=primary.strategy)

    async def fetch_page(self, url: str) -> FetchResult:
        """Single landing-page fetch with the engine's fetcher settings."""
        async with self._fetcher_factory() as fetcher:
            return await fetcher.fetch(url)

    async def _run_strategy(
        self, strategy: BaseStrategy, context: AcquisitionContext
    ) -> Optional[StrategyResult]:
        start = time.monotonic()
        try:
            return await asyncio.wait_for(strategy.attempt(context), timeout=self.strategy_timeout)
        except asyncio.TimeoutError:
            self._emit(
                "warning",
                "acquisition.strategy.timeout",
                context.url,
                latency=time.monotonic() - start,
                strategy=strategy.name,
            )
        except Exception as exc:  # noqa: BLE001 - a failing strategy yields no articles
            self._emit(
                "warning",
                "acquisition.strategy.failed",
                context.url,
                latency=time.monotonic() - start,
                strategy=strategy.name,
                error=f"{exc.__class__.__name__}: {exc}",
            )
        return None

    async def _publication_for(
        self, primary: StrategyResult, context: AcquisitionContext
    ) -> PublicationDraft:
        if primary.publication is not None:
            return primary.publication.model_copy(update={"url": context.url})
        title, description = UNKNOWN_BLOG_TITLE, ""
        if context.page_attempted:
            soup = await context.get_soup()
            if soup is not None:
                title, description = page_metadata(soup)
        return PublicationDraft(title=title, description=description, url=context.url)

    def _emit(self, level: str, event: str, url: str, *, latency: float = None, **details: Any) -> None:
        payload: Dict[str, Any] = {"event": event, "url": url}
        if latency is not None:
            payload["latency"] = round(latency, 4)
        details = {key: value for key, value in details.items() if value is not None}
        if details:
            payload["details"] = details
        getattr(self.module_logger, level)(payload)


__all__ = ["AcquisitionEngine"]
