# src/collectors/base_collector.py
# Shared interface for acquisition strategies
# ===========================================

"""
Every acquisition technique (known feed, feed discovery, platform probing,
HTML extraction, archive crawl) is a ``BaseStrategy``. The engine hands each
one the same ``AcquisitionContext`` and stops at the first
``StrategyResult`` carrying at least one article.

The context memoises the landing-page fetch so that strategies needing the
document share a single request, and strategies that don't (a known feed)
never trigger it.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from bs4 import BeautifulSoup

from src.contracts import ArticleDraft, PublicationDraft
from src.pipeline.errors import FetchError
from src.utils.logger import get_logger

from .fetcher import Fetcher, FetchResult

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from src.pipeline.date_resolver import DateResolver
    from src.pipeline.validator import ArticleValidator
    from src.utils.logger import BlogScoutLogger


@dataclass
class StrategyResult:
    """Articles produced by one strategy plus the publication metadata it saw."""

    strategy: str
    articles: List[ArticleDraft] = field(default_factory=list)
    publication: Optional[PublicationDraft] = None
    feed_url: Optional[str] = None


@dataclass
class AcquisitionResult:
    publication: PublicationDraft
    articles: List[ArticleDraft]
    strategy: str


@dataclass
class AcquisitionContext:
    """Per-acquisition state shared by the strategy chain."""

    url: str
    host: str
    fetcher: Fetcher
    date_resolver: "DateResolver"
    validator: "ArticleValidator"
    limit: int = 10
    excerpt_length: int = 200
    platform: Optional[str] = None
    collected: List[ArticleDraft] = field(default_factory=list)
    page: Optional[FetchResult] = None
    page_error: Optional[FetchError] = None
    page_attempted: bool = False
    _soup: Optional[BeautifulSoup] = None

    async def get_page(self) -> Optional[FetchResult]:
        """Fetch the landing page once; later calls reuse the outcome."""
        if not self.page_attempted:
            try:
                self.page = await self.fetcher.fetch(self.url)
            except FetchError as exc:
                self.page_error = exc
            self.page_attempted = True
        return self.page

    async def get_soup(self) -> Optional[BeautifulSoup]:
        page = await self.get_page()
        if page is None:
            return None
        if self._soup is None:
            self._soup = BeautifulSoup(page.text, "html.parser")
        return self._soup

    @property
    def page_url(self) -> str:
        return self.page.url if self.page is not None else self.url

    def collected_urls(self) -> Set[str]:
        return {article.url for article in self.collected}


class BaseStrategy(ABC):
    """One technique for turning a canonical URL into article drafts."""

    name = "base"

    def __init__(self, logger_factory: Optional["BlogScoutLogger"] = None) -> None:
        self.logger_factory = logger_factory or get_logger()
        self.module_logger = self.logger_factory.create_module_logger(
            f"collectors.{self.name}"
        )

    @abstractmethod
    async def attempt(self, context: AcquisitionContext) -> Optional[StrategyResult]:
        """
        Try to produce articles for ``context.url``.

        Returns ``None`` (or a result without articles) when the strategy does
        not apply or found nothing. May raise ``FetchError``/``ParseError``;
        the engine treats any exception as "zero results".
        """

    def _build_log_payload(
        self,
        event: str,
        *,
        url: Optional[str] = None,
        latency: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "event": event,
            "strategy": self.name,
            "url": url,
            "latency": latency,
        }
        if details:
            payload["details"] = details
        return {key: value for key, value in payload.items() if value is not None}

    def _emit_log(
        self,
        level: str,
        event: str,
        *,
        url: Optional[str] = None,
        latency: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit a structured log entry tagged with the strategy name."""
        payload = self._build_log_payload(event, url=url, latency=latency, details=details)
        log_method = getattr(self.module_logger, level, None)
        if callable(log_method):
            log_method(payload)
        else:  # pragma: no cover - unknown level name
            self.module_logger.info(payload)

    @staticmethod
    def _elapsed(start: float) -> float:
        return round(time.monotonic() - start, 4)


__all__ = [
    "AcquisitionContext",
    "AcquisitionResult",
    "BaseStrategy",
    "StrategyResult",
]
