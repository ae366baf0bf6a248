# src/collectors/strategies.py
"""The ordered acquisition strategies."""

import time
from typing import Dict, FrozenSet, List, Optional, Sequence

from bs4 import BeautifulSoup

from config.sources import FEED_PLATFORMS, KNOWN_FEEDS, PAGINATED_PLATFORMS, match_host
from src.contracts import PublicationDraft
from src.pipeline.errors import FetchError, ParseError

from .base_collector import AcquisitionContext, BaseStrategy, StrategyResult
from .feed_parser import parse_feed
from .fetcher import FEED_ACCEPT
from .html_extractor import (
    HtmlArticleExtractor,
    discover_feed_links,
    find_pagination_links,
    page_metadata,
)

PROBE_SUFFIXES = ("/feed", "/rss", "/feed.xml", "/rss.xml", "/atom.xml", "/index.xml")

ARCHIVE_PATHS: Dict[str, Sequence[str]] = {
    "substack.com": ("/archive",),
    "wordpress.com": ("/page/2/",),
    "ghost.io": ("/page/2/",),
    "tumblr.com": ("/page/2",),
    "blogspot.com": ("/search",),
    "medium.com": ("/archive",),
}


class _FeedStrategyMixin:
    """Fetch-and-parse helper shared by the feed based strategies."""

    async def _try_feed(
        self, context: AcquisitionContext, feed_url: str
    ) -> Optional[StrategyResult]:
        start = time.monotonic()
        response = await context.fetcher.fetch(feed_url, accept=FEED_ACCEPT)
        parsed = parse_feed(
            response.content,
            response.url,
            date_resolver=context.date_resolver,
            limit=context.limit,
            excerpt_length=context.excerpt_length,
        )
        self._emit_log(
            "info",
            "acquisition.feed.parsed",
            url=feed_url,
            latency=self._elapsed(start),
            details={"entries": len(parsed.articles)},
        )
        if not parsed.articles:
            return None
        return StrategyResult(
            strategy=self.name,
            articles=parsed.articles,
            publication=parsed.as_publication(context.url, feed_url=feed_url),
            feed_url=feed_url,
        )

    async def _try_feeds(
        self, context: AcquisitionContext, feed_urls: Sequence[str]
    ) -> Optional[StrategyResult]:
        for feed_url in feed_urls:
            try:
                result = await self._try_feed(context, feed_url)
            except (FetchError, ParseError) as exc:
                self._emit_log(
                    "debug",
                    "acquisition.feed.rejected",
                    url=feed_url,
                    details={"error": str(exc)},
                )
                continue
            if result is not None:
                return result
        return None


class KnownFeedStrategy(_FeedStrategyMixin, BaseStrategy):
    """Hosts with a hard-coded, known-good feed skip discovery entirely."""

    name = "known_feed"

    def __init__(self, known_feeds: Optional[Dict[str, str]] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.known_feeds = known_feeds if known_feeds is not None else KNOWN_FEEDS

    async def attempt(self, context: AcquisitionContext) -> Optional[StrategyResult]:
        host = match_host(context.host, self.known_feeds.keys())
        if host is None:
            return None
        return await self._try_feeds(context, [self.known_feeds[host]])


class FeedDiscoveryStrategy(_FeedStrategyMixin, BaseStrategy):
    """Follow ``<link rel=alternate>`` feed declarations on the landing page."""

    name = "feed_discovery"

    async def attempt(self, context: AcquisitionContext) -> Optional[StrategyResult]:
        soup = await context.get_soup()
        if soup is None:
            return None
        feed_urls = discover_feed_links(soup, context.page_url)
        if not feed_urls:
            return None
        return await self._try_feeds(context, feed_urls)


class PlatformProbeStrategy(_FeedStrategyMixin, BaseStrategy):
    """
    Try conventional feed endpoints.

    Runs for recognised platforms, and blindly for any host whose landing
    page could not be fetched.
    """

    name = "platform_probe"

    def __init__(
        self,
        suffixes: Sequence[str] = PROBE_SUFFIXES,
        platforms: FrozenSet[str] = FEED_PLATFORMS,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.suffixes = tuple(suffixes)
        self.platforms = platforms

    def probe_urls(self, context: AcquisitionContext) -> List[str]:
        base = context.url.rstrip("/")
        urls = [f"{base}{suffix}" for suffix in self.suffixes]
        if context.platform == "medium.com" and "/@" in base:
            author = base.rsplit("/", 1)[-1]
            urls.insert(0, f"https://medium.com/feed/{author}")
        return urls

    async def attempt(self, context: AcquisitionContext) -> Optional[StrategyResult]:
        page = await context.get_page()
        blind = page is None
        if not blind and match_host(context.host, self.platforms) is None:
            return None
        if blind:
            self._emit_log(
                "info",
                "acquisition.probe.blind",
                url=context.url,
                details={"error": str(context.page_error) if context.page_error else None},
            )
        return await self._try_feeds(context, self.probe_urls(context))


class HtmlExtractionStrategy(BaseStrategy):
    """Scrape article blocks straight out of the landing page."""

    name = "html_extraction"

    async def attempt(self, context: AcquisitionContext) -> Optional[StrategyResult]:
        soup = await context.get_soup()
        if soup is None:
            return None
        extractor = HtmlArticleExtractor(
            validator=context.validator,
            date_resolver=context.date_resolver,
            excerpt_length=context.excerpt_length,
        )
        articles = extractor.extract(
            soup, context.page_url, platform=context.platform, limit=context.limit
        )
        if not articles:
            return None
        title, description = page_metadata(soup)
        return StrategyResult(
            strategy=self.name,
            articles=articles,
            publication=PublicationDraft(title=title, description=description, url=context.url),
        )


class ArchiveCrawlStrategy(BaseStrategy):
    """
    Supplement a small primary result by walking pagination/archive pages.

    Only runs when fewer than ``threshold`` articles were collected and the
    host is a known paginating platform or its landing page advertises a
    next/archive link. Visits at most ``page_budget`` pages.
    """

    name = "archive_crawl"

    def __init__(
        self,
        *,
        threshold: int = 50,
        page_budget: int = 3,
        platforms: FrozenSet[str] = PAGINATED_PLATFORMS,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.threshold = threshold
        self.page_budget = page_budget
        self.platforms = platforms

    def _platform(self, context: AcquisitionContext) -> Optional[str]:
        return match_host(context.host, self.platforms)

    async def applies(self, context: AcquisitionContext) -> bool:
        if len(context.collected) >= self.threshold or self.page_budget <= 0:
            return False
        if self._platform(context) is not None:
            return True
        # never trigger a landing-page fetch just to look for pagination
        if not context.page_attempted:
            return False
        soup = await context.get_soup()
        return bool(soup is not None and find_pagination_links(soup, context.page_url))

    async def attempt(self, context: AcquisitionContext) -> Optional[StrategyResult]:
        if not await self.applies(context):
            return None

        queue: List[str] = []
        soup = await context.get_soup() if context.page_attempted else None
        if soup is not None:
            queue.extend(find_pagination_links(soup, context.page_url))
        platform = self._platform(context)
        base = context.url.rstrip("/")
        for path in ARCHIVE_PATHS.get(platform or "", ()):
            candidate = f"{base}{path}"
            if candidate not in queue:
                queue.append(candidate)

        extractor = HtmlArticleExtractor(
            validator=context.validator,
            date_resolver=context.date_resolver,
            excerpt_length=context.excerpt_length,
        )
        known = context.collected_urls()
        visited = {context.url.rstrip("/"), context.page_url.rstrip("/")}
        collected = []
        pages = 0
        while queue and pages < self.page_budget:
            page_url = queue.pop(0)
            if page_url.rstrip("/") in visited:
                continue
            visited.add(page_url.rstrip("/"))
            pages += 1
            try:
                response = await context.fetcher.fetch(page_url)
            except FetchError as exc:
                self._emit_log(
                    "debug", "acquisition.archive.page_failed", url=page_url, details={"error": str(exc)}
                )
                continue
            page_soup = BeautifulSoup(response.text, "html.parser")
            articles = extractor.extract(
                page_soup, response.url, platform=platform, exclude=known
            )
            for article in articles:
                known.add(article.url)
                collected.append(article)
            for link in find_pagination_links(page_soup, response.url):
                if link.rstrip("/") not in visited and link not in queue:
                    queue.append(link)

        self._emit_log(
            "info",
            "acquisition.archive.completed",
            url=context.url,
            details={"pages": pages, "articles": len(collected)},
        )
        if not collected:
            return None
        return StrategyResult(strategy=self.name, articles=collected)


def default_strategies(**kwargs) -> List[BaseStrategy]:
    """The primary chain, in priority order."""
    return [
        KnownFeedStrategy(**kwargs),
        FeedDiscoveryStrategy(**kwargs),
        PlatformProbeStrategy(**kwargs),
        HtmlExtractionStrategy(**kwargs),
    ]


__all__ = [
    "ArchiveCrawlStrategy",
    "FeedDiscoveryStrategy",
    "HtmlExtractionStrategy",
    "KnownFeedStrategy",
    "PROBE_SUFFIXES",
    "PlatformProbeStrategy",
    "default_strategies",
]
