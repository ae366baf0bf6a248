# src/collectors/html_extractor.py
"""
Heuristic article extraction from HTML listing pages with BeautifulSoup.

Blocks are located with an ordered selector list (platform-specific first,
then generic "article-like" patterns, then the parents of links that look
like posts). For each block, nested fallback selectors pick out the title,
link, excerpt, author, date and image.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from src.contracts import UNKNOWN_BLOG_TITLE, ArticleDraft
from src.pipeline.date_resolver import DateResolver
from src.pipeline.validator import ArticleValidator
from src.utils.datetime_utils import utcnow
from src.utils.text_cleaner import normalize_text
from src.utils.url_canonicalizer import absolutize, canonicalize_url

PLATFORM_SELECTORS: Dict[str, Tuple[str, ...]] = {
    "substack.com": (".post-preview", "div[class*=post-preview]"),
    "ghost.io": ("article.post-card", ".post-feed article"),
    "wordpress.com": ("article.post", ".hentry"),
    "blogspot.com": (".post-outer", ".date-outer .post"),
    "medium.com": ("article", "div.postArticle"),
    "tumblr.com": ("article.post", ".post"),
    "bearblog.dev": ("ul.blog-posts li",),
    "github.io": ("ul.post-list li", "article.post"),
}

GENERIC_SELECTORS: Tuple[str, ...] = (
    "article",
    ".post",
    ".blog-post",
    ".entry",
    "[class*=post]",
    "[class*=article]",
    "[class*=entry]",
    ".content article",
    "main article",
)

LINK_FALLBACK_SELECTOR = "a[href*='/blog'], a[href*='/post'], a[href*='/article'], a[href*='/p/']"

TITLE_SELECTORS = "h1, h2, h3, .title, .post-title, .entry-title"
EXCERPT_SELECTORS = ".excerpt, .summary, .content, p"
AUTHOR_SELECTORS = ".author, .byline, [class*=author]"
DATE_SELECTORS = ".date, .published, time, [class*=date]"

FEED_LINK_TYPES = ("application/rss+xml", "application/atom+xml", "application/feed+json")

NEXT_PAGE_TEXTS = ("older posts", "older entries", "next page", "next", "more posts", "older")


def _text(node: Optional[Tag]) -> str:
    return normalize_text(node.get_text(" ", strip=True)) if node is not None else ""


def _first(block: Tag, selectors: str) -> Optional[Tag]:
    return block.select_one(selectors)


def page_metadata(soup: BeautifulSoup) -> Tuple[str, str]:
    """Publication title/description from ``<title>``, og tags and meta description."""
    title = ""
    if soup.title is not None:
        title = _text(soup.title)
    if not title:
        site_name = soup.find("meta", attrs={"property": "og:site_name"})
        if site_name is not None:
            title = normalize_text(site_name.get("content"))
    description = ""
    meta = soup.find("meta", attrs={"name": "description"}) or soup.find(
        "meta", attrs={"property": "og:description"}
    )
    if meta is not None:
        description = normalize_text(meta.get("content"))
    return title or UNKNOWN_BLOG_TITLE, description


def discover_feed_links(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Absolute URLs of ``<link rel=alternate>`` syndication feeds, in document order."""
    links: List[str] = []
    for link in soup.find_all("link", href=True):
        kind = (link.get("type") or "").lower().split(";", 1)[0].strip()
        if kind not in FEED_LINK_TYPES:
            continue
        rel = link.get("rel") or []
        rel = [rel] if isinstance(rel, str) else rel
        if rel and "alternate" not in [value.lower() for value in rel]:
            continue
        url = absolutize(link["href"], base_url)
        if url and url not in links:
            links.append(url)
    return links


def find_pagination_links(soup: BeautifulSoup, base_url: str) -> List[str]:
    """``rel=next`` and "older posts" style links, most explicit first."""
    found: List[str] = []

    def add(href: Optional[str]) -> None:
        url = absolutize(href, base_url)
        if url and url not in found and url.rstrip("/") != base_url.rstrip("/"):
            found.append(url)

    for node in soup.find_all(["link", "a"], rel=True, href=True):
        rel = node.get("rel") or []
        rel = [rel] if isinstance(rel, str) else rel
        if "next" in [value.lower() for value in rel]:
            add(node["href"])
    for anchor in soup.find_all("a", href=True):
        label = _text(anchor).lower()
        classes = " ".join(anchor.get("class") or []).lower()
        if label in NEXT_PAGE_TEXTS or "next" in classes or "older" in classes:
            add(anchor["href"])
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].lower()
        if "/page/2" in href or href.rstrip("/").endswith(("/archive", "/archives")):
            add(anchor["href"])
    return found


class HtmlArticleExtractor:
    """Extract article drafts from a listing page."""

    def __init__(
        self,
        *,
        validator: ArticleValidator,
        date_resolver: DateResolver,
        excerpt_length: int = 200,
    ):
        self.validator = validator
        self.date_resolver = date_resolver
        self.excerpt_length = excerpt_length

    def extract(
        self,
        soup: BeautifulSoup,
        base_url: str,
        *,
        platform: Optional[str] = None,
        limit: Optional[int] = None,
        exclude: Iterable[str] = (),
        now: Optional[datetime] = None,
    ) -> List[ArticleDraft]:
        now = now or utcnow()
        excluded = set(exclude)
        for blocks in self._candidate_block_sets(soup, platform):
            articles = self._extract_from_blocks(blocks, base_url, excluded, limit, now)
            if articles:
                return articles
        return []

    def _candidate_block_sets(
        self, soup: BeautifulSoup, platform: Optional[str]
    ) -> Iterable[Sequence[Tag]]:
        selectors: List[str] = list(PLATFORM_SELECTORS.get(platform or "", ()))
        selectors.extend(GENERIC_SELECTORS)
        for selector in selectors:
            blocks = soup.select(selector)
            if blocks:
                yield blocks
        parents: List[Tag] = []
        seen_parents = set()
        for anchor in soup.select(LINK_FALLBACK_SELECTOR):
            parent = anchor.parent
            if isinstance(parent, Tag) and id(parent) not in seen_parents:
                seen_parents.add(id(parent))
                parents.append(parent)
        if parents:
            yield parents

    def _extract_from_blocks(
        self,
        blocks: Sequence[Tag],
        base_url: str,
        excluded: set,
        limit: Optional[int],
        now: datetime,
    ) -> List[ArticleDraft]:
        articles: List[ArticleDraft] = []
        seen = set(excluded)
        for block in blocks:
            draft = self._extract_block(block, base_url, now)
            if draft is None or draft.url in seen:
                continue
            seen.add(draft.url)
            articles.append(draft)
            if limit is not None and len(articles) >= limit:
                break
        return articles

    def _extract_block(self, block: Tag, base_url: str, now: datetime) -> Optional[ArticleDraft]:
        heading = _first(block, TITLE_SELECTORS)
        anchor = None
        if heading is not None:
            anchor = heading if heading.name == "a" and heading.get("href") else heading.find("a", href=True)
        if anchor is None:
            anchor = block if block.name == "a" and block.get("href") else block.find("a", href=True)
        if anchor is None:
            return None

        title = _text(heading) or _text(anchor)
        url = canonicalize_url(absolutize(anchor.get("href"), base_url))
        if not url.startswith(("http://", "https://")):
            return None
        if not self.validator.is_valid(url, title):
            return None

        excerpt_node = _first(block, EXCERPT_SELECTORS)
        content = _text(excerpt_node)
        if content == title:
            content = ""

        author = _text(_first(block, AUTHOR_SELECTORS)) or None

        date_node = _first(block, DATE_SELECTORS)
        time_node = block.find("time")
        date_attr = time_node.get("datetime") if time_node is not None else None
        published_at = self.date_resolver.resolve_effective(
            date_attr,
            _text(date_node),
            url=url,
            body_text=_text(block),
            now=now,
        )

        image_url = None
        image = block.find("img")
        if image is not None:
            src = image.get("src") or image.get("data-src")
            image_url = absolutize(src, base_url) or None

        return ArticleDraft(
            title=title,
            url=url,
            content=content,
            excerpt=content[: self.excerpt_length],
            author=author,
            image_url=image_url,
            published_at=published_at,
        )


__all__ = [
    "GENERIC_SELECTORS",
    "HtmlArticleExtractor",
    "PLATFORM_SELECTORS",
    "discover_feed_links",
    "find_pagination_links",
    "page_metadata",
]
