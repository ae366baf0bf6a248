# src/collectors/feed_parser.py
"""Turn RSS/Atom/JSON feed documents into article drafts with feedparser."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Union

import feedparser

from src.contracts import UNKNOWN_FEED_TITLE, ArticleDraft, PublicationDraft
from src.pipeline.date_resolver import DateResolver
from src.pipeline.errors import ParseError
from src.utils.datetime_utils import utcnow
from src.utils.text_cleaner import clean_html, first_image_src, make_excerpt, normalize_text
from src.utils.url_canonicalizer import absolutize, canonicalize_url

UNTITLED = "Untitled"

# feedparser flags these on feeds that still parse fine
ACCEPTABLE_BOZO_EXCEPTIONS = (
    "CharacterEncodingOverride",
    "NonXMLContentType",
    "InvalidDocument",
    "UndeclaredNamespace",
)


@dataclass
class ParsedFeed:
    title: str
    description: str
    link: Optional[str]
    articles: List[ArticleDraft] = field(default_factory=list)

    def as_publication(self, url: str, feed_url: Optional[str] = None) -> PublicationDraft:
        return PublicationDraft(
            title=self.title or UNKNOWN_FEED_TITLE,
            description=self.description,
            url=url,
            feed_url=feed_url,
        )


def is_acceptable_bozo(parsed) -> bool:
    if not parsed.get("bozo"):
        return True
    exception = parsed.get("bozo_exception")
    return exception.__class__.__name__ in ACCEPTABLE_BOZO_EXCEPTIONS


def _entry_content(entry: Any) -> str:
    content = entry.get("content")
    if isinstance(content, list) and content:
        first = content[0]
        value = first.get("value", "") if isinstance(first, dict) else str(first)
        if value:
            return value
    for key in ("summary", "description"):
        value = entry.get(key)
        if value:
            return str(value)
    return ""


def _entry_image(entry: Any, content: str, base_url: str) -> Optional[str]:
    for key in ("media_thumbnail", "media_content"):
        media = entry.get(key)
        if isinstance(media, list):
            for item in media:
                url = item.get("url") if isinstance(item, dict) else None
                if url:
                    return absolutize(url, base_url) or None
    for link in entry.get("links", []) or []:
        if link.get("rel") == "enclosure" and str(link.get("type", "")).startswith("image/"):
            return absolutize(link.get("href"), base_url) or None
    image = first_image_src(content)
    if image:
        return absolutize(image, base_url) or None
    return None


def _entry_author(entry: Any) -> Optional[str]:
    # feedparser maps dc:creator onto ``author``
    author = entry.get("author")
    if author:
        return normalize_text(str(author)) or None
    for detail in entry.get("authors", []) or []:
        name = detail.get("name") if isinstance(detail, dict) else str(detail)
        if name:
            return normalize_text(name) or None
    return None


def parse_feed(
    document: Union[bytes, str],
    feed_url: str,
    *,
    date_resolver: DateResolver,
    limit: Optional[int] = None,
    excerpt_length: int = 200,
    now: Optional[datetime] = None,
) -> ParsedFeed:
    """
    Parse a feed body fetched from ``feed_url``.

    Raises ``ParseError`` when the document is not a usable feed (fatal
    bozo flag with no entries, or no feed structure at all).
    """
    parsed = feedparser.parse(document)
    entries = parsed.get("entries") or []
    feed_meta = parsed.get("feed") or {}

    if not entries and not feed_meta.get("title"):
        raise ParseError(f"{feed_url}: not a feed")
    if not entries and not is_acceptable_bozo(parsed):
        raise ParseError(f"{feed_url}: malformed feed ({parsed.get('bozo_exception')})")

    now = now or utcnow()
    articles: List[ArticleDraft] = []
    seen = set()
    for entry in entries:
        link = entry.get("link") or entry.get("id") or ""
        url = canonicalize_url(absolutize(link, feed_url))
        if not url.startswith(("http://", "https://")) or url in seen:
            continue
        seen.add(url)

        content = _entry_content(entry)
        plain = clean_html(content)
        summary = entry.get("summary") or content
        articles.append(
            ArticleDraft(
                title=normalize_text(entry.get("title")) or UNTITLED,
                url=url,
                content=content,
                excerpt=make_excerpt(summary, excerpt_length),
                author=_entry_author(entry),
                image_url=_entry_image(entry, content, feed_url),
                published_at=date_resolver.resolve_effective(
                    entry.get("published_parsed"),
                    entry.get("updated_parsed"),
                    entry.get("published"),
                    entry.get("updated"),
                    entry.get("created"),
                    url=url,
                    body_text=plain,
                    now=now,
                ),
            )
        )
        if limit is not None and len(articles) >= limit:
            break

    return ParsedFeed(
        title=normalize_text(feed_meta.get("title")) or UNKNOWN_FEED_TITLE,
        description=clean_html(feed_meta.get("subtitle") or feed_meta.get("description") or ""),
        link=feed_meta.get("link"),
        articles=articles,
    )


__all__ = ["ParsedFeed", "UNTITLED", "is_acceptable_bozo", "parse_feed"]
