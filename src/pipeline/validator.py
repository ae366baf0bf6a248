"""Precision filter separating real articles from navigation links."""

from __future__ import annotations

import re
from typing import FrozenSet, Optional
from urllib.parse import urlsplit

NAVIGATION_TITLES: FrozenSet[str] = frozenset(
    {
        "about",
        "about me",
        "contact",
        "subscribe",
        "home",
        "archive",
        "archives",
        "search",
        "login",
        "log in",
        "sign in",
        "sign up",
        "menu",
        "newsletter",
        "rss",
        "feed",
        "privacy",
        "privacy policy",
        "terms",
        "terms of service",
        "next",
        "previous",
        "older posts",
        "newer posts",
        "more",
        "read more",
        "tags",
        "categories",
        "share",
    }
)

NON_CONTENT_PATHS: FrozenSet[str] = frozenset(
    {
        "/about",
        "/contact",
        "/rss",
        "/feed",
        "/atom",
        "/sitemap",
        "/sitemap.xml",
        "/archive",
        "/archives",
        "/tags",
        "/categories",
        "/search",
        "/subscribe",
        "/login",
        "/signin",
        "/signup",
        "/privacy",
        "/terms",
        "/now",
        "/uses",
    }
)

CONTENT_PREFIXES = (
    "/p/",
    "/post/",
    "/posts/",
    "/blog/",
    "/essays/",
    "/essay/",
    "/articles/",
    "/article/",
    "/writing/",
    "/notes/",
    "/journal/",
    "/entries/",
)

DOCUMENT_EXTENSIONS = (".html", ".htm", ".php", ".md", ".txt", ".asp", ".aspx")

_DATE_SEGMENT = re.compile(r"/(?:19|20)\d{2}(?:/\d{1,2}|-\d{2}-\d{2})(?:/|-|$)")


class ArticleValidator:
    """Decide whether an extracted ``(url, title)`` pair is a genuine article."""

    def __init__(
        self,
        navigation_titles: FrozenSet[str] = NAVIGATION_TITLES,
        non_content_paths: FrozenSet[str] = NON_CONTENT_PATHS,
    ):
        self.navigation_titles = navigation_titles
        self.non_content_paths = non_content_paths

    def is_valid(self, url: Optional[str], title: Optional[str]) -> bool:
        if not url or not url.strip() or not title or not title.strip():
            return False
        if title.strip().lower() in self.navigation_titles:
            return False

        try:
            path = urlsplit(url.strip()).path or ""
        except ValueError:
            return False
        if len(path) < 3:
            return False

        lowered = path.lower()
        trimmed = lowered.rstrip("/") or "/"
        if trimmed in self.non_content_paths:
            return False

        if self._has_content_indicator(lowered):
            return True
        segments = [segment for segment in lowered.split("/") if segment]
        return len(segments) > 2

    @staticmethod
    def _has_content_indicator(path: str) -> bool:
        for prefix in CONTENT_PREFIXES:
            index = path.find(prefix)
            # "/blog/" itself is an index page, "/blog/x" is content
            if index != -1 and path[index + len(prefix):].strip("/"):
                return True
        if path.endswith(DOCUMENT_EXTENSIONS):
            return True
        return bool(_DATE_SEGMENT.search(path))


_default_validator = ArticleValidator()


def is_valid_article(url: Optional[str], title: Optional[str]) -> bool:
    """Module-level shortcut used by extractors."""
    return _default_validator.is_valid(url, title)


__all__ = [
    "ArticleValidator",
    "CONTENT_PREFIXES",
    "NAVIGATION_TITLES",
    "NON_CONTENT_PATHS",
    "is_valid_article",
]
