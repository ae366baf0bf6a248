# src/pipeline/resolver.py
# Canonical publication roots
# ===========================

"""
Collapses a submitted URL (often a specific post) to the root of the
publication that owns it. The canonical form is ``https://host[/a[/b]]``
without query, fragment or trailing slash.

Rules, in order:

1. Post-path platforms (Substack, Ghost...): any path with a ``/p/`` or
   ``/post/`` segment collapses to the domain root.
2. Author-scoped platforms (medium.com/@author, dev.to/author): keep only
   the author segment. On author subdomains (jane.github.io, jane.medium.com)
   only a project-like first segment survives; posts collapse to the root.
3. Generic: drop date, opaque-id and feed-endpoint segments, keep at most two
   segments, then drop trailing post slugs and section names (``blog``,
   ``posts``...).

The output of every rule is a fixpoint of the whole chain, which keeps
``resolve`` idempotent.
"""

from __future__ import annotations

import re
from typing import FrozenSet, List, Optional
from urllib.parse import urlsplit

from config.sources import AUTHOR_SCOPED_PLATFORMS, POST_PATH_PLATFORMS, match_host
from src.utils.url_canonicalizer import ensure_scheme, foreign_scheme

SECTION_SEGMENTS: FrozenSet[str] = frozenset(
    {
        "blog",
        "posts",
        "post",
        "p",
        "articles",
        "article",
        "essays",
        "writing",
        "notes",
        "entries",
        "archive",
        "archives",
        "page",
        "category",
        "tag",
        "tags",
    }
)

_DATE_SEGMENT = re.compile(r"^(?:\d{4}|\d{1,2}|\d{4}-\d{2}(?:-\d{2})?)$")
_OPAQUE_ID = re.compile(r"^(?:[0-9a-f]{8,}|\d{8,})$", re.I)
_SLUG_WITH_ID = re.compile(r"-[0-9a-f]{8,}$", re.I)
_FEED_SEGMENT = re.compile(r"^(?:feed|rss|atom|.+\.xml)$", re.I)
_DOCUMENT = re.compile(r"\.(?:html?|php|md|txt|aspx?)$", re.I)


def _clean_host(parts) -> str:
    try:
        host = (parts.hostname or "").strip(".")
        port = parts.port
    except ValueError:
        return ""
    while host.startswith("www."):
        host = host[4:]
    if not host:
        return ""
    if port and port not in (80, 443):
        return f"{host}:{port}"
    return host


def _is_noise(segment: str) -> bool:
    return bool(
        _DATE_SEGMENT.match(segment)
        or _OPAQUE_ID.match(segment)
        or _FEED_SEGMENT.match(segment)
    )


def _is_trailing_leaf(segment: str) -> bool:
    return (
        "-" in segment
        or bool(_DOCUMENT.search(segment))
        or bool(_SLUG_WITH_ID.search(segment))
        or segment.lower() in SECTION_SEGMENTS
    )


class SourceResolver:
    """Pure, deterministic mapping from any URL to its publication root."""

    def __init__(
        self,
        *,
        post_path_platforms: FrozenSet[str] = POST_PATH_PLATFORMS,
        author_scoped_platforms: FrozenSet[str] = AUTHOR_SCOPED_PLATFORMS,
    ):
        self.post_path_platforms = post_path_platforms
        self.author_scoped_platforms = author_scoped_platforms

    def resolve(self, url: Optional[str]) -> str:
        if not url:
            return ""
        raw = url.strip()
        if not raw or foreign_scheme(raw):
            return raw
        try:
            parts = urlsplit(ensure_scheme(raw))
        except ValueError:
            return raw
        host = _clean_host(parts)
        if not host:
            return raw

        segments = [segment for segment in parts.path.split("/") if segment]
        segments = self._collapse(host.split(":", 1)[0], segments)
        path = "/" + "/".join(segments) if segments else ""
        return f"https://{host}{path}"

    def _collapse(self, hostname: str, segments: List[str]) -> List[str]:
        lowered = [segment.lower() for segment in segments]

        if match_host(hostname, self.post_path_platforms) and (
            "p" in lowered or "post" in lowered
        ):
            return []

        kept = [segment for segment in segments if not _is_noise(segment)]

        # medium.com/@jane, dev.to/jane: the author lives in the first segment
        if hostname in self.author_scoped_platforms:
            return kept[:1]

        # jane.github.io, jane.medium.com: the host is the author; a first
        # segment survives only as a project name, never as a post
        if hostname.endswith(".github.io") or match_host(
            hostname, self.author_scoped_platforms
        ):
            return [kept[0]] if kept and not _is_trailing_leaf(kept[0]) else []

        kept = kept[:2]
        while kept and _is_trailing_leaf(kept[-1]):
            kept.pop()
        return kept


_default_resolver = SourceResolver()


def resolve(url: Optional[str]) -> str:
    """Canonical publication root for ``url``."""
    return _default_resolver.resolve(url)


__all__ = ["SECTION_SEGMENTS", "SourceResolver", "resolve"]
