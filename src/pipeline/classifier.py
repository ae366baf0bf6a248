# src/pipeline/classifier.py
# Blog-likeness heuristics for submitted URLs and landing pages
# =============================================================

"""
Two-stage gate in front of acquisition.

``classify`` looks only at the URL. Denylisted hosts are ``BLOCKED``; paths
that look like content pages (or hosts known to be blog platforms) are
``ACCEPTED``; anything else, typically a bare domain, is ``CHECK_CONTENT`` and
the caller must fetch the page and ask ``classify_content``.

``classify_content`` counts independent indicators in the document. The
heuristic is deliberately coarse: a page is accepted once
``content_threshold`` indicators fire.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from config.settings import CLASSIFICATION_CONFIG
from config.sources import BLOCKED_HOSTS, ESSAY_HOSTS, FEED_PLATFORMS, match_host
from src.utils.logger import get_logger
from src.utils.url_canonicalizer import ensure_scheme, foreign_scheme


class Verdict(str, Enum):
    BLOCKED = "blocked"
    CHECK_CONTENT = "check_content"
    ACCEPTED = "accepted"


PUBLICATION_SEGMENTS: FrozenSet[str] = frozenset(
    {"blog", "essays", "articles", "posts", "p", "post", "writing", "notes", "journal"}
)
FEED_SEGMENTS: FrozenSet[str] = frozenset({"feed", "rss", "atom"})
DOCUMENT_EXTENSIONS = (".html", ".htm", ".php", ".md", ".txt")

_DATE_PATH = re.compile(r"/\d{4}/\d{1,2}/\d{1,2}(?:/|$)|\d{4}-\d{2}-\d{2}|/\d{4}/\d{1,2}(?:/|$)")
_CONTENT_CLASS = re.compile(r"\b(?:post|entry|article|blog)", re.I)
_REPEATED_BLOCK = re.compile(r"(?:^|[\s_-])(?:post|entry|article)(?:$|[\s_-])", re.I)
_NAV_TERMS = re.compile(r"\b(?:blog|archives?|posts|essays|writing)\b", re.I)
_TITLE_TERMS = re.compile(
    r"\b(?:blog|journal|notes|essays|writing|newsletter|diary|musings|thoughts)\b", re.I
)
_FEED_TYPES = ("application/rss+xml", "application/atom+xml", "application/feed+json")

Document = Union[str, bytes, BeautifulSoup, None]


class SourceClassifier:
    """URL and document heuristics deciding whether a source is a publication."""

    def __init__(
        self,
        *,
        blocked_hosts: FrozenSet[str] = BLOCKED_HOSTS,
        essay_hosts: FrozenSet[str] = ESSAY_HOSTS,
        platform_hosts: FrozenSet[str] = FEED_PLATFORMS,
        content_threshold: Optional[int] = None,
        essay_host_bonus: Optional[int] = None,
    ):
        self.blocked_hosts = blocked_hosts
        self.essay_hosts = essay_hosts
        self.platform_hosts = platform_hosts
        self.content_threshold = (
            content_threshold
            if content_threshold is not None
            else CLASSIFICATION_CONFIG.get("content_threshold", 2)
        )
        self.essay_host_bonus = (
            essay_host_bonus
            if essay_host_bonus is not None
            else CLASSIFICATION_CONFIG.get("essay_host_bonus", 2)
        )
        self.logger = get_logger().create_module_logger("pipeline.classifier")

    # URL stage
    # =========

    def classify(self, url: Optional[str]) -> Verdict:
        if not url or not url.strip() or foreign_scheme(url):
            return Verdict.BLOCKED
        try:
            parts = urlsplit(ensure_scheme(url))
            host = (parts.hostname or "").lower()
        except ValueError:
            return Verdict.BLOCKED
        if parts.scheme not in ("http", "https") or not host:
            return Verdict.BLOCKED

        if match_host(host, self.blocked_hosts):
            self.logger.info(
                {"event": "classifier.url.blocked", "details": {"url": url, "host": host}}
            )
            return Verdict.BLOCKED

        if match_host(host, self.essay_hosts) or match_host(host, self.platform_hosts):
            return Verdict.ACCEPTED

        path = parts.path or "/"
        if self._path_looks_like_content(path):
            return Verdict.ACCEPTED
        return Verdict.CHECK_CONTENT

    @staticmethod
    def _path_looks_like_content(path: str) -> bool:
        lowered = path.lower()
        segments = [segment for segment in lowered.split("/") if segment]
        if not segments:
            return False
        if any(segment in PUBLICATION_SEGMENTS for segment in segments):
            return True
        if any(segment in FEED_SEGMENTS or segment.startswith(("feed.", "rss.", "atom."))
               for segment in segments):
            return True
        if _DATE_PATH.search(lowered):
            return True
        if lowered.rstrip("/").endswith(DOCUMENT_EXTENSIONS):
            return True
        return len(segments) >= 2

    # Document stage
    # ==============

    def score_content(self, document: Document, url: Optional[str] = None) -> Dict[str, int]:
        """Return the indicators found in ``document`` mapped to their weight."""
        indicators: Dict[str, int] = {}

        if url:
            try:
                host = urlsplit(ensure_scheme(url)).hostname or ""
            except ValueError:
                host = ""
            if host and match_host(host, self.essay_hosts):
                indicators["essay_host"] = self.essay_host_bonus

        try:
            soup = self._as_soup(document)
        except Exception as exc:  # noqa: BLE001 - garbage scores zero
            self.logger.debug(
                {"event": "classifier.document.unparseable", "details": str(exc)}
            )
            return indicators
        if soup is None:
            return indicators

        if soup.find(["article", "main"]):
            indicators["semantic_elements"] = 1

        if soup.find(class_=_CONTENT_CLASS):
            indicators["content_classes"] = 1

        if self._has_structured_article(soup):
            indicators["structured_data"] = 1

        if any(
            (link.get("type") or "").lower() in _FEED_TYPES
            for link in soup.find_all("link", href=True)
        ):
            indicators["syndication_links"] = 1

        nav_text = " ".join(
            node.get_text(" ", strip=True) for node in soup.find_all(["nav", "header"])
        )
        nav_text += " " + " ".join(a.get_text(" ", strip=True) for a in soup.find_all("a")[:200])
        if _NAV_TERMS.search(nav_text):
            indicators["navigation_terms"] = 1

        if (
            soup.find("time")
            or soup.select_one(".date, .byline, .author, [rel~=author]")
        ):
            indicators["date_or_byline"] = 1

        repeated = soup.find_all("article")
        if len(repeated) < 2:
            repeated = soup.find_all(class_=_REPEATED_BLOCK)
        if len(repeated) >= 2:
            indicators["repeated_blocks"] = 1

        title = soup.title.get_text(" ", strip=True) if soup.title else ""
        if title and _TITLE_TERMS.search(title):
            indicators["title_terms"] = 1

        return indicators

    def classify_content(self, document: Document, url: Optional[str] = None) -> bool:
        indicators = self.score_content(document, url=url)
        score = sum(indicators.values())
        accepted = score >= self.content_threshold
        self.logger.debug(
            {
                "event": "classifier.content.scored",
                "details": {
                    "url": url,
                    "score": score,
                    "indicators": sorted(indicators),
                    "accepted": accepted,
                },
            }
        )
        return accepted

    @staticmethod
    def _as_soup(document: Document) -> Optional[BeautifulSoup]:
        if document is None:
            return None
        if isinstance(document, BeautifulSoup):
            return document
        if isinstance(document, bytes):
            document = document.decode("utf-8", errors="replace")
        if not str(document).strip():
            return None
        return BeautifulSoup(str(document), "html.parser")

    @staticmethod
    def _has_structured_article(soup: BeautifulSoup) -> bool:
        og_type = soup.find("meta", attrs={"property": "og:type"})
        if og_type and (og_type.get("content") or "").lower() == "article":
            return True
        if soup.find(attrs={"itemtype": re.compile(r"schema\.org/(?:Blog|BlogPosting|Article)", re.I)}):
            return True
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            try:
                payload = json.loads(script.string or "")
            except (TypeError, ValueError):
                continue
            if _ld_json_mentions_article(payload):
                return True
        return False


def _ld_json_mentions_article(payload) -> bool:
    if isinstance(payload, list):
        return any(_ld_json_mentions_article(item) for item in payload)
    if not isinstance(payload, dict):
        return False
    kind = payload.get("@type")
    kinds = kind if isinstance(kind, list) else [kind]
    if any(k in ("BlogPosting", "Article", "Blog", "NewsArticle") for k in kinds):
        return True
    return _ld_json_mentions_article(payload.get("@graph"))


__all__ = ["Document", "SourceClassifier", "Verdict"]
