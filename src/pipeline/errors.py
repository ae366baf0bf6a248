"""Exception hierarchy raised by the ingestion pipeline."""

from __future__ import annotations

from typing import Optional


class BlogScoutError(Exception):
    """Base class for every pipeline error."""


class ClassificationRejected(BlogScoutError):
    """The URL (or its landing page) does not look like a personal publication."""

    def __init__(self, url: str, reason: str = "not a publication"):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class FetchError(BlogScoutError):
    """Network failure, timeout or HTTP error status while fetching ``url``."""

    def __init__(
        self,
        url: str,
        message: str = "fetch failed",
        *,
        status_code: Optional[int] = None,
    ):
        label = f"HTTP {status_code}" if status_code is not None else message
        super().__init__(f"{url}: {label}")
        self.url = url
        self.status_code = status_code
        self.message = message


class NoContentFound(BlogScoutError):
    """Every acquisition strategy ran and none produced an article."""

    def __init__(self, url: str):
        super().__init__(f"No articles found for {url}")
        self.url = url


class ParseError(BlogScoutError):
    """Malformed feed or document; handled as a strategy failure."""


class PublicationNotFound(BlogScoutError):
    def __init__(self, publication_id: str):
        super().__init__(f"Publication {publication_id} not found")
        self.publication_id = publication_id


__all__ = [
    "BlogScoutError",
    "ClassificationRejected",
    "FetchError",
    "NoContentFound",
    "ParseError",
    "PublicationNotFound",
]
