"""Shared contracts for validated pipeline payloads."""

from .article import ArticleDraft, ArticlePayload, ArticleRecord
from .publication import (
    UNKNOWN_BLOG_TITLE,
    UNKNOWN_FEED_TITLE,
    PublicationDraft,
    PublicationPayload,
    PublicationRecord,
)

__all__ = [
    "ArticleDraft",
    "ArticlePayload",
    "ArticleRecord",
    "PublicationDraft",
    "PublicationPayload",
    "PublicationRecord",
    "UNKNOWN_BLOG_TITLE",
    "UNKNOWN_FEED_TITLE",
]
