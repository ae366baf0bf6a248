"""Contracts for articles (stored under the ``posts`` record kind)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import (
    blank_to_none,
    coerce_optional_datetime,
    coerce_required_datetime,
    new_record_id,
)


class ArticlePayload(TypedDict, total=False):
    """Serialized article as written to the record store."""

    id: str
    feed_id: str
    title: str
    content: str
    excerpt: str
    author: Optional[str]
    published_at: Optional[str]
    url: str
    image_url: Optional[str]
    created_at: str


class ArticleDraft(BaseModel):
    """Article produced by an acquisition strategy; ids are assigned on merge."""

    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    content: str = ""
    excerpt: str = ""
    author: Optional[str] = None
    image_url: Optional[str] = None
    published_at: datetime

    model_config = ConfigDict(extra="ignore")

    @field_validator("author", "image_url", mode="before")
    @classmethod
    def blank_optional(cls, value: Any) -> Optional[str]:
        return blank_to_none(value)

    @field_validator("content", "excerpt", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("published_at", mode="before")
    @classmethod
    def parse_published(cls, value: Any) -> datetime:
        return coerce_required_datetime(value)


class ArticleRecord(BaseModel):
    """Validated article as kept by the store.

    ``published_at`` is optional only so that legacy rows with a missing or
    unparseable date can be loaded and repaired by the date backfill.
    """

    id: str = Field(default_factory=new_record_id)
    feed_id: str
    title: str
    content: str = ""
    excerpt: str = ""
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    url: str = Field(min_length=1)
    image_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    @field_validator("id", "feed_id", mode="before")
    @classmethod
    def stringify_ids(cls, value: Any) -> str:
        return str(value)

    @field_validator("author", "image_url", mode="before")
    @classmethod
    def blank_optional(cls, value: Any) -> Optional[str]:
        return blank_to_none(value)

    @field_validator("content", "excerpt", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("published_at", mode="before")
    @classmethod
    def parse_published(cls, value: Any) -> Optional[datetime]:
        return coerce_optional_datetime(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created(cls, value: Any) -> datetime:
        return coerce_required_datetime(value)

    @classmethod
    def from_draft(
        cls, draft: ArticleDraft, *, feed_id: str, created_at: datetime
    ) -> "ArticleRecord":
        return cls(
            feed_id=feed_id,
            title=draft.title,
            content=draft.content,
            excerpt=draft.excerpt,
            author=draft.author,
            published_at=draft.published_at,
            url=draft.url,
            image_url=draft.image_url,
            created_at=created_at,
        )

    def model_dump_for_storage(self) -> Dict[str, Any]:
        """Return a JSON-ready dict."""
        return self.model_dump(mode="json")


__all__ = ["ArticleDraft", "ArticlePayload", "ArticleRecord"]
