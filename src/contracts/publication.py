"""Contracts for publications (stored under the ``feeds`` record kind)."""

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

UNKNOWN_FEED_TITLE = "Unknown Feed"
UNKNOWN_BLOG_TITLE = "Unknown Blog"


class PublicationPayload(TypedDict, total=False):
    """Serialized publication as written to the record store."""

    id: str
    title: str
    description: str
    url: str
    original_url: Optional[str]
    created_at: str
    last_fetched: Optional[str]
    last_updated: Optional[str]


class PublicationDraft(BaseModel):
    """Publication metadata produced by acquisition, before it is stored."""

    title: str = UNKNOWN_BLOG_TITLE
    description: str = ""
    url: str = Field(min_length=1)
    feed_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, value: Any) -> str:
        return blank_to_none(value) or UNKNOWN_BLOG_TITLE

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, value: Any) -> str:
        return blank_to_none(value) or ""


class PublicationRecord(BaseModel):
    """Validated publication as kept by the store."""

    id: str = Field(default_factory=new_record_id)
    title: str = UNKNOWN_BLOG_TITLE
    description: str = ""
    url: str = Field(min_length=1)
    original_url: Optional[str] = None
    created_at: datetime
    last_fetched: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value: Any) -> str:
        # legacy flat files stored numeric ids
        return str(value)

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, value: Any) -> str:
        return blank_to_none(value) or UNKNOWN_BLOG_TITLE

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, value: Any) -> str:
        return blank_to_none(value) or ""

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created(cls, value: Any) -> datetime:
        return coerce_required_datetime(value)

    @field_validator("last_fetched", "last_updated", mode="before")
    @classmethod
    def parse_optional(cls, value: Any) -> Optional[datetime]:
        return coerce_optional_datetime(value)

    @classmethod
    def from_draft(
        cls,
        draft: PublicationDraft,
        *,
        created_at: datetime,
        original_url: Optional[str] = None,
    ) -> "PublicationRecord":
        return cls(
            title=draft.title,
            description=draft.description,
            url=draft.url,
            original_url=original_url if original_url and original_url != draft.url else None,
            created_at=created_at,
            last_fetched=created_at,
            last_updated=created_at,
        )

    def model_dump_for_storage(self) -> Dict[str, Any]:
        """Return a JSON-ready dict."""
        return self.model_dump(mode="json")


__all__ = [
    "PublicationDraft",
    "PublicationPayload",
    "PublicationRecord",
    "UNKNOWN_BLOG_TITLE",
    "UNKNOWN_FEED_TITLE",
]
