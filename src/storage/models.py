# src/storage/models.py
# SQLAlchemy tables backing the relational record store
# =====================================================

"""
Two tables mirror the two record kinds:

- ``publications`` holds ``feeds`` records (one row per canonical root).
- ``articles`` holds ``posts`` records; ``url`` is unique across the table
  because dedup is global, and rows cascade away with their publication.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class Publication(Base):
    """A tracked blog or newsletter (record kind ``feeds``)."""

    __tablename__ = "publications"

    id = Column(String(64), primary_key=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, default="")
    url = Column(String(500), unique=True, nullable=False, index=True)
    original_url = Column(String(1000))

    created_at = Column(DateTime(timezone=True), nullable=False)
    last_fetched = Column(DateTime(timezone=True))
    last_updated = Column(DateTime(timezone=True))

    articles = relationship(
        "Article",
        back_populates="publication",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Publication(id='{self.id}', url='{self.url}')>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description or "",
            "url": self.url,
            "original_url": self.original_url,
            "created_at": _iso(self.created_at),
            "last_fetched": _iso(self.last_fetched),
            "last_updated": _iso(self.last_updated),
        }


class Article(Base):
    """One ingested item (record kind ``posts``)."""

    __tablename__ = "articles"

    id = Column(String(64), primary_key=True)
    feed_id = Column(
        String(64),
        ForeignKey("publications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(500), nullable=False)
    content = Column(Text, default="")
    excerpt = Column(Text, default="")
    author = Column(String(200))
    url = Column(String(1000), unique=True, nullable=False, index=True)
    image_url = Column(String(1000))

    published_at = Column(DateTime(timezone=True), index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    publication = relationship("Publication", back_populates="articles")

    __table_args__ = (Index("idx_articles_recency", "published_at", "created_at"),)

    def __repr__(self):
        return f"<Article(id='{self.id}', title='{self.title[:50]}...', feed='{self.feed_id}')>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "feed_id": self.feed_id,
            "title": self.title,
            "content": self.content or "",
            "excerpt": self.excerpt or "",
            "author": self.author,
            "published_at": _iso(self.published_at),
            "url": self.url,
            "image_url": self.image_url,
            "created_at": _iso(self.created_at),
        }


MODELS_BY_KIND = {
    "feeds": Publication,
    "posts": Article,
}


def create_all_tables(engine):
    """Create every table on ``engine`` (no-op for existing tables)."""
    Base.metadata.create_all(engine)


__all__ = ["Base", "Publication", "Article", "MODELS_BY_KIND", "create_all_tables"]
