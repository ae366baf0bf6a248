"""
Storage package: record stores, SQL models and the ingestion store.
"""

from .database import DatabaseManager
from .ingestion import IngestionStore, MergeResult, merge
from .models import Article, Base, Publication, create_all_tables
from .record_store import (
    FEEDS,
    POSTS,
    CachedRecordStore,
    JsonFileRecordStore,
    RecordStore,
    SqlRecordStore,
    create_record_store,
)

__all__ = [
    "Article",
    "Base",
    "CachedRecordStore",
    "DatabaseManager",
    "FEEDS",
    "IngestionStore",
    "JsonFileRecordStore",
    "MergeResult",
    "POSTS",
    "Publication",
    "RecordStore",
    "SqlRecordStore",
    "create_all_tables",
    "create_record_store",
    "merge",
]
