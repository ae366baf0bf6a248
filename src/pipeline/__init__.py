"""
Ingestion pipeline components.

The service and scheduler live in ``src.pipeline.service`` and
``src.pipeline.scheduler``; they are not imported here because they depend
on the collectors, which themselves import from this package.
"""

from .classifier import SourceClassifier, Verdict
from .date_resolver import DateResolver
from .errors import (
    BlogScoutError,
    ClassificationRejected,
    FetchError,
    NoContentFound,
    ParseError,
    PublicationNotFound,
)
from .resolver import SourceResolver
from .validator import ArticleValidator

__all__ = [
    "ArticleValidator",
    "BlogScoutError",
    "ClassificationRejected",
    "DateResolver",
    "FetchError",
    "NoContentFound",
    "ParseError",
    "PublicationNotFound",
    "SourceClassifier",
    "SourceResolver",
    "Verdict",
]
