"""
Acquisition engine and strategies.

The engine walks an ordered chain of strategies (known feed, feed discovery,
platform probing, HTML extraction) and optionally supplements the winner
with an archive crawl.
"""

from .base_collector import AcquisitionContext, AcquisitionResult, BaseStrategy, StrategyResult
from .engine import AcquisitionEngine
from .fetcher import Fetcher, FetchResult
from .strategies import (
    ArchiveCrawlStrategy,
    FeedDiscoveryStrategy,
    HtmlExtractionStrategy,
    KnownFeedStrategy,
    PlatformProbeStrategy,
    default_strategies,
)

__all__ = [
    "AcquisitionContext",
    "AcquisitionEngine",
    "AcquisitionResult",
    "ArchiveCrawlStrategy",
    "BaseStrategy",
    "FeedDiscoveryStrategy",
    "FetchResult",
    "Fetcher",
    "HtmlExtractionStrategy",
    "KnownFeedStrategy",
    "PlatformProbeStrategy",
    "StrategyResult",
    "default_strategies",
]
