"""
BlogScout core package.

Contains the functional modules: collectors (acquisition strategies),
pipeline (classification, resolution, scheduling), storage and utilities.
"""

from config.version import PROJECT_VERSION, PYTHON_REQUIRES_SPECIFIER

from .utils import get_logger, setup_logging

__version__ = PROJECT_VERSION
__description__ = "Blog discovery and article aggregation service"

__package_info__ = {
    "name": "blogscout",
    "version": __version__,
    "description": __description__,
    "author": "BlogScout Team",
    "license": "MIT",
    "python_requires": PYTHON_REQUIRES_SPECIFIER,
}

__all__ = [
    "get_logger",
    "setup_logging",
]
