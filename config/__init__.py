"""Runtime configuration for BlogScout.

``config.settings`` loads the layered TOML/env configuration and exposes
per-section dictionaries; ``config.sources`` holds the host lists used by
classification and acquisition. Only version metadata is imported here so
that ``setup.py`` can read it without the runtime dependencies installed.
"""

from config.version import PROJECT_VERSION, PYTHON_REQUIRES_SPECIFIER, __version__

__all__ = ["PROJECT_VERSION", "PYTHON_REQUIRES_SPECIFIER", "__version__"]
