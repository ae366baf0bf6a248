"""HTTP serving layer."""

from .api import create_app

__all__ = ["create_app"]
