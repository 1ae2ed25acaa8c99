"""
Request/response clients for the configuration backend.
"""

from .base import ConfigBackend
from .http import HttpBackend

__all__ = ["ConfigBackend", "HttpBackend"]
