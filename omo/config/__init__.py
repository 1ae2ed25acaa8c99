"""
Client settings for OMO Switch.

This package provides typed settings models and loaders.
"""

from .models import BackendSettings, ClientSettings, SyncSettings
from .loader import load_settings_from_file

__all__ = [
    "BackendSettings",
    "ClientSettings",
    "SyncSettings",
    "load_settings_from_file",
]
