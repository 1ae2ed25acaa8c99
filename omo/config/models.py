"""
Client settings models for OMO Switch.

These describe how the client reaches the backend and tunes the
synchronization engine; the managed agent/category configuration itself
lives in :mod:`omo.models`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional

from omo.logging import LOG_LEVELS
from omo.paths import get_global_folder

DEFAULT_BACKEND_URL = "http://127.0.0.1:17890"
DEFAULT_BACKEND_TIMEOUT = 30.0
DEFAULT_DEBOUNCE_MS = 500

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class BackendSettings:
    """
    Connection settings for the configuration backend.
    """

    base_url: str = DEFAULT_BACKEND_URL
    """Root URL of the backend's request/response endpoint."""

    timeout: float = DEFAULT_BACKEND_TIMEOUT
    """Per-request timeout in seconds."""

    def __post_init__(self) -> None:
        env_url = os.environ.get("OMO_BACKEND_URL")
        if env_url:
            self.base_url = env_url
        env_timeout = os.environ.get("OMO_BACKEND_TIMEOUT")
        if env_timeout:
            self.timeout = float(env_timeout)
        self.base_url = str(self.base_url or "").strip().rstrip("/")
        self.timeout = float(self.timeout)

    def validate(self) -> None:
        if not self.base_url:
            raise ValueError("backend.base_url is required")
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"backend.base_url must be an http(s) URL, got {self.base_url!r}")
        if self.timeout <= 0:
            raise ValueError(f"backend.timeout must be positive, got {self.timeout}")


@dataclass
class SyncSettings:
    """Tuning for change detection."""

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    """Quiet period before a burst of change checks hits the backend."""

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    def validate(self) -> None:
        if self.debounce_ms < 0:
            raise ValueError(f"sync.debounce_ms must be >= 0, got {self.debounce_ms}")


@dataclass
class ClientSettings:
    """
    Top-level client settings.
    """

    global_folder: Optional[Path] = None
    """Folder for client state such as the active preset pointer."""

    backend: BackendSettings = field(default_factory=BackendSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)

    log_level: LogLevel = "INFO"

    config_path: Optional[Path] = None
    """Settings file this instance was loaded from, if any."""

    def __post_init__(self) -> None:
        if isinstance(self.global_folder, str):
            self.global_folder = Path(self.global_folder)
        self.global_folder = get_global_folder(self.global_folder)
        self.log_level = str(self.log_level or "INFO").upper()  # type: ignore[assignment]

    def validate(self) -> None:
        """Validate all sections.

        Raises:
            ValueError: If any field has an invalid value.
        """
        self.backend.validate()
        self.sync.validate()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be a logging level name, got {self.log_level!r}")
