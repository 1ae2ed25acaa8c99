"""
Exception types raised by the OMO Switch client.
"""

from __future__ import annotations


class OmoError(Exception):
    """Base class for client errors."""


class BackendError(OmoError, RuntimeError):
    """A backend request failed or returned an error envelope."""

    def __init__(self, message: str, *, command: str | None = None) -> None:
        super().__init__(message)
        self.command = command


class PresetValidationError(OmoError, ValueError):
    """A preset name was rejected before any backend call."""


class PresetLifecycleError(OmoError):
    """A preset operation would break a lifecycle invariant."""
