"""Cross-component UI state: user-facing notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

Severity = Literal["info", "warning", "error"]


@dataclass(frozen=True)
class Notification:
    """Single UI notification event."""

    message: str
    severity: Severity = "info"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AppState:
    """Typed mutable container for notifications raised by the engine."""

    def __init__(self) -> None:
        self._notifications: list[Notification] = []

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return tuple(self._notifications)

    def push_notification(self, message: str, *, severity: Severity = "info") -> Notification:
        notification = Notification(message=message, severity=severity)
        self._notifications.append(notification)
        return notification

    def warnings(self) -> tuple[Notification, ...]:
        return tuple(n for n in self._notifications if n.severity == "warning")

    def clear_notifications(self) -> None:
        self._notifications.clear()

    def drain_notifications(self) -> list[Notification]:
        items = list(self._notifications)
        self._notifications.clear()
        return items
