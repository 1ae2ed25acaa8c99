"""
Debounced detection of out-of-band edits to the configuration file.

The backend keeps a snapshot of the configuration as last acknowledged by
the client; :class:`ChangeDetector` asks it for the structured diff between
that snapshot and the live file.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, List, Optional, Sequence

from omo.backend.base import ConfigBackend
from omo.logging import get_logger
from omo.models import ConfigChange

logger = get_logger(__name__)

DEBOUNCE_SECONDS = 0.5
SUMMARY_LIMIT = 5


class DetectorPhase(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    CHECKING = "checking"


CheckListener = Callable[["ChangeDetector"], None]


class ChangeDetector:
    """
    Debounced snapshot comparison.

    ``check_changes()`` restarts a single-shot timer; only the last call of a
    burst reaches the backend, and every caller of the burst is released when
    that check finishes.
    """

    def __init__(self, backend: ConfigBackend, *, debounce_seconds: float = DEBOUNCE_SECONDS) -> None:
        self._backend = backend
        self.debounce_seconds = debounce_seconds
        self._changes: tuple[ConfigChange, ...] = ()
        self._error: Optional[str] = None
        self._checked_clean = False
        self._phase = DetectorPhase.IDLE
        self._timer: Optional[asyncio.TimerHandle] = None
        self._waiters: List[asyncio.Future] = []
        self._tasks: set[asyncio.Task] = set()
        self._listeners: List[CheckListener] = []

    @property
    def changes(self) -> tuple[ConfigChange, ...]:
        return self._changes

    @property
    def has_changes(self) -> bool:
        return len(self._changes) > 0

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def loading(self) -> bool:
        return self._phase is DetectorPhase.CHECKING

    @property
    def phase(self) -> DetectorPhase:
        return self._phase

    @property
    def checked_clean(self) -> bool:
        """True only after a successful check that found no divergence."""
        return self._checked_clean

    def subscribe(self, listener: CheckListener) -> Callable[[], None]:
        """Call ``listener`` after every completed check."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def check_changes(self) -> asyncio.Future:
        """
        Schedule a check after the debounce delay.

        Must be called from a running event loop. The returned future resolves
        once the debounced check (possibly triggered by a later call) completes.
        """
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        waiter = loop.create_future()
        self._waiters.append(waiter)
        if self._phase is not DetectorPhase.CHECKING:
            self._phase = DetectorPhase.DEBOUNCING
        self._timer = loop.call_later(self.debounce_seconds, self._fire)
        return waiter

    def _fire(self) -> None:
        self._timer = None
        waiters, self._waiters = self._waiters, []
        task = asyncio.ensure_future(self._run_check(waiters))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_check(self, waiters: Sequence[asyncio.Future]) -> None:
        try:
            await self.perform_check()
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)

    async def perform_check(self) -> None:
        """Compare the live file with the snapshot immediately (no debounce)."""
        self._phase = DetectorPhase.CHECKING
        self._error = None
        try:
            await self._backend.ensure_snapshot_exists()
            changes = await self._backend.compare_with_snapshot()
        except Exception as exc:
            message = str(exc).strip() or "Failed to compare configuration with snapshot"
            logger.warning(f"Change detection failed: {message}")
            self._error = message
            self._changes = ()
            self._checked_clean = False
        else:
            self._changes = tuple(changes)
            self._checked_clean = not self._changes
            if self._changes:
                logger.info(f"Detected {len(self._changes)} external configuration change(s)")
            else:
                logger.debug("Configuration matches snapshot")
        finally:
            self._phase = DetectorPhase.DEBOUNCING if self._timer is not None else DetectorPhase.IDLE
        self._notify()

    async def ignore_changes(self) -> None:
        """
        Acknowledge the current divergence by resaving the snapshot.

        Raises:
            BackendError: If the snapshot could not be saved.
        """
        try:
            await self._backend.save_config_snapshot()
        except Exception as exc:
            self._error = str(exc).strip() or "Failed to save configuration snapshot"
            logger.error(f"Could not update configuration snapshot: {self._error}")
            raise
        logger.debug("Configuration snapshot updated")
        self.mark_clean()

    def mark_clean(self) -> None:
        """Record that the backend snapshot now matches the live file."""
        self._changes = ()
        self._error = None
        self._checked_clean = True
        self._notify()

    def close(self) -> None:
        """Cancel any pending debounce and release waiting callers."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()
        if self._phase is DetectorPhase.DEBOUNCING:
            self._phase = DetectorPhase.IDLE

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Change listener failed")


def _short_value(value: object) -> str:
    text = str(value)
    return text.rsplit("/", 1)[-1] or text


def summarize_change(change: ConfigChange) -> str:
    """One-line description using the last two path segments."""
    display_path = ".".join(change.path.split(".")[-2:])
    if change.change_type == "added":
        return f"added {display_path}"
    if change.change_type == "removed":
        return f"removed {display_path}"
    return f"{display_path}: {_short_value(change.old_value)} -> {_short_value(change.new_value)}"


def summarize_changes(changes: Sequence[ConfigChange], limit: int = SUMMARY_LIMIT) -> List[str]:
    """Summaries for the first ``limit`` changes plus a trailing count line."""
    lines = [summarize_change(change) for change in changes[:limit]]
    remaining = len(changes) - limit
    if remaining > 0:
        lines.append(f"... and {remaining} more change(s)")
    return lines
