"""
Per-resource cache for backend-owned state.

A :class:`ResourceCache` wraps one asynchronous fetch (configuration, model
catalog, version info) and exposes an immutable :class:`ResourceState`
snapshot. Cold loads toggle ``loading``; warm refreshes are silent and keep
the previous data when they fail.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from omo.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[["ResourceState"], None]


@dataclass(frozen=True)
class ResourceState(Generic[T]):
    """Snapshot of a cached resource as seen by the UI."""

    data: Optional[T] = None
    loading: bool = False
    error: Optional[str] = None


class ResourceCache(Generic[T]):
    """
    Deduplicating cache around a single backend read.

    Args:
        name: Resource name used in logs.
        fetch: Coroutine function performing the backend read.
        revalidate: When True, a non-forced refresh with cached data still
            refreshes in the background (catalogs, versions).
        default_error: Message recorded when a failure carries no text.
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[T]],
        *,
        revalidate: bool = False,
        default_error: Optional[str] = None,
    ) -> None:
        self.name = name
        self.revalidate = revalidate
        self._fetch = fetch
        self._default_error = default_error or f"Failed to load {name}"
        self._state: ResourceState[T] = ResourceState()
        self._inflight: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ResourceState[T]:
        return self._state

    @property
    def data(self) -> Optional[T]:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def refresh(self, force: bool = False) -> None:
        """
        Refresh the resource from the backend.

        Concurrent callers share a single in-flight request and all return
        once it settles. Failures are recorded in ``error``; this method only
        raises if the caller itself is cancelled.
        """
        inflight = self._inflight
        if inflight is not None:
            logger.debug(f"{self.name}: refresh already in flight, joining")
            await asyncio.shield(inflight)
            return

        if self._state.data is not None and not force and not self.revalidate:
            return

        cold = self._state.data is None
        if cold:
            self._set(ResourceState(data=None, loading=True, error=None))

        task = asyncio.ensure_future(self._run(cold))
        self._inflight = task
        await asyncio.shield(task)

    async def _run(self, cold: bool) -> None:
        try:
            data = await self._fetch()
        except Exception as exc:
            message = str(exc).strip() or self._default_error
            if cold:
                logger.warning(f"{self.name}: initial load failed: {message}")
            else:
                logger.warning(f"{self.name}: background refresh failed, keeping cached data: {message}")
            self._set(ResourceState(
                data=None if cold else self._state.data,
                loading=False,
                error=message,
            ))
        else:
            logger.debug(f"{self.name}: {'loaded' if cold else 'refreshed'}")
            self._set(ResourceState(data=data, loading=False, error=None))
        finally:
            self._inflight = None

    def apply(self, data: T) -> None:
        """Install a value confirmed by the backend, bypassing a reload."""
        self._set(ResourceState(data=data, loading=False, error=None))

    def update(self, mutate: Callable[[T], T]) -> bool:
        """
        Apply an optimistic local edit to cached data.

        Returns False (and changes nothing) when nothing is cached yet.
        """
        if self._state.data is None:
            return False
        self._set(replace(self._state, data=mutate(self._state.data)))
        return True

    def _set(self, state: ResourceState[T]) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(f"{self.name}: state listener failed")
