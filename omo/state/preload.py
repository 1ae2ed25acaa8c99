"""
Application-start preload of independent resource caches.
"""

from __future__ import annotations

import asyncio
from typing import Sequence

from omo.logging import get_logger

from .resource import ResourceCache

logger = get_logger(__name__)


class PreloadOrchestrator:
    """
    Fan out refreshes of several caches and report when all have settled.

    A failing resource never blocks or rolls back the others; each cache
    records its own error.
    """

    def __init__(self, caches: Sequence[ResourceCache]) -> None:
        self._caches = tuple(caches)
        self._is_preloading = False
        self._complete = asyncio.Event()

    @property
    def is_preloading(self) -> bool:
        return self._is_preloading

    @property
    def preload_complete(self) -> bool:
        return self._complete.is_set()

    async def wait_until_complete(self) -> None:
        await self._complete.wait()

    async def start_preload(self) -> None:
        """Run the initial preload once; later calls return without refetching."""
        if self._complete.is_set():
            return
        if self._is_preloading:
            await self._complete.wait()
            return

        self._is_preloading = True
        logger.debug(f"Preloading {', '.join(c.name for c in self._caches)}")
        try:
            await self._settle_all(force=False)
        finally:
            self._is_preloading = False
            self._complete.set()
        failed = [c.name for c in self._caches if c.error]
        if failed:
            logger.warning(f"Preload finished with errors in: {', '.join(failed)}")
        else:
            logger.info("Preload complete")

    async def soft_refresh_all(self) -> None:
        """Background refresh of every cache; never shows a loading state for cached data."""
        await self._settle_all(force=True)

    async def retry_all(self) -> None:
        """Re-run the preload, typically after one or more resources failed."""
        if self._is_preloading:
            return
        self._complete.clear()
        self._is_preloading = True
        try:
            await self._settle_all(force=True)
        finally:
            self._is_preloading = False
            self._complete.set()

    async def _settle_all(self, *, force: bool) -> None:
        results = await asyncio.gather(
            *(cache.refresh(force=force) for cache in self._caches),
            return_exceptions=True,
        )
        for cache, result in zip(self._caches, results):
            if isinstance(result, BaseException):
                logger.warning(f"{cache.name}: refresh did not settle cleanly: {result!r}")
