"""
Root object owning every cache and coordinator of the client.

Construct one :class:`SyncStore` at application start and pass it to the
views that need it.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from omo.backend.base import ConfigBackend
from omo.config.models import ClientSettings
from omo.logging import get_logger
from omo.models import Configuration, ProviderModelCatalog, UpstreamStatus, VersionInfo
from omo.paths import get_state_file

from .app_state import AppState
from .changes import DEBOUNCE_SECONDS, ChangeDetector
from .mutations import OptimisticMutations
from .preload import PreloadOrchestrator
from .presets import PresetCoordinator, PresetPointerStore
from .reconcile import Reconciler
from .resource import ResourceCache

logger = get_logger(__name__)

ACTIVE_PRESET_FILE = "active_preset.json"


class SyncStore:
    """
    Client-side view of backend-owned state.

    Attributes:
        config: Cached agent/category configuration.
        catalog: Cached provider/model catalog.
        versions: Cached tool version information.
        upstream: Cached upstream-defaults update status (not preloaded).
        preload: Start-up orchestrator over config, catalog and versions.
        detector: Debounced external change detection.
        presets: Active preset pointer and preset lifecycle.
        reconciler: Resolutions for detected divergences.
        mutations: Optimistic assignment edits.
    """

    def __init__(
        self,
        backend: ConfigBackend,
        *,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        pointer: Optional[PresetPointerStore] = None,
        app_state: Optional[AppState] = None,
    ) -> None:
        self.backend = backend
        self.app_state = app_state or AppState()

        self.config: ResourceCache[Configuration] = ResourceCache(
            "configuration",
            backend.read_config,
            default_error="Failed to load configuration file",
        )
        self.catalog: ResourceCache[ProviderModelCatalog] = ResourceCache(
            "catalog",
            self._fetch_catalog,
            revalidate=True,
            default_error="Failed to load model catalog",
        )
        self.versions: ResourceCache[List[VersionInfo]] = ResourceCache(
            "versions",
            backend.check_versions,
            revalidate=True,
            default_error="Failed to check versions",
        )
        self.upstream: ResourceCache[UpstreamStatus] = ResourceCache(
            "upstream",
            backend.check_upstream_update,
            revalidate=True,
            default_error="Failed to check upstream updates",
        )

        self.preload = PreloadOrchestrator([self.config, self.catalog, self.versions])
        self.detector = ChangeDetector(backend, debounce_seconds=debounce_seconds)
        self.presets = PresetCoordinator(
            backend,
            self.config,
            pointer=pointer,
            detector=self.detector,
            app_state=self.app_state,
        )
        self.reconciler = Reconciler(backend, self.config, self.detector, self.presets, self.app_state)
        self.mutations = OptimisticMutations(backend, self.config, self.catalog, self.presets, self.detector)

    async def _fetch_catalog(self) -> ProviderModelCatalog:
        available, providers, custom, infos = await asyncio.gather(
            self.backend.get_available_models(),
            self.backend.get_connected_providers(),
            self.backend.get_custom_models(),
            self.backend.fetch_model_infos(),
        )
        return ProviderModelCatalog.build(available, providers, custom, infos)

    async def start(self) -> None:
        await self.preload.start_preload()

    async def close(self) -> None:
        self.detector.close()
        await self.backend.close()

    async def __aenter__(self) -> "SyncStore":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def build_store(settings: ClientSettings, backend: Optional[ConfigBackend] = None) -> SyncStore:
    """Create a store wired to the configured HTTP backend and state folder."""
    if backend is None:
        from omo.backend.http import HttpBackend

        backend = HttpBackend(settings.backend)
    pointer = PresetPointerStore(get_state_file(ACTIVE_PRESET_FILE, settings.global_folder))
    logger.debug(f"Building store (backend={type(backend).__name__}, pointer={pointer.path})")
    return SyncStore(
        backend,
        debounce_seconds=settings.sync.debounce_seconds,
        pointer=pointer,
    )
