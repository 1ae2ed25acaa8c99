"""
Resolution of a detected divergence between the snapshot and the live file.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from omo.backend.base import ConfigBackend
from omo.logging import get_logger
from omo.models import Configuration

from .app_state import AppState
from .changes import ChangeDetector
from .presets import PresetCoordinator
from .resource import ResourceCache

logger = get_logger(__name__)


class Resolution(str, Enum):
    RESTORE_FROM_CACHE = "restore_from_cache"
    RESTORE_FROM_PRESET = "restore_from_preset"
    ACCEPT_EXTERNAL = "accept_external"


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one resolution; ``warning`` marks a partial failure."""

    resolution: Resolution
    active_preset: Optional[str] = None
    preset_synced: bool = False
    warning: Optional[str] = None


class Reconciler:
    """
    Applies the user's choice for an external edit.

    The alert is shown whenever a completed check reports changes and is
    hidden after any resolution or an explicit dismissal.
    """

    def __init__(
        self,
        backend: ConfigBackend,
        config_cache: ResourceCache[Configuration],
        detector: ChangeDetector,
        presets: PresetCoordinator,
        app_state: AppState,
        *,
        recheck: bool = True,
    ) -> None:
        self._backend = backend
        self._config = config_cache
        self._detector = detector
        self._presets = presets
        self._app_state = app_state
        self.recheck = recheck
        self._alert_visible = False
        detector.subscribe(self._on_check)

    @property
    def alert_visible(self) -> bool:
        return self._alert_visible

    def dismiss(self) -> None:
        self._alert_visible = False

    def _on_check(self, detector: ChangeDetector) -> None:
        if detector.has_changes:
            self._alert_visible = True

    async def restore_from_cache(self) -> ResolutionResult:
        """
        Merge the snapshot back over the live file, then reload it.

        The merged file becomes the new snapshot so the next check starts
        from a clean state.
        """
        try:
            await self._backend.merge_and_save()
        except Exception as exc:
            logger.error(f"Restore from cache failed: {exc}")
            raise
        await self._detector.ignore_changes()
        await self._config.refresh(force=True)
        logger.info("Restored configuration from snapshot")
        return await self._finish(ResolutionResult(
            resolution=Resolution.RESTORE_FROM_CACHE,
            active_preset=self._presets.active,
        ))

    async def restore_from_preset(self) -> ResolutionResult:
        """
        Close the alert so the user can reload the active preset.

        Reloading goes through :meth:`PresetCoordinator.load`, which resaves
        the snapshot itself.
        """
        self._alert_visible = False
        return ResolutionResult(
            resolution=Resolution.RESTORE_FROM_PRESET,
            active_preset=self._presets.active,
        )

    async def accept_external(self) -> ResolutionResult:
        """
        Adopt the live file, resync snapshot and active preset.

        A failed preset resync is reported through ``warning``; only a
        failure of the accept itself raises.
        """
        try:
            result = await self._backend.accept_external_changes()
        except Exception as exc:
            logger.error(f"Accepting external changes failed: {exc}")
            raise

        self._config.apply(result.config)
        self._detector.mark_clean()
        # the backend decides which preset the accepted file belongs to
        self._presets.set_active(result.active_preset)

        warning: Optional[str] = None
        if result.preset_sync_error:
            name = result.active_preset or self._presets.active
            warning = f"External changes accepted, but syncing preset '{name}' failed: {result.preset_sync_error}"
            logger.warning(warning)
            self._app_state.push_notification(warning, severity="warning")
        elif result.preset_synced and result.active_preset:
            self._app_state.push_notification(f"Preset '{result.active_preset}' updated from the configuration file")
        logger.info("Accepted external configuration changes")

        return await self._finish(ResolutionResult(
            resolution=Resolution.ACCEPT_EXTERNAL,
            active_preset=result.active_preset,
            preset_synced=result.preset_synced,
            warning=warning,
        ))

    async def _finish(self, result: ResolutionResult) -> ResolutionResult:
        self._alert_visible = False
        if self.recheck:
            await self._detector.check_changes()
        return result
