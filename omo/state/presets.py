"""
Active preset tracking and preset lifecycle rules.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, Optional

from omo.backend.base import ConfigBackend
from omo.errors import PresetLifecycleError, PresetValidationError
from omo.logging import get_logger
from omo.models import BuiltinPresetInfo, Configuration, PresetMeta

from .app_state import AppState
from .changes import ChangeDetector
from .resource import ResourceCache

logger = get_logger(__name__)

LEGACY_BUILTIN_PREFIX = "__builtin__"
_PATH_SEPARATORS = ("/", "\\")


def validate_preset_name(name: Optional[str]) -> str:
    """
    Return the trimmed preset name.

    Raises:
        PresetValidationError: If the name is empty or contains a path separator.
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise PresetValidationError("Preset name cannot be empty")
    if any(sep in cleaned for sep in _PATH_SEPARATORS):
        raise PresetValidationError(f"Preset name cannot contain path separators: {cleaned!r}")
    return cleaned


def is_editable_preset(name: Optional[str]) -> bool:
    return bool(name) and not str(name).startswith(LEGACY_BUILTIN_PREFIX)


class PresetPointerStore:
    """
    Persists the active preset name across restarts.

    With no path the pointer lives in memory only.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path

    def read(self) -> Optional[str]:
        if self.path is None or not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(f"Ignoring unreadable active preset file {self.path}: {exc}")
            return None
        name = raw.get("active_preset") if isinstance(raw, dict) else None
        return str(name) if name else None

    def write(self, name: Optional[str]) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"active_preset": name}, indent=2), encoding="utf-8")


class PresetCoordinator:
    """
    Owns the active preset pointer and keeps the active preset file in step
    with live edits.

    ``active is None`` means the unnamed default configuration is in effect.
    """

    def __init__(
        self,
        backend: ConfigBackend,
        config_cache: ResourceCache[Configuration],
        *,
        pointer: Optional[PresetPointerStore] = None,
        detector: Optional[ChangeDetector] = None,
        app_state: Optional[AppState] = None,
    ) -> None:
        self._backend = backend
        self._config = config_cache
        self._pointer = pointer or PresetPointerStore()
        self._detector = detector
        self._app_state = app_state
        self._active: Optional[str] = self._pointer.read()
        self._selected: Optional[str] = None
        self._names: Optional[List[str]] = None

    @property
    def active(self) -> Optional[str]:
        return self._active

    @property
    def selected(self) -> Optional[str]:
        """Preset picked in the UI but not yet acted on."""
        return self._selected

    @property
    def cached_names(self) -> Optional[List[str]]:
        return list(self._names) if self._names is not None else None

    def select(self, name: Optional[str]) -> None:
        self._selected = name

    def set_active(self, name: Optional[str]) -> None:
        if name == self._active:
            return
        logger.debug(f"Active preset: {self._active!r} -> {name!r}")
        self._active = name
        self._pointer.write(name)

    async def list_presets(self, force: bool = False) -> List[str]:
        if self._names is None or force:
            self._names = await self._backend.list_presets()
        return list(self._names)

    async def get_config(self, name: str) -> Configuration:
        return await self._backend.get_preset_config(validate_preset_name(name))

    async def get_meta(self, name: str) -> PresetMeta:
        return await self._backend.get_preset_meta(validate_preset_name(name))

    async def save_as(self, name: str) -> str:
        """Save the current configuration as a new preset and make it active."""
        cleaned = validate_preset_name(name)
        names = await self.list_presets()
        if cleaned in names:
            raise PresetValidationError(f"A preset named '{cleaned}' already exists")
        await self._backend.save_preset(cleaned)
        self.set_active(cleaned)
        await self.list_presets(force=True)
        logger.info(f"Saved preset '{cleaned}'")
        return cleaned

    async def load(self, name: str) -> None:
        """
        Apply a preset to the live configuration and make it active.

        The snapshot is resaved afterwards so the switch is not reported as an
        external change.
        """
        cleaned = validate_preset_name(name)
        await self._backend.load_preset(cleaned)
        self.set_active(cleaned)
        await self._resave_snapshot()
        await self._config.refresh(force=True)
        logger.info(f"Loaded preset '{cleaned}'")

    def load_default(self) -> None:
        """Switch back to the unnamed default configuration."""
        self.set_active(None)

    async def delete(self, name: str) -> None:
        """
        Delete a preset.

        Raises:
            PresetLifecycleError: For the default configuration, the active
                preset, or the last remaining preset.
        """
        if not name:
            raise PresetLifecycleError("The default configuration cannot be deleted")
        if name == self._active:
            raise PresetLifecycleError(f"Preset '{name}' is active and cannot be deleted")
        names = await self.list_presets()
        if len(names) <= 1:
            raise PresetLifecycleError("Cannot delete the only remaining preset")

        await self._backend.delete_preset(name)
        self._names = [n for n in names if n != name]
        if self._selected == name:
            self._selected = None
        logger.info(f"Deleted preset '{name}'")

    async def delete_many(self, names: Iterable[str]) -> List[str]:
        """Delete several presets, refusing if that would leave none."""
        targets = list(dict.fromkeys(n for n in names if n))
        if self._active in targets:
            raise PresetLifecycleError(f"Preset '{self._active}' is active and cannot be deleted")
        existing = await self.list_presets()
        if len(existing) <= 1:
            raise PresetLifecycleError("Cannot delete presets when only one exists")
        if len(existing) - len([n for n in targets if n in existing]) < 1:
            raise PresetLifecycleError("At least one preset must remain")

        deleted: List[str] = []
        try:
            for name in targets:
                await self._backend.delete_preset(name)
                deleted.append(name)
        finally:
            self._names = [n for n in existing if n not in deleted]
            if self._selected in deleted:
                self._selected = None
        return deleted

    async def rename(self, old_name: str, new_name: str) -> str:
        """
        Rename a preset, repointing the active and selected references.

        Raises:
            PresetValidationError: If the new name is invalid or already used.
            PresetLifecycleError: If ``old_name`` is the default configuration.
        """
        if not old_name:
            raise PresetLifecycleError("The default configuration cannot be renamed")
        cleaned = validate_preset_name(new_name)
        names = await self.list_presets()
        if old_name not in names:
            raise PresetValidationError(f"Preset '{old_name}' does not exist")
        if cleaned == old_name:
            return old_name
        if cleaned in names:
            raise PresetValidationError(f"A preset named '{cleaned}' already exists")

        await self._backend.rename_preset(old_name, cleaned)

        self._names = [cleaned if n == old_name else n for n in names]
        if self._active == old_name:
            self.set_active(cleaned)
        if self._selected == old_name:
            self._selected = cleaned
        logger.info(f"Renamed preset '{old_name}' to '{cleaned}'")
        return cleaned

    async def sync_active(self) -> bool:
        """
        Re-persist the active preset from the current configuration.

        Returns True when a preset was updated. Failures are logged and
        reported as a warning; they never undo the configuration edit.
        """
        name = self._active
        if not is_editable_preset(name):
            return False
        try:
            await self._backend.update_preset(name)
        except Exception as exc:
            message = f"Configuration saved, but syncing preset '{name}' failed: {exc}"
            logger.warning(message)
            if self._app_state is not None:
                self._app_state.push_notification(message, severity="warning")
            return False
        logger.debug(f"Synced preset '{name}'")
        return True

    async def list_builtin(self) -> List[BuiltinPresetInfo]:
        return await self._backend.list_builtin_presets()

    async def apply_builtin(self, preset_id: str) -> None:
        """Apply a read-only builtin preset; the default configuration becomes active."""
        if not preset_id:
            raise PresetValidationError("Builtin preset id cannot be empty")
        await self._backend.apply_builtin_preset(preset_id)
        self.set_active(None)
        await self._resave_snapshot()
        await self._config.refresh(force=True)
        logger.info(f"Applied builtin preset '{preset_id}'")

    async def _resave_snapshot(self) -> None:
        if self._detector is not None:
            await self._detector.ignore_changes()
        else:
            await self._backend.save_config_snapshot()
