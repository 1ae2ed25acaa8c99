"""
Shared pytest fixtures for OMO Switch tests.

Provides an in-memory backend that speaks the same command contract as the
real configuration backend, plus settings and store fixtures built on it.
"""

from __future__ import annotations

import asyncio
import time
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from omo.backend.base import ConfigBackend
from omo.config.models import ClientSettings
from omo.errors import BackendError
from omo.models import NO_VARIANT
from omo.state.presets import PresetPointerStore
from omo.state.store import SyncStore


def sample_config() -> Dict[str, Any]:
    return {
        "$schema": "https://example.invalid/oh-my-opencode.schema.json",
        "agents": {
            "sisyphus": {"model": "openai/gpt-4", "variant": "high"},
            "oracle": {"model": "openai/gpt-4", "variant": "high"},
            "librarian": {"model": "openai/gpt-4", "variant": "high"},
        },
        "categories": {
            "quick": {"model": "anthropic/claude-haiku"},
        },
    }


def diff_configs(old: Any, new: Any, path: str = "", depth: int = 0) -> List[Dict[str, Any]]:
    """Dotted-path diff; agent and category entries are compared as whole values."""
    if old == new:
        return []
    if isinstance(old, dict) and isinstance(new, dict) and depth < 2:
        changes: List[Dict[str, Any]] = []
        for key in sorted(set(old) | set(new)):
            child = f"{path}.{key}" if path else key
            if key not in new:
                changes.append({"path": child, "change_type": "removed", "old_value": old[key], "new_value": None})
            elif key not in old:
                changes.append({"path": child, "change_type": "added", "old_value": None, "new_value": new[key]})
            else:
                changes.extend(diff_configs(old[key], new[key], child, depth + 1))
        return changes
    return [{"path": path, "change_type": "modified", "old_value": old, "new_value": new}]


def merge_over(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = deepcopy(base)
        for key, value in overlay.items():
            merged[key] = merge_over(merged[key], value) if key in merged else deepcopy(value)
        return merged
    return deepcopy(overlay)


class FakeBackend(ConfigBackend):
    """
    In-memory configuration backend.

    ``live`` is the configuration file, ``snapshot`` the last acknowledged
    copy. Every command is recorded in ``calls``; ``fail()`` makes a command
    raise and ``hold()`` blocks it until the returned event is set.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self.live: Dict[str, Any] = deepcopy(config if config is not None else sample_config())
        self.snapshot: Optional[Dict[str, Any]] = deepcopy(self.live)
        self.presets: Dict[str, Dict[str, Any]] = {}
        self.preset_meta: Dict[str, Dict[str, int]] = {}
        self.active_preset: Optional[str] = None
        self.builtin: Dict[str, Dict[str, Any]] = {
            "balanced": {
                "info": {"id": "balanced", "name": "Balanced", "description": "Sensible defaults"},
                "config": {"agents": {"sisyphus": {"model": "anthropic/claude-sonnet"}}},
            },
        }
        self.available: Dict[str, List[str]] = {
            "openai": ["gpt-4", "gpt-4o"],
            "anthropic": ["claude-sonnet", "claude-haiku", "claude-opus"],
            "google": ["gemini-pro"],
        }
        self.providers: List[str] = ["openai", "anthropic"]
        self.custom: Dict[str, List[str]] = {}
        self.versions: List[Dict[str, Any]] = [
            {"name": "OpenCode", "current_version": "1.0.0", "latest_version": "1.1.0",
             "has_update": True, "installed": True},
        ]
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False
        self._failures: Dict[str, Exception] = {}
        self._holds: Dict[str, asyncio.Event] = {}

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------

    def count(self, command: str) -> int:
        return sum(1 for name, _ in self.calls if name == command)

    def commands(self) -> List[str]:
        return [name for name, _ in self.calls]

    def reset_calls(self) -> None:
        self.calls.clear()

    def fail(self, command: str, message: str = "backend unavailable") -> None:
        self._failures[command] = BackendError(message, command=command)

    def recover(self, command: str) -> None:
        self._failures.pop(command, None)

    def hold(self, command: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds[command] = event
        return event

    def edit_externally(self, mutate: Callable[[Dict[str, Any]], None]) -> None:
        """Change the live file without touching the snapshot."""
        mutate(self.live)

    def add_preset(self, name: str, config: Optional[Dict[str, Any]] = None) -> None:
        self.presets[name] = deepcopy(config if config is not None else self.live)
        now = int(time.time() * 1000)
        self.preset_meta[name] = {"created_at": now, "updated_at": now, "version": 1}

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def invoke(self, command: str, **args: Any) -> Any:
        self.calls.append((command, deepcopy(args)))
        hold = self._holds.get(command)
        if hold is not None:
            await hold.wait()
        else:
            await asyncio.sleep(0)
        if command in self._failures:
            raise self._failures[command]
        handler = getattr(self, f"_cmd_{command}", None)
        if handler is None:
            raise BackendError(f"Unknown command: {command}", command=command)
        return handler(**args)

    async def close(self) -> None:
        self.closed = True

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_update(config: Dict[str, Any], name: str, model: str, variant: Optional[str]) -> None:
        updated = False
        for section in ("agents", "categories"):
            entry = config.get(section, {}).get(name)
            if isinstance(entry, dict):
                entry["model"] = model
                if variant and variant != NO_VARIANT:
                    entry["variant"] = variant
                else:
                    entry.pop("variant", None)
                updated = True
        if not updated:
            raise BackendError(f"Unknown agent or category: {name}")

    def _require_preset(self, name: str) -> Dict[str, Any]:
        if name not in self.presets:
            raise BackendError(f"Preset not found: {name}")
        return self.presets[name]

    def _touch(self, name: str) -> None:
        self.preset_meta.setdefault(name, {"created_at": 0, "updated_at": 0, "version": 1})
        self.preset_meta[name]["updated_at"] = int(time.time() * 1000)

    def _cmd_read_omo_config(self) -> Dict[str, Any]:
        return deepcopy(self.live)

    def _cmd_update_agent_model(self, agentName: str, model: str, variant: Optional[str] = None) -> Dict[str, Any]:
        self._apply_update(self.live, agentName, model, variant)
        return deepcopy(self.live)

    def _cmd_update_agents_batch(self, updates: List[Dict[str, Any]]) -> Dict[str, Any]:
        for update in updates:
            self._apply_update(self.live, update["agentName"], update["model"], update.get("variant"))
        return deepcopy(self.live)

    def _cmd_list_presets(self) -> List[str]:
        return sorted(self.presets)

    def _cmd_save_preset(self, name: str) -> None:
        self.add_preset(name)
        self.active_preset = name

    def _cmd_load_preset(self, name: str) -> None:
        self.live = deepcopy(self._require_preset(name))
        self.active_preset = name

    def _cmd_delete_preset(self, name: str) -> None:
        self._require_preset(name)
        del self.presets[name]
        self.preset_meta.pop(name, None)

    def _cmd_rename_preset(self, oldName: str, newName: str) -> None:
        if newName in self.presets:
            raise BackendError(f"Preset already exists: {newName}")
        self.presets[newName] = self.presets.pop(oldName)
        self.preset_meta[newName] = self.preset_meta.pop(oldName, {"created_at": 0, "updated_at": 0, "version": 1})
        if self.active_preset == oldName:
            self.active_preset = newName

    def _cmd_update_preset(self, name: str) -> None:
        self._require_preset(name)
        self.presets[name] = deepcopy(self.live)
        self._touch(name)

    def _cmd_apply_updates_to_preset(self, name: str, updates: List[Dict[str, Any]]) -> None:
        preset = self._require_preset(name)
        for update in updates:
            self._apply_update(preset, update["agentName"], update["model"], update.get("variant"))
        self._touch(name)

    def _cmd_get_preset_config(self, name: str) -> Dict[str, Any]:
        return deepcopy(self._require_preset(name))

    def _cmd_get_preset_meta(self, name: str) -> Dict[str, int]:
        self._require_preset(name)
        return dict(self.preset_meta[name])

    def _cmd_get_builtin_presets(self) -> List[Dict[str, Any]]:
        return [dict(item["info"]) for item in self.builtin.values()]

    def _cmd_apply_builtin_preset(self, presetId: str) -> None:
        if presetId not in self.builtin:
            raise BackendError(f"Builtin preset not found: {presetId}")
        self.live = merge_over(self.live, self.builtin[presetId]["config"])
        self.active_preset = None

    def _cmd_ensure_snapshot_exists(self) -> bool:
        if self.snapshot is None:
            self.snapshot = deepcopy(self.live)
            return True
        return False

    def _cmd_compare_with_snapshot(self) -> List[Dict[str, Any]]:
        if self.snapshot is None:
            self.snapshot = deepcopy(self.live)
            return []
        return diff_configs(self.snapshot, self.live)

    def _cmd_save_config_snapshot(self) -> None:
        self.snapshot = deepcopy(self.live)

    def _cmd_merge_and_save(self) -> Dict[str, Any]:
        if self.snapshot is not None:
            self.live = merge_over(self.live, self.snapshot)
        return deepcopy(self.live)

    def _cmd_accept_external_changes(self) -> Dict[str, Any]:
        self.snapshot = deepcopy(self.live)
        synced = False
        sync_error: Optional[str] = None
        if self.active_preset:
            if "update_preset" in self._failures:
                sync_error = str(self._failures["update_preset"])
            else:
                self.presets[self.active_preset] = deepcopy(self.live)
                self._touch(self.active_preset)
                synced = True
        return {
            "config": deepcopy(self.live),
            "active_preset": self.active_preset,
            "preset_synced": synced,
            "preset_sync_error": sync_error,
        }

    def _cmd_get_available_models(self) -> Dict[str, List[str]]:
        return deepcopy(self.available)

    def _cmd_get_connected_providers(self) -> List[str]:
        return list(self.providers)

    def _cmd_get_custom_models(self) -> Dict[str, List[str]]:
        return deepcopy(self.custom)

    def _cmd_fetch_models_dev(self) -> List[Dict[str, Any]]:
        return [{"id": "openai/gpt-4", "name": "GPT-4", "pricing": {"input": 30.0}}]

    def _cmd_add_custom_model(self, providerId: str, modelId: str) -> None:
        models = self.custom.setdefault(providerId, [])
        if modelId not in models:
            models.append(modelId)

    def _cmd_remove_custom_model(self, providerId: str, modelId: str) -> None:
        models = self.custom.get(providerId, [])
        if modelId in models:
            models.remove(modelId)

    def _cmd_check_versions(self) -> List[Dict[str, Any]]:
        return deepcopy(self.versions)

    def _cmd_check_upstream_update(self) -> Dict[str, Any]:
        return {"has_update": False, "content_hash": "abc123"}


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_global_folder(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep client state files and env overrides out of the real home folder."""
    folder = tmp_path / "omo-home"
    monkeypatch.setenv("OMO_GLOBAL_FOLDER", str(folder))
    monkeypatch.delenv("OMO_BACKEND_URL", raising=False)
    monkeypatch.delenv("OMO_BACKEND_TIMEOUT", raising=False)
    return folder


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings(isolated_global_folder: Path) -> ClientSettings:
    return ClientSettings(global_folder=isolated_global_folder)


@pytest.fixture
def make_store(backend: FakeBackend, tmp_path: Path) -> Callable[..., SyncStore]:
    """Build a store over ``backend`` with a fast debounce and file-backed pointer."""

    def _make(debounce_seconds: float = 0.01, **kwargs: Any) -> SyncStore:
        pointer = kwargs.pop("pointer", PresetPointerStore(tmp_path / "active_preset.json"))
        return SyncStore(backend, debounce_seconds=debounce_seconds, pointer=pointer, **kwargs)

    return _make
