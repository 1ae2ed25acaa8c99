"""
Backend contract consumed by the synchronization engine.

Every operation is a single-shot request/response call identified by a
command name. Subclasses implement :meth:`ConfigBackend.invoke`; the typed
methods below translate between the wire payloads and :mod:`omo.models`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from omo.errors import BackendError
from omo.models import (
    AcceptExternalResult,
    AssignmentUpdate,
    BuiltinPresetInfo,
    ConfigChange,
    Configuration,
    ModelInfo,
    NO_VARIANT,
    PresetMeta,
    UpstreamStatus,
    VersionInfo,
    normalize_variant,
)


class ConfigBackend(ABC):
    """
    Abstract request/response client for the configuration backend.
    """

    @abstractmethod
    async def invoke(self, command: str, **args: Any) -> Any:
        """Send ``command`` with ``args`` and return the decoded result.

        Raises:
            BackendError: If the transport fails or the backend reports an error.
        """

    async def close(self) -> None:
        """Release transport resources."""

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def read_config(self) -> Configuration:
        return Configuration.from_dict(_expect_dict(await self.invoke("read_omo_config"), "read_omo_config"))

    async def update_agent_model(self, name: str, model: str, variant: Optional[str] = None) -> Configuration:
        raw = await self.invoke(
            "update_agent_model",
            agentName=name,
            model=model,
            variant=normalize_variant(variant) or NO_VARIANT,
        )
        return Configuration.from_dict(_expect_dict(raw, "update_agent_model"))

    async def update_agents_batch(self, updates: Sequence[AssignmentUpdate]) -> Configuration:
        raw = await self.invoke("update_agents_batch", updates=[u.to_dict() for u in updates])
        return Configuration.from_dict(_expect_dict(raw, "update_agents_batch"))

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    async def list_presets(self) -> List[str]:
        return [str(name) for name in (await self.invoke("list_presets") or [])]

    async def save_preset(self, name: str) -> None:
        await self.invoke("save_preset", name=name)

    async def load_preset(self, name: str) -> None:
        await self.invoke("load_preset", name=name)

    async def delete_preset(self, name: str) -> None:
        await self.invoke("delete_preset", name=name)

    async def rename_preset(self, old_name: str, new_name: str) -> None:
        await self.invoke("rename_preset", oldName=old_name, newName=new_name)

    async def update_preset(self, name: str) -> None:
        await self.invoke("update_preset", name=name)

    async def apply_updates_to_preset(self, name: str, updates: Sequence[AssignmentUpdate]) -> None:
        await self.invoke("apply_updates_to_preset", name=name, updates=[u.to_dict() for u in updates])

    async def get_preset_config(self, name: str) -> Configuration:
        raw = await self.invoke("get_preset_config", name=name)
        return Configuration.from_dict(_expect_dict(raw, "get_preset_config"))

    async def get_preset_meta(self, name: str) -> PresetMeta:
        raw = await self.invoke("get_preset_meta", name=name)
        return PresetMeta.from_dict(_expect_dict(raw, "get_preset_meta"))

    async def list_builtin_presets(self) -> List[BuiltinPresetInfo]:
        return [BuiltinPresetInfo.from_dict(item) for item in (await self.invoke("get_builtin_presets") or [])]

    async def apply_builtin_preset(self, preset_id: str) -> None:
        await self.invoke("apply_builtin_preset", presetId=preset_id)

    # ------------------------------------------------------------------
    # Snapshot and reconciliation
    # ------------------------------------------------------------------

    async def ensure_snapshot_exists(self) -> bool:
        return bool(await self.invoke("ensure_snapshot_exists"))

    async def compare_with_snapshot(self) -> List[ConfigChange]:
        return [ConfigChange.from_dict(item) for item in (await self.invoke("compare_with_snapshot") or [])]

    async def save_config_snapshot(self) -> None:
        await self.invoke("save_config_snapshot")

    async def merge_and_save(self) -> None:
        await self.invoke("merge_and_save")

    async def accept_external_changes(self) -> AcceptExternalResult:
        raw = await self.invoke("accept_external_changes")
        return AcceptExternalResult.from_dict(_expect_dict(raw, "accept_external_changes"))

    # ------------------------------------------------------------------
    # Catalog and versions
    # ------------------------------------------------------------------

    async def get_available_models(self) -> Dict[str, List[str]]:
        raw = _expect_dict(await self.invoke("get_available_models"), "get_available_models")
        return {str(p): [str(m) for m in models or []] for p, models in raw.items()}

    async def get_connected_providers(self) -> List[str]:
        return [str(p) for p in (await self.invoke("get_connected_providers") or [])]

    async def get_custom_models(self) -> Dict[str, List[str]]:
        raw = _expect_dict(await self.invoke("get_custom_models") or {}, "get_custom_models")
        return {str(p): [str(m) for m in models or []] for p, models in raw.items()}

    async def fetch_model_infos(self) -> List[ModelInfo]:
        return [ModelInfo.from_dict(item) for item in (await self.invoke("fetch_models_dev") or [])]

    async def add_custom_model(self, provider_id: str, model_id: str) -> None:
        await self.invoke("add_custom_model", providerId=provider_id, modelId=model_id)

    async def remove_custom_model(self, provider_id: str, model_id: str) -> None:
        await self.invoke("remove_custom_model", providerId=provider_id, modelId=model_id)

    async def check_versions(self) -> List[VersionInfo]:
        return [VersionInfo.from_dict(item) for item in (await self.invoke("check_versions") or [])]

    async def check_upstream_update(self) -> UpstreamStatus:
        raw = _expect_dict(await self.invoke("check_upstream_update"), "check_upstream_update")
        return UpstreamStatus.from_dict(raw, checked_at=datetime.now(timezone.utc).isoformat())


def _expect_dict(value: Any, command: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise BackendError(
            f"Unexpected response for {command}: expected an object, got {type(value).__name__}",
            command=command,
        )
    return value
