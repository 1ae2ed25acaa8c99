"""
Optimistic edits of agent and category assignments.

Each edit is written to the cached configuration first, then sent to the
backend, then propagated to the active preset. A failed backend call is
raised to the caller but the optimistic value is not rolled back; the next
configuration refresh reconciles it.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Literal, Optional

from omo.backend.base import ConfigBackend
from omo.logging import get_logger
from omo.models import (
    AgentAssignment,
    AssignmentUpdate,
    Configuration,
    ProviderModelCatalog,
    normalize_assignment,
)

from .changes import ChangeDetector
from .presets import PresetCoordinator
from .resource import ResourceCache

logger = get_logger(__name__)

Section = Literal["agents", "categories"]


class OptimisticMutations:
    """User-initiated assignment and custom-model edits."""

    def __init__(
        self,
        backend: ConfigBackend,
        config_cache: ResourceCache[Configuration],
        catalog_cache: ResourceCache[ProviderModelCatalog],
        presets: PresetCoordinator,
        detector: Optional[ChangeDetector] = None,
    ) -> None:
        self._backend = backend
        self._config = config_cache
        self._catalog = catalog_cache
        self._presets = presets
        self._detector = detector

    async def assign_agent(self, name: str, model: str, variant: Optional[str] = None) -> Configuration:
        return await self._assign_one("agents", name, model, variant)

    async def assign_category(self, name: str, model: str, variant: Optional[str] = None) -> Configuration:
        return await self._assign_one("categories", name, model, variant)

    async def _assign_one(
        self,
        section: Section,
        name: str,
        model: str,
        variant: Optional[str],
    ) -> Configuration:
        assignment = normalize_assignment(model, variant)
        self._write_local({section: {name: assignment}})

        try:
            confirmed = await self._backend.update_agent_model(name, assignment.model, assignment.variant)
        except Exception as exc:
            logger.error(f"Updating {section[:-1]} '{name}' failed; cached value kept until next refresh: {exc}")
            raise
        self._config.apply(confirmed)

        await self._presets.sync_active()
        return confirmed

    async def assign_batch(
        self,
        agents: Iterable[str] = (),
        categories: Iterable[str] = (),
        *,
        model: str,
        variant: Optional[str] = None,
        target_preset: Optional[str] = None,
    ) -> Optional[Configuration]:
        """
        Assign one model to several agents and categories.

        With ``target_preset`` naming a preset other than the active one, only
        that preset's file is changed and ``None`` is returned.
        """
        assignment = normalize_assignment(model, variant)
        agent_names = list(dict.fromkeys(agents))
        category_names = list(dict.fromkeys(categories))
        updates: List[AssignmentUpdate] = [
            AssignmentUpdate(name=n, model=assignment.model, variant=assignment.variant)
            for n in agent_names + category_names
        ]
        if not updates:
            return None

        if target_preset and target_preset != self._presets.active:
            await self._backend.apply_updates_to_preset(target_preset, updates)
            logger.info(f"Applied {len(updates)} update(s) to preset '{target_preset}'")
            return None

        self._write_local({
            "agents": {n: assignment for n in agent_names},
            "categories": {n: assignment for n in category_names},
        })

        try:
            confirmed = await self._backend.update_agents_batch(updates)
        except Exception as exc:
            logger.error(f"Batch update of {len(updates)} assignment(s) failed; cached values kept: {exc}")
            raise
        self._config.apply(confirmed)

        if self._presets.active:
            await self._acknowledge_snapshot()
            await self._presets.sync_active()
        return confirmed

    async def add_custom_model(self, provider_id: str, model_id: str) -> None:
        provider_id, model_id = provider_id.strip(), model_id.strip()
        if not provider_id or not model_id:
            raise ValueError("Provider and model id are required")
        await self._backend.add_custom_model(provider_id, model_id)
        await self._catalog.refresh(force=True)

    async def remove_custom_model(self, provider_id: str, model_id: str) -> None:
        await self._backend.remove_custom_model(provider_id, model_id)
        await self._catalog.refresh(force=True)

    def _write_local(self, edits: Dict[Section, Dict[str, AgentAssignment]]) -> None:
        def _mutate(config: Configuration) -> Configuration:
            updated = config.copy()
            updated.agents.update(edits.get("agents", {}))
            updated.categories.update(edits.get("categories", {}))
            return updated

        if not self._config.update(_mutate):
            logger.debug("Configuration not loaded yet; skipping optimistic write")

    async def _acknowledge_snapshot(self) -> None:
        try:
            if self._detector is not None:
                await self._detector.ignore_changes()
            else:
                await self._backend.save_config_snapshot()
        except Exception as exc:
            logger.warning(f"Could not resave snapshot after batch update: {exc}")
