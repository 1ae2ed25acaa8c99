from __future__ import annotations

import asyncio
from copy import deepcopy

import pytest

from omo.errors import BackendError
from omo.models import AgentAssignment, normalize_assignment


def test_three_agent_variant_scenario(backend, make_store) -> None:
    store = make_store()
    observed: list[AgentAssignment] = []

    async def _run():
        await store.start()
        for name in ("sisyphus", "oracle", "librarian"):
            assert store.config.data.agents[name] == AgentAssignment("openai/gpt-4", "high")

        hold = backend.hold("update_agent_model")
        task = asyncio.create_task(store.mutations.assign_agent("oracle", "openai/gpt-4", "none"))
        await asyncio.sleep(0)
        # optimistic value is visible before the backend confirms
        observed.append(store.config.data.agents["oracle"])
        hold.set()
        await task
        return await backend.compare_with_snapshot()

    changes = asyncio.run(_run())

    assert observed[0] == AgentAssignment("openai/gpt-4")
    assert "variant" not in observed[0].to_dict()
    assert backend.live["agents"]["oracle"] == {"model": "openai/gpt-4"}
    assert store.config.data.agents["oracle"].to_dict() == {"model": "openai/gpt-4"}
    assert len(changes) == 1
    assert changes[0].path == "agents.oracle"
    assert changes[0].change_type == "modified"


def test_assigning_none_variant_produces_no_false_diff(backend, make_store) -> None:
    backend.live["agents"]["oracle"] = {"model": "openai/gpt-4"}
    backend.snapshot = deepcopy(backend.live)
    store = make_store()

    async def _run():
        await store.start()
        await store.mutations.assign_agent("oracle", "openai/gpt-4", "none")
        return await backend.compare_with_snapshot()

    assert asyncio.run(_run()) == []
    assert store.config.data.agents["oracle"] == normalize_assignment("openai/gpt-4", "none")


def test_assign_category_updates_cache_and_backend(backend, make_store) -> None:
    store = make_store()

    async def _run():
        await store.start()
        return await store.mutations.assign_category("quick", "openai/gpt-4o", "low")

    confirmed = asyncio.run(_run())
    assert confirmed.categories["quick"] == AgentAssignment("openai/gpt-4o", "low")
    assert store.config.data.categories["quick"].variant == "low"
    assert backend.live["categories"]["quick"] == {"model": "openai/gpt-4o", "variant": "low"}


def test_assignment_resyncs_active_preset(backend, make_store) -> None:
    backend.add_preset("work")
    store = make_store()
    store.presets.set_active("work")

    async def _run():
        await store.start()
        await store.mutations.assign_agent("sisyphus", "anthropic/claude-opus")

    asyncio.run(_run())
    commands = backend.commands()
    assert commands.index("update_agent_model") < commands.index("update_preset")
    assert backend.presets["work"]["agents"]["sisyphus"]["model"] == "anthropic/claude-opus"
    # single edits are not acknowledged in the snapshot
    assert backend.count("save_config_snapshot") == 0


def test_no_preset_sync_without_active_preset(backend, make_store) -> None:
    store = make_store()

    async def _run():
        await store.start()
        await store.mutations.assign_agent("sisyphus", "anthropic/claude-opus")

    asyncio.run(_run())
    assert backend.count("update_preset") == 0


def test_authoritative_failure_raises_and_keeps_optimistic_value(backend, make_store) -> None:
    backend.fail("update_agent_model", "write failed")
    store = make_store()

    async def _run():
        await store.start()
        await store.mutations.assign_agent("sisyphus", "anthropic/claude-opus")

    with pytest.raises(BackendError):
        asyncio.run(_run())
    assert store.config.data.agents["sisyphus"].model == "anthropic/claude-opus"
    assert backend.live["agents"]["sisyphus"]["model"] == "openai/gpt-4"
    assert backend.count("update_preset") == 0


def test_preset_sync_failure_does_not_fail_assignment(backend, make_store) -> None:
    backend.add_preset("work")
    backend.fail("update_preset", "locked")
    store = make_store()
    store.presets.set_active("work")

    async def _run():
        await store.start()
        return await store.mutations.assign_agent("sisyphus", "anthropic/claude-opus")

    confirmed = asyncio.run(_run())
    assert confirmed.agents["sisyphus"].model == "anthropic/claude-opus"
    assert len(store.app_state.warnings()) == 1


def test_invalid_variant_rejected_before_any_write(backend, make_store) -> None:
    store = make_store()

    async def _run():
        await store.start()
        await store.mutations.assign_agent("sisyphus", "openai/gpt-4", "ultra")

    with pytest.raises(ValueError):
        asyncio.run(_run())
    assert backend.count("update_agent_model") == 0
    assert store.config.data.agents["sisyphus"].variant == "high"


def test_batch_assignment_on_live_config(backend, make_store) -> None:
    backend.add_preset("work")
    store = make_store()
    store.presets.set_active("work")

    async def _run():
        await store.start()
        return await store.mutations.assign_batch(
            ["sisyphus", "oracle"], ["quick"], model="anthropic/claude-sonnet", variant="max",
        )

    confirmed = asyncio.run(_run())
    for name in ("sisyphus", "oracle"):
        assert confirmed.agents[name] == AgentAssignment("anthropic/claude-sonnet", "max")
    assert confirmed.categories["quick"] == AgentAssignment("anthropic/claude-sonnet", "max")
    assert store.config.data.agents["librarian"].model == "openai/gpt-4"
    updates = next(args for name, args in backend.calls if name == "update_agents_batch")["updates"]
    assert [u["agentName"] for u in updates] == ["sisyphus", "oracle", "quick"]
    assert backend.count("save_config_snapshot") == 1
    assert backend.presets["work"]["agents"]["oracle"]["variant"] == "max"


def test_batch_assignment_to_inactive_preset_leaves_live_config(backend, make_store) -> None:
    backend.add_preset("work")
    backend.add_preset("home")
    store = make_store()
    store.presets.set_active("work")

    async def _run():
        await store.start()
        return await store.mutations.assign_batch(
            ["oracle"], model="google/gemini-pro", variant="none", target_preset="home",
        )

    result = asyncio.run(_run())
    assert result is None
    assert backend.presets["home"]["agents"]["oracle"] == {"model": "google/gemini-pro"}
    assert backend.live["agents"]["oracle"]["model"] == "openai/gpt-4"
    assert store.config.data.agents["oracle"].model == "openai/gpt-4"
    assert backend.count("update_agents_batch") == 0


def test_custom_models_refresh_catalog(backend, make_store) -> None:
    store = make_store()

    async def _run():
        await store.start()
        await store.mutations.add_custom_model(" openai ", "gpt-5-preview")
        assert store.catalog.data.models_for("openai") == ["gpt-4", "gpt-4o", "gpt-5-preview"]
        await store.mutations.remove_custom_model("openai", "gpt-5-preview")

    asyncio.run(_run())
    assert store.catalog.data.models_for("openai") == ["gpt-4", "gpt-4o"]
    assert backend.count("get_custom_models") == 3


def test_custom_model_requires_ids(backend, make_store) -> None:
    store = make_store()

    with pytest.raises(ValueError):
        asyncio.run(store.mutations.add_custom_model("openai", "  "))
    assert backend.count("add_custom_model") == 0
