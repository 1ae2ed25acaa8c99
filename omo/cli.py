"""
Single-shot command runners for the ``omo`` CLI.

Each runner builds a :class:`~omo.state.store.SyncStore`, performs one
operation on the event loop and returns a process exit code.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

from omo.backend.base import ConfigBackend
from omo.config import ClientSettings, load_settings_from_file
from omo.errors import OmoError
from omo.logging import format_exception_summary, get_logger
from omo.models import AgentAssignment
from omo.paths import get_global_folder
from omo.state.changes import summarize_changes
from omo.state.store import SyncStore, build_store

logger = get_logger(__name__)

DEFAULT_SETTINGS_NAMES = ("omo.yaml", "omo.yml", "omo.json")

Runner = Callable[[SyncStore, object], Awaitable[int]]


def load_settings(config_path: Optional[str | Path]) -> ClientSettings:
    """
    Load settings from ``config_path`` or the global folder.

    Without an explicit path, the first ``omo.{yaml,yml,json}`` found in the
    global folder is used; when there is none, defaults apply.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if config_path is not None:
        path = Path(config_path).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")
        logger.info(f"Loading settings from: {path}")
        return load_settings_from_file(path)

    folder = get_global_folder()
    for name in DEFAULT_SETTINGS_NAMES:
        candidate = folder / name
        if candidate.exists():
            logger.info(f"Loading settings from: {candidate}")
            return load_settings_from_file(candidate)

    logger.debug(f"No settings file in {folder}; using defaults")
    return ClientSettings()


def run_command(args, settings: ClientSettings, *, backend: Optional[ConfigBackend] = None) -> int:
    """Dispatch a parsed command to its runner."""
    runner = _RUNNERS.get(args.command)
    if runner is None:
        print(f"Unknown command: {args.command}")
        return 2
    return asyncio.run(_with_store(runner, args, settings, backend))


async def _with_store(
    runner: Runner,
    args,
    settings: ClientSettings,
    backend: Optional[ConfigBackend],
) -> int:
    store = build_store(settings, backend)
    try:
        return await runner(store, args)
    except OmoError as exc:
        logger.error(f"{args.command} failed: {format_exception_summary(exc)}", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await store.close()
        for notification in store.app_state.drain_notifications():
            print(f"[{notification.severity}] {notification.message}")


def _format_assignment(name: str, assignment: AgentAssignment) -> str:
    variant = f" ({assignment.variant})" if assignment.variant else ""
    return f"  {name}: {assignment.model}{variant}"


async def run_status(store: SyncStore, args) -> int:
    """Preload every resource and print what was loaded."""
    await store.start()

    config = store.config.data
    if config is None:
        print(f"Configuration: error: {store.config.error}")
    else:
        print(f"Configuration ({len(config.agents)} agents, {len(config.categories)} categories)")
        for name, assignment in sorted(config.agents.items()):
            print(_format_assignment(name, assignment))
        for name, assignment in sorted(config.categories.items()):
            print(_format_assignment(name, assignment))

    catalog = store.catalog.data
    if catalog is None:
        print(f"Catalog: error: {store.catalog.error}")
    else:
        total = sum(len(models) for _, models in catalog.grouped)
        print(f"Catalog: {total} models from {len(catalog.grouped)} providers "
              f"({len(catalog.providers)} connected)")

    versions = store.versions.data
    if versions is None:
        print(f"Versions: error: {store.versions.error}")
    else:
        for info in versions:
            current = info.current_version or "not installed"
            suffix = f" -> {info.latest_version} available" if info.has_update else ""
            print(f"  {info.name}: {current}{suffix}")

    print(f"Active preset: {store.presets.active or '(default)'}")
    return 0 if config is not None else 1


async def run_check(store: SyncStore, args) -> int:
    """Compare the live file with the snapshot and print a summary."""
    detector = store.detector
    await detector.perform_check()
    if detector.error:
        print(f"Could not check for external changes: {detector.error}")
        return 1
    if not detector.has_changes:
        print("No external changes.")
        return 0
    print(f"{len(detector.changes)} external change(s):")
    for line in summarize_changes(detector.changes):
        print(f"  {line}")
    return 0


async def run_resolve(store: SyncStore, args) -> int:
    """Resolve a divergence: restore from cache, reload the preset, or accept."""
    reconciler = store.reconciler
    resolution = getattr(args, "resolve_command", None)

    if resolution == "cache":
        await store.config.refresh()
        await reconciler.restore_from_cache()
        print("Restored configuration from snapshot.")
        return 0

    if resolution == "preset":
        result = await reconciler.restore_from_preset()
        if not result.active_preset:
            print("No active preset to restore from.")
            return 1
        await store.presets.load(result.active_preset)
        print(f"Reloaded preset '{result.active_preset}'.")
        return 0

    if resolution == "accept":
        result = await reconciler.accept_external()
        print("Accepted external changes.")
        if result.warning:
            print(f"Warning: {result.warning}")
        return 0

    print("Missing resolve subcommand. Use `omo resolve --help` for options.")
    return 2


async def run_preset(store: SyncStore, args) -> int:
    """Preset lifecycle commands."""
    presets = store.presets
    command = getattr(args, "preset_command", None)

    if command == "list":
        names = await presets.list_presets()
        marker = "*" if presets.active is None else " "
        print(f"{marker} (default)")
        for name in names:
            marker = "*" if name == presets.active else " "
            print(f"{marker} {name}")
        return 0
    if command == "save":
        await store.config.refresh()
        name = await presets.save_as(args.name)
        print(f"Saved preset '{name}'.")
        return 0
    if command == "load":
        await presets.load(args.name)
        print(f"Loaded preset '{args.name}'.")
        return 0
    if command == "delete":
        deleted = await presets.delete_many(args.names)
        print(f"Deleted {len(deleted)} preset(s): {', '.join(deleted)}")
        return 0
    if command == "rename":
        new_name = await presets.rename(args.old_name, args.new_name)
        print(f"Renamed preset '{args.old_name}' to '{new_name}'.")
        return 0
    if command == "default":
        presets.load_default()
        print("Switched to the default configuration.")
        return 0

    print("Missing preset subcommand. Use `omo preset --help` for options.")
    return 2


async def run_assign(store: SyncStore, args) -> int:
    """Assign a model to one agent or category."""
    await store.config.refresh()
    target = getattr(args, "assign_command", None)
    if target == "agent":
        config = await store.mutations.assign_agent(args.name, args.model, args.variant)
        assignment = config.agents.get(args.name)
    elif target == "category":
        config = await store.mutations.assign_category(args.name, args.model, args.variant)
        assignment = config.categories.get(args.name)
    else:
        print("Missing assign target. Use `omo assign --help` for options.")
        return 2

    if assignment is not None:
        print(_format_assignment(args.name, assignment).strip())
    if store.presets.active:
        print(f"Active preset: {store.presets.active}")
    return 0


_RUNNERS = {
    "status": run_status,
    "check": run_check,
    "resolve": run_resolve,
    "preset": run_preset,
    "assign": run_assign,
}
