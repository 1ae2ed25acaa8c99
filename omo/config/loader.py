"""
Settings loader for OMO Switch.

Handles loading client settings from JSON/YAML files and converting them to
typed dataclass models.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from .models import BackendSettings, ClientSettings, SyncSettings


def parse_settings_text(content: str, path: Path | str) -> Dict[str, Any]:
    """
    Parse raw settings text using the file suffix to pick the format.

    Raises:
        ValueError: If the suffix is unsupported or the top level is not a mapping
    """
    suffix = Path(path).suffix.lower()
    if suffix in {".yaml", ".yml"}:
        raw = yaml.safe_load(content) or {}
    elif suffix == ".json":
        raw = json.loads(content) if content.strip() else {}
    else:
        raise ValueError(
            f"Unsupported settings format: {suffix}. "
            f"Use .json, .yaml, or .yml"
        )
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping at the top level: {path}")
    return raw


def load_raw_settings(path: Path) -> Dict[str, Any]:
    """
    Load raw settings from a JSON or YAML file.

    Also loads environment variables from a .env file if present.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the format is unsupported
    """
    load_dotenv()

    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    return parse_settings_text(path.read_text(encoding="utf-8"), path)


def build_backend_settings(raw: Dict[str, Any]) -> BackendSettings:
    kwargs: Dict[str, Any] = {}
    if raw.get("base_url"):
        kwargs["base_url"] = raw["base_url"]
    if raw.get("timeout") is not None:
        kwargs["timeout"] = raw["timeout"]
    return BackendSettings(**kwargs)


def build_sync_settings(raw: Dict[str, Any]) -> SyncSettings:
    debounce = raw.get("debounce_ms")
    if debounce is None:
        return SyncSettings()
    return SyncSettings(debounce_ms=int(debounce))


def build_settings_from_raw(raw: Dict[str, Any], path: Path | str | None = None) -> ClientSettings:
    """
    Build and validate :class:`ClientSettings` from a raw mapping.

    Raises:
        ValueError: If any section is invalid
    """
    settings = ClientSettings(
        global_folder=raw.get("global_folder"),
        backend=build_backend_settings(raw.get("backend") or {}),
        sync=build_sync_settings(raw.get("sync") or {}),
        log_level=raw.get("log_level") or "INFO",
        config_path=Path(path).expanduser().resolve() if path else None,
    )
    settings.validate()
    return settings


def load_settings_from_file(path: Path | str) -> ClientSettings:
    """
    Load and validate client settings from file.

    Example:
        >>> settings = load_settings_from_file("omo.yaml")
        >>> settings.backend.base_url
        'http://127.0.0.1:17890'
    """
    if isinstance(path, str):
        path = Path(path)

    path = path.expanduser().resolve()
    raw = load_raw_settings(path)
    return build_settings_from_raw(raw, path)


def settings_to_raw(settings: ClientSettings) -> Dict[str, Any]:
    """Serialize settings into a JSON/YAML-friendly dict."""
    return {
        "global_folder": str(settings.global_folder) if settings.global_folder else None,
        "log_level": settings.log_level,
        "backend": {
            "base_url": settings.backend.base_url,
            "timeout": settings.backend.timeout,
        },
        "sync": {
            "debounce_ms": settings.sync.debounce_ms,
        },
    }


def save_settings_to_file(settings: ClientSettings, path: Path | str) -> None:
    """Serialize and save settings to a JSON/YAML file."""
    if isinstance(path, str):
        path = Path(path)

    path = path.expanduser().resolve()
    raw = settings_to_raw(settings)

    suffix = path.suffix.lower()
    if suffix == ".json":
        path.write_text(json.dumps(raw, indent=2), encoding="utf-8")
    elif suffix in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(raw, sort_keys=False), encoding="utf-8")
    else:
        raise ValueError(
            f"Unsupported settings format: {suffix}. "
            f"Use .json, .yaml, or .yml"
        )
