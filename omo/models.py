"""
Typed views of the data exchanged with the configuration backend.

The backend speaks plain JSON objects; these dataclasses convert to and from
that shape with ``from_dict`` / ``to_dict``.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

Variant = Literal["max", "high", "medium", "low", "none"]
ChangeType = Literal["added", "removed", "modified"]

VARIANTS: tuple[str, ...] = ("max", "high", "medium", "low", "none")
NO_VARIANT = "none"


def normalize_variant(variant: Optional[str], *, strict: bool = True) -> Optional[str]:
    """Map ``"none"`` and empty values to ``None`` (no explicit variant).

    The backend never persists ``variant: "none"``; the client applies the
    same rule so its cached view and the persisted file compare equal.
    With ``strict=False`` any other value is kept as written, since the file
    may be edited by hand.
    """
    if variant is None:
        return None
    value = str(variant).strip().lower()
    if not value or value == NO_VARIANT:
        return None
    if not strict:
        return str(variant)
    if value not in VARIANTS:
        raise ValueError(f"Unknown variant '{variant}', expected one of {', '.join(VARIANTS)}")
    return value


@dataclass(frozen=True)
class AgentAssignment:
    """Model assignment for a single agent or category."""

    model: str
    variant: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AgentAssignment":
        extra = {k: deepcopy(v) for k, v in raw.items() if k not in {"model", "variant"}}
        return cls(
            model=str(raw.get("model") or ""),
            variant=normalize_variant(raw.get("variant"), strict=False),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = deepcopy(self.extra)
        data["model"] = self.model
        if self.variant is not None:
            data["variant"] = self.variant
        return data


def normalize_assignment(model: str, variant: Optional[str] = None) -> AgentAssignment:
    """Build an assignment with the variant normalization applied."""
    return AgentAssignment(model=model, variant=normalize_variant(variant))


@dataclass
class Configuration:
    """Agent and category assignments plus passthrough top-level keys."""

    agents: Dict[str, AgentAssignment] = field(default_factory=dict)
    categories: Dict[str, AgentAssignment] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "Configuration":
        raw = raw or {}
        agents = {
            str(name): AgentAssignment.from_dict(entry or {})
            for name, entry in (raw.get("agents") or {}).items()
        }
        categories = {
            str(name): AgentAssignment.from_dict(entry or {})
            for name, entry in (raw.get("categories") or {}).items()
        }
        extra = {k: deepcopy(v) for k, v in raw.items() if k not in {"agents", "categories"}}
        return cls(agents=agents, categories=categories, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = deepcopy(self.extra)
        data["agents"] = {name: a.to_dict() for name, a in self.agents.items()}
        data["categories"] = {name: a.to_dict() for name, a in self.categories.items()}
        return data

    def copy(self) -> "Configuration":
        return Configuration(
            agents=dict(self.agents),
            categories=dict(self.categories),
            extra=deepcopy(self.extra),
        )

    def with_agent(self, name: str, assignment: AgentAssignment) -> "Configuration":
        updated = self.copy()
        updated.agents[name] = assignment
        return updated

    def with_category(self, name: str, assignment: AgentAssignment) -> "Configuration":
        updated = self.copy()
        updated.categories[name] = assignment
        return updated


@dataclass(frozen=True)
class AssignmentUpdate:
    """One entry of a batch update request."""

    name: str
    model: str
    variant: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agentName": self.name,
            "model": self.model,
            "variant": self.variant or NO_VARIANT,
        }


@dataclass(frozen=True)
class ConfigChange:
    """One divergent leaf between the saved snapshot and the live file."""

    path: str
    change_type: ChangeType
    old_value: Any = None
    new_value: Any = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ConfigChange":
        change_type = str(raw.get("change_type") or "modified")
        if change_type not in {"added", "removed", "modified"}:
            raise ValueError(f"Unknown change_type '{change_type}'")
        return cls(
            path=str(raw.get("path") or ""),
            change_type=change_type,  # type: ignore[arg-type]
            old_value=raw.get("old_value"),
            new_value=raw.get("new_value"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "change_type": self.change_type,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


@dataclass(frozen=True)
class PresetMeta:
    """Preset file metadata; timestamps are Unix milliseconds."""

    created_at: int
    updated_at: int
    version: int = 1

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PresetMeta":
        return cls(
            created_at=int(raw.get("created_at") or 0),
            updated_at=int(raw.get("updated_at") or 0),
            version=int(raw.get("version") or 1),
        )


@dataclass(frozen=True)
class AcceptExternalResult:
    """Outcome of adopting the live file as the authoritative configuration."""

    config: Configuration
    active_preset: Optional[str] = None
    preset_synced: bool = False
    preset_sync_error: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AcceptExternalResult":
        return cls(
            config=Configuration.from_dict(raw.get("config")),
            active_preset=raw.get("active_preset") or None,
            preset_synced=bool(raw.get("preset_synced")),
            preset_sync_error=raw.get("preset_sync_error") or None,
        )


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    pricing: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ModelInfo":
        return cls(
            id=str(raw.get("id") or ""),
            name=raw.get("name"),
            description=raw.get("description"),
            pricing=dict(raw.get("pricing") or {}),
        )


@dataclass(frozen=True)
class ProviderModelCatalog:
    """Models grouped by provider, connected providers and custom overlay."""

    grouped: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    providers: Tuple[str, ...] = ()
    custom: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    infos: Dict[str, ModelInfo] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        available: Dict[str, List[str]],
        providers: List[str],
        custom: Optional[Dict[str, List[str]]] = None,
        infos: Optional[List[ModelInfo]] = None,
    ) -> "ProviderModelCatalog":
        # Most models first, ties broken by provider name
        ordered = sorted(
            ((str(p), tuple(models or ())) for p, models in (available or {}).items()),
            key=lambda item: (-len(item[1]), item[0]),
        )
        return cls(
            grouped=tuple(ordered),
            providers=tuple(providers or ()),
            custom={str(p): tuple(m or ()) for p, m in (custom or {}).items()},
            infos={info.id: info for info in (infos or []) if info.id},
        )

    def models_for(self, provider: str) -> List[str]:
        """Backend models for ``provider`` followed by custom additions."""
        base = next((list(models) for name, models in self.grouped if name == provider), [])
        for model in self.custom.get(provider, ()):
            if model not in base:
                base.append(model)
        return base

    def is_custom(self, provider: str, model: str) -> bool:
        return model in self.custom.get(provider, ())

    def is_connected(self, provider: str) -> bool:
        return provider in self.providers


@dataclass(frozen=True)
class VersionInfo:
    name: str
    current_version: Optional[str] = None
    latest_version: Optional[str] = None
    has_update: bool = False
    update_command: str = ""
    update_hint: str = ""
    installed: bool = False

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "VersionInfo":
        return cls(
            name=str(raw.get("name") or ""),
            current_version=raw.get("current_version"),
            latest_version=raw.get("latest_version"),
            has_update=bool(raw.get("has_update")),
            update_command=str(raw.get("update_command") or ""),
            update_hint=str(raw.get("update_hint") or ""),
            installed=bool(raw.get("installed")),
        )


@dataclass(frozen=True)
class BuiltinPresetInfo:
    id: str
    name: str
    description: str = ""
    icon: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BuiltinPresetInfo":
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or raw.get("id") or ""),
            description=str(raw.get("description") or ""),
            icon=raw.get("icon"),
        )


@dataclass(frozen=True)
class UpstreamStatus:
    """Whether the upstream default configuration changed since last sync."""

    has_update: bool
    content_hash: str = ""
    last_checked: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], *, checked_at: Optional[str] = None) -> "UpstreamStatus":
        return cls(
            has_update=bool(raw.get("has_update")),
            content_hash=str(raw.get("content_hash") or ""),
            last_checked=checked_at,
        )
