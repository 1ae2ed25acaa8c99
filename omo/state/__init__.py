"""Client-side synchronization state for OMO Switch."""

from .app_state import AppState, Notification
from .changes import ChangeDetector, DetectorPhase, summarize_changes
from .mutations import OptimisticMutations
from .preload import PreloadOrchestrator
from .presets import PresetCoordinator, PresetPointerStore, validate_preset_name
from .reconcile import Reconciler, Resolution, ResolutionResult
from .resource import ResourceCache, ResourceState
from .store import SyncStore, build_store

__all__ = [
    "AppState",
    "ChangeDetector",
    "DetectorPhase",
    "Notification",
    "OptimisticMutations",
    "PreloadOrchestrator",
    "PresetCoordinator",
    "PresetPointerStore",
    "Reconciler",
    "Resolution",
    "ResolutionResult",
    "ResourceCache",
    "ResourceState",
    "SyncStore",
    "build_store",
    "summarize_changes",
    "validate_preset_name",
]
