from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.3.0"

_LAZY_EXPORTS = {
    "SyncStore": ("omo.state.store", "SyncStore"),
    "build_store": ("omo.state.store", "build_store"),
}

__all__ = ["__version__", "SyncStore", "build_store"]


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr_name = _LAZY_EXPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'omo' has no attribute '{name}'")
