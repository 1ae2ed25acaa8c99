"""
Global path helpers for OMO Switch.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


GLOBAL_FOLDER_ENV_VAR = "OMO_GLOBAL_FOLDER"


def get_global_folder(override: Optional[str | Path] = None) -> Path:
    """
    Resolve the global client state folder.

    Priority:
    1. Explicit override argument
    2. OMO_GLOBAL_FOLDER environment variable
    3. <home>/.config/OMO-Switch
    """
    candidate: str | Path | None = override
    if candidate is None:
        candidate = os.environ.get(GLOBAL_FOLDER_ENV_VAR)
    if candidate is None:
        candidate = Path.home() / ".config" / "OMO-Switch"
    return Path(candidate).expanduser().resolve()


def get_state_file(name: str, global_folder: Optional[str | Path] = None) -> Path:
    """Return the path of a client state file inside the global folder."""
    return get_global_folder(global_folder) / name


def ensure_global_folder(global_folder: Optional[str | Path] = None) -> Path:
    """Create the global folder if needed and return it."""
    root = get_global_folder(global_folder)
    root.mkdir(parents=True, exist_ok=True)
    return root
