"""Centralized path configuration for the application."""

import os
from pathlib import Path

def get_data_root() -> Path:
    """
    Get the root directory for run artifacts (checkpoints, exports).

    Respects the ROSTER_DATA_DIR environment variable.
    If not set, defaults to the current working directory.
    """
    env_path = os.getenv("ROSTER_DATA_DIR")
    if env_path:
        return Path(env_path)
    return Path(".")

def get_checkpoints_root() -> Path:
    """Get the root directory for run checkpoints."""
    return get_data_root() / "checkpoints"

def get_exports_root() -> Path:
    """Get the root directory for CSV exports."""
    return get_data_root() / "exports"

def default_checkpoint_path(document: Path) -> Path:
    """Checkpoint location used when none is given for ``document``."""
    return get_checkpoints_root() / f"{Path(document).stem}.checkpoint.json"
