import os
from pathlib import Path

# --- Centralized Path Constant ---
# Single source of truth for the PJE_HOME path.
PJE_HOME = Path(os.getenv("PJE_HOME", Path.home() / ".pje"))


def ensure_dir(path: Path) -> Path:
    """Creates the directory (and parents) if needed and returns it."""
    path.mkdir(parents=True, exist_ok=True)
    return path
