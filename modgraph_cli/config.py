"""Configuration paths for local ModGraph state."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("MODGRAPH_HOME", str(Path.home() / ".modgraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
HISTORY_FILE = BASE_DIR / "load_order_history.json"
DEFAULT_MAX_SNAPSHOTS = 20
CATALOG_ENV_VAR = "MODGRAPH_CATALOG"


def ensure_base_dirs() -> None:
    """Create the base directory for local state if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
