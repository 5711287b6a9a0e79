"""Configuration manager for ModGraph using a TOML file."""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml

from . import config

logger = logging.getLogger(__name__)


# Every recognised section and key, with its default value. The type of the
# default decides how string values from the command line are coerced.
DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "catalog": {
        "path": "",
    },
    "history": {
        "max_snapshots": config.DEFAULT_MAX_SNAPSHOTS,
        "file": "",
    },
    "analysis": {
        "include_native": False,
        "cycle_policy": "lenient",
    },
    "export": {
        "format": "json",
        "include_versions": True,
    },
}

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def load_full_config() -> Dict[str, Any]:
    """Load the raw TOML document, or an empty dict if absent or unreadable."""
    if not config.CONFIG_FILE.exists():
        return {}
    try:
        with open(config.CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", config.CONFIG_FILE, exc)
        return {}


def load_config() -> Dict[str, Dict[str, Any]]:
    """Load configuration merged over the defaults.

    Returns:
        A dict of sections. Keys that are not part of ``DEFAULT_CONFIG``
        are dropped with a warning.
    """
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in load_full_config().items():
        if section not in merged or not isinstance(values, dict):
            logger.warning("Unknown config section '%s' ignored", section)
            continue
        for key, value in values.items():
            if key not in merged[section]:
                logger.warning("Unknown config key '%s.%s' ignored", section, key)
                continue
            merged[section][key] = value
    return merged


def _save_full_config(document: Dict[str, Any]) -> None:
    config.ensure_base_dirs()
    with open(config.CONFIG_FILE, "w", encoding="utf-8") as f:
        toml.dump(document, f)


def save_config(section: str, values: Dict[str, Any]) -> None:
    """Update one section of the TOML file, preserving the others."""
    document = load_full_config()
    document.setdefault(section, {}).update(values)
    _save_full_config(document)


def parse_key(dotted: str) -> Tuple[str, str]:
    """Split ``section.key`` and check that it is a known setting."""
    section, _, key = dotted.partition(".")
    if not key or section not in DEFAULT_CONFIG or key not in DEFAULT_CONFIG[section]:
        raise KeyError(dotted)
    return section, key


def coerce_value(section: str, key: str, raw: str) -> Any:
    """Convert a command-line string to the type of the default value."""
    default = DEFAULT_CONFIG[section][key]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise ValueError(f"Expected a boolean for {section}.{key}, got '{raw}'")
    if isinstance(default, int):
        return int(raw)
    return raw


def set_value(dotted: str, raw: str) -> Any:
    """Parse, coerce and persist a single setting. Returns the stored value."""
    section, key = parse_key(dotted)
    value = coerce_value(section, key, raw)
    save_config(section, {key: value})
    return value


def history_file(settings: Optional[Dict[str, Dict[str, Any]]] = None) -> Path:
    settings = settings or load_config()
    configured = settings["history"].get("file")
    return Path(configured).expanduser() if configured else config.HISTORY_FILE


def catalog_path(settings: Optional[Dict[str, Dict[str, Any]]] = None) -> Optional[Path]:
    """Resolve the default catalog: environment first, then config."""
    env_value = os.environ.get(config.CATALOG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    settings = settings or load_config()
    configured = settings["catalog"].get("path")
    return Path(configured).expanduser() if configured else None
