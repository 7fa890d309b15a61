"""
config.py — YAML configuration loader.

Values in config.yaml are merged over DEFAULT_CONFIG so a partial file (or no
file at all) still yields a complete configuration dictionary.
"""

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "project": {
        "name": "ExecView",
        "version": "1.0.0",
    },
    "data_generation": {
        "seed": None,
        "series_counts": {
            "daily": 60,
            "weekly": 26,
            "monthly": 12,
            "quarterly": 8,
            "annually": 5,
        },
    },
    "storage": {
        "database_path": "data/execview.db",
    },
    "service": {
        "fetch_delay_ms": [300, 800],
        "update_delay_ms": [300, 600],
        "failure_rate": 0.05,
    },
    "paths": {
        "log_dir": "logs",
        "export_dir": "data/exports",
    },
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: str = "config.yaml") -> dict[str, Any]:
    """Load config.yaml and merge it over the defaults.

    Args:
        config_path: Path to configuration YAML.

    Returns:
        Complete configuration dictionary.
    """
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    path = Path(config_path)
    if not path.exists():
        logger.warning("Config not found at %s, using defaults", path)
        return cfg

    with open(path, "r") as fh:
        loaded = yaml.safe_load(fh) or {}
    logger.debug("Loaded config from %s", path)
    return _merge(cfg, loaded)
