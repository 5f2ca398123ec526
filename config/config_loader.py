"""
config_loader.py
-----------------
Reads config.yaml once and caches it. Detector thresholds and the pipeline's
lookback window are defaulted from here; explicit arguments always win.
"""

import os
import yaml
from typing import Any, Dict


DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")

_CONFIG_CACHE: Dict[str, Any] = {}


def load_config(config_path: str | None = None) -> Dict[str, Any]:
    """Load config.yaml (or `config_path`) on first call; later calls hit the cache."""
    global _CONFIG_CACHE

    if _CONFIG_CACHE:
        return _CONFIG_CACHE

    config_path = config_path or DEFAULT_CONFIG_PATH
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        _CONFIG_CACHE = yaml.safe_load(f) or {}

    return _CONFIG_CACHE


def get_recurring_detection_config() -> Dict[str, Any]:
    """Returns the recurring_detection block (detector thresholds)."""
    return load_config()["recurring_detection"]


def get_default_lookback_days() -> int | None:
    """Lookback window in days, or None when the config asks for full history."""
    days = (load_config().get("pipeline") or {}).get("default_lookback_days")
    return int(days) if days else None


def reset_config() -> None:
    global _CONFIG_CACHE
    _CONFIG_CACHE = {}
