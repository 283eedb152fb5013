"""
Configuration loading for pressdesk.

Defaults live in the packaged ``config.yaml``. A second YAML file named by
the ``PRESSDESK_CONFIG`` environment variable is deep-merged on top, and
``.env`` is loaded so ``GEMINI_API_KEY`` can be kept out of the shell.
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = Path(__file__).with_name("config.yaml")

_cached_config: Optional[Dict[str, Any]] = None


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration without touching the module cache.

    Args:
        path: Optional override file (defaults to $PRESSDESK_CONFIG)

    Returns:
        Nested configuration dictionary
    """
    load_dotenv()
    config = _read_yaml(DEFAULT_CONFIG_PATH)
    override_path = path or os.environ.get("PRESSDESK_CONFIG")
    if override_path:
        config = _deep_merge(config, _read_yaml(Path(override_path)))
    return config


def get_config() -> Dict[str, Any]:
    """Return the process-wide configuration (loaded once)."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reset_config_cache() -> None:
    global _cached_config
    _cached_config = None


def get_retry_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, float]:
    """Retry budget and backoff timing as plain numbers."""
    retry_cfg = (config or get_config()).get("retry") or {}
    return {
        "retries": int(retry_cfg.get("max_retries", 5)),
        "delay": float(retry_cfg.get("base_delay_seconds", 3.0)),
        "jitter": float(retry_cfg.get("max_jitter_seconds", 1.0)),
    }
