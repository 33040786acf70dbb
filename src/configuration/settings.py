"""
Layered harness settings:
- `config/default.yaml` (checked in)
- `config/config.yaml` (local overrides)
- plus any explicitly provided `--config` path (treated as overrides)
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional, Tuple

import yaml

from models.config import HarnessSettings
from runtime.errors import ConfigInvalid

DEFAULT_CONFIG_DIR = "config"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigInvalid(f"Failed to load configuration {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigInvalid(f"Configuration {path} must be a mapping")
    return data


def load_config(config_path: Optional[str] = None, config_dir: str = DEFAULT_CONFIG_DIR) -> Dict[str, Any]:
    """
    Load the merged settings dictionary.

    The defaults and local overrides are looked up next to config_path when
    it is given, otherwise in config_dir.
    """
    search_dir = os.path.dirname(config_path) if config_path else config_dir

    merged: Dict[str, Any] = {}
    base_path = os.path.join(search_dir, "default.yaml")
    if os.path.exists(base_path):
        merged = _read_yaml(base_path)

    local_overrides_path = os.path.join(search_dir, "config.yaml")
    if os.path.exists(local_overrides_path):
        merged = _deep_merge(merged, _read_yaml(local_overrides_path))

    if config_path:
        if not os.path.exists(config_path):
            raise ConfigInvalid(f"Configuration file not found: {config_path}")
        is_layer = os.path.abspath(config_path) in (
            os.path.abspath(base_path),
            os.path.abspath(local_overrides_path),
        )
        if not is_layer:
            merged = _deep_merge(merged, _read_yaml(config_path))

    return merged


def validate_settings(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate harness settings values.

    Returns:
        Tuple of (is_valid, error_message)
    """
    for key in ("component_name", "component_api", "component_model", "module_name"):
        if key in config and (not isinstance(config[key], str) or not config[key]):
            return False, f"{key} must be a non-empty string"

    if "attributes" in config and not isinstance(config["attributes"], dict):
        return False, "attributes must be a mapping"

    locator = config.get("locator", {}) or {}
    if not isinstance(locator, dict):
        return False, "locator must be a mapping"
    for key in ("base_dir", "extracted_subpath", "archive_glob"):
        if key in locator and (not isinstance(locator[key], str) or not locator[key]):
            return False, f"locator.{key} must be a non-empty string"

    timeouts = config.get("timeouts", {}) or {}
    if not isinstance(timeouts, dict):
        return False, "timeouts must be a mapping"
    for key, value in timeouts.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False, f"timeouts.{key} must be a number"
        if key == "poll_timeout_s":
            if value < 0:
                return False, "timeouts.poll_timeout_s must not be negative"
        elif value <= 0:
            return False, f"timeouts.{key} must be positive"

    log_level = config.get("log_level", "INFO")
    if log_level not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def load_settings(config_path: Optional[str] = None, config_dir: str = DEFAULT_CONFIG_DIR) -> HarnessSettings:
    """Load, validate and type the layered settings."""
    config = load_config(config_path, config_dir)
    is_valid, error = validate_settings(config)
    if not is_valid:
        raise ConfigInvalid(error)
    return HarnessSettings.from_dict(config)
