"""Preferences loading with defaults, environment and CLI override merging."""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Mapping

import yaml

DEFAULT_CONFIG_PATH = Path.home() / ".weekplan" / "config.yaml"
DEFAULT_STORE_PATH = Path.home() / ".weekplan" / "store.json"

TRUTHY = {"1", "true", "yes", "on"}

DEFAULTS = {
    "store": {
        "path": str(DEFAULT_STORE_PATH),
    },
    "calendar": {
        "timezone": "UTC",
    },
    "planning": {
        "default_status": "draft",
        "default_servings": 2,
        "default_meal_types": ["breakfast", "lunch", "dinner"],
    },
    "household": {
        "name": "My Household",
    },
    "shopping": {
        "pantry_staples": [],
    },
    "demo": {
        "enabled": False,
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Path | None = None) -> dict:
    """Load preferences from a YAML file, falling back to defaults."""
    path = config_path or DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path) as f:
            user_config = yaml.safe_load(f) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return deep_merge(copy.deepcopy(DEFAULTS), user_config)

    return copy.deepcopy(DEFAULTS)


def apply_env_overrides(config: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Apply environment overrides.

      WEEKPLAN_STORE     -> store.path
      WEEKPLAN_TIMEZONE  -> calendar.timezone
      WEEKPLAN_DEMO_DATA -> demo.enabled (truthy strings enable)
    """
    env = os.environ if environ is None else environ
    if env.get("WEEKPLAN_STORE"):
        config["store"]["path"] = env["WEEKPLAN_STORE"]
    if env.get("WEEKPLAN_TIMEZONE"):
        config["calendar"]["timezone"] = env["WEEKPLAN_TIMEZONE"]
    if env.get("WEEKPLAN_DEMO_DATA") is not None:
        config["demo"]["enabled"] = env["WEEKPLAN_DEMO_DATA"].strip().lower() in TRUTHY
    return config


def apply_cli_overrides(config: dict, **overrides: object) -> dict:
    """Apply CLI argument overrides to config.

    Supports flat keys that map into nested config:
      store -> store.path
      timezone -> calendar.timezone
      household -> household.name
      servings -> planning.default_servings
    """
    if overrides.get("store") is not None:
        config["store"]["path"] = str(overrides["store"])
    if overrides.get("timezone") is not None:
        config["calendar"]["timezone"] = overrides["timezone"]
    if overrides.get("household") is not None:
        config["household"]["name"] = overrides["household"]
    if overrides.get("servings") is not None:
        config["planning"]["default_servings"] = int(overrides["servings"])

    return config
