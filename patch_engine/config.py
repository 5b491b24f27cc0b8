"""
Configuration. Loads settings from .patch_engine.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "max_workers": 4,
    "validate_syntax": False,
    "strip": None,
    "log_dir": ".patch_engine/logs",
    "report_dir": ".patch_engine/reports",
    "metrics": True,
    "metrics_dir": ".patch_engine/metrics",
}

_ENV_PREFIX = "PATCH_ENGINE_"

# Config file search locations
_CONFIG_FILENAMES = [".patch_engine.yaml", ".patch_engine.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _to_strip(value) -> int | None:
    if value is None or (isinstance(value, str) and value.strip().lower() in ("", "auto")):
        return None
    return int(value)


class Config:
    """Patch engine configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables (``PATCH_ENGINE_<KEY>``)
    3. .patch_engine.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(key: str, cast=str):
            env_val = os.getenv(_ENV_PREFIX + key.upper())
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(key)
            if yaml_val is not None:
                return cast(yaml_val)
            return _DEFAULTS[key]

        self.MAX_WORKERS = max(1, _get("max_workers", cast=int))
        self.VALIDATE_SYNTAX = _get("validate_syntax", cast=_to_bool)
        self.STRIP = _get("strip", cast=_to_strip)

        self.LOG_DIR = _get("log_dir")
        self.REPORT_DIR = _get("report_dir")

        self.METRICS_ENABLED = _get("metrics", cast=_to_bool)
        self.METRICS_DIR = _get("metrics_dir")

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
