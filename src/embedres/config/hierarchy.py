"""Configuration hierarchy: merges sources in priority order.

Precedence (later overrides earlier):
  1. Package defaults
  2. Global config   (~/.embedres/config.yaml)
  3. Project config   (./embedres.yaml, searched upward)
  4. Environment variables (JOPLIN_TOKEN, JOPLIN_SERVER_URL, EMBEDRES_*)
  5. Runtime arguments
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from embedres.config.defaults import get_defaults

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".embedres" / "config.yaml"
_PROJECT_CONFIG_NAME = "embedres.yaml"

_ENV_MAP: dict[str, str] = {
    "JOPLIN_TOKEN": "token",
    "JOPLIN_SERVER_URL": "server_url",
    "EMBEDRES_REQUEST_TIMEOUT": "request_timeout",
    "EMBEDRES_CACHE_MAX_ENTRIES": "cache_max_entries",
    "EMBEDRES_CACHE_MAX_SIZE_MB": "cache_max_size_mb",
    "EMBEDRES_CACHE_TTL_MINUTES": "cache_ttl_minutes",
    "EMBEDRES_MAX_CONCURRENCY": "max_concurrency",
    "EMBEDRES_RPM_LIMIT": "rpm_limit",
    "EMBEDRES_MAX_ATTEMPTS": "max_attempts",
    "EMBEDRES_BASE_DELAY": "base_delay",
    "EMBEDRES_MAX_DELAY": "max_delay",
    "EMBEDRES_LOG_LEVEL": "log_level",
}

# Keys that should be parsed as specific types
_TYPE_MAP: dict[str, type] = {
    "request_timeout": float,
    "cache_max_entries": int,
    "cache_max_size_mb": float,
    "cache_ttl_minutes": float,
    "max_concurrency": int,
    "rpm_limit": int,
    "max_attempts": int,
    "base_delay": float,
    "max_delay": float,
}


def load_config_hierarchy(
    global_path: Path | None = None,
    project_dir: Path | None = None,
    **runtime_overrides: Any,
) -> dict[str, Any]:
    """Load and merge configuration from all sources.

    ``global_path`` and ``project_dir`` override where the YAML layers are
    looked up. Returns a merged dict with the final resolved values.
    """
    config = get_defaults()

    global_cfg = _load_yaml_config(global_path or _GLOBAL_CONFIG_PATH)
    if global_cfg:
        config.update(global_cfg)

    project_path = _find_project_config(project_dir)
    if project_path:
        project_cfg = _load_yaml_config(project_path)
        if project_cfg:
            config.update(project_cfg)

    config.update(_load_env_vars())

    # Only override when explicitly set
    for key, value in runtime_overrides.items():
        if value is not None:
            config[key] = value

    return config


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Load a YAML config file if it exists."""
    if not path.exists() or not path.is_file():
        return None
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", path, e)
        return None
    if isinstance(data, dict):
        return data
    if data is not None:
        logger.warning("Config file %s is not a mapping, ignoring", path)
    return None


def _find_project_config(start: Path | None = None) -> Path | None:
    """Search for embedres.yaml from ``start`` (default cwd) upward."""
    cwd = (start or Path.cwd()).resolve()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / _PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def _load_env_vars() -> dict[str, Any]:
    """Read JOPLIN_* and EMBEDRES_* environment variables."""
    result: dict[str, Any] = {}
    for env_key, config_key in _ENV_MAP.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        result[config_key] = _coerce_env_value(config_key, value)
    return result


def _coerce_env_value(key: str, value: str) -> Any:
    """Coerce an environment variable string to the appropriate type."""
    target_type = _TYPE_MAP.get(key)
    if target_type:
        try:
            return target_type(value)
        except (ValueError, TypeError):
            logger.warning(
                "Cannot convert env var for '%s' to %s: %s", key, target_type.__name__, value
            )
            return value

    return value
