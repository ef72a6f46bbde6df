"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import SprigConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per invocation
_config_cache: dict[Path, SprigConfig] = {}

PROJECT_CONFIG_NAME = ".sprig.json"


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/sprig/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "sprig" / "config.json"


def get_project_config_path(repo_root: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        repo_root: Source repository root (defaults to current directory)

    Returns:
        Path to .sprig.json in the repository root
    """
    if repo_root is None:
        repo_root = Path.cwd()
    return repo_root / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested dicts
    are merged, everything else (including lists) is replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'x': 10, 'y': 2}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning(f"Ignoring config at {path}: top level is not an object")
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to parse config at {path}: {e}")
        return None


def _set_int(result: dict[str, Any], section: str, key: str, env_name: str) -> None:
    raw = os.environ.get(env_name)
    if not raw:
        return
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {env_name} value '{raw}', ignoring")
        return
    result.setdefault(section, {})[key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        SPRIG_WORKTREES_DIR - overrides worktrees_dir
        SPRIG_BRANCH_PREFIX - overrides branch_prefix
        SPRIG_PORT_KEY - overrides env.port_key
        SPRIG_PORT_LOW - overrides port.low
        SPRIG_PORT_SPAN - overrides port.span

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if worktrees_dir := os.environ.get("SPRIG_WORKTREES_DIR"):
        result["worktrees_dir"] = worktrees_dir

    if branch_prefix := os.environ.get("SPRIG_BRANCH_PREFIX"):
        result["branch_prefix"] = branch_prefix

    if port_key := os.environ.get("SPRIG_PORT_KEY"):
        result["env"] = {**result.get("env", {}), "port_key": port_key}

    if "port" in result:
        result["port"] = dict(result["port"])
    _set_int(result, "port", "low", "SPRIG_PORT_LOW")
    _set_int(result, "port", "span", "SPRIG_PORT_SPAN")

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "worktrees_dir": ".claude/worktrees",
        "branch_prefix": "worktree-",
        "env": {"files": [".env", ".env.local"], "dirs": []},
        "port": {"low": 3100, "span": 6900, "digits": 5},
    }


def load_config(repo_root: Path | None = None, use_cache: bool = True) -> SprigConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (SPRIG_*)
        2. Project config (.sprig.json in the repository root)
        3. User config (~/.config/sprig/config.json)
        4. Hardcoded defaults

    Args:
        repo_root: Repository root to load .sprig.json from (defaults to cwd)
        use_cache: If True, return cached config from a previous load

    Returns:
        Validated SprigConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    project_config_path = get_project_config_path(repo_root)

    if use_cache and project_config_path in _config_cache:
        return _config_cache[project_config_path]

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(project_config_path):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = SprigConfig(**merged)
    _config_cache[project_config_path] = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    _config_cache.clear()
