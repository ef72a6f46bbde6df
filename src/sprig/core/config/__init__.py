"""
Configuration models and loading.

This module provides Pydantic models for sprig configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .env import PROJECT_DIR_ENV, read_env_file, resolve_repo_root
from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    EnvConfig,
    PortConfig,
    SetupCommand,
    SetupConfig,
    SprigConfig,
)

__all__ = [
    # Models
    "EnvConfig",
    "PortConfig",
    "SetupCommand",
    "SetupConfig",
    "SprigConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    # Environment helpers
    "PROJECT_DIR_ENV",
    "read_env_file",
    "resolve_repo_root",
]
