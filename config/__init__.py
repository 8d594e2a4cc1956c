"""Configuration package.

`get_config()` is the single source of truth for settings; the active profile
name is set once by the app factory via `set_config_name()`.
"""

import os

from .base import DEFAULT_SECRET_KEY
from .runtime import get_runtime_config
from .schema import AppConfig, RuntimeConfig

_config_name = "default"
_config_cache: AppConfig | None = None


def set_config_name(name: str) -> None:
    """Select the profile used by the next `get_config()` call."""
    global _config_name, _config_cache
    if name != _config_name:
        _config_cache = None
    _config_name = name or "default"


def get_config(reload: bool = False) -> AppConfig:
    global _config_cache
    if _config_cache is None or reload:
        _config_cache = AppConfig(
            runtime=get_runtime_config(_config_name),
            secret_key=os.environ.get("SECRET_KEY") or DEFAULT_SECRET_KEY,
        )
    return _config_cache


__all__ = [
    "AppConfig",
    "RuntimeConfig",
    "get_config",
    "set_config_name",
]
