"""
Configuration helpers for sitebuild.
"""

from .models import CONFIG_FILENAME, BuildConfig, ConfigError, load_config, resolve_config
from .settings import EnvironmentOverrides, get_environment_overrides

__all__ = [
    "CONFIG_FILENAME",
    "BuildConfig",
    "ConfigError",
    "load_config",
    "resolve_config",
    "EnvironmentOverrides",
    "get_environment_overrides",
]
