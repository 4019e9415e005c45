"""Stencil configuration.

This module provides the public API for stencil configuration management,
including loading, validation, and typed access to configuration values.

Example:
    >>> from stencil.config import Config
    >>> config = Config.load()
    >>> config.render.on_missing_key
    <MissingKeyPolicy.ERROR: 'error'>
"""

from stencil.exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
)

from ._defaults import CONFIG_FILE_NAME, DEFAULT_CONFIG, ENV_PREFIX
from ._load import safe_load_config
from ._loader import (
    copy_value,
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    Config,
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LoggingConfig,
    LogLevel,
    RenderConfig,
    SkipFile,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "RenderConfig",
    "SkipFile",
    "copy_value",
    "deep_merge",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
    "safe_load_config",
    "set_nested_key",
]
