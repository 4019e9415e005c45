"""Default configuration values.

This module defines the built-in default configuration values that are used
when no other configuration sources provide values.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "logging": {
        "level": "warning",
        "format": "text",
        "file": "",
    },
    "render": {
        "on_missing_key": "error",
        "preserve_mode": True,
        "skip_files": [],
    },
}

CONFIG_FILE_NAME = "stencil.toml"
ENV_PREFIX = "STENCIL_"
