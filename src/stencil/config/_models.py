# pyright: reportExplicitAny=false, reportAny=false
"""Configuration models.

This module provides Pydantic models for stencil configuration sections and
the main Config container class.
"""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from stencil.exceptions import ConfigValidationError
from stencil.templating import MissingKeyPolicy

from ._defaults import CONFIG_FILE_NAME, DEFAULT_CONFIG
from ._loader import copy_value, deep_merge, parse_env_vars, read_toml_file


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class ConfigSourceName(StrEnum):
    """Configuration source names in precedence order.

    Values are ordered from highest precedence (CLI) to lowest (DEFAULT).
    """

    CLI = "cli"
    ENV = "env"
    FILE = "file"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """Represents a configuration source.

    Attributes:
        name: The source type identifier.
        path: Path to the config file, or None for non-file sources.
        values: Configuration values from this source.
    """

    name: ConfigSourceName
    path: Path | None
    values: dict[str, Any]


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.WARNING
    format: LogFormat = LogFormat.TEXT
    file: str = ""


class SkipFile(BaseModel):
    """One ``[[render.skip_files]]`` entry.

    ``path``, ``not_path`` and ``if`` are template strings rendered against
    the variables before the walk. The rendered paths are gitignore-style
    patterns anchored at the template root.

    Attributes:
        path: Entries matching this pattern are skipped.
        not_path: When set, entries matching no ``not_path`` are skipped.
        if_: The entry only applies when this renders to ``true``. Empty
            means always.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="forbid", populate_by_name=True
    )

    path: str = ""
    not_path: str = ""
    if_: str = Field(default="", alias="if")


class RenderConfig(BaseModel):
    """Render configuration section.

    Attributes:
        on_missing_key: What a lookup of an absent key does: "error" fails
            the render, "zero" yields an empty value.
        preserve_mode: Copy file and directory permission bits from template
            to output.
        skip_files: Conditional path exclusions applied during the walk.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    on_missing_key: MissingKeyPolicy = MissingKeyPolicy.ERROR
    preserve_mode: bool = True
    skip_files: tuple[SkipFile, ...] = ()


class Config(BaseModel):
    """Configuration container with typed access.

    Use factory methods to create instances rather than the constructor.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)

    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        sources: tuple[ConfigSource, ...] = (),
    ) -> Self:
        """Create configuration from a dictionary merged over the defaults.

        Args:
            data: Dictionary of configuration values.
            sources: Sources that contributed to the values.

        Returns:
            Configuration object.

        Raises:
            ConfigValidationError: If a value fails validation.
        """
        merged = deep_merge(DEFAULT_CONFIG, data)
        try:
            config = cls.model_validate(merged)
        except ValidationError as e:
            error = e.errors()[0]
            key = ".".join(str(part) for part in error["loc"])
            msg = f"Invalid configuration value for {key}: {error['msg']}"
            raise ConfigValidationError(
                msg, key=key, value=error.get("input"), expected=error["msg"]
            ) from e
        config._sources = sources  # noqa: SLF001
        return config

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from a specific file.

        Args:
            path: Path to the TOML config file.

        Returns:
            Configuration object from the specified file only.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        data = read_toml_file(path)
        source = ConfigSource(name=ConfigSourceName.FILE, path=path, values=data)
        return cls.from_dict(data, sources=(source,))

    @classmethod
    def load(
        cls,
        *,
        config_path: Path | None = None,
        search_dir: Path | None = None,
        include_env: bool = True,
        cli_overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Sources merge in precedence order: defaults, then the config file,
        then environment variables, then CLI overrides.

        Args:
            config_path: Explicit config file. If None, ``stencil.toml`` in
                ``search_dir`` is used when it exists.
            search_dir: Directory searched for ``stencil.toml``. Defaults to
                the current working directory.
            include_env: Include ``STENCIL_<SECTION>__<KEY>`` variables.
            cli_overrides: Dict of CLI argument overrides.

        Returns:
            Merged configuration object.

        Raises:
            FileNotFoundError: If an explicit config file does not exist.
            ConfigLoadError: If the config file cannot be parsed.
            ConfigValidationError: If merged config fails validation.
        """
        sources: list[ConfigSource] = [
            ConfigSource(
                name=ConfigSourceName.DEFAULT,
                path=None,
                values=copy_value(DEFAULT_CONFIG),
            )
        ]

        path = config_path
        if path is None:
            candidate = (search_dir or Path.cwd()) / CONFIG_FILE_NAME
            path = candidate if candidate.is_file() else None
        if path is not None:
            sources.append(
                ConfigSource(
                    name=ConfigSourceName.FILE, path=path, values=read_toml_file(path)
                )
            )

        if include_env:
            env_values = parse_env_vars()
            if env_values:
                sources.append(
                    ConfigSource(
                        name=ConfigSourceName.ENV, path=None, values=env_values
                    )
                )

        if cli_overrides:
            sources.append(
                ConfigSource(name=ConfigSourceName.CLI, path=None, values=cli_overrides)
            )

        merged: dict[str, Any] = {}
        for source in sources:
            merged = deep_merge(merged, source.values)

        # Sources are stored highest precedence first
        return cls.from_dict(merged, sources=tuple(reversed(sources)))

    @property
    def sources(self) -> list[ConfigSource]:
        """Return the sources that contributed to this configuration."""
        return list(self._sources)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., "render.on_missing_key").
            default: Default value if key not found.

        Returns:
            The configuration value, or default if not found.
        """
        current: Any = self.to_dict()
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        return self.model_dump(mode="json", by_alias=True)
