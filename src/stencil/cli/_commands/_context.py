# pyright: reportUnusedCallResult=false
"""CLI context for global state management.

The meta command loads configuration, builds the logger and publishes a
CLIContext through a context variable; render, validate and diff read it back.
"""

import contextvars
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from stencil.config import Config

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


class OutputFormat(StrEnum):
    """Supported output formats for command summaries."""

    TEXT = "text"
    JSON = "json"
    YAML = "yaml"


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context with configuration and options.

    Attributes:
        config: Loaded configuration object.
        verbose: Enable verbose output with additional details.
        quiet: Suppress non-essential output.
        config_error: Error message if config loading failed.
        logger: Structured logger for CLI commands.
    """

    config: Config = field(repr=False)
    verbose: bool = False
    quiet: bool = False
    config_error: str | None = None
    logger: "FilteringBoundLogger | None" = field(default=None, repr=False)

    @classmethod
    def get_current(cls) -> "CLIContext":
        """Return the active context, or one built from default settings."""
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx
        return cls(config=Config.from_dict({}))

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:
        """Make ``ctx`` the context seen by subcommands."""
        _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Forget the active context; the next lookup falls back to defaults."""
        _current_cli_context.set(None)


_current_cli_context: contextvars.ContextVar[CLIContext | None] = (
    contextvars.ContextVar("cli_context", default=None)
)
