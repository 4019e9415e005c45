# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands.

Exit codes, the mapping from stencil errors to them, summary formatters
and stderr error reporting used by render, validate and diff.
"""

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never

from stencil.exceptions import (
    ConfigError,
    StencilError,
    TemplateError,
    TemplateIOError,
    VariableFileError,
)

if TYPE_CHECKING:
    from rich.console import Console

# Type alias for formattable data - uses Any to match library signatures
FormattableData = dict[str, Any]

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_code_for",
    "exit_with_error",
    "format_json",
    "format_yaml",
    "get_error_console",
]


class ExitCode(IntEnum):
    """Standard exit codes for stencil CLI commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5


def exit_code_for(error: StencilError) -> ExitCode:
    """Map a stencil error to the exit code reported for it.

    Args:
        error: The error raised by a command.

    Returns:
        IO_ERROR for destination or template tree I/O failures, LOAD_ERROR
        for variable and config files, VALIDATION_ERROR for every other
        template error, INTERNAL_ERROR otherwise.
    """
    match error:
        case TemplateIOError():
            return ExitCode.IO_ERROR
        case VariableFileError() | ConfigError():
            return ExitCode.LOAD_ERROR
        case TemplateError():
            return ExitCode.VALIDATION_ERROR
        case _:
            return ExitCode.INTERNAL_ERROR


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Serialize a command summary as JSON, indented by default."""
    import orjson

    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=options).decode("utf-8")


def format_yaml(data: FormattableData) -> str:
    """Serialize a command summary as block-style YAML."""
    import yaml

    return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True)


def get_error_console() -> "Console":  # noqa: UP037
    """Return a console writing to stderr."""
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: "Console | None" = None,
) -> Never:
    """Report a failed command on stderr and exit.

    Args:
        message: Error text. Printed literally, so template paths containing
            brackets are not read as markup.
        code: Process exit code.
        console: Console to print to. Defaults to a new stderr console.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    from rich.markup import escape

    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {escape(message)}")
    raise SystemExit(code)
