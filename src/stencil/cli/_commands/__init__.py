"""Stencil CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._context import CLIContext, OutputFormat
from ._diff import diff
from ._render import render
from ._shared import (
    ExitCode,
    FormattableData,
    exit_code_for,
    exit_with_error,
    format_json,
    format_yaml,
    get_error_console,
)
from ._validate import validate

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "CLIContext",
    "ExitCode",
    "FormattableData",
    "OutputFormat",
    "diff",
    "exit_code_for",
    "exit_with_error",
    "format_json",
    "format_yaml",
    "get_error_console",
    "register_commands",
    "render",
    "validate",
]


def register_commands(app: "App") -> None:
    app.command(render)
    app.command(validate)
    app.command(diff)
