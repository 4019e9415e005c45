"""Command-line interface for stencil."""

from ._app import create_app, main
from ._commands import CLIContext, ExitCode

__all__ = ["CLIContext", "ExitCode", "create_app", "main"]
