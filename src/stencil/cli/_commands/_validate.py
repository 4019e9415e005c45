# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""The validate command: parse a template tree without rendering it."""

from pathlib import Path
from typing import Annotated

from cyclopts import Parameter
from rich.console import Console
from rich.markup import escape

from stencil.exceptions import StencilError
from stencil.generator import check_tree

from ._context import CLIContext
from ._shared import ExitCode, exit_code_for, exit_with_error


def validate(
    template: Annotated[Path, Parameter(help="Template root directory")],
) -> None:
    """Check every entry name and text file of a template tree for syntax errors.

    Args:
        template: Template root directory.
    """
    ctx = CLIContext.get_current()
    console = Console()

    if not template.is_dir():
        exit_with_error(f"Template directory not found: {template}", ExitCode.NOT_FOUND)

    try:
        errors = check_tree(template)
    except StencilError as e:
        exit_with_error(str(e), exit_code_for(e))

    if errors:
        for error in errors:
            console.print(f"[red]{error.kind}[/red] {escape(str(error))}")
        raise SystemExit(ExitCode.VALIDATION_ERROR)

    if not ctx.quiet:
        console.print(
            f"[green]No template errors found in {escape(str(template))}[/green]"
        )
