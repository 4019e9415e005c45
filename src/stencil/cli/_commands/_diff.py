# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""The diff command: compare a rendered tree with a known-good tree."""

from pathlib import Path
from typing import Annotated

from cyclopts import Parameter
from rich.console import Console
from rich.markup import escape

from stencil.exceptions import StencilError
from stencil.generator import MismatchKind, diff_trees, unified_file_diff

from ._context import CLIContext
from ._shared import ExitCode, exit_code_for, exit_with_error


def diff(
    expected: Annotated[Path, Parameter(help="Known-good tree")],
    actual: Annotated[Path, Parameter(help="Rendered tree to check")],
    *,
    show_diff: Annotated[
        bool, Parameter(name="--show-diff", help="Print unified diffs of changed files")
    ] = False,
) -> None:
    """Compare two directory trees file by file.

    Exits with VALIDATION_ERROR when the trees differ.

    Args:
        expected: Root of the known-good tree.
        actual: Root of the rendered tree.
        show_diff: Print a unified diff for every changed text file.
    """
    ctx = CLIContext.get_current()
    console = Console()

    for root in (expected, actual):
        if not root.is_dir():
            exit_with_error(f"Directory not found: {root}", ExitCode.NOT_FOUND)

    try:
        mismatches = diff_trees(expected, actual)
    except StencilError as e:
        exit_with_error(str(e), exit_code_for(e))

    if not mismatches:
        if not ctx.quiet:
            console.print("[green]Trees are identical[/green]")
        return

    for mismatch in mismatches:
        console.print(
            f"[red]{mismatch.kind}[/red] "
            f"{escape(mismatch.path)}: {escape(mismatch.detail)}"
        )
        if show_diff and mismatch.kind is MismatchKind.CONTENT_CHANGED:
            text = unified_file_diff(
                expected / mismatch.path, actual / mismatch.path, path=mismatch.path
            )
            if text:
                console.print(escape(text), highlight=False)
    raise SystemExit(ExitCode.VALIDATION_ERROR)
