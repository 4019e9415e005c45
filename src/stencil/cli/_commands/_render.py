# ruff: noqa: TC003, A002  # Path needed at runtime for cyclopts parameter parsing
"""The render command: materialize a template tree."""

from pathlib import Path
from typing import Annotated

from cyclopts import Parameter
from rich.console import Console
from rich.markup import escape

from stencil.exceptions import StencilError
from stencil.generator import MaterializeResult, materialize_tree
from stencil.templating import MissingKeyPolicy
from stencil.utils import create_null_logger
from stencil.variables import load_variables

from ._context import CLIContext, OutputFormat
from ._shared import (
    ExitCode,
    exit_code_for,
    exit_with_error,
    format_json,
    format_yaml,
)


def _summarize(result: MaterializeResult) -> dict[str, object]:
    destination = result.destination
    return {
        "destination": str(destination),
        "files": [path.relative_to(destination).as_posix() for path in result.files],
        "copied": [path.relative_to(destination).as_posix() for path in result.copied],
        "skipped": list(result.skipped),
    }


def render(
    template: Annotated[Path, Parameter(help="Template root directory")],
    output: Annotated[Path, Parameter(help="Destination directory")],
    *,
    var: Annotated[
        list[str] | None,
        Parameter(name="--var", help="Variable assignment NAME=VALUE (repeatable)"),
    ] = None,
    var_file: Annotated[
        list[Path] | None,
        Parameter(name="--var-file", help="JSON or YAML variable file (repeatable)"),
    ] = None,
    missing_key: Annotated[
        MissingKeyPolicy | None,
        Parameter(name="--missing-key", help="Lookup of absent keys: error or zero"),
    ] = None,
    format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Summary format")
    ] = OutputFormat.TEXT,
) -> None:
    """Render a template tree into a destination directory.

    Args:
        template: Template root directory.
        output: Destination directory, created if missing.
        var: Variable assignments; later ones override earlier ones.
        var_file: Variable files; later files override earlier ones.
        missing_key: Override the configured missing-key policy.
        format: Output format for the summary.
    """
    ctx = CLIContext.get_current()
    logger = ctx.logger if ctx.logger is not None else create_null_logger()
    console = Console()

    if not template.is_dir():
        exit_with_error(f"Template directory not found: {template}", ExitCode.NOT_FOUND)

    try:
        variables = load_variables(var_file or (), var or ())
    except StencilError as e:
        exit_with_error(str(e), exit_code_for(e))
    except ValueError as e:
        exit_with_error(str(e), ExitCode.VALIDATION_ERROR)

    options = ctx.config.render
    if missing_key is not None:
        options = options.model_copy(update={"on_missing_key": missing_key})

    log = logger.bind(template=str(template), output=str(output))
    try:
        result = materialize_tree(
            template, variables, output, options=options, logger=log
        )
    except StencilError as e:
        log.error("render_failed", error=str(e))
        exit_with_error(str(e), exit_code_for(e))

    if format is OutputFormat.JSON:
        print(format_json(_summarize(result)))  # noqa: T201
        return
    if format is OutputFormat.YAML:
        print(format_yaml(_summarize(result)).rstrip())  # noqa: T201
        return

    if ctx.quiet:
        return
    if ctx.verbose:
        for path in result.files:
            console.print(f"  [green]wrote[/green]   {escape(str(path))}")
        for path in result.copied:
            console.print(f"  [blue]copied[/blue]  {escape(str(path))}")
        for skipped in result.skipped:
            console.print(f"  [yellow]skipped[/yellow] {escape(skipped)}")
    console.print(
        f"Rendered {len(result.files)} file(s) into {escape(str(output))}"
        + (f", copied {len(result.copied)}" if result.copied else "")
        + (f", skipped {len(result.skipped)}" if result.skipped else "")
    )
