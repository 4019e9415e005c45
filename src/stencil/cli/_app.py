"""The command-line interface for stencil."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from stencil.config import safe_load_config
from stencil.utils import create_logger

from ._commands import register_commands
from ._commands._context import CLIContext

_HELP = "Render parameterized project templates into directory trees."


def _cli_overrides(*, verbose: bool, quiet: bool) -> dict[str, object] | None:
    if verbose:
        return {"logging": {"level": "debug"}}
    if quiet:
        return {"logging": {"level": "error"}}
    return None


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="stencil",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[bool, Parameter(help="Enable verbose output")] = False,
        quiet: Annotated[bool, Parameter(help="Suppress non-essential output")] = False,
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
    ) -> None:
        """Launch the stencil CLI with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Enable verbose output with additional details.
            quiet: Suppress non-essential output.
            config: Explicit path to config file.
        """
        loaded_config, config_error = safe_load_config(
            config_path=config,
            cli_overrides=_cli_overrides(verbose=verbose, quiet=quiet),
        )

        cli_logger = create_logger(
            level=loaded_config.logging.level.value,
            log_format=loaded_config.logging.format.value,  # type: ignore[arg-type]
            log_file=loaded_config.logging.file,
            command=tokens[0] if tokens else "",
        )

        ctx = CLIContext(
            config=loaded_config,
            verbose=verbose,
            quiet=quiet,
            config_error=config_error,
            logger=cli_logger,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `stencil` CLI."""
    app = create_app()
    app.meta()
