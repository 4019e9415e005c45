from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from rich.console import Console

from stencil.cli import CLIContext, create_app


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def isolated_cwd(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path]:
    """Run in an empty working directory so no stencil.toml is discovered."""
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    for name in ("STENCIL_DEBUG", "STENCIL_STRICT_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    # Keep command output on one line per message
    monkeypatch.setenv("COLUMNS", "500")

    yield workdir

    CLIContext.reset()


@pytest.fixture
def stencil_cli_with_exit_code(
    console: Console, isolated_cwd: Path
) -> Callable[..., int]:
    """Run the CLI through its global-option entry point and return the exit code."""
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        """Run CLI app and return exit code (0 if no SystemExit)."""
        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run
