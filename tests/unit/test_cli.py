from typing import TYPE_CHECKING, cast

from cyclopts import App

from stencil.cli import CLIContext, create_app
from stencil.cli._app import _cli_overrides
from stencil.cli._commands import register_commands
from stencil.config import Config

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


class TestCommandRegistration:
    def test_register_commands_registers_subcommands(
        self, mocker: MockerFixture
    ) -> None:
        mock_app = mocker.MagicMock(spec=App)
        register_commands(mock_app)

        assert cast("int", mock_app.command.call_count) == 3  # pyright: ignore[reportAny]

    def test_create_app_has_commands(self) -> None:
        app = create_app()
        for name in ("render", "validate", "diff"):
            assert name in app


class TestCliOverrides:
    def test_verbose_enables_debug_logging(self) -> None:
        assert _cli_overrides(verbose=True, quiet=False) == {
            "logging": {"level": "debug"}
        }

    def test_quiet_limits_logging_to_errors(self) -> None:
        assert _cli_overrides(verbose=False, quiet=True) == {
            "logging": {"level": "error"}
        }

    def test_no_overrides(self) -> None:
        assert _cli_overrides(verbose=False, quiet=False) is None


class TestCLIContext:
    def test_default_context(self) -> None:
        CLIContext.reset()
        ctx = CLIContext.get_current()

        assert not ctx.verbose
        assert ctx.logger is None

    def test_set_and_reset(self) -> None:
        ctx = CLIContext(config=Config.from_dict({}), verbose=True)
        CLIContext.set_current(ctx)
        try:
            assert CLIContext.get_current() is ctx
        finally:
            CLIContext.reset()

        assert CLIContext.get_current() is not ctx
