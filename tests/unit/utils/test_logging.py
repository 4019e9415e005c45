"""Unit tests for logging utilities."""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from stencil.utils import create_logger, create_null_logger
from stencil.utils._logging import _create_logger, _log_level_from_string

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


class TestCreateLogger:
    def test_creates_log_directory_if_missing(self, fs: FakeFilesystem) -> None:
        log_path = Path("/logs/stencil.log")
        assert not log_path.parent.exists()

        _ = _create_logger(str(log_path), log_level=logging.INFO)

        assert log_path.parent.exists()

    def test_default_format_is_json(self, fs: FakeFilesystem) -> None:
        logger = _create_logger("/logs/stencil.log", log_level=logging.INFO)

        logger.info("file_written", path="out/a.txt")

        entry = json.loads(Path("/logs/stencil.log").read_text().splitlines()[0])
        assert entry["event"] == "file_written"
        assert entry["path"] == "out/a.txt"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_text_format(self, fs: FakeFilesystem) -> None:
        logger = _create_logger(
            "/logs/stencil.log", log_level=logging.INFO, log_format="text"
        )

        logger.info("file_written", path="a.txt")

        content = Path("/logs/stencil.log").read_text()
        assert "file_written" in content
        assert "path=a.txt" in content

    def test_level_filters_events(self, fs: FakeFilesystem) -> None:
        logger = _create_logger("/logs/stencil.log", log_level=logging.WARNING)

        logger.info("hidden")
        logger.warning("shown")

        content = Path("/logs/stencil.log").read_text()
        assert "hidden" not in content
        assert "shown" in content

    def test_command_is_bound(self, fs: FakeFilesystem) -> None:
        logger = create_logger(
            level="info", log_format="json", log_file="/logs/cli.log", command="render"
        )

        logger.info("started")

        entry = json.loads(Path("/logs/cli.log").read_text().splitlines()[0])
        assert entry["command"] == "render"

    def test_writes_to_stderr_without_file(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        logger = create_logger(level="warning")

        logger.warning("render_failed")

        assert "render_failed" in capsys.readouterr().err


class TestLogLevelFromString:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("warning", logging.WARNING),
            ("error", logging.ERROR),
            ("bogus", logging.INFO),
        ],
    )
    def test_levels(self, level: str, expected: int) -> None:
        assert _log_level_from_string(level) == expected

    def test_debug_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STENCIL_DEBUG", "1")

        assert _log_level_from_string("error", respect_env=True) == logging.DEBUG
        assert _log_level_from_string("error") == logging.ERROR


class TestNullLogger:
    def test_discards_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = create_null_logger()

        logger.error("ignored", key="value")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""
