# pyright: reportAny=false
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from stencil.config import (
    DEFAULT_CONFIG,
    Config,
    ConfigSourceName,
    LogFormat,
    LogLevel,
    safe_load_config,
)
from stencil.exceptions import ConfigLoadError, ConfigValidationError
from stencil.templating import MissingKeyPolicy

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "STENCIL_LOGGING__LEVEL",
        "STENCIL_RENDER__ON_MISSING_KEY",
        "STENCIL_RENDER__PRESERVE_MODE",
        "STENCIL_STRICT_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


class TestConfigDefaults:
    def test_defaults(self) -> None:
        config = Config.from_dict({})

        assert config.logging.level is LogLevel.WARNING
        assert config.logging.format is LogFormat.TEXT
        assert config.logging.file == ""
        assert config.render.on_missing_key is MissingKeyPolicy.ERROR
        assert config.render.preserve_mode is True

    def test_to_dict_matches_default_config(self) -> None:
        assert Config.from_dict({}).to_dict() == DEFAULT_CONFIG

    def test_get_by_dotted_key(self) -> None:
        config = Config.from_dict({"render": {"on_missing_key": "zero"}})

        assert config.get("render.on_missing_key") == "zero"
        assert config.get("render.nope", "fallback") == "fallback"
        assert config.get("logging.level.deeper") is None

    def test_unknown_keys_are_ignored(self) -> None:
        config = Config.from_dict({"extra": {"x": 1}, "render": {"other": 2}})
        assert "extra" not in config.to_dict()

    def test_invalid_value(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_dict({"render": {"on_missing_key": "explode"}})

        assert exc_info.value.key == "render.on_missing_key"
        assert exc_info.value.value == "explode"

    def test_frozen(self) -> None:
        config = Config.from_dict({})
        with pytest.raises(ValueError, match="frozen"):
            config.render.preserve_mode = False  # pyright: ignore[reportAttributeAccessIssue]


class TestConfigFromFile:
    def test_loads_file_over_defaults(self, fs: FakeFilesystem) -> None:
        path = Path("/project/stencil.toml")
        fs.create_file(path, contents='[logging]\nlevel = "debug"\n')

        config = Config.from_file(path)

        assert config.logging.level is LogLevel.DEBUG
        assert config.logging.format is LogFormat.TEXT
        assert [s.name for s in config.sources] == [ConfigSourceName.FILE]

    def test_skip_files_table_array(self, fs: FakeFilesystem) -> None:
        path = Path("/project/stencil.toml")
        fs.create_file(
            path,
            contents=(
                "[[render.skip_files]]\n"
                'path = "docs/**"\n'
                'if = "{{ not .Docs }}"\n'
                "\n"
                "[[render.skip_files]]\n"
                'not_path = "src"\n'
            ),
        )

        config = Config.from_file(path)

        first, second = config.render.skip_files
        assert (first.path, first.not_path, first.if_) == (
            "docs/**",
            "",
            "{{ not .Docs }}",
        )
        assert (second.path, second.not_path, second.if_) == ("", "src", "")
        assert config.to_dict()["render"]["skip_files"][0]["if"] == "{{ not .Docs }}"

    def test_skip_files_rejects_unknown_keys(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_dict({"render": {"skip_files": [{"paths": "x"}]}})

        assert exc_info.value.key.startswith("render.skip_files.0")

    def test_invalid_toml(self, fs: FakeFilesystem) -> None:
        path = Path("/project/stencil.toml")
        fs.create_file(path, contents="[logging\n")

        with pytest.raises(ConfigLoadError):
            _ = Config.from_file(path)


class TestConfigLoad:
    def test_discovers_file_in_search_dir(self, fs: FakeFilesystem) -> None:
        fs.create_file(
            "/project/stencil.toml", contents='[render]\non_missing_key = "zero"\n'
        )

        config = Config.load(search_dir=Path("/project"))

        assert config.render.on_missing_key is MissingKeyPolicy.ZERO

    def test_without_file_uses_defaults(self, fs: FakeFilesystem) -> None:
        fs.create_dir("/empty")

        config = Config.load(search_dir=Path("/empty"))

        assert config.render.on_missing_key is MissingKeyPolicy.ERROR
        assert [s.name for s in config.sources] == [ConfigSourceName.DEFAULT]

    def test_precedence(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fs.create_file(
            "/project/stencil.toml",
            contents='[logging]\nlevel = "info"\nformat = "json"\n',
        )
        monkeypatch.setenv("STENCIL_LOGGING__LEVEL", "error")

        config = Config.load(
            search_dir=Path("/project"),
            cli_overrides={"logging": {"level": "debug"}},
        )

        assert config.logging.level is LogLevel.DEBUG
        assert config.logging.format is LogFormat.JSON
        assert [s.name for s in config.sources] == [
            ConfigSourceName.CLI,
            ConfigSourceName.ENV,
            ConfigSourceName.FILE,
            ConfigSourceName.DEFAULT,
        ]

    def test_env_can_be_excluded(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fs.create_dir("/project")
        monkeypatch.setenv("STENCIL_LOGGING__LEVEL", "error")

        config = Config.load(search_dir=Path("/project"), include_env=False)

        assert config.logging.level is LogLevel.WARNING


class TestSafeLoadConfig:
    def test_success(self, fs: FakeFilesystem) -> None:
        fs.create_dir("/project")

        config, error = safe_load_config(search_dir=Path("/project"))

        assert error is None
        assert config.logging.level is LogLevel.WARNING

    def test_invalid_file_falls_back_to_defaults(
        self, fs: FakeFilesystem, capsys: pytest.CaptureFixture[str]
    ) -> None:
        fs.create_file("/project/stencil.toml", contents="[logging\n")

        config, error = safe_load_config(search_dir=Path("/project"))

        assert error is not None
        assert config.render.on_missing_key is MissingKeyPolicy.ERROR
        assert "Warning:" in capsys.readouterr().err

    def test_strict_mode_exits(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fs.create_file("/project/stencil.toml", contents="[logging\n")
        monkeypatch.setenv("STENCIL_STRICT_CONFIG", "1")

        with pytest.raises(SystemExit) as exc_info:
            _ = safe_load_config(search_dir=Path("/project"))
        assert exc_info.value.code == 1

    def test_missing_explicit_path_exits(self, fs: FakeFilesystem) -> None:
        with pytest.raises(SystemExit):
            _ = safe_load_config(config_path=Path("/nope.toml"))
