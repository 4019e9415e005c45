"""Integration tests for the render command."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from stencil.cli import ExitCode
from stencil.generator import diff_trees

RunCli = Callable[..., int]


class TestRender:
    def test_renders_java_project(
        self,
        stencil_cli_with_exit_code: RunCli,
        isolated_cwd: Path,
        java_template_dir: Path,
        java_expected_dir: Path,
        java_vars_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = stencil_cli_with_exit_code(
            "render", str(java_template_dir), "out", "--var-file", str(java_vars_file)
        )

        assert code == ExitCode.SUCCESS
        assert diff_trees(java_expected_dir, isolated_cwd / "out") == []
        assert "Rendered 1 file(s) into out" in capsys.readouterr().out

    def test_var_overrides_var_file(
        self,
        stencil_cli_with_exit_code: RunCli,
        isolated_cwd: Path,
        java_template_dir: Path,
        java_vars_file: Path,
    ) -> None:
        code = stencil_cli_with_exit_code(
            "render",
            str(java_template_dir),
            "out",
            "--var-file",
            str(java_vars_file),
            "--var",
            "CompanyName=Initech",
            "--var",
            "IncludeEnum=false",
        )

        assert code == ExitCode.SUCCESS
        example = isolated_cwd / "out/com/initech/example/Example.java"
        content = example.read_text(encoding="utf-8")
        assert content.startswith("package com.initech.example\n")
        assert "enum" not in content

    def test_json_summary(
        self,
        stencil_cli_with_exit_code: RunCli,
        java_template_dir: Path,
        java_vars_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = stencil_cli_with_exit_code(
            "render",
            str(java_template_dir),
            "out",
            "--var-file",
            str(java_vars_file),
            "--format",
            "json",
        )

        assert code == ExitCode.SUCCESS
        summary = json.loads(capsys.readouterr().out)
        assert summary == {
            "destination": "out",
            "files": ["com/acme/example/Example.java"],
            "copied": [],
            "skipped": [],
        }

    def test_quiet_prints_nothing(
        self,
        stencil_cli_with_exit_code: RunCli,
        java_template_dir: Path,
        java_vars_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = stencil_cli_with_exit_code(
            "--quiet",
            "render",
            str(java_template_dir),
            "out",
            "--var-file",
            str(java_vars_file),
        )

        assert code == ExitCode.SUCCESS
        assert capsys.readouterr().out == ""

    def test_verbose_lists_files(
        self,
        stencil_cli_with_exit_code: RunCli,
        java_template_dir: Path,
        java_vars_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = stencil_cli_with_exit_code(
            "--verbose",
            "render",
            str(java_template_dir),
            "out",
            "--var-file",
            str(java_vars_file),
        )

        assert code == ExitCode.SUCCESS
        assert "wrote" in capsys.readouterr().out

    def test_missing_key_policy_flag(
        self,
        stencil_cli_with_exit_code: RunCli,
        isolated_cwd: Path,
        make_tree: Callable[..., Path],
    ) -> None:
        template = make_tree(isolated_cwd / "tpl", {"a.txt": "[{{ .Missing }}]"})

        code = stencil_cli_with_exit_code(
            "render", str(template), "out", "--missing-key", "zero"
        )

        assert code == ExitCode.SUCCESS
        assert (isolated_cwd / "out" / "a.txt").read_text() == "[<no value>]"

    def test_missing_key_policy_from_config_file(
        self,
        stencil_cli_with_exit_code: RunCli,
        isolated_cwd: Path,
        make_tree: Callable[..., Path],
    ) -> None:
        template = make_tree(isolated_cwd / "tpl", {"a.txt": "[{{ .Missing }}]"})
        _ = (isolated_cwd / "stencil.toml").write_text(
            '[render]\non_missing_key = "zero"\n'
        )

        code = stencil_cli_with_exit_code("render", str(template), "out")

        assert code == ExitCode.SUCCESS
        assert (isolated_cwd / "out" / "a.txt").read_text() == "[<no value>]"

    def test_skip_files_from_config_file(
        self,
        stencil_cli_with_exit_code: RunCli,
        isolated_cwd: Path,
        make_tree: Callable[..., Path],
    ) -> None:
        template = make_tree(
            isolated_cwd / "tpl", {"docs/guide.md": "guide", "main.txt": "main"}
        )
        _ = (isolated_cwd / "stencil.toml").write_text(
            '[[render.skip_files]]\npath = "docs"\nif = "{{ not .Docs }}"\n'
        )

        code = stencil_cli_with_exit_code(
            "render", str(template), "out", "--var", "Docs=false"
        )

        assert code == ExitCode.SUCCESS
        assert [p.name for p in (isolated_cwd / "out").iterdir()] == ["main.txt"]


class TestRenderErrors:
    def test_missing_template_directory(
        self, stencil_cli_with_exit_code: RunCli, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = stencil_cli_with_exit_code("render", "nope", "out")

        assert code == ExitCode.NOT_FOUND
        assert "Template directory not found" in capsys.readouterr().err

    def test_undefined_variable(
        self,
        stencil_cli_with_exit_code: RunCli,
        isolated_cwd: Path,
        java_template_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = stencil_cli_with_exit_code("render", str(java_template_dir), "out")

        assert code == ExitCode.VALIDATION_ERROR
        err = capsys.readouterr().err
        assert "UndefinedVariable" in err
        assert 'map has no entry for key "CompanyName"' in err
        assert not (isolated_cwd / "out" / "com" / "acme").exists()

    def test_invalid_var_file(
        self,
        stencil_cli_with_exit_code: RunCli,
        isolated_cwd: Path,
        java_template_dir: Path,
    ) -> None:
        bad = isolated_cwd / "vars.yml"
        _ = bad.write_text("- not\n- a mapping\n")

        code = stencil_cli_with_exit_code(
            "render", str(java_template_dir), "out", "--var-file", str(bad)
        )

        assert code == ExitCode.LOAD_ERROR

    def test_invalid_assignment(
        self, stencil_cli_with_exit_code: RunCli, java_template_dir: Path
    ) -> None:
        code = stencil_cli_with_exit_code(
            "render", str(java_template_dir), "out", "--var", "NoEquals"
        )

        assert code == ExitCode.VALIDATION_ERROR

    def test_name_escaping_destination(
        self,
        stencil_cli_with_exit_code: RunCli,
        isolated_cwd: Path,
        make_tree: Callable[..., Path],
    ) -> None:
        template = make_tree(isolated_cwd / "tpl", {"{{ .Name }}": "x"})

        code = stencil_cli_with_exit_code(
            "render", str(template), "out", "--var", "Name=../escaped"
        )

        assert code == ExitCode.IO_ERROR
        assert not (isolated_cwd / "escaped").exists()
