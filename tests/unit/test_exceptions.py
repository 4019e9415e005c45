"""Unit tests for stencil exceptions."""

from pathlib import Path

from stencil.exceptions import (
    ErrorKind,
    FilterTypeMismatchError,
    MalformedExpressionError,
    StencilError,
    TemplateError,
    TemplateIOError,
    UnbalancedBlockError,
    UndefinedVariableError,
    UnknownFilterError,
    VariableFileError,
)


class TestTemplateError:
    def test_kinds(self) -> None:
        assert UndefinedVariableError("x").kind is ErrorKind.UNDEFINED_VARIABLE
        assert UnknownFilterError("x").kind is ErrorKind.UNKNOWN_FILTER
        assert FilterTypeMismatchError("x").kind is ErrorKind.FILTER_TYPE_MISMATCH
        assert MalformedExpressionError("x").kind is ErrorKind.MALFORMED_EXPRESSION
        assert UnbalancedBlockError("x").kind is ErrorKind.UNBALANCED_BLOCK
        assert TemplateIOError("x").kind is ErrorKind.IO_FAILURE

    def test_hierarchy(self) -> None:
        assert issubclass(TemplateIOError, TemplateError)
        assert issubclass(TemplateError, StencilError)
        assert issubclass(VariableFileError, StencilError)

    def test_message_without_location(self) -> None:
        error = UnknownFilterError('filter "x" not defined')
        assert str(error) == '<string>: UnknownFilter: filter "x" not defined'

    def test_message_with_full_location(self) -> None:
        error = UndefinedVariableError(
            'map has no entry for key "A"',
            template="src/Main.java",
            expression=".A | downcase",
            line=3,
            column=7,
        )
        assert str(error) == (
            'src/Main.java:3:7: UndefinedVariable: map has no entry for key "A" '
            '(in ".A | downcase")'
        )

    def test_with_template_keeps_existing_name(self) -> None:
        error = MalformedExpressionError("bad", template="first")
        _ = error.with_template("second")
        assert error.template == "first"

    def test_with_template_updates_message(self) -> None:
        error = MalformedExpressionError("bad").with_template("a.txt")
        assert str(error) == "a.txt: MalformedExpression: bad"

    def test_with_location_fills_only_unknown_details(self) -> None:
        error = FilterTypeMismatchError("bad", line=1, column=2)
        _ = error.with_location(expression=".X", line=5, column=9)

        assert (error.line, error.column) == (1, 2)
        assert error.expression == ".X"
        assert str(error) == '<string>:1:2: FilterTypeMismatch: bad (in ".X")'


class TestOtherErrors:
    def test_template_io_error_keeps_cause(self) -> None:
        cause = PermissionError(13, "Permission denied")
        error = TemplateIOError("cannot write", path=Path("/out/a"), cause=cause)

        assert error.path == Path("/out/a")
        assert error.cause is cause

    def test_variable_file_error_prefixes_path(self) -> None:
        error = VariableFileError("invalid YAML", path=Path("vars.yml"))
        assert str(error) == "vars.yml: invalid YAML"
