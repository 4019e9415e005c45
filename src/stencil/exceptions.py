"""Stencil exceptions."""

from enum import StrEnum
from pathlib import Path
from typing import Self


class StencilError(Exception):
    """Base exception for stencil errors."""


class ErrorKind(StrEnum):
    """Categories of template failures reported to callers."""

    UNDEFINED_VARIABLE = "UndefinedVariable"
    UNKNOWN_FILTER = "UnknownFilter"
    FILTER_TYPE_MISMATCH = "FilterTypeMismatch"
    MALFORMED_EXPRESSION = "MalformedExpression"
    UNBALANCED_BLOCK = "UnbalancedBlock"
    IO_FAILURE = "IOFailure"


class TemplateError(StencilError):
    """Raised when a template cannot be parsed, evaluated, or materialized.

    Attributes:
        message: Human-readable description without location details.
        kind: The error category.
        template: Name or path of the template where the error occurred.
        expression: The offending expression text, if known.
        line: 1-based line number inside the template, if known.
        column: 1-based column number inside the template, if known.
    """

    kind: ErrorKind = ErrorKind.MALFORMED_EXPRESSION

    def __init__(
        self,
        message: str,
        *,
        template: str | None = None,
        expression: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and template location context."""
        self.message: str = message
        self.template: str | None = template
        self.expression: str | None = expression
        self.line: int | None = line
        self.column: int | None = column
        super().__init__(self._format())

    def _format(self) -> str:
        location = self.template or "<string>"
        if self.line is not None:
            location = f"{location}:{self.line}"
            if self.column is not None:
                location = f"{location}:{self.column}"
        text = f"{location}: {self.kind}: {self.message}"
        if self.expression:
            text = f'{text} (in "{self.expression}")'
        return text

    def with_template(self, template: str) -> Self:
        """Attach the template name if the error does not carry one yet.

        Args:
            template: Template name or path to record.

        Returns:
            This error, updated in place.
        """
        if self.template is None:
            self.template = template
            self.args = (self._format(),)
        return self

    def with_location(
        self,
        *,
        expression: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> Self:
        """Fill in expression and position details that are not yet known.

        Args:
            expression: The expression being evaluated.
            line: 1-based line number of the expression.
            column: 1-based column number of the expression.

        Returns:
            This error, updated in place.
        """
        if self.expression is None:
            self.expression = expression
        if self.line is None:
            self.line = line
            self.column = column
        self.args = (self._format(),)
        return self


class UndefinedVariableError(TemplateError):
    """An identifier path could not be resolved in scope or context."""

    kind: ErrorKind = ErrorKind.UNDEFINED_VARIABLE


class UnknownFilterError(TemplateError):
    """A filter name is not present in the filter registry."""

    kind: ErrorKind = ErrorKind.UNKNOWN_FILTER


class FilterTypeMismatchError(TemplateError):
    """A filter or block received a value of an unsupported type."""

    kind: ErrorKind = ErrorKind.FILTER_TYPE_MISMATCH


class MalformedExpressionError(TemplateError):
    """An expression or block tag has invalid syntax."""

    kind: ErrorKind = ErrorKind.MALFORMED_EXPRESSION


class UnbalancedBlockError(TemplateError):
    """A block is missing its end marker, or an end marker has no block."""

    kind: ErrorKind = ErrorKind.UNBALANCED_BLOCK


class TemplateIOError(TemplateError):
    """The destination tree could not be created or written."""

    kind: ErrorKind = ErrorKind.IO_FAILURE

    def __init__(
        self,
        message: str,
        *,
        template: str | None = None,
        path: Path | None = None,
        cause: OSError | None = None,
    ) -> None:
        """Initialize with the failing destination path and underlying cause."""
        self.path: Path | None = path
        self.cause: OSError | None = cause
        super().__init__(message, template=template)


class ConfigError(StencilError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and file location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when a configuration value is invalid."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: object,
        expected: str,
    ) -> None:
        """Initialize with the offending key, its value, and what was expected."""
        super().__init__(message)
        self.key: str = key
        self.value: object = value
        self.expected: str = expected


class VariableFileError(StencilError):
    """Raised when a variable file cannot be read or has the wrong shape."""

    def __init__(self, message: str, *, path: Path) -> None:
        """Initialize with error message and the variable file path."""
        super().__init__(f"{path}: {message}")
        self.path: Path = path
