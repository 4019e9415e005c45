"""Template value model.

Values flowing through templates form a closed set of kinds. Raw data from
JSON or YAML is frozen into that set once, and every filter or block boundary
extracts the kind it needs through the ``require_*`` helpers so that type
errors surface as ``FilterTypeMismatchError`` instead of implicit coercion.
"""

import math
from collections.abc import Mapping, Sequence
from enum import StrEnum
from types import MappingProxyType

from stencil.exceptions import FilterTypeMismatchError

type Value = (
    str | bool | int | float | None | tuple[Value, ...] | MappingProxyType[str, Value]
)

NO_VALUE = "<no value>"


class ValueKind(StrEnum):
    """Kinds of template values."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    NIL = "nil"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def kind_of(value: object) -> ValueKind:
    """Classify a value into its kind.

    Args:
        value: A frozen template value.

    Returns:
        The value's kind.

    Raises:
        FilterTypeMismatchError: If the value is not a template value.
    """
    match value:
        case None:
            return ValueKind.NIL
        case bool():
            return ValueKind.BOOL
        case int():
            return ValueKind.INT
        case float():
            return ValueKind.FLOAT
        case str():
            return ValueKind.STRING
        case tuple():
            return ValueKind.SEQUENCE
        case MappingProxyType():
            return ValueKind.MAPPING
        case _:
            msg = f"unsupported value type {type(value).__name__}"
            raise FilterTypeMismatchError(msg)


def freeze_value(raw: object) -> Value:
    """Convert raw structured data into an immutable template value.

    Mappings become read-only proxies with string keys and sequences become
    tuples, recursively.

    Args:
        raw: Data as parsed from JSON, YAML, or supplied by a caller.

    Returns:
        The frozen value.

    Raises:
        FilterTypeMismatchError: If the data contains an unsupported type.
    """
    match raw:
        case None | bool() | int() | float() | str():
            return raw
        case Mapping():
            frozen = {str(k): freeze_value(v) for k, v in raw.items()}  # pyright: ignore[reportUnknownVariableType]
            return MappingProxyType(frozen)
        case Sequence() if not isinstance(raw, (bytes, bytearray)):
            return tuple(freeze_value(item) for item in raw)  # pyright: ignore[reportUnknownVariableType]
        case _:
            msg = f"unsupported variable type {type(raw).__name__}"
            raise FilterTypeMismatchError(msg)


def thaw_value(value: Value) -> object:
    """Convert a frozen value back into plain dicts and lists.

    Args:
        value: The frozen value.

    Returns:
        An equivalent structure built from dict, list, and scalars.
    """
    if isinstance(value, MappingProxyType):
        return {k: thaw_value(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw_value(item) for item in value]
    return value


def is_truthy(value: Value) -> bool:
    """Return whether a value counts as true in conditions.

    False, zero, the empty string, nil, and empty collections are false.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return len(value) > 0


def is_number(value: Value) -> bool:
    """Return whether a value is an int or float (booleans excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def require_string(value: Value, *, where: str) -> str:
    """Extract a string or fail with a type mismatch.

    Args:
        value: Value to check.
        where: Name of the filter or construct requiring the string.

    Returns:
        The string value.

    Raises:
        FilterTypeMismatchError: If the value is not a string.
    """
    if isinstance(value, str):
        return value
    msg = f"{where} expects string, got {kind_of(value)}"
    raise FilterTypeMismatchError(msg)


def require_mapping(value: Value, *, where: str) -> Mapping[str, Value]:
    """Extract a mapping or fail with a type mismatch."""
    if isinstance(value, MappingProxyType):
        return value
    msg = f"{where} expects mapping, got {kind_of(value)}"
    raise FilterTypeMismatchError(msg)


def require_sequence(value: Value, *, where: str) -> tuple[Value, ...]:
    """Extract a sequence or fail with a type mismatch."""
    if isinstance(value, tuple):
        return value
    msg = f"{where} expects sequence, got {kind_of(value)}"
    raise FilterTypeMismatchError(msg)


def require_number(value: Value, *, where: str) -> int | float:
    """Extract an int or float or fail with a type mismatch."""
    if is_number(value):
        return value  # pyright: ignore[reportReturnType]
    msg = f"{where} expects number, got {kind_of(value)}"
    raise FilterTypeMismatchError(msg)


def require_int(value: Value, *, where: str) -> int:
    """Extract an integer, accepting integral floats."""
    number = require_number(value, where=where)
    if isinstance(number, float):
        if not number.is_integer():
            msg = f"{where} expects integer, got {number!r}"
            raise FilterTypeMismatchError(msg)
        return int(number)
    return number


def format_float(number: float) -> str:
    """Format a float the way template output prints it.

    Integral values print without a fractional part; large or tiny values use
    exponent notation with an explicit sign.
    """
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    if number.is_integer() and abs(number) < 1e21:  # noqa: PLR2004
        return str(int(number))
    text = repr(number)
    if "e" in text:
        mantissa, exponent = text.split("e")
        sign = "-" if exponent.startswith("-") else "+"
        digits = exponent.lstrip("+-").rjust(2, "0")
        return f"{mantissa}e{sign}{digits}"
    return text


def format_value(value: Value) -> str:
    """Render a value as template output text.

    Args:
        value: The value to print.

    Returns:
        The printed representation.
    """
    match value:
        case None:
            return NO_VALUE
        case bool():
            return "true" if value else "false"
        case int():
            return str(value)
        case float():
            return format_float(value)
        case str():
            return value
        case tuple():
            return "[" + " ".join(format_value(item) for item in value) + "]"
        case MappingProxyType():
            items = (f"{key}:{format_value(value[key])}" for key in sorted(value))
            return "map[" + " ".join(items) + "]"
        case _:
            msg = f"cannot print value of type {type(value).__name__}"
            raise FilterTypeMismatchError(msg)
