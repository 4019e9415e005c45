"""Variable loading for render passes.

Variables come from JSON or YAML files and from ``NAME=value`` assignments
given on the command line. Later sources override earlier ones at the top
level; assignments with dotted names build nested mappings.
"""

from collections.abc import Iterable, Sequence
from datetime import date
from pathlib import Path
from typing import Any

import orjson
import yaml

from stencil.config import deep_merge, parse_string_value, set_nested_key
from stencil.exceptions import FilterTypeMismatchError, VariableFileError
from stencil.templating import VariableContext, compose_context

JSON_SUFFIXES = frozenset({".json"})
YAML_SUFFIXES = frozenset({".yml", ".yaml"})


def load_var_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Load variables from a JSON or YAML file.

    Args:
        path: Path to a ``.json``, ``.yml`` or ``.yaml`` file.

    Returns:
        The top-level mapping of the file.

    Raises:
        VariableFileError: If the file cannot be read, cannot be parsed, has
            an unsupported extension, or its top level is not a mapping.
    """
    suffix = path.suffix.lower()
    if suffix not in JSON_SUFFIXES | YAML_SUFFIXES:
        msg = f"unsupported variable file type {suffix or '(none)'!r}"
        raise VariableFileError(msg, path=path)

    try:
        content = path.read_bytes()
    except OSError as e:
        msg = f"cannot read variable file: {e.strerror or e}"
        raise VariableFileError(msg, path=path) from e

    data: object
    if suffix in JSON_SUFFIXES:
        try:
            data = orjson.loads(content)
        except orjson.JSONDecodeError as e:
            msg = f"invalid JSON: {e}"
            raise VariableFileError(msg, path=path) from e
    else:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            msg = f"invalid YAML: {e}"
            raise VariableFileError(msg, path=path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"top level must be a mapping, got {type(data).__name__}"
        raise VariableFileError(msg, path=path)
    return {str(key): _normalize(value) for key, value in data.items()}  # pyright: ignore[reportUnknownVariableType]


def _normalize(value: object) -> object:
    """Convert YAML timestamps to ISO strings, recursively."""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}  # pyright: ignore[reportUnknownVariableType]
    if isinstance(value, list):
        return [_normalize(item) for item in value]  # pyright: ignore[reportUnknownVariableType]
    return value


def parse_var_assignments(
    assignments: Iterable[str],
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse ``NAME=value`` assignments into a nested mapping.

    Values are type-inferred (bool, int, float, JSON array or object, then
    string). Dotted names nest: ``Company.Name=Acme`` sets
    ``{"Company": {"Name": "Acme"}}``.

    Args:
        assignments: Assignment strings.

    Returns:
        Mapping of parsed variables.

    Raises:
        ValueError: If an assignment has no ``=`` or an empty name.
    """
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for assignment in assignments:
        name, separator, raw_value = assignment.partition("=")
        name = name.strip()
        if not separator or not name:
            msg = f"invalid variable assignment {assignment!r}, expected NAME=VALUE"
            raise ValueError(msg)
        set_nested_key(result, name, parse_string_value(raw_value))
    return result


def load_variables(
    var_files: Sequence[Path] = (),
    assignments: Iterable[str] = (),
    *,
    defaults: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> VariableContext:
    """Build a variable context from files and assignments.

    Precedence from lowest to highest: defaults, each variable file in
    order, then assignments. Files replace top-level keys; assignments merge
    into nested mappings so ``a.b=1`` keeps other keys of ``a``.

    Args:
        var_files: Variable files, lowest precedence first.
        assignments: ``NAME=value`` strings.
        defaults: Base variables.

    Returns:
        The composed VariableContext.

    Raises:
        VariableFileError: If a file cannot be loaded.
        ValueError: If an assignment is malformed or a value has an
            unsupported type.
    """
    layers = [load_var_file(path) for path in var_files]
    overrides = parse_var_assignments(assignments)
    try:
        layered = compose_context(defaults, *layers).to_dict()
        return VariableContext(deep_merge(layered, overrides))
    except FilterTypeMismatchError as e:
        raise ValueError(e.message) from e
