# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Reading and layering of raw configuration data.

Everything here works on plain dictionaries. Validation into models happens
in ``_models``; the helpers are also reused for ``--var`` assignments and
variable files, so both share one notion of merging and type inference.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

import orjson

from stencil.exceptions import ConfigLoadError

from ._defaults import ENV_PREFIX

type RawConfig = dict[str, Any]  # pyright: ignore[reportExplicitAny]


def read_toml_file(path: Path) -> RawConfig:
    """Parse a ``stencil.toml`` file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file is not valid TOML. Carries the line and
            column reported by the parser.
    """
    data = path.read_bytes()
    try:
        return tomllib.loads(data.decode("utf-8"))
    except tomllib.TOMLDecodeError as e:
        msg = f"invalid TOML: {e}"
        raise ConfigLoadError(
            msg,
            path=path,
            line=getattr(e, "lineno", None),
            column=getattr(e, "colno", None),
        ) from e


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Copy nested dicts and lists so the result shares no containers."""
    match value:
        case dict():
            return {key: copy_value(item) for key, item in value.items()}
        case list():
            return [copy_value(item) for item in value]
        case _:
            return value


def deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    """Layer ``override`` on top of ``base`` without touching either.

    Nested tables merge key by key. Any other value in ``override``, lists
    included, replaces the value in ``base`` outright.
    """
    merged = copy_value(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy_value(value)
    return merged


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Infer a typed value from command-line or environment text.

    ``true``/``false`` in any case become booleans, digits become ``int``
    (or ``float`` when a dot is present), bracketed or braced JSON is
    decoded, and anything else stays a string.

    Examples:
        >>> parse_string_value("TRUE")
        True
        >>> parse_string_value("0.5")
        0.5
        >>> parse_string_value('{"a": [1]}')
        {'a': [1]}
    """
    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    number_type = float if "." in value else int
    try:
        return number_type(value)
    except ValueError:
        pass

    if value[:1] + value[-1:] in ("[]", "{}"):
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            return value
    return value


def set_nested_key(
    target: RawConfig,
    dotted: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Assign ``value`` at a dotted path such as ``render.on_missing_key``.

    Missing or non-table intermediate values are replaced by new tables.
    """
    *parents, leaf = dotted.split(".")
    table = target
    for name in parents:
        child = table.get(name)
        if not isinstance(child, dict):
            child = table[name] = {}
        table = child
    table[leaf] = value


def parse_env_vars(prefix: str = ENV_PREFIX) -> RawConfig:
    """Collect ``<prefix><SECTION>__<KEY>`` environment overrides.

    ``STENCIL_RENDER__ON_MISSING_KEY=zero`` becomes
    ``{"render": {"on_missing_key": "zero"}}``. Variables without a ``__``
    separator, such as ``STENCIL_DEBUG``, are flags rather than settings and
    are ignored.
    """
    overrides: RawConfig = {}
    for name, raw in os.environ.items():
        suffix = name.removeprefix(prefix)
        if suffix == name or "__" not in suffix:
            continue
        key_path = suffix.replace("__", ".").lower()
        set_nested_key(overrides, key_path, parse_string_value(raw))
    return overrides
