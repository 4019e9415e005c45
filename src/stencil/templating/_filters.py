"""Template filter registry and built-in filters.

Filters are called as ``{{ name arg1 arg2 }}`` or at a pipeline stage as
``{{ value | name arg1 }}``, in which case the piped value becomes the final
argument. Every built-in filter validates its inputs through the
``require_*`` helpers and raises ``FilterTypeMismatchError`` on bad input.

Case conversion filters (``dasherize``, ``snakeCase``, ``camelCase``) split
words the same way across the whole registry:

1. Strip leading and trailing whitespace and punctuation.
2. Collapse each run of whitespace and ASCII punctuation to one space.
3. Split the result into camel-case words, e.g. ``AcmeCorp`` into
   ``Acme`` and ``Corp``.
"""

import inspect
import math
import re
import unicodedata
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import cache
from types import MappingProxyType
from typing import Self

import orjson
import yaml

from stencil.exceptions import FilterTypeMismatchError, MalformedExpressionError

from ._values import (
    Value,
    format_value,
    freeze_value,
    is_number,
    is_truthy,
    kind_of,
    require_int,
    require_mapping,
    require_number,
    require_sequence,
    require_string,
    thaw_value,
)

type FilterFunc = Callable[..., Value]


@dataclass(frozen=True, slots=True)
class Filter:
    """A named template function with a fixed arity range.

    Attributes:
        name: Name used in templates.
        func: Implementation receiving the evaluated arguments positionally.
        min_args: Minimum number of arguments.
        max_args: Maximum number of arguments, or None for variadic filters.
    """

    name: str
    func: FilterFunc
    min_args: int
    max_args: int | None

    @classmethod
    def from_callable(cls, name: str, func: FilterFunc) -> Self:
        """Create a filter, deriving its arity from the function signature.

        Args:
            name: Name used in templates.
            func: Function taking only positional parameters.

        Returns:
            The filter.
        """
        min_args = 0
        max_args: int | None = 0
        for parameter in inspect.signature(func).parameters.values():
            if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
                max_args = None
            elif parameter.kind in (
                inspect.Parameter.POSITIONAL_ONLY,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
            ):
                if parameter.default is inspect.Parameter.empty:
                    min_args += 1
                if max_args is not None:
                    max_args += 1
        return cls(name=name, func=func, min_args=min_args, max_args=max_args)

    def accepts(self, count: int) -> bool:
        """Return whether the filter can be called with ``count`` arguments."""
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args

    def arity_message(self, count: int) -> str:
        """Describe a call with ``count`` arguments as an arity mismatch."""
        if self.max_args is None:
            want = f"at least {self.min_args}"
        elif self.min_args == self.max_args:
            want = str(self.min_args)
        else:
            want = f"{self.min_args} to {self.max_args}"
        return f"wrong number of args for {self.name}: want {want} got {count}"

    def __call__(self, *args: Value) -> Value:
        """Call the filter after checking the argument count.

        Raises:
            MalformedExpressionError: If the argument count is out of range.
            FilterTypeMismatchError: If an argument has the wrong kind.
        """
        if not self.accepts(len(args)):
            raise MalformedExpressionError(self.arity_message(len(args)))
        return self.func(*args)


@dataclass(frozen=True, slots=True)
class FilterRegistry:
    """Immutable set of named filters.

    Registries are values: ``extend`` returns a new registry and never
    changes the receiver, so one registry can be shared between renders.
    """

    _filters: Mapping[str, Filter] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_filters(cls, filters: Iterable[Filter]) -> Self:
        """Create a registry from filters; later duplicates win."""
        return cls(_filters=MappingProxyType({f.name: f for f in filters}))

    def get(self, name: str) -> Filter | None:
        """Get a filter by name.

        Args:
            name: Filter name as written in templates.

        Returns:
            The filter, or None if not registered.
        """
        return self._filters.get(name)

    def names(self) -> tuple[str, ...]:
        """Return all registered filter names in sorted order."""
        return tuple(sorted(self._filters))

    def extend(self, *filters: Filter) -> "FilterRegistry":
        """Return a new registry with additional or replaced filters."""
        merged = {**self._filters, **{f.name: f for f in filters}}
        return FilterRegistry(_filters=MappingProxyType(merged))

    def with_function(self, name: str, func: FilterFunc) -> "FilterRegistry":
        """Return a new registry with a plain function registered as a filter."""
        return self.extend(Filter.from_callable(name, func))

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __len__(self) -> int:
        return len(self._filters)


# Case conversion

_PUNCTUATION_OR_SPACE = re.compile(r"[\t\n\v\f\r !-/:-@\[-`{-~]+")
_SPACE = re.compile(r"[\t\n\v\f\r ]+")
_CAMEL_CASE_WORD = re.compile(r"^[a-z0-9]+|[A-Z]*[a-z0-9]*")


def _is_space_or_punctuation(char: str) -> bool:
    return char.isspace() or unicodedata.category(char).startswith("P")


def _trim_space_and_punctuation(text: str) -> str:
    start, end = 0, len(text)
    while start < end and _is_space_or_punctuation(text[start]):
        start += 1
    while end > start and _is_space_or_punctuation(text[end - 1]):
        end -= 1
    return text[start:end]


def _camel_case_words(text: str) -> list[str]:
    """Split text into camel-case words.

    An empty match directly after the previous match is skipped; any other
    empty match (at characters outside ASCII letters and digits) yields an
    empty word.
    """
    words: list[str] = []
    position = 0
    previous_end = -1
    while position <= len(text):
        match = _CAMEL_CASE_WORD.search(text, position)
        if match is None:
            break
        start, end = match.span()
        if start == end:
            accept = start != previous_end
            position = end + 1
        else:
            accept = True
            position = end
        previous_end = end
        if accept:
            words.append(match.group(0))
    return words


def _to_delimited(text: str, delimiter: str) -> str:
    trimmed = _trim_space_and_punctuation(text)
    collapsed = _PUNCTUATION_OR_SPACE.sub(" ", trimmed)
    return delimiter.join(_camel_case_words(collapsed)).lower()


def _is_title_separator(char: str) -> bool:
    if char.isascii():
        return not (char.isalnum() or char == "_")
    if char.isalpha() or char.isdigit():
        return False
    return char.isspace()


def _title(text: str) -> str:
    """Uppercase the first letter of each word, leaving other letters alone."""
    chars: list[str] = []
    previous = " "
    for char in text:
        chars.append(char.upper() if _is_title_separator(previous) else char)
        previous = char
    return "".join(chars)


def dasherize(value: Value) -> str:
    """Convert to lowercase words joined by dashes: ``Acme Corp`` to ``acme-corp``."""
    return _to_delimited(require_string(value, where="dasherize"), "-")


def snake_case(value: Value) -> str:
    """Convert to lowercase words joined by underscores."""
    return _to_delimited(require_string(value, where="snakeCase"), "_")


def camel_case(value: Value) -> str:
    """Convert to upper camel case: ``foo BAR baz!`` to ``FooBARBaz``."""
    text = require_string(value, where="camelCase")
    collapsed = _PUNCTUATION_OR_SPACE.sub(" ", _trim_space_and_punctuation(text))
    return "".join(_title(word) for word in _SPACE.split(collapsed))


def camel_case_lower(value: Value) -> str:
    """Convert to camel case with a lowercase first character."""
    text = camel_case(require_string(value, where="camelCaseLower"))
    return text[:1].lower() + text[1:]


def downcase(value: Value) -> str:
    return require_string(value, where="downcase").lower()


def upcase(value: Value) -> str:
    return require_string(value, where="upcase").upper()


def capitalize(value: Value) -> str:
    return _title(require_string(value, where="capitalize"))


def trim(value: Value) -> str:
    return require_string(value, where="trim").strip()


def trim_prefix(value: Value, prefix: Value) -> str:
    """Remove ``prefix`` from the start of ``value``.

    Arguments are (string, prefix), so the filter is called directly rather
    than at a pipeline stage: ``{{ trimPrefix .Name "v" }}``.
    """
    text = require_string(value, where="trimPrefix")
    return text.removeprefix(require_string(prefix, where="trimPrefix"))


def trim_suffix(value: Value, suffix: Value) -> str:
    """Remove ``suffix`` from the end of ``value``."""
    text = require_string(value, where="trimSuffix")
    return text.removesuffix(require_string(suffix, where="trimSuffix"))


def replace_one(old: Value, new: Value, value: Value) -> str:
    """Replace the first occurrence of ``old`` with ``new``."""
    text = require_string(value, where="replace")
    return text.replace(
        require_string(old, where="replace"), require_string(new, where="replace"), 1
    )


def replace_all(old: Value, new: Value, value: Value) -> str:
    text = require_string(value, where="replaceAll")
    return text.replace(
        require_string(old, where="replaceAll"), require_string(new, where="replaceAll")
    )


# Collections


def keys(value: Value) -> tuple[Value, ...]:
    """Return the keys of a mapping in ascending order."""
    return tuple(sorted(require_mapping(value, where="keys")))


def num_range(start: Value, end: Value, step: Value) -> tuple[Value, ...]:
    """Return integers from ``start`` (inclusive) to ``end`` (exclusive)."""
    first = require_int(start, where="numRange")
    last = require_int(end, where="numRange")
    increment = require_int(step, where="numRange")
    if first >= last:
        return ()
    if increment <= 0:
        msg = f"numRange step must be positive, got {increment}"
        raise FilterTypeMismatchError(msg)
    return tuple(range(first, last, increment))


def length(value: Value) -> int:
    if isinstance(value, (str, tuple, MappingProxyType)):
        return len(value)
    msg = f"len of type {kind_of(value)}"
    raise FilterTypeMismatchError(msg)


def index(collection: Value, *indexes: Value) -> Value:
    """Index into nested mappings and sequences.

    A missing mapping key yields nil; an out-of-range position is an error.
    """
    current = collection
    for key in indexes:
        if current is None:
            msg = "index of nil value"
            raise FilterTypeMismatchError(msg)
        if isinstance(current, MappingProxyType):
            current = current.get(require_string(key, where="index"))
        elif isinstance(current, tuple):
            position = require_int(key, where="index")
            if not 0 <= position < len(current):
                msg = f"index out of range: {position}"
                raise FilterTypeMismatchError(msg)
            current = current[position]
        else:
            msg = f"cannot index into {kind_of(current)}"
            raise FilterTypeMismatchError(msg)
    return current


def join(separator: Value, value: Value) -> str:
    items = require_sequence(value, where="join")
    return require_string(separator, where="join").join(
        format_value(item) for item in items
    )


def default(fallback: Value, value: Value = None) -> Value:
    """Return ``value`` if it is truthy, else ``fallback``."""
    return value if is_truthy(value) else fallback


# Comparison and logic


def _comparable(left: Value, right: Value, *, where: str, ordered: bool) -> None:
    if is_number(left) and is_number(right):
        return
    if isinstance(left, str) and isinstance(right, str):
        return
    if not ordered and (
        (isinstance(left, bool) and isinstance(right, bool))
        or (left is None and right is None)
    ):
        return
    msg = (
        f"{where}: incompatible types for comparison: "
        f"{kind_of(left)} and {kind_of(right)}"
    )
    raise FilterTypeMismatchError(msg)


def eq(left: Value, right: Value, *others: Value) -> bool:
    """Return whether ``left`` equals any of the other arguments."""
    for other in (right, *others):
        _comparable(left, other, where="eq", ordered=False)
        if left == other:
            return True
    return False


def ne(left: Value, right: Value) -> bool:
    _comparable(left, right, where="ne", ordered=False)
    return left != right


def lt(left: Value, right: Value) -> bool:
    _comparable(left, right, where="lt", ordered=True)
    return left < right  # pyright: ignore[reportOperatorIssue]


def le(left: Value, right: Value) -> bool:
    _comparable(left, right, where="le", ordered=True)
    return left <= right  # pyright: ignore[reportOperatorIssue]


def gt(left: Value, right: Value) -> bool:
    _comparable(left, right, where="gt", ordered=True)
    return left > right  # pyright: ignore[reportOperatorIssue]


def ge(left: Value, right: Value) -> bool:
    _comparable(left, right, where="ge", ordered=True)
    return left >= right  # pyright: ignore[reportOperatorIssue]


def and_(first: Value, *rest: Value) -> Value:
    """Return the first falsy argument, or the last argument."""
    for value in (first, *rest):
        if not is_truthy(value):
            return value
    return (first, *rest)[-1]


def or_(first: Value, *rest: Value) -> Value:
    """Return the first truthy argument, or the last argument."""
    for value in (first, *rest):
        if is_truthy(value):
            return value
    return (first, *rest)[-1]


def not_(value: Value) -> bool:
    return not is_truthy(value)


# Arithmetic


def _to_float(value: Value, *, where: str) -> float:
    """Coerce a number or numeric string to float."""
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            msg = f"{where} expects number, got string {value!r}"
            raise FilterTypeMismatchError(msg) from None
    return float(require_number(value, where=where))


def plus(left: Value, right: Value) -> float:
    return _to_float(left, where="plus") + _to_float(right, where="plus")


def minus(left: Value, right: Value) -> float:
    return _to_float(left, where="minus") - _to_float(right, where="minus")


def times(left: Value, right: Value) -> float:
    return _to_float(left, where="times") * _to_float(right, where="times")


def divide(left: Value, right: Value) -> float:
    """Divide with IEEE semantics: dividing by zero yields Inf or NaN."""
    dividend = _to_float(left, where="divide")
    divisor = _to_float(right, where="divide")
    if divisor == 0:
        if dividend == 0 or math.isnan(dividend):
            return math.nan
        return math.copysign(math.inf, dividend) * math.copysign(1.0, divisor)
    return dividend / divisor


def round_int(value: Value) -> int:
    """Round half away from zero."""
    number = _to_float(value, where="round")
    if not math.isfinite(number):
        msg = f"round: cannot convert {format_value(number)} to integer"
        raise FilterTypeMismatchError(msg)
    if abs(number) < 0.5:  # noqa: PLR2004
        return 0
    return int(number + math.copysign(0.5, number))


def ceil(value: Value) -> float:
    """Round up; infinities and NaN are returned unchanged."""
    number = _to_float(value, where="ceil")
    return float(math.ceil(number)) if math.isfinite(number) else number


def floor(value: Value) -> float:
    """Round down; infinities and NaN are returned unchanged."""
    number = _to_float(value, where="floor")
    return float(math.floor(number)) if math.isfinite(number) else number


def mod(left: Value, right: Value) -> int:
    """Integer remainder taking the sign of the dividend."""
    dividend = require_int(left, where="mod")
    divisor = require_int(right, where="mod")
    if divisor == 0:
        msg = "mod: integer divide by zero"
        raise FilterTypeMismatchError(msg)
    remainder = abs(dividend) % abs(divisor)
    return -remainder if dividend < 0 else remainder


# Serialization


def to_yaml(value: Value) -> str:
    """Serialize a value as a YAML document with sorted keys."""
    text = yaml.safe_dump(
        thaw_value(value), default_flow_style=False, sort_keys=True, allow_unicode=True
    )
    return text.removesuffix("...\n")


def to_json(value: Value) -> str:
    """Serialize a value as compact JSON with sorted keys."""
    return orjson.dumps(thaw_value(value), option=orjson.OPT_SORT_KEYS).decode()


def from_json(value: Value) -> Value:
    """Parse a JSON string into a value."""
    text = require_string(value, where="fromJson")
    try:
        return freeze_value(orjson.loads(text))
    except orjson.JSONDecodeError as e:
        msg = f"fromJson: invalid JSON: {e}"
        raise FilterTypeMismatchError(msg) from e


_BUILTIN_FILTERS: dict[str, FilterFunc] = {
    # Case conversion
    "dasherize": dasherize,
    "snakeCase": snake_case,
    "snakecase": snake_case,
    "camelCase": camel_case,
    "camelcase": camel_case,
    "camelCaseLower": camel_case_lower,
    "downcase": downcase,
    "lower": downcase,
    "upcase": upcase,
    "upper": upcase,
    "capitalize": capitalize,
    "title": capitalize,
    # Strings
    "trim": trim,
    "trimPrefix": trim_prefix,
    "trimSuffix": trim_suffix,
    "replace": replace_one,
    "replaceOne": replace_one,
    "replaceAll": replace_all,
    # Collections
    "keys": keys,
    "keysSorted": keys,
    "numRange": num_range,
    "slice": num_range,
    "len": length,
    "index": index,
    "join": join,
    "default": default,
    # Comparison and logic
    "eq": eq,
    "ne": ne,
    "lt": lt,
    "le": le,
    "gt": gt,
    "ge": ge,
    "and": and_,
    "or": or_,
    "not": not_,
    # Arithmetic
    "plus": plus,
    "minus": minus,
    "times": times,
    "divide": divide,
    "mod": mod,
    "round": round_int,
    "roundInt": round_int,
    "ceil": ceil,
    "floor": floor,
    # Serialization
    "toYaml": to_yaml,
    "toJson": to_json,
    "fromJson": from_json,
}


@cache
def default_registry() -> FilterRegistry:
    """Create the registry of built-in filters.

    Returns:
        A FilterRegistry with every built-in filter registered.
    """
    return FilterRegistry.from_filters(
        Filter.from_callable(name, func) for name, func in _BUILTIN_FILTERS.items()
    )
