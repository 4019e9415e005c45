"""Variable context and lexical scopes for template rendering."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Self

from ._values import Value, freeze_value, thaw_value


class VariableContext(Mapping[str, Value]):
    """Read-only set of named variables supplied for a render pass.

    Values are frozen on construction, so nothing evaluated during a render
    can mutate the caller's data or the context itself.
    """

    __slots__: tuple[str, ...] = ("_data",)

    def __init__(self, data: Mapping[str, object] | None = None) -> None:
        """Initialize from raw structured data.

        Args:
            data: Mapping of identifier to raw value (JSON/YAML shaped).

        Raises:
            FilterTypeMismatchError: If a value has an unsupported type.
        """
        frozen = freeze_value(dict(data or {}))
        self._data: MappingProxyType[str, Value] = frozen  # pyright: ignore[reportAttributeAccessIssue]

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> Self:
        """Create a context from a mapping of raw values."""
        return cls(data)

    @property
    def value(self) -> MappingProxyType[str, Value]:
        """The whole context as a mapping value (what ``$`` evaluates to)."""
        return self._data

    def to_dict(self) -> dict[str, object]:
        """Return a plain, mutable copy of the context."""
        return {key: thaw_value(value) for key, value in self._data.items()}

    def __getitem__(self, key: str) -> Value:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"VariableContext({dict(self._data)!r})"


def compose_context(
    *layers: Mapping[str, object] | VariableContext | None,
) -> VariableContext:
    """Compose a context from multiple layers.

    Layers are merged in order, so later values override earlier ones. Only
    top-level keys are merged; nested mappings are replaced wholesale.

    Args:
        layers: Mappings or contexts, lowest precedence first. None is skipped.

    Returns:
        A new VariableContext.
    """
    result: dict[str, object] = {}
    for layer in layers:
        if not layer:
            continue
        if isinstance(layer, VariableContext):
            result = {**result, **layer.value}
        else:
            result = {**result, **layer}
    return VariableContext(result)


@dataclass(frozen=True, slots=True)
class Scope:
    """One lexical frame of variable bindings.

    Frames form a chain from the innermost block outward. Binding a name or
    entering a block creates a new frame; existing frames are never changed,
    so inner bindings shadow outer ones without corrupting them.

    Attributes:
        root: The variable context for the render pass.
        dot: The value ``.`` refers to in this frame.
        variables: Names bound in this frame, without the ``$`` prefix.
        parent: The enclosing frame, or None for the root frame.
    """

    root: VariableContext
    dot: Value
    variables: Mapping[str, Value] = field(default_factory=dict)
    parent: "Scope | None" = None

    @classmethod
    def for_context(cls, context: VariableContext) -> Self:
        """Create the root frame, where ``.`` and ``$`` are the whole context."""
        return cls(root=context, dot=context.value)

    def bind(self, bindings: Mapping[str, Value]) -> "Scope":
        """Return a frame extending this one with additional variables."""
        return Scope(
            root=self.root,
            dot=self.dot,
            variables=MappingProxyType(dict(bindings)),
            parent=self,
        )

    def enter(self, dot: Value, bindings: Mapping[str, Value] | None = None) -> "Scope":
        """Return a child frame with a new dot and optional variables."""
        return Scope(
            root=self.root,
            dot=dot,
            variables=MappingProxyType(dict(bindings or {})),
            parent=self,
        )

    def lookup(self, name: str) -> tuple[bool, Value]:
        """Find a variable by name, innermost frame first.

        Args:
            name: Variable name without the ``$`` prefix. The empty name
                refers to the root context.

        Returns:
            Tuple of (found, value).
        """
        if not name:
            return True, self.root.value
        frame: Scope | None = self
        while frame is not None:
            if name in frame.variables:
                return True, frame.variables[name]
            frame = frame.parent
        return False, None

    def dots(self) -> Iterator[Value]:
        """Yield the dot of each frame from innermost to outermost, once each."""
        frame: Scope | None = self
        previous: object = object()
        while frame is not None:
            if frame.dot is not previous:
                yield frame.dot
                previous = frame.dot
            frame = frame.parent
