"""Template syntax tree.

Nodes are immutable. A parsed template is a tuple of top-level nodes that can
be evaluated any number of times against different contexts.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class TemplateNode:
    """Base class for all template nodes."""

    line: int = field(default=0, kw_only=True)
    column: int = field(default=0, kw_only=True)


# Arguments


@dataclass(frozen=True, slots=True)
class DotNode(TemplateNode):
    """The current dot, written ``.``."""


@dataclass(frozen=True, slots=True)
class FieldNode(TemplateNode):
    """A field chain on the dot, written ``.A.B``."""

    names: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class VariableNode(TemplateNode):
    """A variable reference with optional field chain, written ``$x.A``.

    The empty name refers to ``$``, the root context.
    """

    name: str
    fields: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ChainNode(TemplateNode):
    """Field access on a parenthesized pipeline, written ``(p).A``."""

    pipeline: "PipelineNode"
    fields: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class IdentifierNode(TemplateNode):
    """A filter name in command position."""

    name: str


@dataclass(frozen=True, slots=True)
class StringNode(TemplateNode):
    value: str


@dataclass(frozen=True, slots=True)
class NumberNode(TemplateNode):
    value: int | float
    text: str


@dataclass(frozen=True, slots=True)
class BoolNode(TemplateNode):
    value: bool


@dataclass(frozen=True, slots=True)
class NilNode(TemplateNode):
    pass


type ArgumentNode = (
    DotNode
    | FieldNode
    | VariableNode
    | ChainNode
    | IdentifierNode
    | StringNode
    | NumberNode
    | BoolNode
    | NilNode
    | PipelineNode
)


@dataclass(frozen=True, slots=True)
class CommandNode(TemplateNode):
    """One stage of a pipeline: an operand, or a filter name and arguments."""

    args: tuple[ArgumentNode, ...]


@dataclass(frozen=True, slots=True)
class PipelineNode(TemplateNode):
    """A sequence of commands joined by ``|``.

    Attributes:
        declarations: Variable names declared with ``:=``, without ``$``.
        commands: The pipeline stages, in evaluation order.
        text: Source text of the pipeline, for error messages.
    """

    declarations: tuple[str, ...]
    commands: tuple[CommandNode, ...]
    text: str


# Template structure


@dataclass(frozen=True, slots=True)
class TextNode(TemplateNode):
    """Literal text copied to the output unchanged."""

    text: str


@dataclass(frozen=True, slots=True)
class CommentNode(TemplateNode):
    """A ``{{/* ... */}}`` comment; renders nothing."""

    text: str


@dataclass(frozen=True, slots=True)
class ActionNode(TemplateNode):
    """A ``{{ pipeline }}`` action.

    Prints the pipeline's value, unless the pipeline declares a variable, in
    which case it binds the variable and prints nothing.
    """

    pipeline: PipelineNode


@dataclass(frozen=True, slots=True)
class IfNode(TemplateNode):
    """Conditional block. ``else if`` chains nest as an IfNode in else_body."""

    pipeline: PipelineNode
    body: tuple["TemplateNode", ...]
    else_body: tuple["TemplateNode", ...] = ()


@dataclass(frozen=True, slots=True)
class RangeNode(TemplateNode):
    """Loop block over a sequence, a mapping, or an integer count.

    Attributes:
        index_var: Name bound to the position (or mapping key), if declared.
        value_var: Name bound to the element, if declared.
        pipeline: The collection expression.
        body: Nodes rendered once per element, with dot rebound.
        else_body: Nodes rendered when the collection is empty.
    """

    index_var: str | None
    value_var: str | None
    pipeline: PipelineNode
    body: tuple["TemplateNode", ...]
    else_body: tuple["TemplateNode", ...] = ()


type BlockNode = TextNode | CommentNode | ActionNode | IfNode | RangeNode
