"""Template evaluation.

The evaluator walks parsed nodes against a ``Scope`` chain and appends output
to a buffer. Expression errors raised by filters or lookups are annotated
with the expression text and position of the action that raised them.
"""

from collections.abc import Iterator, Sequence
from enum import StrEnum
from types import MappingProxyType

from stencil.exceptions import (
    FilterTypeMismatchError,
    TemplateError,
    UndefinedVariableError,
    UnknownFilterError,
)

from ._context import Scope
from ._filters import FilterRegistry
from ._nodes import (
    ActionNode,
    ArgumentNode,
    BoolNode,
    ChainNode,
    CommandNode,
    CommentNode,
    DotNode,
    FieldNode,
    IdentifierNode,
    IfNode,
    NilNode,
    NumberNode,
    PipelineNode,
    RangeNode,
    StringNode,
    TemplateNode,
    TextNode,
    VariableNode,
)
from ._values import Value, format_value, is_truthy, kind_of


class MissingKeyPolicy(StrEnum):
    """What a field lookup does when no mapping holds the key."""

    ERROR = "error"
    ZERO = "zero"


_MISSING = object()


class Evaluator:
    """Evaluates template nodes.

    Args:
        registry: Filters callable from the template.
        template: Template name for error messages.
        on_missing_key: Policy for fields absent from every mapping in scope.
    """

    def __init__(
        self,
        registry: FilterRegistry,
        *,
        template: str | None = None,
        on_missing_key: MissingKeyPolicy = MissingKeyPolicy.ERROR,
    ) -> None:
        self.registry: FilterRegistry = registry
        self.template: str | None = template
        self.on_missing_key: MissingKeyPolicy = on_missing_key

    def render(self, nodes: Sequence[TemplateNode], scope: Scope) -> str:
        """Render nodes to a string.

        Args:
            nodes: Parsed template nodes.
            scope: The root scope.

        Returns:
            The rendered text.

        Raises:
            TemplateError: On the first failing expression, in document order.
        """
        output: list[str] = []
        try:
            self._render_nodes(nodes, scope, output)
        except TemplateError as e:
            if self.template is not None:
                e.with_template(self.template)
            raise
        return "".join(output)

    # Blocks

    def _render_nodes(
        self, nodes: Sequence[TemplateNode], scope: Scope, output: list[str]
    ) -> None:
        for node in nodes:
            match node:
                case TextNode():
                    output.append(node.text)
                case CommentNode():
                    pass
                case ActionNode():
                    value = self.eval_pipeline(node.pipeline, scope)
                    if node.pipeline.declarations:
                        names = node.pipeline.declarations
                        scope = scope.bind(dict.fromkeys(names, value))
                    else:
                        output.append(format_value(value))
                case IfNode():
                    self._render_if(node, scope, output)
                case RangeNode():
                    self._render_range(node, scope, output)
                case _:
                    msg = f"unexpected node {type(node).__name__}"
                    raise TypeError(msg)

    def _render_if(self, node: IfNode, scope: Scope, output: list[str]) -> None:
        value = self.eval_pipeline(node.pipeline, scope)
        if node.pipeline.declarations:
            scope = scope.bind(dict.fromkeys(node.pipeline.declarations, value))
        if is_truthy(value):
            self._render_nodes(node.body, scope, output)
        else:
            self._render_nodes(node.else_body, scope, output)

    def _render_range(self, node: RangeNode, scope: Scope, output: list[str]) -> None:
        collection = self.eval_pipeline(node.pipeline, scope)
        try:
            items = list(self._iterate(collection))
        except TemplateError as e:
            self._locate(e, node.pipeline)
            raise

        if not items:
            self._render_nodes(node.else_body, scope, output)
            return

        for key, element in items:
            bindings: dict[str, Value] = {}
            if node.index_var is not None:
                bindings[node.index_var] = key
            if node.value_var is not None:
                bindings[node.value_var] = element
            self._render_nodes(node.body, scope.enter(element, bindings), output)

    @staticmethod
    def _iterate(collection: Value) -> Iterator[tuple[Value, Value]]:
        """Yield (index or key, element) pairs in iteration order.

        Mappings iterate in ascending key order; integers count from zero.
        """
        match collection:
            case None:
                return
            case tuple():
                yield from enumerate(collection)
            case MappingProxyType():
                for key in sorted(collection):
                    yield key, collection[key]
            case bool():
                msg = f"range can't iterate over {kind_of(collection)}"
                raise FilterTypeMismatchError(msg)
            case int():
                for position in range(collection):
                    yield position, position
            case _:
                msg = f"range can't iterate over {kind_of(collection)}"
                raise FilterTypeMismatchError(msg)

    # Expressions

    def eval_pipeline(self, pipeline: PipelineNode, scope: Scope) -> Value:
        """Evaluate a pipeline, passing each stage's result to the next.

        Args:
            pipeline: The pipeline node.
            scope: The scope to evaluate in.

        Returns:
            The value of the last command.

        Raises:
            TemplateError: If a lookup or filter fails.
        """
        value: object = _MISSING
        try:
            for command in pipeline.commands:
                value = self._eval_command(command, scope, value)
        except TemplateError as e:
            self._locate(e, pipeline)
            raise
        return value  # pyright: ignore[reportReturnType]

    def _eval_command(self, command: CommandNode, scope: Scope, piped: object) -> Value:
        head = command.args[0]
        if isinstance(head, IdentifierNode):
            function = self.registry.get(head.name)
            if function is None:
                msg = f'filter "{head.name}" not defined'
                raise UnknownFilterError(msg, line=head.line, column=head.column)
            args = [self._eval_arg(arg, scope) for arg in command.args[1:]]
            if piped is not _MISSING:
                args.append(piped)  # pyright: ignore[reportArgumentType]
            return function(*args)
        return self._eval_arg(head, scope)

    def _eval_arg(self, arg: ArgumentNode, scope: Scope) -> Value:
        match arg:
            case FieldNode():
                value = self._lookup_field(arg.names[0], scope)
                return self._chain(value, arg.names[1:])
            case VariableNode():
                found, value = scope.lookup(arg.name)
                if not found:
                    msg = f"undefined variable ${arg.name}"
                    raise UndefinedVariableError(msg, line=arg.line, column=arg.column)
                return self._chain(value, arg.fields)
            case DotNode():
                return scope.dot
            case ChainNode():
                return self._chain(self.eval_pipeline(arg.pipeline, scope), arg.fields)
            case PipelineNode():
                return self.eval_pipeline(arg, scope)
            case StringNode() | NumberNode() | BoolNode():
                return arg.value
            case NilNode():
                return None
            case IdentifierNode():
                function = self.registry.get(arg.name)
                if function is None:
                    msg = f'filter "{arg.name}" not defined'
                    raise UnknownFilterError(msg, line=arg.line, column=arg.column)
                return function()
            case _:
                msg = f"unexpected argument {type(arg).__name__}"
                raise TypeError(msg)

    def _lookup_field(self, name: str, scope: Scope) -> Value:
        """Resolve ``.name`` from the innermost dot outward.

        The innermost dot holding the key wins; the root context is the
        outermost dot, so context variables stay visible inside loops.
        """
        for dot in scope.dots():
            if isinstance(dot, MappingProxyType) and name in dot:
                return dot[name]
        if name in scope.root:
            return scope.root[name]
        return self._missing(name, scope.dot)

    def _chain(self, value: Value, names: Sequence[str]) -> Value:
        for name in names:
            if isinstance(value, MappingProxyType):
                value = value[name] if name in value else self._missing(name, value)
            elif value is None:
                msg = f"nil value evaluating field {name}"
                raise UndefinedVariableError(msg)
            else:
                msg = f"can't evaluate field {name} in type {kind_of(value)}"
                raise UndefinedVariableError(msg)
        return value

    def _missing(self, name: str, container: Value) -> Value:
        if self.on_missing_key is MissingKeyPolicy.ZERO:
            return None
        if isinstance(container, MappingProxyType) or container is None:
            msg = f'map has no entry for key "{name}"'
        else:
            msg = f"can't evaluate field {name} in type {kind_of(container)}"
        raise UndefinedVariableError(msg)

    def _locate(self, error: TemplateError, pipeline: PipelineNode) -> None:
        error.with_location(
            expression=pipeline.text, line=pipeline.line, column=pipeline.column
        )
