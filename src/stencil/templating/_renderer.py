"""Template rendering engine."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Self

from pydantic import BaseModel

from ._context import Scope, VariableContext
from ._evaluator import Evaluator, MissingKeyPolicy
from ._filters import FilterRegistry, default_registry
from ._nodes import TemplateNode, TextNode
from ._parser import parse_template

type ContextLike = VariableContext | BaseModel | Mapping[str, object]


def as_context(context: ContextLike) -> VariableContext:
    """Convert supported context inputs to a VariableContext.

    Args:
        context: A VariableContext, Pydantic model, or mapping of raw values.

    Returns:
        The context. VariableContext inputs are returned unchanged.
    """
    if isinstance(context, VariableContext):
        return context
    if isinstance(context, BaseModel):
        return VariableContext(context.model_dump())
    return VariableContext(context)


@dataclass(frozen=True, slots=True)
class Template:
    """A parsed template, ready to render any number of times.

    Attributes:
        name: Template name or path used in error messages.
        source: The template text.
        nodes: Top-level parsed nodes.
        registry: Filters the template was parsed against.
    """

    name: str
    source: str
    nodes: tuple[TemplateNode, ...]
    registry: FilterRegistry = field(default_factory=default_registry)

    @classmethod
    def parse(
        cls,
        source: str,
        *,
        name: str = "<string>",
        registry: FilterRegistry | None = None,
    ) -> Self:
        """Parse template text.

        Args:
            source: Template text.
            name: Name used in error messages.
            registry: Filters available to the template. Defaults to the
                built-in registry.

        Returns:
            The parsed template.

        Raises:
            MalformedExpressionError: On invalid action syntax.
            UnknownFilterError: If an action names an unregistered filter.
            UnbalancedBlockError: On mismatched block markers.
        """
        if registry is None:
            registry = default_registry()
        nodes = parse_template(source, name=name, registry=registry)
        return cls(name=name, source=source, nodes=nodes, registry=registry)

    @property
    def is_static(self) -> bool:
        """Whether rendering always reproduces the source text unchanged."""
        return all(isinstance(node, TextNode) for node in self.nodes)

    def render(
        self,
        context: ContextLike,
        *,
        on_missing_key: MissingKeyPolicy = MissingKeyPolicy.ERROR,
    ) -> str:
        """Render the template against a context.

        Args:
            context: Variables for the render pass.
            on_missing_key: Policy for fields missing from the context.

        Returns:
            The rendered text.

        Raises:
            TemplateError: On the first failing expression, in document order.
        """
        if self.is_static:
            return self.source
        evaluator = Evaluator(
            self.registry, template=self.name, on_missing_key=on_missing_key
        )
        return evaluator.render(self.nodes, Scope.for_context(as_context(context)))


def render_template_string(
    template_str: str,
    context: ContextLike,
    *,
    name: str = "<string>",
    registry: FilterRegistry | None = None,
    on_missing_key: MissingKeyPolicy = MissingKeyPolicy.ERROR,
) -> str:
    """Parse and render a template string in one step.

    Args:
        template_str: Template text.
        context: Variables for the render pass.
        name: Name used in error messages.
        registry: Filters available to the template.
        on_missing_key: Policy for fields missing from the context.

    Returns:
        Rendered string.
    """
    template = Template.parse(template_str, name=name, registry=registry)
    return template.render(context, on_missing_key=on_missing_key)


def render_template(
    template_path: Path,
    context: ContextLike,
    *,
    registry: FilterRegistry | None = None,
    on_missing_key: MissingKeyPolicy = MissingKeyPolicy.ERROR,
) -> str:
    """Render a template file with context.

    Args:
        template_path: Path to the template file.
        context: Variables for the render pass.
        registry: Filters available to the template.
        on_missing_key: Policy for fields missing from the context.

    Returns:
        Rendered template content.

    Raises:
        FileNotFoundError: If template file does not exist.
    """
    content = template_path.read_text(encoding="utf-8")
    return render_template_string(
        content,
        context,
        name=str(template_path),
        registry=registry,
        on_missing_key=on_missing_key,
    )
