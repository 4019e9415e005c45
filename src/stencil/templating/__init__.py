r"""Stencil Templating System.

A template engine with ``{{ }}`` actions, filter pipelines, and
``if``/``range`` blocks with whitespace-trim markers.

Basic usage:
    from stencil.templating import Template, VariableContext

    template = Template.parse(
        "package com.{{ .CompanyName | dasherize | downcase }}",
        name="Example.java",
    )
    result = template.render(VariableContext({"CompanyName": "Acme Corp"}))
    # Returns: "package com.acme-corp"

Blocks and trim markers:
    from stencil.templating import render_template_string

    result = render_template_string(
        "{{ range $i, $name := .Names -}}\n"
        "{{ if gt $i 0 }}, {{ end }}{{ $name }}\n"
        "{{- end }}",
        {"Names": ["Foo", "Bar", "Baz"]},
    )
    # Returns: "Foo, Bar, Baz"

With custom filters:
    from stencil.templating import default_registry

    registry = default_registry().with_function("shout", lambda s: s.upper() + "!")
    result = render_template_string(
        "{{ .Name | shout }}", {"Name": "hi"}, registry=registry
    )
"""

from ._context import Scope, VariableContext, compose_context
from ._evaluator import Evaluator, MissingKeyPolicy
from ._filters import Filter, FilterRegistry, default_registry
from ._lexer import Token, TokenType, tokenize_template
from ._parser import TemplateParser, parse_template
from ._renderer import (
    ContextLike,
    Template,
    as_context,
    render_template,
    render_template_string,
)
from ._values import (
    NO_VALUE,
    Value,
    ValueKind,
    format_value,
    freeze_value,
    is_truthy,
    kind_of,
    thaw_value,
)

__all__ = [
    "NO_VALUE",
    "ContextLike",
    "Evaluator",
    "Filter",
    "FilterRegistry",
    "MissingKeyPolicy",
    "Scope",
    "Template",
    "TemplateParser",
    "Token",
    "TokenType",
    "Value",
    "ValueKind",
    "VariableContext",
    "as_context",
    "compose_context",
    "default_registry",
    "format_value",
    "freeze_value",
    "is_truthy",
    "kind_of",
    "parse_template",
    "render_template",
    "render_template_string",
    "thaw_value",
    "tokenize_template",
]
