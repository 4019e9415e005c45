"""Render parameterized project templates into directory trees."""

from stencil.exceptions import (
    ErrorKind,
    StencilError,
    TemplateError,
    TemplateIOError,
)
from stencil.generator import MaterializeResult, materialize_tree
from stencil.templating import (
    FilterRegistry,
    MissingKeyPolicy,
    Template,
    VariableContext,
    default_registry,
    render_template_string,
)
from stencil.variables import load_variables

__version__ = "0.1.0"

__all__ = [
    "ErrorKind",
    "FilterRegistry",
    "MaterializeResult",
    "MissingKeyPolicy",
    "StencilError",
    "Template",
    "TemplateError",
    "TemplateIOError",
    "VariableContext",
    "__version__",
    "default_registry",
    "load_variables",
    "materialize_tree",
    "render_template_string",
]
