"""Template tree generation.

Basic usage:
    from pathlib import Path

    from stencil.generator import materialize_tree

    result = materialize_tree(
        Path("templates/java-project"),
        {"CompanyName": "Acme", "IncludeEnum": True},
        Path("build/java-project"),
    )
    # result.files lists every rendered file in traversal order

Comparing against a known-good tree:
    from stencil.generator import diff_trees

    mismatches = diff_trees(Path("expected"), Path("build/java-project"))
"""

from ._compare import MismatchKind, TreeMismatch, diff_trees, unified_file_diff
from ._tree import (
    TemplateDirectory,
    TemplateEntry,
    TemplateFile,
    iter_entries,
    read_template_tree,
)
from ._walker import (
    MaterializeResult,
    SkipRule,
    TreeWalker,
    check_tree,
    decode_name,
    match_paths,
    materialize_tree,
)

__all__ = [
    "MaterializeResult",
    "MismatchKind",
    "SkipRule",
    "TemplateDirectory",
    "TemplateEntry",
    "TemplateFile",
    "TreeMismatch",
    "TreeWalker",
    "check_tree",
    "decode_name",
    "diff_trees",
    "iter_entries",
    "match_paths",
    "materialize_tree",
    "read_template_tree",
    "unified_file_diff",
]
