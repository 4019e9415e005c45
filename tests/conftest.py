"""Shared test fixtures for stencil tests."""

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest
from rich.console import Console

FIXTURES_DIR = Path(__file__).parent / "fixtures"

type WriteTree = Callable[[Path, Mapping[str, str | bytes | None]], Path]


def write_tree(root: Path, entries: Mapping[str, str | bytes | None]) -> Path:
    """Create files and directories below root.

    Args:
        root: Directory to create the entries in.
        entries: Relative path to content. Text is written as UTF-8, bytes
            verbatim, and None creates an empty directory.

    Returns:
        The root directory.
    """
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in entries.items():
        path = root / relative
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            _ = path.write_bytes(content)
        else:
            _ = path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_tree() -> WriteTree:
    return write_tree


@pytest.fixture
def java_template_dir() -> Path:
    return FIXTURES_DIR / "templates" / "java-project"


@pytest.fixture
def java_expected_dir() -> Path:
    return FIXTURES_DIR / "expected" / "java-project"


@pytest.fixture
def java_vars_file() -> Path:
    return FIXTURES_DIR / "java-project-vars.yml"


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )
