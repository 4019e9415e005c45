"""Comparison of rendered trees against known-good trees."""

import difflib
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from stencil.exceptions import TemplateIOError


class MismatchKind(StrEnum):
    """How an entry of the actual tree differs from the expected tree."""

    MISSING = "missing"
    UNEXPECTED = "unexpected"
    TYPE_CHANGED = "type_changed"
    CONTENT_CHANGED = "content_changed"


@dataclass(frozen=True, slots=True)
class TreeMismatch:
    """A single difference between two trees.

    Attributes:
        path: POSIX path relative to both tree roots.
        kind: The kind of difference.
        detail: Short human-readable description.
    """

    path: str
    kind: MismatchKind
    detail: str = ""


def _list_tree(root: Path) -> dict[str, bool]:
    """Map each relative path below root to whether it is a directory."""
    try:
        return {
            path.relative_to(root).as_posix(): path.is_dir()
            for path in root.rglob("*")
        }
    except OSError as e:
        msg = f"cannot list {root}: {e.strerror or e}"
        raise TemplateIOError(msg, path=root, cause=e) from e


def _describe_content_change(expected: bytes, actual: bytes) -> str:
    try:
        expected_text = expected.decode("utf-8")
        actual_text = actual.decode("utf-8")
    except UnicodeDecodeError:
        return f"binary content differs ({len(expected)} vs {len(actual)} bytes)"

    expected_lines = expected_text.splitlines()
    actual_lines = actual_text.splitlines()
    for number, (left, right) in enumerate(
        zip(expected_lines, actual_lines, strict=False), start=1
    ):
        if left != right:
            return f"first difference at line {number}"
    if len(expected_lines) == len(actual_lines):
        # Same line contents, so only line terminators differ
        if expected_text.rstrip("\r\n") == actual_text.rstrip("\r\n"):
            return "trailing newline differs"
        return "line endings differ"
    return (
        f"line count differs ({len(expected_lines)} expected, "
        f"{len(actual_lines)} actual)"
    )


def diff_trees(expected: Path, actual: Path) -> list[TreeMismatch]:
    """Recursively compare an actual tree with an expected tree.

    Args:
        expected: Root of the known-good tree.
        actual: Root of the tree under test.

    Returns:
        Mismatches ordered by path. Empty when the trees are identical.
        Entries below a missing, unexpected or type-changed directory are not
        reported separately.

    Raises:
        TemplateIOError: If either root is not a directory or cannot be read.
    """
    for root in (expected, actual):
        if not root.is_dir():
            msg = f"not a directory: {root}"
            raise TemplateIOError(msg, path=root)

    expected_entries = _list_tree(expected)
    actual_entries = _list_tree(actual)

    mismatches: list[TreeMismatch] = []
    reported: list[str] = []
    for path in sorted(expected_entries.keys() | actual_entries.keys()):
        if any(path.startswith(f"{parent}/") for parent in reported):
            continue

        in_expected = path in expected_entries
        in_actual = path in actual_entries
        if not in_actual:
            mismatches.append(TreeMismatch(path, MismatchKind.MISSING, "not rendered"))
            reported.append(path)
        elif not in_expected:
            mismatches.append(
                TreeMismatch(path, MismatchKind.UNEXPECTED, "not in expected tree")
            )
            reported.append(path)
        elif expected_entries[path] != actual_entries[path]:
            want = "directory" if expected_entries[path] else "file"
            got = "directory" if actual_entries[path] else "file"
            mismatches.append(
                TreeMismatch(
                    path, MismatchKind.TYPE_CHANGED, f"expected {want}, found {got}"
                )
            )
            reported.append(path)
        elif not expected_entries[path]:
            want_bytes = (expected / path).read_bytes()
            got_bytes = (actual / path).read_bytes()
            if want_bytes != got_bytes:
                detail = _describe_content_change(want_bytes, got_bytes)
                mismatches.append(
                    TreeMismatch(path, MismatchKind.CONTENT_CHANGED, detail)
                )
    return mismatches


def unified_file_diff(expected: Path, actual: Path, *, path: str = "") -> str:
    """Render a unified diff between two text files.

    Args:
        expected: The known-good file.
        actual: The file under test.
        path: Display path for the diff headers.

    Returns:
        The diff text, empty when the files are identical or not text.
    """
    try:
        expected_lines = expected.read_text(encoding="utf-8").splitlines(keepends=True)
        actual_lines = actual.read_text(encoding="utf-8").splitlines(keepends=True)
    except UnicodeDecodeError:
        return ""
    label = path or expected.name
    return "".join(
        difflib.unified_diff(
            expected_lines,
            actual_lines,
            fromfile=f"expected/{label}",
            tofile=f"actual/{label}",
        )
    )
