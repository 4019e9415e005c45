"""In-memory template trees.

A template tree is read from disk once into immutable entries. Entry names
are template strings; file contents are kept as raw bytes so that binary
files can be copied verbatim.
"""

import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Self

from stencil.exceptions import TemplateIOError


@dataclass(frozen=True, slots=True)
class TemplateFile:
    """A file in a template tree.

    Attributes:
        name: The entry name, itself a template string.
        content: Raw file content.
        mode: Permission bits of the source file, if known.
    """

    name: str
    content: bytes
    mode: int | None = None

    @classmethod
    def from_text(cls, name: str, text: str, *, mode: int | None = None) -> Self:
        """Create a file entry from template text."""
        return cls(name=name, content=text.encode("utf-8"), mode=mode)

    @property
    def binary(self) -> bool:
        """Whether the content is copied verbatim instead of rendered.

        Content containing a NUL byte or not decodable as UTF-8 is binary.
        """
        return self.text is None

    @property
    def text(self) -> str | None:
        """The content decoded as UTF-8, or None for binary content."""
        if b"\x00" in self.content:
            return None
        try:
            return self.content.decode("utf-8")
        except UnicodeDecodeError:
            return None


@dataclass(frozen=True, slots=True)
class TemplateDirectory:
    """A directory in a template tree.

    Attributes:
        name: The entry name, itself a template string. Empty for the root.
        children: Child entries in traversal order.
        mode: Permission bits of the source directory, if known.
    """

    name: str
    children: tuple["TemplateEntry", ...] = field(default=())
    mode: int | None = None


type TemplateEntry = TemplateFile | TemplateDirectory


def read_template_tree(root: Path) -> TemplateDirectory:
    """Read a template directory from disk.

    Children are ordered by name so traversal is the same on every platform.

    Args:
        root: The template root directory.

    Returns:
        The root entry, with an empty name.

    Raises:
        TemplateIOError: If the root is not a directory or an entry cannot
            be read.
    """
    if not root.is_dir():
        msg = f"template root is not a directory: {root}"
        raise TemplateIOError(msg, path=root)
    return _read_directory(root, name="")


def _read_directory(path: Path, *, name: str) -> TemplateDirectory:
    try:
        entries = sorted(path.iterdir(), key=lambda p: p.name)
        mode = stat.S_IMODE(path.stat().st_mode)
    except OSError as e:
        msg = f"cannot read template directory: {e.strerror or e}"
        raise TemplateIOError(msg, path=path, cause=e) from e

    children: list[TemplateEntry] = []
    for entry in entries:
        if entry.is_dir():
            children.append(_read_directory(entry, name=entry.name))
        else:
            children.append(_read_file(entry))
    return TemplateDirectory(name=name, children=tuple(children), mode=mode)


def _read_file(path: Path) -> TemplateFile:
    try:
        content = path.read_bytes()
        mode = stat.S_IMODE(path.stat().st_mode)
    except OSError as e:
        msg = f"cannot read template file: {e.strerror or e}"
        raise TemplateIOError(msg, path=path, cause=e) from e
    return TemplateFile(name=path.name, content=content, mode=mode)


def iter_entries(
    directory: TemplateDirectory, prefix: str = ""
) -> list[tuple[str, TemplateEntry]]:
    """List every entry below a directory with its template-relative path.

    Args:
        directory: The directory to list.
        prefix: Path of the directory relative to the template root.

    Returns:
        (path, entry) pairs in depth-first traversal order.
    """
    result: list[tuple[str, TemplateEntry]] = []
    for child in directory.children:
        path = f"{prefix}/{child.name}" if prefix else child.name
        result.append((path, child))
        if isinstance(child, TemplateDirectory):
            result.extend(iter_entries(child, path))
    return result
