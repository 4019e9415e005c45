"""Template tree materialization.

The walker renders every entry name and every text file of a template tree
against one variable context and writes the result under a destination
directory. Traversal is depth-first in tree order; directories are created
before their children. The first failure aborts the walk and already written
output is left in place.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote_plus

from stencil.config import RenderConfig, SkipFile
from stencil.exceptions import (
    MalformedExpressionError,
    TemplateError,
    TemplateIOError,
)
from stencil.templating import (
    ContextLike,
    FilterRegistry,
    Template,
    VariableContext,
    as_context,
    default_registry,
)
from stencil.utils import create_null_logger

from ._tree import (
    TemplateDirectory,
    TemplateEntry,
    TemplateFile,
    iter_entries,
    read_template_tree,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from structlog.typing import FilteringBoundLogger

_INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_name(name: str, *, template: str) -> str:
    """Decode a query-escaped entry name.

    ``%XX`` becomes the escaped character and ``+`` a space, so a name like
    ``%7B%7B .Name %7D%7D`` can hold template syntax the filesystem rejects.

    Raises:
        MalformedExpressionError: If a ``%`` is not followed by two hex digits.
    """
    invalid = _INVALID_ESCAPE.search(name)
    if invalid is not None:
        escape = name[invalid.start() : invalid.start() + 3]
        msg = f"invalid escape {escape!r} in entry name"
        raise MalformedExpressionError(msg, template=template, expression=name)
    return unquote_plus(name)


@dataclass(frozen=True, slots=True)
class SkipRule:
    """A ``skip_files`` entry resolved against one template tree.

    Attributes:
        paths: Template-relative paths to skip.
        not_paths: Template-relative paths to keep. When non-empty, every
            other path is skipped unless it is a directory above one of them.
    """

    paths: frozenset[str] = frozenset()
    not_paths: frozenset[str] = frozenset()


def match_paths(pattern: str, paths: "Iterable[str]") -> frozenset[str]:
    """Select the template-relative paths a gitignore-style pattern matches.

    The pattern is anchored at the template root. A matched directory also
    matches everything below it.
    """
    if not pattern:
        return frozenset()
    from pathspec import PathSpec  # noqa: PLC0415
    from pathspec.patterns.gitwildmatch import GitWildMatchPattern  # noqa: PLC0415

    spec = PathSpec.from_lines(GitWildMatchPattern, ["/" + pattern.lstrip("/")])
    return frozenset(spec.match_files(paths))


@dataclass(frozen=True, slots=True)
class MaterializeResult:
    """Outcome of a successful tree materialization.

    Attributes:
        destination: The destination root.
        files: Rendered files written, in traversal order.
        directories: Directories created or reused, in traversal order.
        copied: Binary files copied without rendering.
        skipped: Template-relative paths skipped because their name
            rendered empty or a ``skip_files`` rule excluded them.
    """

    destination: Path
    files: tuple[Path, ...] = field(default=())
    directories: tuple[Path, ...] = field(default=())
    copied: tuple[Path, ...] = field(default=())
    skipped: tuple[str, ...] = field(default=())


class TreeWalker:
    """Materializes template trees into destination directories.

    Args:
        registry: Filters available to names and file contents.
        options: Render options. Defaults to ``RenderConfig()``.
        logger: Logger for per-entry events. Defaults to a silent logger.
    """

    def __init__(
        self,
        registry: FilterRegistry | None = None,
        *,
        options: RenderConfig | None = None,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        self.registry: FilterRegistry = (
            default_registry() if registry is None else registry
        )
        self.options: RenderConfig = RenderConfig() if options is None else options
        self.logger: FilteringBoundLogger = (
            create_null_logger() if logger is None else logger
        )
        self._files: list[Path] = []
        self._directories: list[Path] = []
        self._copied: list[Path] = []
        self._skipped: list[str] = []
        self._skip_rules: tuple[SkipRule, ...] = ()

    def materialize(
        self,
        template_root: Path | TemplateDirectory,
        context: ContextLike,
        destination: Path,
    ) -> MaterializeResult:
        """Render a template tree into a destination directory.

        Args:
            template_root: Template root directory on disk, or an
                already-read tree.
            context: Variables for the render pass.
            destination: Output root. Created if missing.

        Returns:
            What was written, copied and skipped.

        Raises:
            TemplateError: On the first name, content or ``skip_files``
                setting that fails to render, with its location attached.
            TemplateIOError: If the template tree cannot be read or the
                destination cannot be written.
        """
        self._files, self._directories = [], []
        self._copied, self._skipped = [], []

        if isinstance(template_root, Path):
            template_root = read_template_tree(template_root)
        variables = as_context(context)
        destination = Path(os.path.normpath(destination))
        self._skip_rules = self.resolve_skip_rules(template_root, variables)

        self._make_directory(destination, template="")
        self._walk_directory(template_root, variables, destination, prefix="")

        self.logger.info(
            "tree_materialized",
            destination=str(destination),
            files=len(self._files),
            copied=len(self._copied),
            skipped=len(self._skipped),
        )
        return MaterializeResult(
            destination=destination,
            files=tuple(self._files),
            directories=tuple(self._directories),
            copied=tuple(self._copied),
            skipped=tuple(self._skipped),
        )

    def _walk_directory(
        self,
        directory: TemplateDirectory,
        variables: VariableContext,
        output_dir: Path,
        *,
        prefix: str,
    ) -> None:
        for child in directory.children:
            template_path = f"{prefix}/{child.name}" if prefix else child.name
            if self._excluded(template_path):
                self._skip(template_path, reason="skip_files")
                continue
            rendered = self._render_name(child, variables, template_path)
            if not rendered:
                self._skip(template_path, reason="empty_name")
                continue

            target = self._resolve_target(output_dir, rendered, template_path)
            if isinstance(child, TemplateDirectory):
                self._make_directory(target, template=template_path)
                self._walk_directory(child, variables, target, prefix=template_path)
                if self.options.preserve_mode and child.mode is not None:
                    self._chmod(target, child.mode, template=template_path)
            else:
                self._write_file(child, variables, target, template_path)

    def resolve_skip_rules(
        self, template_root: TemplateDirectory, variables: VariableContext
    ) -> tuple[SkipRule, ...]:
        """Render the ``skip_files`` settings and match them against a tree.

        Entries whose ``if`` does not render to ``true`` are left out.

        Args:
            template_root: The tree the patterns are matched against.
            variables: Variables for the ``path``, ``not_path`` and ``if``
                templates.

        Returns:
            One rule per applicable entry, in configuration order.
        """
        paths = [path for path, _ in iter_entries(template_root)]
        rules: list[SkipRule] = []
        for position, skip in enumerate(self.options.skip_files):
            where = f"skip_files[{position}]"
            if not self._skip_applies(skip, variables, where):
                continue
            path = self._render_setting(skip.path, variables, f"{where}.path")
            not_path = self._render_setting(
                skip.not_path, variables, f"{where}.not_path"
            )
            rule = SkipRule(
                paths=match_paths(path, paths), not_paths=match_paths(not_path, paths)
            )
            self.logger.debug(
                "skip_rule_resolved",
                rule=where,
                paths=sorted(rule.paths),
                not_paths=sorted(rule.not_paths),
            )
            rules.append(rule)
        return tuple(rules)

    def _skip_applies(
        self, skip: SkipFile, variables: VariableContext, where: str
    ) -> bool:
        if not skip.if_:
            return True
        return self._render_setting(skip.if_, variables, f"{where}.if") == "true"

    def _render_setting(
        self, source: str, variables: VariableContext, name: str
    ) -> str:
        if not source:
            return ""
        template = Template.parse(source, name=name, registry=self.registry)
        return template.render(variables, on_missing_key=self.options.on_missing_key)

    def _excluded(self, template_path: str) -> bool:
        """Apply the resolved ``skip_files`` rules to one template path.

        A path is excluded when any rule lists it in ``paths``. Failing that,
        once any rule has ``not_paths``, a path is excluded unless some rule
        keeps it or one of its descendants.
        """
        if any(template_path in rule.paths for rule in self._skip_rules):
            return True
        kept = [rule.not_paths for rule in self._skip_rules if rule.not_paths]
        if not kept:
            return False
        below = f"{template_path}/"
        return not any(
            template_path in not_paths
            or any(path.startswith(below) for path in not_paths)
            for not_paths in kept
        )

    def _skip(self, template_path: str, *, reason: str) -> None:
        self._skipped.append(template_path)
        self.logger.debug("entry_skipped", template=template_path, reason=reason)

    def _render_name(
        self, entry: TemplateEntry, variables: VariableContext, template_path: str
    ) -> str:
        template = Template.parse(
            decode_name(entry.name, template=template_path),
            name=template_path,
            registry=self.registry,
        )
        return template.render(variables, on_missing_key=self.options.on_missing_key)

    def _chmod(self, path: Path, mode: int, *, template: str) -> None:
        try:
            path.chmod(mode)
        except OSError as e:
            msg = f"cannot set mode of {path}: {e.strerror or e}"
            raise TemplateIOError(msg, template=template, path=path, cause=e) from e

    def _resolve_target(self, output_dir: Path, name: str, template_path: str) -> Path:
        """Join a rendered name onto its parent, refusing to leave the parent.

        Rendered names may contain ``/`` to create nested paths.
        """
        base = Path(os.path.normpath(output_dir))
        target = Path(os.path.normpath(base / name))
        if not target.is_relative_to(base) or target == base:
            msg = f"rendered name {name!r} resolves outside {output_dir}"
            raise TemplateIOError(msg, template=template_path, path=target)
        return target

    def _make_directory(self, path: Path, *, template: str) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"cannot create directory {path}: {e.strerror or e}"
            raise TemplateIOError(
                msg, template=template or None, path=path, cause=e
            ) from e
        if template:
            self._directories.append(path)
            self.logger.debug("directory_created", path=str(path), template=template)

    def _write_file(
        self,
        entry: TemplateFile,
        variables: VariableContext,
        target: Path,
        template_path: str,
    ) -> None:
        text = entry.text
        if text is None:
            content = entry.content
        else:
            template = Template.parse(text, name=template_path, registry=self.registry)
            rendered = template.render(
                variables, on_missing_key=self.options.on_missing_key
            )
            content = rendered.encode("utf-8")

        self._make_directory(target.parent, template="")
        try:
            target.write_bytes(content)
            if self.options.preserve_mode and entry.mode is not None:
                target.chmod(entry.mode)
        except OSError as e:
            msg = f"cannot write {target}: {e.strerror or e}"
            raise TemplateIOError(
                msg, template=template_path, path=target, cause=e
            ) from e

        if text is None:
            self._copied.append(target)
            self.logger.debug("file_copied", path=str(target), template=template_path)
        else:
            self._files.append(target)
            self.logger.debug(
                "file_written",
                path=str(target),
                template=template_path,
                size=len(content),
            )


def materialize_tree(
    template_root: Path | TemplateDirectory,
    context: ContextLike,
    destination: Path,
    *,
    registry: FilterRegistry | None = None,
    options: RenderConfig | None = None,
    logger: "FilteringBoundLogger | None" = None,
) -> MaterializeResult:
    """Render a template tree into a destination directory.

    Args:
        template_root: Template root directory on disk, or an already-read
            tree.
        context: Variables for the render pass.
        destination: Output root. Created if missing.
        registry: Filters available to names and contents.
        options: Render options.
        logger: Logger for per-entry events.

    Returns:
        What was written, copied and skipped.
    """
    walker = TreeWalker(registry, options=options, logger=logger)
    return walker.materialize(template_root, context, destination)


def check_tree(
    template_root: Path | TemplateDirectory,
    *,
    registry: FilterRegistry | None = None,
) -> list[TemplateError]:
    """Parse every name and text file of a template tree without rendering.

    Args:
        template_root: Template root directory on disk, or an already-read
            tree.
        registry: Filters the templates may use.

    Returns:
        One error per entry that fails to parse, in traversal order.

    Raises:
        TemplateIOError: If the template tree cannot be read.
    """
    if registry is None:
        registry = default_registry()
    if isinstance(template_root, Path):
        template_root = read_template_tree(template_root)

    errors: list[TemplateError] = []
    for template_path, entry in iter_entries(template_root):
        try:
            name = decode_name(entry.name, template=template_path)
            _ = Template.parse(name, name=template_path, registry=registry)
            if isinstance(entry, TemplateFile) and entry.text is not None:
                _ = Template.parse(entry.text, name=template_path, registry=registry)
        except TemplateError as e:
            errors.append(e.with_template(template_path))
    return errors
