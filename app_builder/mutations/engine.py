"""File mutation engine.

Primitive operations the pipeline steps use to shape the generated project:
create, remove, append, anchored injection, substitution and comment-out.
Every target path is resolved against a single project root and rejected if
it would land outside of it.  Writes go through a temporary file in the same
directory followed by ``os.replace``, so a failed mutation never leaves a
half-written file behind.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from app_builder.mutations.anchors import Anchor, AnchorResolver, describe
from app_builder.utils import print_action

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MutationError(Exception):
    """Base class for failed file mutations."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = str(path)
        super().__init__(message)


class PathConflictError(MutationError):
    """Raised when a file to be created already exists."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(path, f"File already exists: {path}")


class NotFoundError(MutationError):
    """Raised when a mutation targets a file that does not exist."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(path, f"File not found: {path}")


class AnchorNotFoundError(MutationError):
    """Raised when an injection anchor is absent from its target file."""

    def __init__(self, path: str | Path, anchor: Anchor) -> None:
        self.anchor = anchor
        super().__init__(path, f"Anchor {describe(anchor)} not found in {path}")


class InvalidPathError(MutationError):
    """Raised when a path resolves outside of the project root."""

    def __init__(self, path: str | Path, root: Path) -> None:
        super().__init__(path, f"Path {path} escapes the project root {root}")


# ---------------------------------------------------------------------------
# Mutation value object
# ---------------------------------------------------------------------------


class MutationKind(str, Enum):
    CREATE = "create"
    REMOVE = "remove"
    APPEND = "append"
    INJECT_AFTER = "inject_after"
    INJECT_BEFORE = "inject_before"
    SUBSTITUTE = "substitute"
    COMMENT_OUT = "comment_out"


@dataclass(frozen=True)
class FileMutation:
    """A single file-level operation waiting to be applied."""

    path: str
    kind: MutationKind
    content: str = ""
    anchor: Anchor | None = None
    overwrite: bool = False


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class FileMutationEngine:
    """Applies file mutations inside a project root.

    Args:
        root: Directory every relative path is resolved against.
        resolver: Anchor resolver used by injections, substitutions and
            comment-out.  Defaults to a plain ``AnchorResolver``.
        comment_marker: Prefix inserted by :meth:`comment_out`.
        quiet: Suppress the per-action console lines.
    """

    def __init__(
        self,
        root: str | Path,
        resolver: AnchorResolver | None = None,
        comment_marker: str = "#",
        quiet: bool = False,
    ) -> None:
        self.root = Path(root).resolve()
        self.resolver = resolver or AnchorResolver()
        self.comment_marker = comment_marker
        self.quiet = quiet

    # -- Dispatch ----------------------------------------------------------

    def apply(self, mutation: FileMutation) -> None:
        """Apply a ``FileMutation`` by dispatching on its kind."""
        kind = mutation.kind
        if kind is MutationKind.CREATE:
            self.create_file(mutation.path, mutation.content, overwrite=mutation.overwrite)
        elif kind is MutationKind.REMOVE:
            self.remove_file(mutation.path)
        elif kind is MutationKind.APPEND:
            self.append_file(mutation.path, mutation.content)
        elif kind is MutationKind.INJECT_AFTER:
            self.inject_after(mutation.path, _require_anchor(mutation), mutation.content)
        elif kind is MutationKind.INJECT_BEFORE:
            self.inject_before(mutation.path, _require_anchor(mutation), mutation.content)
        elif kind is MutationKind.SUBSTITUTE:
            self.substitute(mutation.path, _require_anchor(mutation), mutation.content)
        elif kind is MutationKind.COMMENT_OUT:
            self.comment_out(mutation.path, _require_anchor(mutation))
        else:
            raise ValueError(f"Unsupported mutation kind: {kind}")

    # -- Read helpers ------------------------------------------------------

    def read_file(self, path: str) -> str:
        """Return the text of *path*, raising ``NotFoundError`` if missing."""
        target = self.resolve(path)
        if not target.is_file():
            raise NotFoundError(path)
        return target.read_text(encoding="utf-8")

    # -- Operations --------------------------------------------------------

    def create_file(self, path: str, content: str, overwrite: bool = False) -> None:
        """Write *content* to a new file.

        Raises:
            PathConflictError: If the file exists and *overwrite* is false.
        """
        target = self.resolve(path)
        existed = target.exists()
        if existed and not overwrite:
            raise PathConflictError(path)
        _write_atomic(target, content)
        self._report("force" if existed else "create", path)

    def remove_file(self, path: str) -> None:
        """Delete a file or directory; missing targets are a silent success."""
        target = self.resolve(path)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        else:
            return
        self._report("remove", path, style="red")

    def append_file(self, path: str, content: str) -> None:
        """Append *content* at the end of an existing file."""
        text = self.read_file(path)
        _write_atomic(self.resolve(path), text + content)
        self._report("append", path)

    def inject_after(self, path: str, anchor: Anchor, content: str) -> None:
        """Insert *content* right after the first match of *anchor*.

        Raises:
            AnchorNotFoundError: If the anchor does not occur in the file.
        """
        self._inject(path, anchor, content, after=True)

    def inject_before(self, path: str, anchor: Anchor, content: str) -> None:
        """Insert *content* right before the first match of *anchor*.

        Raises:
            AnchorNotFoundError: If the anchor does not occur in the file.
        """
        self._inject(path, anchor, content, after=False)

    def substitute(self, path: str, anchor: Anchor, replacement: str) -> None:
        """Replace the first match of *anchor* with *replacement*.

        A missing match leaves the file untouched and is not an error.  The
        replacement is inserted literally; group references are not expanded.
        """
        text = self.read_file(path)
        span = self.resolver.resolve(text, anchor)
        if span is None:
            return
        _write_atomic(self.resolve(path), text[: span.start] + replacement + text[span.end :])
        self._report("gsub", path, style="yellow")

    def comment_out(self, path: str, anchor: Anchor) -> None:
        """Comment every line that contains a match of *anchor*.

        The marker goes after the line's leading whitespace so indentation is
        kept: ``  config.x = 1`` becomes ``  # config.x = 1``.  A match that
        already sits after the marker on its line is left alone.
        """
        text = self.read_file(path)
        changed = False
        lines: list[str] = []
        for line in text.splitlines(keepends=True):
            span = self.resolver.resolve(line, anchor)
            if span is not None and self.comment_marker not in line[: span.start]:
                body = line.lstrip(" \t")
                indent = line[: len(line) - len(body)]
                line = f"{indent}{self.comment_marker} {body}"
                changed = True
            lines.append(line)
        if not changed:
            return
        _write_atomic(self.resolve(path), "".join(lines))
        self._report("comment", path, style="yellow")

    def empty_directory(self, path: str) -> None:
        """Create a directory (and parents); existing directories are fine."""
        target = self.resolve(path)
        if target.is_dir():
            return
        target.mkdir(parents=True, exist_ok=True)
        self._report("create", path)

    # -- Internals ---------------------------------------------------------

    def resolve(self, path: str | Path) -> Path:
        """Resolve *path* against the root, rejecting escapes."""
        candidate = Path(path)
        if candidate.is_absolute():
            raise InvalidPathError(path, self.root)
        resolved = (self.root / candidate).resolve()
        if resolved != self.root and not resolved.is_relative_to(self.root):
            raise InvalidPathError(path, self.root)
        return resolved

    def _inject(self, path: str, anchor: Anchor, content: str, *, after: bool) -> None:
        text = self.read_file(path)
        span = self.resolver.resolve(text, anchor)
        if span is None:
            raise AnchorNotFoundError(path, anchor)
        index = span.end if after else span.start
        _write_atomic(self.resolve(path), text[:index] + content + text[index:])
        self._report("insert", path)

    def _report(self, verb: str, path: str, style: str = "green") -> None:
        if not self.quiet:
            print_action(verb, path, style=style)


def _require_anchor(mutation: FileMutation) -> Anchor:
    if mutation.anchor is None:
        raise ValueError(f"{mutation.kind.value} mutation on {mutation.path} needs an anchor")
    return mutation.anchor


def _write_atomic(path: Path, content: str) -> None:
    """Write *content* to *path* via a sibling temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        if path.exists():
            shutil.copymode(path, tmp_name)
        else:
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
