"""Tree building: materialize staged paths into content-addressed blobs.

A tree is submitted to the remote service as ``(path, Blob)`` pairs.  Each
:class:`FileBlob` also carries the git blob id of its content so identical
content always maps to the same identifier.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from dulwich.objects import Blob as _GitBlob

from .remote import Blob


def _normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path: strip leading/trailing slashes, reject bad segments."""
    path = os.fspath(path)
    if os.name == "nt":
        path = path.replace("\\", "/")
    path = path.strip("/")
    if not path:
        raise ValueError("Path must not be empty")
    segments = path.split("/")
    for seg in segments:
        if not seg:
            raise ValueError(f"Empty segment in path: {path!r}")
        if seg in (".", ".."):
            raise ValueError(f"Invalid path segment: {seg!r}")
    return "/".join(segments)


def content_type(path: str) -> str:
    """Return the extension of *path* including the dot, or ``""``."""
    name = path.rsplit("/", 1)[-1]
    return os.path.splitext(name)[1]


def blob_oid(content: str) -> str:
    """Git blob id (hex SHA-1) of *content* encoded as utf-8."""
    return _GitBlob.from_string(content.encode("utf-8")).id.decode("ascii")


@dataclass(frozen=True)
class FileBlob:
    """A staged file read for submission.

    Attributes:
        path: Relative path with forward slashes.
        content: File text.
        content_type: Extension-derived type, e.g. ``".py"``.
        oid: Git blob id of *content*.
    """
    path: str
    content: str
    content_type: str
    oid: str

    @classmethod
    def from_content(cls, path: str, content: str) -> FileBlob:
        return cls(path, content, content_type(path), blob_oid(content))

    def to_blob(self) -> Blob:
        return Blob(content=self.content, content_type=self.content_type)


@dataclass
class FileWarning:
    """A file skipped during an operation.

    Attributes:
        path: The path that caused the problem.
        error: Human-readable error message.
    """
    path: str
    error: str


@dataclass
class TreeBuild:
    """Result of :func:`build_tree`: readable blobs plus skipped-file warnings."""
    blobs: list[FileBlob] = field(default_factory=list)
    warnings: list[FileWarning] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return [b.path for b in self.blobs]

    def entries(self) -> list[tuple[str, Blob]]:
        """``(path, Blob)`` pairs in path order, ready for submission."""
        return [(b.path, b.to_blob()) for b in self.blobs]


def build_tree(root: str | Path, paths: Iterable[str]) -> TreeBuild:
    """Read every path (relative to *root*) into a :class:`FileBlob`.

    Files that cannot be read or decoded are reported in
    ``TreeBuild.warnings`` and left out; the build itself never fails
    because of a single file.
    """
    base = Path(root)
    result = TreeBuild()
    for rel in sorted(set(paths)):
        try:
            full = base.joinpath(*_normalize_path(rel).split("/"))
            with open(full, encoding="utf-8", newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            result.warnings.append(FileWarning(path=rel, error=str(exc)))
            continue
        result.blobs.append(FileBlob.from_content(rel, content))
    return result
