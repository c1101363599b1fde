"""Staging index: the persisted set of paths slated for the next commit.

The index lives at a per-user location outside the working copy and is
stored as a JSON array of slash-separated relative paths.  Membership is
decided when a path is added; ignore rules that change later do not evict
entries.

Usage::

    from dgit.index import StagingIndex
    from dgit._exclude import IgnoreRules

    with StagingIndex.locked(index_path) as index:
        result = index.add_all(root, IgnoreRules.for_working_copy(root))
        index.save()
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ._io import atomic_write_text
from ._lock import index_lock
from .exceptions import StateError

if TYPE_CHECKING:
    from ._exclude import IgnoreRules


@dataclass
class StageResult:
    """Partition of requested paths into newly added and already present."""
    added: list[str] = field(default_factory=list)
    already_staged: list[str] = field(default_factory=list)

    def extend(self, other: StageResult) -> None:
        self.added.extend(other.added)
        self.already_staged.extend(other.already_staged)


# ---------------------------------------------------------------------------
# Enumeration
# ---------------------------------------------------------------------------

def walk_working_copy(root: str | Path, rules: IgnoreRules | None = None) -> list[str]:
    """Return sorted relative paths of all files under *root*.

    Directories matched by *rules* are not descended into.  Directories that
    cannot be listed are skipped.  Symlinked directories are not followed.
    """
    base = Path(root)
    result: list[str] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dp = Path(dirpath)
        rel_dir = str(dp.relative_to(base)).replace(os.sep, "/")
        if rel_dir == ".":
            rel_dir = ""
        if rules is not None:
            kept = []
            for dname in dirnames:
                rel = f"{rel_dir}/{dname}" if rel_dir else dname
                if not rules.is_ignored_dir(rel):
                    kept.append(dname)
            dirnames[:] = kept
        for fname in filenames:
            result.append(f"{rel_dir}/{fname}" if rel_dir else fname)
    result.sort()
    return result


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------

class StagingIndex:
    """A set of staged relative paths backed by a JSON file."""

    def __init__(self, path: str | Path, paths: Iterable[str] = ()):
        self.path = Path(path)
        self._paths: set[str] = set(paths)

    def __repr__(self) -> str:
        return f"StagingIndex({str(self.path)!r}, {len(self._paths)} paths)"

    def __contains__(self, rel_path: object) -> bool:
        return rel_path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    @property
    def paths(self) -> list[str]:
        """Staged paths in sorted order."""
        return sorted(self._paths)

    # ------------------------------------------------------------------
    @classmethod
    def load_from(cls, path: str | Path) -> StagingIndex:
        index = cls(path)
        index.load()
        return index

    @classmethod
    @contextmanager
    def locked(cls, path: str | Path):
        """Hold the index lock while yielding a freshly loaded index."""
        with index_lock(path):
            yield cls.load_from(path)

    def load(self) -> None:
        """Replace the in-memory set with the persisted one (missing file: empty)."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._paths = set()
            return
        try:
            data = json.loads(raw) if raw.strip() else []
        except ValueError as exc:
            raise StateError(f"Corrupt staging index {self.path}: {exc}")
        if not isinstance(data, list) or not all(isinstance(p, str) for p in data):
            raise StateError(f"Corrupt staging index {self.path}: expected a list of paths")
        self._paths = set(data)

    def save(self) -> None:
        """Atomically persist the full current set."""
        atomic_write_text(self.path, json.dumps(self.paths))

    # ------------------------------------------------------------------
    def add_paths(self, paths: Iterable[str]) -> StageResult:
        """Insert each path not already present; duplicates are no-ops."""
        result = StageResult()
        seen: set[str] = set()
        for p in paths:
            if p in seen:
                continue
            seen.add(p)
            if p in self._paths:
                result.already_staged.append(p)
            else:
                self._paths.add(p)
                result.added.append(p)
        return result

    def add_all(self, root: str | Path, rules: IgnoreRules) -> StageResult:
        """Stage every non-ignored file found under *root*."""
        return self.add_paths(rules.filter(walk_working_copy(root, rules)))

    def clear(self) -> None:
        self._paths.clear()
