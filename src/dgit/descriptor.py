"""Working-copy descriptor: which remote repository a directory belongs to.

Stored as ``.dgit`` in the working-copy root::

    {"repoId": "1", "lastCommitId": "3f2a..."}

``lastCommitId`` is absent until the first successful commit.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from ._io import atomic_write_text
from .config import DESCRIPTOR_NAME
from .exceptions import StateError


def descriptor_path(root: str | Path) -> Path:
    return Path(root) / DESCRIPTOR_NAME


@dataclass
class WorkingCopyDescriptor:
    repository_id: str
    last_commit_id: str | None = None

    @property
    def committed(self) -> bool:
        return self.last_commit_id is not None

    def to_dict(self) -> dict:
        data = {"repoId": self.repository_id}
        if self.last_commit_id is not None:
            data["lastCommitId"] = self.last_commit_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> WorkingCopyDescriptor:
        repo_id = data.get("repoId", data.get("repositoryId"))
        if repo_id is None or not str(repo_id).isdigit():
            raise StateError(f"Descriptor has no valid repository id: {repo_id!r}")
        last = data.get("lastCommitId")
        return cls(str(repo_id), str(last) if last else None)

    # ------------------------------------------------------------------
    @classmethod
    def exists(cls, root: str | Path) -> bool:
        return descriptor_path(root).is_file()

    @classmethod
    def load(cls, root: str | Path) -> WorkingCopyDescriptor:
        """Read the descriptor from *root*.

        Raises :class:`StateError` when the directory is not a working copy
        or the file cannot be parsed.
        """
        path = descriptor_path(root)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise StateError(
                f"Not a dgit working copy: {Path(root)} (run 'dgit init' first)"
            )
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StateError(f"Corrupt descriptor {path}: {exc}")
        if not isinstance(data, dict):
            raise StateError(f"Corrupt descriptor {path}: expected an object")
        return cls.from_dict(data)

    def save(self, root: str | Path) -> None:
        atomic_write_text(descriptor_path(root), json.dumps(self.to_dict(), indent=2))
