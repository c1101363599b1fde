"""Ignore rules deciding which working-copy paths take part in version control.

Built-in defaults come first, followed by the lines of the working copy's
``.dgitignore`` file.  Pattern syntax follows gitignore rules (implemented
by ``dulwich.ignore.IgnoreFilter``); later patterns win, so the override
file may re-include a default with ``!pattern``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from dulwich.ignore import IgnoreFilter

from .config import IGNORE_FILE_NAME

DEFAULT_PATTERNS: tuple[str, ...] = (
    "node_modules/",
    ".dgit",
    ".git/",
    ".DS_Store",
    ".dgit_staged_files",
    ".dgit_staged_files.lock",
    ".dgit_staged_files.*.tmp",
)

# Seeded into a fresh working copy by ``dgit init``.
DEFAULT_IGNORE_TEMPLATE = "# Add patterns to ignore\nnode_modules/\n.dgit\n"


def _read_pattern_file(path: Path) -> list[bytes]:
    lines: list[bytes] = []
    for raw in path.read_bytes().splitlines():
        line = raw.strip()
        if line and not line.startswith(b"#"):
            lines.append(line)
    return lines


class IgnoreRules:
    """Ordered ignore patterns: defaults, extra patterns, then an override file."""

    def __init__(
        self,
        patterns: Sequence[str] | None = None,
        *,
        override: str | Path | None = None,
        defaults: bool = True,
    ) -> None:
        lines: list[bytes] = []
        if defaults:
            lines.extend(p.encode("utf-8") for p in DEFAULT_PATTERNS)
        for p in patterns or ():
            lines.append(p.encode("utf-8"))
        if override is not None:
            try:
                lines.extend(_read_pattern_file(Path(override)))
            except FileNotFoundError:
                pass
        self._lines = lines
        self._filter = IgnoreFilter(lines)

    @classmethod
    def for_working_copy(cls, root: str | Path) -> IgnoreRules:
        """Defaults plus ``<root>/.dgitignore`` when it exists."""
        return cls(override=Path(root) / IGNORE_FILE_NAME)

    @property
    def patterns(self) -> list[str]:
        return [line.decode("utf-8") for line in self._lines]

    # ------------------------------------------------------------------
    def is_ignored_dir(self, rel_dir: str) -> bool:
        """True if the directory *rel_dir* itself matches an ignore rule."""
        return self._filter.is_ignored(rel_dir.rstrip("/") + "/") is True

    # ------------------------------------------------------------------
    def should_include(self, rel_path: str) -> bool:
        """True unless *rel_path* or any directory above it is ignored.

        ``.dgitignore`` files never take part.
        """
        parts = rel_path.strip("/").split("/")
        # Auto-exclude the override files themselves
        if parts[-1] == IGNORE_FILE_NAME:
            return False
        for depth in range(1, len(parts)):
            if self.is_ignored_dir("/".join(parts[:depth])):
                return False
        return self._filter.is_ignored("/".join(parts)) is not True

    def filter(self, paths) -> list[str]:
        """Return the members of *paths* that are not ignored, in order."""
        return [p for p in paths if self.should_include(p)]
