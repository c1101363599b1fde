"""Sync workflows: init, add, commit, push, clone, status.

Each workflow is a short protocol over a :class:`Workspace` (working-copy
root + staging index file) and, where the remote is involved, a
:class:`~dgit.session.RepositorySession`.  Workflows return report
objects and raise :class:`~dgit.exceptions.DgitError` subclasses; they
never print.

Working-copy states::

    Uninitialized  (no descriptor)
    Initialized    (descriptor with repository id)
    Committed      (descriptor with repository id and last commit id)

``init`` moves Uninitialized -> Initialized, ``commit`` moves to
Committed.  Everything else leaves the state alone.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ._exclude import DEFAULT_IGNORE_TEMPLATE, IgnoreRules
from ._io import write_working_file
from .config import DEFAULT_BRANCH, DESCRIPTOR_NAME, IGNORE_FILE_NAME
from .descriptor import WorkingCopyDescriptor
from .exceptions import StateError, UsageError
from .index import StageResult, StagingIndex, walk_working_copy
from .remote import Repository
from .tree import FileWarning, _normalize_path, build_tree

if TYPE_CHECKING:
    from .session import RepositorySession

__all__ = [
    "Workspace",
    "InitReport", "AddReport", "CommitReport", "PushReport", "CloneReport",
    "StatusReport", "ForkReport",
    "check_init", "check_commit", "check_push",
    "init", "add", "commit", "push", "clone", "status",
    "create_branch", "merge_branch", "fork", "add_collaborator",
]

ALL_FILES = "."


def _relative_to(path: Path, root: Path) -> str | None:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return None


@dataclass
class Workspace:
    """A working-copy root and the staging index file that goes with it."""
    root: Path
    index_path: Path

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        self.index_path = Path(self.index_path)

    def load_index(self) -> StagingIndex:
        return StagingIndex.load_from(self.index_path)

    def rules(self) -> IgnoreRules:
        """Ignore rules for the root, plus the staging index and its sidecars
        when the index file lives inside the working copy."""
        rel = _relative_to(self.index_path, self.root)
        if rel is None:
            return IgnoreRules.for_working_copy(self.root)
        anchored = "/" + rel
        return IgnoreRules(
            [anchored, anchored + ".lock", anchored + ".*.tmp"],
            override=self.root / IGNORE_FILE_NAME,
        )

    def descriptor(self) -> WorkingCopyDescriptor:
        return WorkingCopyDescriptor.load(self.root)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@dataclass
class InitReport:
    repository_id: str
    name: str
    is_public: bool
    seeded_ignore: bool = False


@dataclass
class AddReport:
    """Outcome of ``add``.

    Attributes:
        added: Paths newly staged by this call.
        already_staged: Matching paths that were staged before.
        warnings: Patterns that matched nothing.
    """
    added: list[str] = field(default_factory=list)
    already_staged: list[str] = field(default_factory=list)
    warnings: list[FileWarning] = field(default_factory=list)

    @property
    def unchanged(self) -> bool:
        return not self.added


@dataclass
class CommitReport:
    commit_id: str
    files: list[str] = field(default_factory=list)
    warnings: list[FileWarning] = field(default_factory=list)


@dataclass
class PushReport:
    """Outcome of ``push``.

    Attributes:
        commit_id: Identifier now at the branch head.  For a replay push
            this is a newly allocated commit; for a by-reference push it
            equals *source_commit_id*.
        source_commit_id: The descriptor's last commit that was pushed.
        by_reference: Whether the reference-based remote push was used.
    """
    commit_id: str
    source_commit_id: str
    by_reference: bool = False


@dataclass
class CloneReport:
    commit_id: str
    files: list[str] = field(default_factory=list)
    warnings: list[FileWarning] = field(default_factory=list)


@dataclass
class StatusReport:
    repository: Repository
    staged: list[str] = field(default_factory=list)
    last_commit_id: str | None = None


@dataclass
class ForkReport:
    repository_id: str
    name: str


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

def check_init(ws: Workspace, name: str | None, *, force: bool = False) -> None:
    """Raise if ``init`` cannot proceed.  Writes nothing and makes no remote call."""
    if not name:
        raise UsageError("Repository name is required")
    if not force and WorkingCopyDescriptor.exists(ws.root):
        raise StateError(
            f"Working copy already initialized: {ws.root} (use -f to re-initialize)"
        )


def init(ws: Workspace, session: RepositorySession, name: str | None,
         is_public: bool = True, *, force: bool = False) -> InitReport:
    """Create a remote repository and bind the working copy to it."""
    check_init(ws, name, force=force)
    repo_id = session.create_repository(name, is_public).unwrap()
    WorkingCopyDescriptor(repository_id=str(repo_id)).save(ws.root)

    ignore_file = ws.root / IGNORE_FILE_NAME
    seeded = False
    if not ignore_file.exists():
        ignore_file.write_text(DEFAULT_IGNORE_TEMPLATE, encoding="utf-8")
        seeded = True
    return InitReport(repository_id=str(repo_id), name=name,
                      is_public=is_public, seeded_ignore=seeded)


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------

def _match_pattern(pattern: str, candidates: list[str]) -> list[str]:
    if pattern == ALL_FILES:
        return list(candidates)
    needle = pattern.replace("\\", "/")
    return [p for p in candidates if needle in p]


def add(ws: Workspace, patterns: list[str] | tuple[str, ...]) -> AddReport:
    """Stage the non-ignored files matching *patterns*.

    ``"."`` selects every file; any other pattern is a substring match
    against relative paths.  Ignore rules are re-read on every call.
    """
    if not patterns:
        raise UsageError("Specify files to add, or '.' for all files")
    rules = ws.rules()
    candidates = rules.filter(walk_working_copy(ws.root, rules))

    report = AddReport()
    with StagingIndex.locked(ws.index_path) as index:
        staged = StageResult()
        for pattern in patterns:
            matched = _match_pattern(pattern, candidates)
            if not matched:
                report.warnings.append(
                    FileWarning(path=pattern, error="No files matched pattern")
                )
                continue
            staged.extend(index.add_paths(matched))
        if staged.added:
            index.save()

    # A path matched by several patterns is reported once
    report.added = list(dict.fromkeys(staged.added))
    added = set(report.added)
    report.already_staged = [
        p for p in dict.fromkeys(staged.already_staged) if p not in added
    ]
    return report


# ---------------------------------------------------------------------------
# commit
# ---------------------------------------------------------------------------

def _check_staged(index: StagingIndex) -> None:
    if not len(index):
        raise UsageError("No files staged for commit (use 'dgit add' first)")


def check_commit(ws: Workspace, message: str | None) -> None:
    """Raise if ``commit`` cannot proceed: no message, nothing staged, no descriptor."""
    if not message:
        raise UsageError("Commit message is required")
    _check_staged(ws.load_index())
    ws.descriptor()


def commit(ws: Workspace, session: RepositorySession, message: str | None) -> CommitReport:
    """Submit the staged tree to ``main``; on success record it and clear the index.

    If the remote rejects the commit, neither the descriptor nor the index
    is changed and the command can simply be re-run.
    """
    if not message:
        raise UsageError("Commit message is required")
    with StagingIndex.locked(ws.index_path) as index:
        _check_staged(index)
        descriptor = ws.descriptor()
        tree = build_tree(ws.root, index.paths)
        if not tree.blobs:
            raise UsageError("None of the staged files could be read")

        commit_id = session.submit_commit(
            descriptor.repository_id, DEFAULT_BRANCH, tree.entries(), message,
        ).unwrap()

        descriptor.last_commit_id = commit_id
        descriptor.save(ws.root)
        index.clear()
        index.save()
    return CommitReport(commit_id=commit_id, files=tree.paths, warnings=tree.warnings)


# ---------------------------------------------------------------------------
# push
# ---------------------------------------------------------------------------

def check_push(ws: Workspace) -> WorkingCopyDescriptor:
    """Return the descriptor if there is a commit to push, else raise :class:`StateError`."""
    descriptor = ws.descriptor()
    if not descriptor.committed:
        raise StateError("No commits found to push (run 'dgit commit' first)")
    return descriptor


def push(ws: Workspace, session: RepositorySession, *,
         by_reference: bool = False) -> PushReport:
    """Publish the last local commit to ``main``.

    By default the last commit is fetched and its tree and message are
    submitted again, so every push allocates a new commit id and repeated
    pushes are not idempotent.  The descriptor is not updated.  With
    *by_reference* the remote branch head is moved to the existing commit
    instead.
    """
    descriptor = check_push(ws)
    source = descriptor.last_commit_id

    if by_reference:
        session.push_commit(descriptor.repository_id, DEFAULT_BRANCH, source).unwrap()
        return PushReport(commit_id=source, source_commit_id=source, by_reference=True)

    last = session.fetch_commit(descriptor.repository_id, source).unwrap()
    new_id = session.submit_commit(
        descriptor.repository_id, DEFAULT_BRANCH, last.tree, last.message,
    ).unwrap()
    return PushReport(commit_id=new_id, source_commit_id=source)


# ---------------------------------------------------------------------------
# clone
# ---------------------------------------------------------------------------

def _is_absolute(path: str) -> bool:
    return path.startswith(("/", "\\")) or bool(re.match(r"[A-Za-z]:", path))


def clone(ws: Workspace, session: RepositorySession) -> CloneReport:
    """Write the tree at the head of ``main`` into the working copy."""
    descriptor = ws.descriptor()
    repo = session.fetch_repository(descriptor.repository_id).unwrap()
    branch = repo.branches.get(DEFAULT_BRANCH)
    if branch is None or not branch.head:
        raise StateError(f"No commit found on branch '{DEFAULT_BRANCH}'")
    head = session.fetch_commit(descriptor.repository_id, branch.head).unwrap()

    report = CloneReport(commit_id=head.id)
    index_rel = _relative_to(ws.index_path, ws.root)
    for path, blob in head.tree:
        if _is_absolute(path):
            report.warnings.append(FileWarning(path=path, error="Absolute path"))
            continue
        try:
            rel = _normalize_path(path)
        except ValueError as exc:
            report.warnings.append(FileWarning(path=path, error=str(exc)))
            continue
        if rel == DESCRIPTOR_NAME or rel == index_rel:
            report.warnings.append(
                FileWarning(path=path, error="Owned by the working copy"))
            continue
        try:
            write_working_file(ws.root, rel, blob.content)
        except OSError as exc:
            report.warnings.append(FileWarning(path=path, error=str(exc)))
            continue
        report.files.append(rel)
    return report


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------

def status(ws: Workspace, session: RepositorySession) -> StatusReport:
    """Repository metadata plus the current staging index."""
    descriptor = ws.descriptor()
    index = ws.load_index()
    repo = session.fetch_repository(descriptor.repository_id).unwrap()
    return StatusReport(repository=repo, staged=index.paths,
                        last_commit_id=descriptor.last_commit_id)


# ---------------------------------------------------------------------------
# Branches, forks, collaborators
# ---------------------------------------------------------------------------

def create_branch(ws: Workspace, session: RepositorySession, source: str,
                  name: str) -> None:
    if not name:
        raise UsageError("Branch name is required")
    descriptor = ws.descriptor()
    session.create_branch(descriptor.repository_id, source, name).unwrap()


def merge_branch(ws: Workspace, session: RepositorySession, source: str,
                 target: str = DEFAULT_BRANCH) -> None:
    if not source:
        raise UsageError("Source branch is required")
    descriptor = ws.descriptor()
    session.merge_branch(descriptor.repository_id, source, target).unwrap()


def fork(ws: Workspace, session: RepositorySession, new_name: str) -> ForkReport:
    """Fork the working copy's repository.  The descriptor keeps pointing at the source repository."""
    if not new_name:
        raise UsageError("Fork name is required")
    descriptor = ws.descriptor()
    new_id = session.fork_repository(descriptor.repository_id, new_name).unwrap()
    return ForkReport(repository_id=str(new_id), name=new_name)


def add_collaborator(ws: Workspace, session: RepositorySession, principal: str) -> None:
    if not principal:
        raise UsageError("Collaborator principal is required")
    descriptor = ws.descriptor()
    session.add_collaborator(descriptor.repository_id, principal).unwrap()
