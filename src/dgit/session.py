"""Repository session: the only path from dgit to the repository service.

A session is opened once per command invocation.  Opening generates a
fresh :class:`~dgit.remote.SessionIdentity` and fetches the service's
root key; nothing about the session is persisted.  Every operation returns
a :class:`Result` holding either the decoded value or the failure reason.
The session never retries.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from .exceptions import RemoteError, StateError, TransportError
from .remote import (
    Blob,
    Commit,
    Repository,
    SessionIdentity,
    Transport,
    tree_to_wire,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success value or failure reason from one remote call."""
    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise :class:`RemoteError` with the reason."""
        if self.error is not None:
            raise RemoteError(self.error)
        return self.value  # type: ignore[return-value]


def _repo_arg(repository_id: str | int) -> int:
    try:
        return int(repository_id)
    except (TypeError, ValueError):
        raise StateError(f"Invalid repository id: {repository_id!r}")


class RepositorySession:
    """A freshly authenticated connection to the repository service."""

    def __init__(self, transport: Transport, identity: SessionIdentity, root_key: str):
        self._transport = transport
        self.identity = identity
        self.root_key = root_key

    def __repr__(self) -> str:
        return f"RepositorySession({self._transport!r}, principal={self.principal!r})"

    @property
    def principal(self) -> str:
        return self.identity.principal

    @classmethod
    def open(cls, transport: Transport) -> RepositorySession:
        """Generate a new identity and pin the service's root key.

        Raises :class:`~dgit.exceptions.TransportError` if the service
        cannot be reached.
        """
        identity = SessionIdentity.generate()
        root_key = transport.fetch_root_key()
        return cls(transport, identity, root_key)

    # ------------------------------------------------------------------
    def _call(self, method: str, args: list, decode: Callable[[object], T]) -> Result[T]:
        try:
            reply = self._transport.call(
                method, args, identity=self.identity, root_key=self.root_key,
            )
        except TransportError as exc:
            return Result(error=str(exc))
        if "err" in reply:
            return Result(error=str(reply["err"]))
        try:
            return Result(value=decode(reply.get("ok")))
        except (KeyError, TypeError, ValueError) as exc:
            return Result(error=f"{method}: unexpected reply: {exc}")

    # ------------------------------------------------------------------
    def create_repository(self, name: str, is_public: bool) -> Result[str]:
        return self._call("createRepo", [name, bool(is_public)], _str)

    def submit_commit(
        self,
        repository_id: str,
        branch: str,
        files: Sequence[tuple[str, Blob]],
        message: str,
    ) -> Result[str]:
        return self._call(
            "commitCode",
            [_repo_arg(repository_id), branch, tree_to_wire(files), message],
            _str,
        )

    def create_branch(self, repository_id: str, source: str, name: str) -> Result[None]:
        return self._call("createBranch", [_repo_arg(repository_id), source, name], _none)

    def merge_branch(self, repository_id: str, source: str, target: str) -> Result[None]:
        return self._call("mergeBranch", [_repo_arg(repository_id), source, target], _none)

    def fork_repository(self, repository_id: str, new_name: str) -> Result[str]:
        return self._call("forkRepo", [_repo_arg(repository_id), new_name], _str)

    def add_collaborator(self, repository_id: str, principal: str) -> Result[None]:
        return self._call("addCollaborator", [_repo_arg(repository_id), principal], _none)

    def fetch_repository(self, repository_id: str) -> Result[Repository]:
        return self._call("getRepo", [_repo_arg(repository_id)], _decode_repository)

    def fetch_commit(self, repository_id: str, commit_id: str) -> Result[Commit]:
        return self._call("getCommit", [_repo_arg(repository_id), commit_id], _decode_commit)

    def push_commit(self, repository_id: str, branch: str, commit_id: str) -> Result[None]:
        return self._call("pushCommit", [_repo_arg(repository_id), branch, commit_id], _none)


def _none(_value) -> None:
    return None


def _decode_repository(raw) -> Repository:
    if not isinstance(raw, dict):
        raise ValueError("repository record missing")
    return Repository.from_wire(raw)


def _decode_commit(raw) -> Commit:
    if not isinstance(raw, dict):
        raise ValueError("commit record missing")
    return Commit.from_wire(raw)


def _str(raw) -> str:
    if raw is None or isinstance(raw, (dict, list)):
        raise ValueError(f"expected an identifier, got {raw!r}")
    return str(raw)
