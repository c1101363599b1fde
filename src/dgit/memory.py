"""In-process repository service speaking the same wire methods as the remote.

Useful for tests and offline experiments::

    from dgit.memory import MemoryService
    from dgit.session import RepositorySession

    service = MemoryService()
    session = RepositorySession.open(service)
    repo_id = session.create_repository("demo", True).unwrap()

State lives only as long as the :class:`MemoryService` object.
"""

from __future__ import annotations

import copy
import hashlib
import secrets
import time
from typing import Any

from .config import DEFAULT_BRANCH
from .remote import SessionIdentity


class MemoryService:
    """A dict-backed stand-in for the repository service."""

    def __init__(self) -> None:
        self.root_key = secrets.token_hex(16)
        self.repos: dict[int, dict[str, Any]] = {}
        self.commits: dict[int, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self._next_repo_id = 1
        self._commit_counter = 0
        self._failures: dict[str, str] = {}

    def __repr__(self) -> str:
        return f"MemoryService({len(self.repos)} repos)"

    # ------------------------------------------------------------------
    def fail_next(self, method: str, reason: str) -> None:
        """Make the next call to *method* reply with ``{"err": reason}``."""
        self._failures[method] = reason

    def fetch_root_key(self) -> str:
        return self.root_key

    def call(self, method: str, args: list, *, identity: SessionIdentity,
             root_key: str) -> dict:
        self.calls.append((method, identity.principal))
        if root_key != self.root_key:
            return {"err": "Untrusted root key"}
        if method in self._failures:
            return {"err": self._failures.pop(method)}
        handler = getattr(self, f"_m_{method}", None)
        if handler is None:
            return {"err": f"Unknown method: {method}"}
        # Replies are deep-copied so callers never alias service state
        return copy.deepcopy(handler(identity.principal, *args))

    # ------------------------------------------------------------------
    def _repo(self, repo_id) -> dict[str, Any] | None:
        return self.repos.get(int(repo_id))

    def _new_repo(self, name: str, is_public: bool, owner: str) -> int:
        repo_id = self._next_repo_id
        self._next_repo_id += 1
        self.repos[repo_id] = {
            "id": repo_id,
            "name": name,
            "owner": owner,
            "collaborators": [],
            "isPublic": bool(is_public),
            "branches": {},
        }
        self.commits[repo_id] = {}
        return repo_id

    def _new_commit_id(self, repo_id: int, message: str) -> str:
        self._commit_counter += 1
        seed = f"{repo_id}:{self._commit_counter}:{message}".encode("utf-8")
        return hashlib.sha1(seed).hexdigest()

    # ------------------------------------------------------------------
    def _m_createRepo(self, caller, name, is_public):
        if not name:
            return {"err": "Repository name must not be empty"}
        return {"ok": self._new_repo(name, is_public, caller)}

    def _m_commitCode(self, caller, repo_id, branch, files, message):
        repo = self._repo(repo_id)
        if repo is None:
            return {"err": "Repository not found"}
        commit_id = self._new_commit_id(repo["id"], message)
        self.commits[repo["id"]][commit_id] = {
            "id": commit_id,
            "tree": {"files": [[path, dict(blob)] for path, blob in files]},
            "parent": repo["branches"].get(branch),
            "message": message,
            "author": caller,
            "timestamp": time.time_ns(),
        }
        repo["branches"][branch] = commit_id
        return {"ok": commit_id}

    def _m_createBranch(self, caller, repo_id, source, new):
        repo = self._repo(repo_id)
        if repo is None:
            return {"err": "Repository not found"}
        if source not in repo["branches"]:
            return {"err": f"Branch not found: {source}"}
        if new in repo["branches"]:
            return {"err": f"Branch already exists: {new}"}
        repo["branches"][new] = repo["branches"][source]
        return {"ok": None}

    def _m_mergeBranch(self, caller, repo_id, source, target):
        repo = self._repo(repo_id)
        if repo is None:
            return {"err": "Repository not found"}
        for name in (source, target):
            if name not in repo["branches"]:
                return {"err": f"Branch not found: {name}"}
        repo["branches"][target] = repo["branches"][source]
        return {"ok": None}

    def _m_forkRepo(self, caller, repo_id, new_name):
        repo = self._repo(repo_id)
        if repo is None:
            return {"err": "Repository not found"}
        fork_id = self._new_repo(new_name, repo["isPublic"], caller)
        self.repos[fork_id]["branches"] = dict(repo["branches"])
        self.commits[fork_id] = copy.deepcopy(self.commits[repo["id"]])
        return {"ok": fork_id}

    def _m_addCollaborator(self, caller, repo_id, principal):
        repo = self._repo(repo_id)
        if repo is None:
            return {"err": "Repository not found"}
        if principal not in repo["collaborators"]:
            repo["collaborators"].append(principal)
        return {"ok": None}

    def _m_getRepo(self, caller, repo_id):
        repo = self._repo(repo_id)
        if repo is None:
            return {"err": "Repository not found"}
        reply = dict(repo)
        reply["branches"] = [
            [name, {"name": name, "head": head}]
            for name, head in sorted(repo["branches"].items())
        ]
        return {"ok": reply}

    def _m_getCommit(self, caller, repo_id, commit_id):
        repo = self._repo(repo_id)
        if repo is None:
            return {"err": "Repository not found"}
        commit = self.commits[repo["id"]].get(commit_id)
        if commit is None:
            return {"err": f"Commit not found: {commit_id}"}
        return {"ok": commit}

    def _m_pushCommit(self, caller, repo_id, branch, commit_id):
        repo = self._repo(repo_id)
        if repo is None:
            return {"err": "Repository not found"}
        if commit_id not in self.commits[repo["id"]]:
            return {"err": f"Commit not found: {commit_id}"}
        repo["branches"][branch] = commit_id
        return {"ok": None}

    # ------------------------------------------------------------------
    def head(self, repo_id: int, branch: str = DEFAULT_BRANCH) -> str | None:
        """Current head of *branch* (test convenience)."""
        return self.repos[int(repo_id)]["branches"].get(branch)
