"""Remote repository service: data model, wire encoding and HTTP transport.

The service owns the commit graph, branches and merges.  dgit talks to it
through nine methods; every reply is either ``{"ok": value}`` or
``{"err": "reason"}``.

Wire methods::

    createRepo(name, isPublic)                 -> repoId
    commitCode(repoId, branch, files, message) -> commitId
    createBranch(repoId, source, new)          -> null
    mergeBranch(repoId, source, target)        -> null
    forkRepo(repoId, newName)                  -> repoId
    addCollaborator(repoId, principal)         -> null
    getRepo(repoId)                            -> Repository
    getCommit(repoId, commitId)                -> Commit
    pushCommit(repoId, branch, commitId)       -> null

``files`` is a list of ``[path, {"content": ..., "contentType": ...}]``.
"""

from __future__ import annotations

import hashlib
import json
import secrets
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .exceptions import TransportError


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Blob:
    content: str
    content_type: str = ""

    def to_wire(self) -> dict:
        return {"content": self.content, "contentType": self.content_type}

    @classmethod
    def from_wire(cls, raw: dict) -> Blob:
        return cls(content=str(raw["content"]), content_type=str(raw.get("contentType", "")))


def tree_to_wire(entries) -> list:
    return [[path, blob.to_wire()] for path, blob in entries]


def tree_from_wire(raw) -> list[tuple[str, Blob]]:
    if isinstance(raw, dict):
        raw = raw.get("files", [])
    return [(str(path), Blob.from_wire(blob)) for path, blob in raw]


@dataclass(frozen=True)
class Commit:
    """A commit record as reported by the service."""
    id: str
    tree: list[tuple[str, Blob]]
    message: str
    author: str = ""
    timestamp: int = 0
    parent: str | None = None

    @classmethod
    def from_wire(cls, raw: dict) -> Commit:
        return cls(
            id=str(raw["id"]),
            tree=tree_from_wire(raw.get("tree", [])),
            message=str(raw.get("message", "")),
            author=str(raw.get("author", "")),
            timestamp=int(raw.get("timestamp", 0)),
            parent=_opt_str(raw.get("parent")),
        )


@dataclass(frozen=True)
class Branch:
    name: str
    head: str


@dataclass(frozen=True)
class Repository:
    """Repository metadata as reported by the service."""
    id: str
    name: str
    owner: str
    is_public: bool
    collaborators: list[str] = field(default_factory=list)
    branches: dict[str, Branch] = field(default_factory=dict)

    @classmethod
    def from_wire(cls, raw: dict) -> Repository:
        branches: dict[str, Branch] = {}
        raw_branches = raw.get("branches") or []
        if isinstance(raw_branches, dict):
            raw_branches = list(raw_branches.items())
        for name, b in raw_branches:
            head = b.get("head") if isinstance(b, dict) else b
            branches[str(name)] = Branch(name=str(name), head=str(head))
        return cls(
            id=str(raw["id"]),
            name=str(raw["name"]),
            owner=str(raw.get("owner", "")),
            is_public=bool(raw.get("isPublic", False)),
            collaborators=[str(c) for c in raw.get("collaborators", [])],
            branches=branches,
        )


def _opt_str(value) -> str | None:
    # Optional values may arrive as null, a bare value, or a 0/1-element list
    if isinstance(value, list):
        value = value[0] if value else None
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Session identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionIdentity:
    """Per-invocation identity.  Generated fresh for every session, never stored.

    The key never leaves the process, so the service cannot verify
    :meth:`sign`; the principal, signature and root-key headers sent by
    :class:`HttpTransport` are placeholders for a pluggable auth layer.
    """
    key: bytes
    principal: str

    @classmethod
    def generate(cls) -> SessionIdentity:
        key = secrets.token_bytes(32)
        return cls(key=key, principal=hashlib.sha224(key).hexdigest())

    def sign(self, payload: bytes) -> str:
        return hashlib.sha256(self.key + payload).hexdigest()


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------

class Transport(Protocol):
    """Anything that can carry wire calls to the repository service."""

    def fetch_root_key(self) -> str:
        """Return the service's root key (the session's trust anchor)."""
        ...

    def call(self, method: str, args: list, *, identity: SessionIdentity,
             root_key: str) -> dict:
        """Invoke *method* and return the raw ``{"ok"|"err": ...}`` reply."""
        ...


class HttpTransport:
    """JSON-over-HTTP transport to a repository service endpoint."""

    def __init__(self, url: str, service_id: str):
        self.url = url.rstrip("/")
        self.service_id = service_id

    def __repr__(self) -> str:
        return f"HttpTransport({self.url!r}, {self.service_id!r})"

    def _request(self, req: Request) -> Any:
        try:
            with urlopen(req) as resp:
                body = resp.read()
        except HTTPError as exc:
            raise TransportError(f"{req.full_url}: HTTP {exc.code} {exc.reason}")
        except URLError as exc:
            raise TransportError(f"{req.full_url}: {exc.reason}")
        except OSError as exc:
            raise TransportError(f"{req.full_url}: {exc}")
        try:
            return json.loads(body.decode("utf-8"))
        except ValueError as exc:
            raise TransportError(f"{req.full_url}: invalid JSON reply: {exc}")

    def fetch_root_key(self) -> str:
        reply = self._request(Request(f"{self.url}/api/v2/status", method="GET"))
        if not isinstance(reply, dict) or not reply.get("root_key"):
            raise TransportError(f"{self.url}: status reply has no root key")
        return str(reply["root_key"])

    def call(self, method: str, args: list, *, identity: SessionIdentity,
             root_key: str) -> dict:
        payload = json.dumps({"args": args}).encode("utf-8")
        req = Request(
            f"{self.url}/api/v2/canister/{self.service_id}/call/{method}",
            data=payload,
            method="POST",
            headers={
                "Content-Type": "application/json",
                "X-Dgit-Principal": identity.principal,
                "X-Dgit-Signature": identity.sign(payload),
                "X-Dgit-Root-Key": root_key,
            },
        )
        reply = self._request(req)
        if not isinstance(reply, dict) or not ("ok" in reply or "err" in reply):
            raise TransportError(f"{method}: malformed reply")
        return reply
