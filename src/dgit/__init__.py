from .exceptions import DgitError, UsageError, StateError, RemoteError, TransportError
from ._exclude import IgnoreRules
from .index import StagingIndex, StageResult, walk_working_copy
from .tree import FileBlob, FileWarning, TreeBuild, build_tree, content_type
from .descriptor import WorkingCopyDescriptor
from .remote import Blob, Branch, Commit, Repository, HttpTransport, SessionIdentity
from .memory import MemoryService
from .session import RepositorySession, Result
from .workflows import Workspace

__all__ = [
    "DgitError", "UsageError", "StateError", "RemoteError", "TransportError",
    "IgnoreRules", "StagingIndex", "StageResult", "walk_working_copy",
    "FileBlob", "FileWarning", "TreeBuild", "build_tree", "content_type",
    "WorkingCopyDescriptor",
    "Blob", "Branch", "Commit", "Repository", "HttpTransport", "SessionIdentity",
    "MemoryService", "RepositorySession", "Result", "Workspace",
]
