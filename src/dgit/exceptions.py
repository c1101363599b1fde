"""Exceptions for dgit.

Every failure that ends a command is a :class:`DgitError`.  The
``exit_code`` attribute lets the command line map each kind of failure to
a distinct process status.
"""


class DgitError(Exception):
    """Base class for errors that abort a dgit operation."""

    exit_code = 1


class UsageError(DgitError):
    """A required argument is missing or invalid (name, message, staged files).

    Raised before any side effect has taken place.
    """

    exit_code = 2


class StateError(DgitError):
    """Local state does not permit the operation.

    Examples: no descriptor in the working copy, ``push`` before the first
    commit, ``clone`` when the remote branch head cannot be resolved.
    """

    exit_code = 3


class RemoteError(DgitError):
    """The remote service returned an explicit failure reason.

    The message is the reason reported by the service, unchanged.  No local
    state has been modified; re-running the command is safe.
    """

    exit_code = 4


class TransportError(RemoteError):
    """The remote service could not be reached or replied with garbage."""
