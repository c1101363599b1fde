"""dgit CLI: stage, commit and sync a working copy with the repository service."""

from ._helpers import main  # noqa: F401  (entry point)

# Import command modules to register Click commands with the main group.
from . import _basic, _sync, _refs  # noqa: F401
