"""Defaults and settings for dgit."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DESCRIPTOR_NAME = ".dgit"
IGNORE_FILE_NAME = ".dgitignore"
INDEX_FILE_NAME = ".dgit_staged_files"
DEFAULT_BRANCH = "main"

DEFAULT_REMOTE_URL = "http://127.0.0.1:8000"
DEFAULT_SERVICE_ID = "uxrrr-q7777-77774-qaaaq-cai"

ENV_DIR = "DGIT_DIR"
ENV_REMOTE = "DGIT_REMOTE"
ENV_SERVICE_ID = "DGIT_SERVICE_ID"
ENV_INDEX = "DGIT_INDEX"


def default_index_path() -> Path:
    """Per-user staging index location (outside any working copy)."""
    return Path(os.path.expanduser("~")) / INDEX_FILE_NAME


@dataclass
class Settings:
    """Resolved settings for one dgit invocation."""

    root: Path
    remote_url: str = DEFAULT_REMOTE_URL
    service_id: str = DEFAULT_SERVICE_ID
    index_path: Path | None = None
    verbose: bool = False

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        if self.index_path is None:
            self.index_path = default_index_path()
        else:
            self.index_path = Path(os.path.expanduser(str(self.index_path)))
