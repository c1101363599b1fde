"""Shared fixtures for dgit tests."""

import pytest
from click.testing import CliRunner

from dgit.cli import main
from dgit.memory import MemoryService
from dgit.session import RepositorySession
from dgit.workflows import Workspace


@pytest.fixture
def service():
    """An in-process repository service."""
    return MemoryService()


@pytest.fixture
def session(service):
    return RepositorySession.open(service)


@pytest.fixture
def index_path(tmp_path):
    """Staging index location outside the working copy."""
    home = tmp_path / "home"
    home.mkdir()
    return home / ".dgit_staged_files"


@pytest.fixture
def working_copy(tmp_path):
    """Working copy with a.txt, b.txt and node_modules/x.js."""
    root = tmp_path / "wc"
    root.mkdir()
    (root / "a.txt").write_text("alpha\n")
    (root / "b.txt").write_text("bravo\n")
    nm = root / "node_modules"
    nm.mkdir()
    (nm / "x.js").write_text("module.exports = 1;\n")
    return root


@pytest.fixture
def ws(working_copy, index_path):
    return Workspace(root=working_copy, index_path=index_path)


@pytest.fixture
def initialized(ws, session):
    """Working copy bound to a fresh remote repository 'demo'."""
    from dgit import workflows
    workflows.init(ws, session, "demo", True)
    return ws


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def dgit(runner, service, working_copy, index_path):
    """Invoke the CLI against the working copy and the in-process service."""
    def invoke(*args):
        return runner.invoke(
            main,
            ["-C", str(working_copy), "--index-file", str(index_path), *args],
            obj={"transport": service},
        )
    return invoke
