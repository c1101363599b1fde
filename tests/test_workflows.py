"""Tests for the sync workflows (init, add, commit, push, clone, status)."""

import json

import pytest

from dgit import workflows
from dgit.descriptor import WorkingCopyDescriptor
from dgit.exceptions import RemoteError, StateError, UsageError
from dgit.index import StagingIndex
from dgit.session import RepositorySession
from dgit.workflows import Workspace


def _staged(ws):
    return StagingIndex.load_from(ws.index_path).paths


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

class TestInit:
    def test_creates_descriptor_and_ignore_file(self, ws, session):
        report = workflows.init(ws, session, "demo", True)
        assert report.repository_id == "1"
        assert report.seeded_ignore is True
        assert json.loads((ws.root / ".dgit").read_text()) == {"repoId": "1"}
        assert "node_modules/" in (ws.root / ".dgitignore").read_text()

    def test_keeps_existing_ignore_file(self, ws, session):
        (ws.root / ".dgitignore").write_text("*.log\n")
        report = workflows.init(ws, session, "demo", False)
        assert report.seeded_ignore is False
        assert (ws.root / ".dgitignore").read_text() == "*.log\n"

    def test_visibility(self, ws, session, service):
        workflows.init(ws, session, "demo", False)
        assert service.repos[1]["isPublic"] is False

    def test_name_required(self, ws, session, service):
        with pytest.raises(UsageError):
            workflows.init(ws, session, "", True)
        assert service.repos == {}
        assert not (ws.root / ".dgit").exists()

    def test_remote_failure_leaves_uninitialized(self, ws, session, service):
        service.fail_next("createRepo", "quota exceeded")
        with pytest.raises(RemoteError, match="quota exceeded"):
            workflows.init(ws, session, "demo", True)
        assert not (ws.root / ".dgit").exists()
        assert not (ws.root / ".dgitignore").exists()

    def test_already_initialized(self, initialized, session):
        with pytest.raises(StateError, match="already initialized"):
            workflows.init(initialized, session, "again", True)

    def test_force_reinitializes(self, initialized, session):
        report = workflows.init(initialized, session, "again", True, force=True)
        assert report.repository_id == "2"
        assert initialized.descriptor().repository_id == "2"


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------

class TestAdd:
    def test_add_all_skips_ignored(self, ws):
        report = workflows.add(ws, ["."])
        assert report.added == ["a.txt", "b.txt"]
        assert _staged(ws) == ["a.txt", "b.txt"]

    def test_idempotent(self, ws):
        workflows.add(ws, ["."])
        before = _staged(ws)
        second = workflows.add(ws, ["."])
        assert second.added == []
        assert second.already_staged == ["a.txt", "b.txt"]
        assert second.unchanged is True
        assert _staged(ws) == before

    def test_index_inside_working_copy_not_staged(self, working_copy):
        ws = Workspace(root=working_copy, index_path=working_copy / "state" / "staged.json")
        workflows.add(ws, ["."])
        (working_copy / "state" / "staged.json.x1y2.tmp").write_text("")
        second = workflows.add(ws, ["."])
        assert second.added == []
        assert _staged(ws) == ["a.txt", "b.txt"]
        assert (working_copy / "state" / "staged.json.lock").exists()

    def test_default_index_location_in_root(self, working_copy):
        ws = Workspace(root=working_copy, index_path=working_copy / ".dgit_staged_files")
        workflows.add(ws, ["."])
        workflows.add(ws, ["."])
        assert _staged(ws) == ["a.txt", "b.txt"]

    def test_substring_pattern(self, ws):
        (ws.root / "docs").mkdir()
        (ws.root / "docs" / "guide.md").write_text("guide")
        report = workflows.add(ws, ["guide"])
        assert report.added == ["docs/guide.md"]

    def test_pattern_cannot_reach_ignored_path(self, ws):
        report = workflows.add(ws, ["x.js"])
        assert report.added == []
        assert [w.path for w in report.warnings] == ["x.js"]
        assert "node_modules/x.js" not in _staged(ws)

    def test_override_rules_apply(self, ws):
        (ws.root / ".dgitignore").write_text("b.txt\n")
        report = workflows.add(ws, ["."])
        assert report.added == ["a.txt"]

    def test_ignore_file_never_staged(self, initialized):
        workflows.add(initialized, ["."])
        assert _staged(initialized) == ["a.txt", "b.txt"]

    def test_rule_change_does_not_evict(self, ws):
        workflows.add(ws, ["."])
        (ws.root / ".dgitignore").write_text("a.txt\n")
        report = workflows.add(ws, ["."])
        assert report.added == []
        assert _staged(ws) == ["a.txt", "b.txt"]

    def test_overlapping_patterns_reported_once(self, ws):
        report = workflows.add(ws, ["a.txt", ".txt"])
        assert report.added == ["a.txt", "b.txt"]
        assert report.already_staged == []

    def test_no_match_is_warning(self, ws):
        report = workflows.add(ws, ["nothing-here"])
        assert report.added == []
        assert report.warnings[0].path == "nothing-here"
        assert not ws.index_path.exists()

    def test_patterns_required(self, ws):
        with pytest.raises(UsageError):
            workflows.add(ws, [])


# ---------------------------------------------------------------------------
# commit
# ---------------------------------------------------------------------------

class TestCommit:
    def test_success_postcondition(self, initialized, session, service):
        workflows.add(initialized, ["."])
        report = workflows.commit(initialized, session, "first")
        assert _staged(initialized) == []
        assert initialized.descriptor().last_commit_id == report.commit_id
        assert service.head(1) == report.commit_id
        assert report.files == ["a.txt", "b.txt"]

    def test_submits_tree_to_main(self, initialized, session, service):
        workflows.add(initialized, ["a.txt"])
        report = workflows.commit(initialized, session, "only a")
        stored = service.commits[1][report.commit_id]
        assert stored["tree"]["files"] == [
            ["a.txt", {"content": "alpha\n", "contentType": ".txt"}],
        ]
        assert stored["message"] == "only a"

    def test_remote_failure_changes_nothing(self, initialized, session, service):
        workflows.add(initialized, ["."])
        index_before = initialized.index_path.read_text()
        descriptor_before = (initialized.root / ".dgit").read_text()
        service.fail_next("commitCode", "branch locked")
        with pytest.raises(RemoteError, match="branch locked"):
            workflows.commit(initialized, session, "first")
        assert initialized.index_path.read_text() == index_before
        assert (initialized.root / ".dgit").read_text() == descriptor_before
        # Re-running succeeds
        assert workflows.commit(initialized, session, "first").commit_id

    def test_unreadable_file_skipped(self, initialized, session):
        workflows.add(initialized, ["."])
        (initialized.root / "b.txt").unlink()
        report = workflows.commit(initialized, session, "first")
        assert report.files == ["a.txt"]
        assert [w.path for w in report.warnings] == ["b.txt"]
        assert _staged(initialized) == []

    def test_nothing_readable(self, initialized, session):
        workflows.add(initialized, ["a.txt"])
        (initialized.root / "a.txt").unlink()
        with pytest.raises(UsageError, match="could be read"):
            workflows.commit(initialized, session, "first")
        assert _staged(initialized) == ["a.txt"]

    def test_message_required(self, initialized, session):
        workflows.add(initialized, ["."])
        with pytest.raises(UsageError, match="message"):
            workflows.commit(initialized, session, "")

    def test_nothing_staged(self, initialized, session):
        with pytest.raises(UsageError, match="No files staged"):
            workflows.commit(initialized, session, "first")

    def test_requires_descriptor(self, ws, session):
        workflows.add(ws, ["."])
        with pytest.raises(StateError, match="Not a dgit working copy"):
            workflows.commit(ws, session, "first")

    def test_check_commit(self, initialized):
        with pytest.raises(UsageError):
            workflows.check_commit(initialized, "msg")
        workflows.add(initialized, ["."])
        workflows.check_commit(initialized, "msg")


# ---------------------------------------------------------------------------
# push
# ---------------------------------------------------------------------------

@pytest.fixture
def committed(initialized, session):
    workflows.add(initialized, ["."])
    workflows.commit(initialized, session, "first")
    return initialized


class TestPush:
    def test_requires_commit(self, initialized, session):
        with pytest.raises(StateError, match="No commits"):
            workflows.push(initialized, session)

    def test_replay_creates_new_commit_each_time(self, committed, session, service):
        last = committed.descriptor().last_commit_id
        first = workflows.push(committed, session)
        second = workflows.push(committed, session)
        assert first.source_commit_id == second.source_commit_id == last
        assert len({last, first.commit_id, second.commit_id}) == 3
        # The descriptor keeps pointing at the local commit
        assert committed.descriptor().last_commit_id == last
        assert service.head(1) == second.commit_id

    def test_replay_resubmits_same_tree_and_message(self, committed, session, service):
        last = committed.descriptor().last_commit_id
        report = workflows.push(committed, session)
        original = service.commits[1][last]
        pushed = service.commits[1][report.commit_id]
        assert pushed["tree"] == original["tree"]
        assert pushed["message"] == original["message"]

    def test_by_reference(self, committed, session, service):
        last = committed.descriptor().last_commit_id
        workflows.push(committed, session)
        report = workflows.push(committed, session, by_reference=True)
        assert report.commit_id == last
        assert service.head(1) == last

    def test_missing_remote_commit(self, committed, session, service):
        service.commits[1].clear()
        with pytest.raises(RemoteError, match="Commit not found"):
            workflows.push(committed, session)


# ---------------------------------------------------------------------------
# clone
# ---------------------------------------------------------------------------

class TestClone:
    def _bind(self, tmp_path, index_path, repo_id="1"):
        root = tmp_path / "clone"
        root.mkdir()
        WorkingCopyDescriptor(repo_id).save(root)
        return Workspace(root=root, index_path=index_path)

    def test_writes_every_file(self, tmp_path, index_path, initialized, session):
        (initialized.root / "deep" / "er").mkdir(parents=True)
        (initialized.root / "deep" / "er" / "c.md").write_text("charlie\n")
        workflows.add(initialized, ["."])
        committed = workflows.commit(initialized, session, "first")

        target = self._bind(tmp_path, index_path)
        report = workflows.clone(target, session)
        assert report.commit_id == committed.commit_id
        assert sorted(report.files) == ["a.txt", "b.txt", "deep/er/c.md"]
        for rel in report.files:
            assert (target.root / rel).read_bytes() == (initialized.root / rel).read_bytes()

    def test_no_main_branch(self, tmp_path, index_path, initialized, session):
        target = self._bind(tmp_path, index_path)
        with pytest.raises(StateError, match="No commit found"):
            workflows.clone(target, session)

    def test_unknown_repository(self, tmp_path, index_path, session):
        target = self._bind(tmp_path, index_path, "42")
        with pytest.raises(RemoteError, match="Repository not found"):
            workflows.clone(target, session)

    def test_unsafe_paths_skipped(self, tmp_path, index_path, initialized, session, service):
        from dgit.remote import Blob
        session.submit_commit("1", "main", [
            ("ok.txt", Blob("fine", ".txt")),
            ("../escape.txt", Blob("bad", ".txt")),
            ("/abs.txt", Blob("bad", ".txt")),
            ("C:/drive.txt", Blob("bad", ".txt")),
        ], "mixed").unwrap()
        target = self._bind(tmp_path, index_path)
        report = workflows.clone(target, session)
        assert report.files == ["ok.txt"]
        assert [w.path for w in report.warnings] == [
            "../escape.txt", "/abs.txt", "C:/drive.txt",
        ]
        assert not (tmp_path / "escape.txt").exists()
        assert not (target.root / "abs.txt").exists()

    def test_descriptor_in_tree_is_not_written(self, tmp_path, index_path, initialized, session):
        from dgit.remote import Blob
        session.submit_commit("1", "main", [
            (".dgit", Blob("garbage", "")),
            ("ok.txt", Blob("fine", ".txt")),
        ], "carries a descriptor").unwrap()
        target = self._bind(tmp_path, index_path)
        report = workflows.clone(target, session)
        assert report.files == ["ok.txt"]
        assert [w.path for w in report.warnings] == [".dgit"]
        assert target.descriptor().repository_id == "1"

    def test_index_in_tree_is_not_written(self, tmp_path, initialized, session):
        from dgit.remote import Blob
        session.submit_commit("1", "main", [
            (".dgit_staged_files", Blob("garbage", "")),
        ], "carries an index").unwrap()
        root = tmp_path / "clone"
        root.mkdir()
        WorkingCopyDescriptor("1").save(root)
        target = Workspace(root=root, index_path=root / ".dgit_staged_files")
        report = workflows.clone(target, session)
        assert report.files == []
        assert not (root / ".dgit_staged_files").exists()

    def test_requires_descriptor(self, ws, session):
        with pytest.raises(StateError):
            workflows.clone(ws, session)


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------

class TestStatus:
    def test_reports_metadata_and_index(self, initialized, session):
        workflows.add(initialized, ["a.txt"])
        report = workflows.status(initialized, session)
        assert report.repository.name == "demo"
        assert report.repository.is_public is True
        assert report.staged == ["a.txt"]
        assert report.last_commit_id is None

    def test_reloads_index_each_call(self, initialized, session):
        assert workflows.status(initialized, session).staged == []
        StagingIndex(initialized.index_path, ["b.txt"]).save()
        assert workflows.status(initialized, session).staged == ["b.txt"]


# ---------------------------------------------------------------------------
# Branches, forks, collaborators
# ---------------------------------------------------------------------------

class TestRemoteManagement:
    def test_branch_and_merge(self, committed, session, service):
        workflows.create_branch(committed, session, "main", "dev")
        assert service.head(1, "dev") == service.head(1)
        workflows.merge_branch(committed, session, "dev", "main")

    def test_branch_from_missing_source(self, committed, session):
        with pytest.raises(RemoteError, match="Branch not found"):
            workflows.create_branch(committed, session, "nope", "dev")

    def test_fork_keeps_descriptor(self, committed, session):
        report = workflows.fork(committed, session, "demo-fork")
        assert report.repository_id == "2"
        assert committed.descriptor().repository_id == "1"

    def test_add_collaborator(self, initialized, session, service):
        workflows.add_collaborator(initialized, session, "alice")
        assert service.repos[1]["collaborators"] == ["alice"]

    def test_arguments_required(self, initialized, session):
        with pytest.raises(UsageError):
            workflows.fork(initialized, session, "")
        with pytest.raises(UsageError):
            workflows.add_collaborator(initialized, session, "")


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

def test_init_add_commit_scenario(ws, service):
    # Every step uses its own session, as separate command runs would
    report = workflows.init(ws, RepositorySession.open(service), "demo", True)
    assert json.loads((ws.root / ".dgit").read_text()) == {"repoId": report.repository_id}
    assert report.repository_id == "1"

    workflows.add(ws, ["."])
    assert _staged(ws) == ["a.txt", "b.txt"]

    result = workflows.commit(ws, RepositorySession.open(service), "first")
    assert _staged(ws) == []
    assert ws.descriptor().last_commit_id == result.commit_id
