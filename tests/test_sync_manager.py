"""
Tests for SyncManager and commit import.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from conftest import commit_body, file_body, make_response
from ignition.exceptions import AIGenerationError, GitHubConflictError
from ignition.managers.sync_manager import SyncManager, commits_to_audit_entries
from ignition.models.base import Actor
from ignition.models.files import StateFile
from ignition.models.github import Commit, CommitResult
from ignition.models.project import ProjectData


@pytest.fixture
def state():
    return StateFile()


@pytest.fixture
def sync(github_client, state):
    return SyncManager(github_client, state)


class TestProjectFile:
    def test_load_remembers_sha(self, sync, session, state, sample_project):
        session.request.return_value = make_response(200, file_body(sample_project.to_json(), sha="s1"))
        project = sync.load_project()
        assert project.project_name == "Widgets"
        assert state.project_sha == "s1"
        assert state.last_loaded_at is not None

    def test_save_uses_known_sha(self, sync, session, state, sample_project):
        state.project_sha = "s1"
        session.request.return_value = make_response(200, commit_body("s2", "c2"))

        result = sync.save_project(sample_project, "Update")

        assert session.request.call_count == 1
        assert session.request.call_args.kwargs["json"]["sha"] == "s1"
        assert session.request.call_args.kwargs["json"]["message"] == "Update"
        assert result.commit_sha == "c2"
        assert state.project_sha == "s2"

    def test_save_resolves_sha_when_unknown(self, sync, session, state, sample_project):
        session.request.side_effect = [
            make_response(404, {"message": "Not Found"}),
            make_response(201, commit_body("s1", "c1")),
        ]
        sync.save_project(sample_project)
        body = session.request.call_args.kwargs["json"]
        assert "sha" not in body
        assert body["message"].startswith("Update project state via Ignition - ")
        assert state.project_sha == "s1"

    def test_conflict_clears_sha(self, sync, session, state, sample_project):
        state.project_sha = "stale"
        session.request.return_value = make_response(409, {"message": "conflict"})
        with pytest.raises(GitHubConflictError):
            sync.save_project(sample_project)
        assert session.request.call_count == 1
        assert state.project_sha is None

    def test_save_after_conflict_is_refused_until_load(self, sync, session, state, sample_project):
        state.project_sha = "stale"
        session.request.return_value = make_response(409, {"message": "conflict"})
        with pytest.raises(GitHubConflictError):
            sync.save_project(sample_project)
        assert state.needs_reload

        session.reset_mock()
        session.request.return_value = make_response(200, file_body("{}", sha="remote-new"))
        with pytest.raises(GitHubConflictError):
            sync.save_project(sample_project)
        assert session.request.call_count == 0

        session.request.return_value = make_response(
            200, file_body(sample_project.to_json(), sha="remote-new")
        )
        sync.load_project()
        assert not state.needs_reload

        session.request.return_value = make_response(200, commit_body("s3", "c3"))
        sync.save_project(sample_project)
        assert session.request.call_args.kwargs["json"]["sha"] == "remote-new"

    def test_rate_limited_save_retries_once(self, sync, session, state, sample_project, sleeps):
        state.project_sha = "s1"
        session.request.side_effect = [
            make_response(429, {"message": "slow"}, {"Retry-After": "1"}),
            make_response(200, commit_body("s2", "c2")),
        ]
        assert sync.save_project(sample_project).commit_sha == "c2"
        assert session.request.call_count == 2
        assert sleeps == [1.0]


class TestAIWorkflows:
    def test_ai_required(self, sync):
        with pytest.raises(AIGenerationError):
            sync.scaffold_repository(ProjectData())

    def test_scaffold_commits_each_file(self, state):
        client = MagicMock()
        client.settings.file_path = "ignition-project.json"
        client.save_file.side_effect = lambda path, content, message: CommitResult(
            path=path, content_sha=f"{path}-sha", commit_sha="c"
        )
        ai = MagicMock(available=True)
        ai.scaffold_repository_files.return_value = {
            "README.md": "# x",
            "ignition-project.json": "{}",
        }
        results = SyncManager(client, state, ai).scaffold_repository(ProjectData())

        messages = [call.args[2] for call in client.save_file.call_args_list]
        assert messages == ["feat: add README.md", "feat: add ignition-project.json"]
        assert sorted(results) == ["README.md", "ignition-project.json"]
        assert state.project_sha == "ignition-project.json-sha"

    def test_scaffold_uses_configured_paths(self, state):
        client = MagicMock()
        client.settings.file_path = "meta/project.json"
        client.save_file.side_effect = lambda path, content, message: CommitResult(
            path=path, content_sha=f"{path}-sha", commit_sha="c"
        )
        ai = MagicMock(available=True)
        ai.scaffold_repository_files.return_value = {"meta/project.json": "{}"}

        SyncManager(client, state, ai).scaffold_repository(ProjectData(), "meta/audit.json")

        kwargs = ai.scaffold_repository_files.call_args.kwargs
        assert kwargs == {"project_path": "meta/project.json", "audit_log_path": "meta/audit.json"}
        assert state.project_sha == "meta/project.json-sha"

    def test_workflow_commit_message(self, state):
        client = MagicMock()
        ai = MagicMock(available=True)
        ai.generate_test_workflow_files.return_value = {".github/workflows/ignition-testing.yml": "x"}
        SyncManager(client, state, ai).generate_test_workflow()
        assert client.save_file.call_args.args[2] == (
            "ci: add Ignition testing workflow for .github/workflows/ignition-testing.yml"
        )

    def test_analyze_fetches_pr_and_files(self, state, sample_project):
        client = MagicMock()
        ai = MagicMock(available=True)
        SyncManager(client, state, ai).analyze_pull_request(7, sample_project)
        client.get_pull_request.assert_called_once_with(7)
        client.list_pull_request_files.assert_called_once_with(7)
        ai.analyze_pull_request.assert_called_once_with(
            client.get_pull_request.return_value,
            client.list_pull_request_files.return_value,
            sample_project,
        )


class TestCommits:
    def test_commits_to_audit_entries(self):
        date = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
        entries = commits_to_audit_entries([
            Commit(sha="aaaaaaa111", message="feat: login\n\nbody", author_login="dev", date=date),
            Commit(sha="bbbbbbb222", message="audit: batch update (2 new entries)"),
        ])
        assert entries[0].event_type == "REPOSITORY_COMMIT"
        assert entries[0].summary == "Commit aaaaaaa: feat: login"
        assert entries[0].actor == Actor.USER
        assert entries[0].timestamp == date
        assert entries[0].details["sha"] == "aaaaaaa111"
        assert entries[0].details["author"] == "dev"
        assert entries[1].actor == Actor.SYSTEM
