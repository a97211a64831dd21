"""
Tests for the audit trail.

Tests cover:
- Audit entry creation and event naming
- AuditRecorder appending entries for published events
- AuditMirror load/save/initialize against a mocked GitHubClient
- AuditMirrorListener background saves
"""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from ignition.exceptions import GitHubConflictError, GitHubNotFoundError, ValidationError
from ignition.managers.audit_manager import (
    AuditMirror,
    AuditMirrorListener,
    AuditRecorder,
    audit_event_name,
    create_audit_entry,
    merge_entries,
)
from ignition.managers.events import Event, EventType, ItemEvent
from ignition.models.audit import AuditLogFile
from ignition.models.base import Actor
from ignition.models.github import CommitResult, FileContent


def _entry(entry_id: str, minutes: int):
    entry = create_audit_entry("TEST_EVENT", entry_id)
    entry.id = entry_id
    entry.timestamp = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes)
    return entry


def _remote_log(*entries) -> FileContent:
    content = json.dumps(AuditLogFile(audit_log=list(entries)).to_dict())
    return FileContent(path="audit-log.json", content=content, sha="audit-sha")


@pytest.fixture
def client():
    client = MagicMock()
    client.put_file.return_value = CommitResult(
        path="audit-log.json", content_sha="new-sha", commit_sha="commit"
    )
    return client


class TestEntries:
    def test_create_audit_entry(self):
        entry = create_audit_entry("REQUIREMENT_CREATE", "Created", {"a": 1}, Actor.AI)
        assert entry.id.startswith("audit_")
        assert entry.timestamp.tzinfo is not None
        assert entry.actor == Actor.AI
        assert entry.details == {"a": 1}

    def test_create_requires_event_type(self):
        with pytest.raises(ValidationError):
            create_audit_entry("", "x")

    @pytest.mark.parametrize("event,expected", [
        (ItemEvent(type=EventType.ITEM_CREATED, item_type="requirement"), "REQUIREMENT_CREATE"),
        (ItemEvent(type=EventType.ITEM_UPDATED, item_type="ci"), "CI_UPDATE"),
        (ItemEvent(type=EventType.ITEM_DELETED, item_type="asset"), "PROCESS_ASSET_DELETE"),
        (ItemEvent(type=EventType.LINKS_UPDATED, item_type="issue"), "ISSUE_LINK_UPDATE"),
        (ItemEvent(type=EventType.ASSET_USED, item_type="asset"), "ASSET_USAGE"),
        (Event(type=EventType.GITHUB_SAVED), "PROJECT_EXPORT_GITHUB"),
        (Event(type=EventType.WORKFLOW_GENERATED), "TEST_WORKFLOW_GENERATED"),
    ])
    def test_audit_event_name(self, event, expected):
        assert audit_event_name(event) == expected

    def test_merge_entries_dedupes_and_sorts_newest_first(self):
        a, b, c = _entry("a", 1), _entry("b", 2), _entry("c", 3)
        merged = merge_entries([a, b], [b, c])
        assert [e.id for e in merged] == ["c", "b", "a"]


class TestAuditRecorder:
    def test_records_and_announces(self, sample_project, event_bus):
        recorder = AuditRecorder(sample_project, event_bus)
        event_bus.subscribe(recorder)
        announced = []
        listener = MagicMock(subscribed_events=[EventType.AUDIT_RECORDED])
        listener.handle.side_effect = announced.append
        event_bus.subscribe(listener)

        event_bus.publish(Event(type=EventType.PROJECT_RESET, summary="Reset", actor=Actor.USER))

        entry = sample_project.audit_log[-1]
        assert entry.event_type == "PROJECT_RESET"
        assert entry.summary == "Reset"
        assert announced[0].details["entry"] is entry

    def test_does_not_record_its_own_announcements(self, sample_project, event_bus):
        event_bus.subscribe(AuditRecorder(sample_project, event_bus))
        event_bus.publish(Event(type=EventType.AUDIT_RECORDED))
        assert sample_project.audit_log == []


class TestAuditMirror:
    def test_load_missing_file_is_empty(self, client):
        client.get_file.side_effect = GitHubNotFoundError("missing")
        mirror = AuditMirror(client)
        assert mirror.load() == []
        assert mirror.sha is None

    def test_load_sorts_newest_first(self, client):
        client.get_file.return_value = _remote_log(_entry("old", 1), _entry("new", 5))
        mirror = AuditMirror(client)
        assert [e.id for e in mirror.load()] == ["new", "old"]
        assert mirror.sha == "audit-sha"

    def test_load_rejects_malformed_file(self, client):
        client.get_file.return_value = FileContent(path="audit-log.json", content="{x", sha="s")
        with pytest.raises(ValidationError):
            AuditMirror(client).load()

    def test_save_merges_with_remote(self, client):
        client.get_file.return_value = _remote_log(_entry("remote", 1))
        mirror = AuditMirror(client, project_name="Widgets")

        mirror.save([_entry("local", 2)])

        path, content, message = client.put_file.call_args.args
        saved = json.loads(content)
        assert path == "audit-log.json"
        assert [e["id"] for e in saved["auditLog"]] == ["local", "remote"]
        assert saved["metadata"]["totalEntries"] == 2
        assert saved["metadata"]["projectName"] == "Widgets"
        assert message == "audit: update audit log (2 entries)"
        assert client.put_file.call_args.kwargs["sha"] == "audit-sha"
        assert mirror.sha == "new-sha"

    def test_add_entry_message(self, client):
        client.get_file.side_effect = GitHubNotFoundError("missing")
        entry = create_audit_entry("RISK_CREATE", "Created risk")
        AuditMirror(client).add_entry(entry)
        assert client.put_file.call_args.args[2] == "audit: RISK_CREATE - Created risk"

    def test_add_entries_batch_message(self, client):
        client.get_file.side_effect = GitHubNotFoundError("missing")
        mirror = AuditMirror(client)
        assert mirror.add_entries([]) is None
        mirror.add_entries([_entry("a", 1), _entry("b", 2)])
        assert client.put_file.call_args.args[2] == "audit: batch update (2 new entries)"

    def test_conflict_clears_sha(self, client):
        client.get_file.return_value = _remote_log()
        client.put_file.side_effect = GitHubConflictError("stale")
        mirror = AuditMirror(client)
        with pytest.raises(GitHubConflictError):
            mirror.save([_entry("a", 1)])
        assert mirror.sha is None

    def test_initialize_creates_file(self, client):
        client.get_file.side_effect = GitHubNotFoundError("missing")
        result = AuditMirror(client).initialize("Widgets")
        assert result.commit_sha == "commit"
        saved = json.loads(client.put_file.call_args.args[1])
        assert saved["auditLog"][0]["eventType"] == "AUDIT_LOG_INIT"
        assert saved["auditLog"][0]["actor"] == "System"
        assert client.put_file.call_args.args[2] == "feat: initialize persistent audit log for meta-compliance"

    def test_initialize_existing_file_is_noop(self, client):
        client.get_file.return_value = _remote_log()
        assert AuditMirror(client).initialize() is None
        client.put_file.assert_not_called()

    def test_exists(self, client):
        client.get_file.side_effect = GitHubNotFoundError("missing")
        assert not AuditMirror(client).exists()


class TestAuditMirrorListener:
    def test_saves_recorded_entries_in_background(self, client, sample_project, event_bus):
        client.get_file.side_effect = GitHubNotFoundError("missing")
        recorder = AuditRecorder(sample_project, event_bus)
        listener = AuditMirrorListener(AuditMirror(client), ThreadPoolExecutor(max_workers=1))
        event_bus.subscribe(recorder)
        event_bus.subscribe(listener)

        recorder.record("PROJECT_UPDATE", "Renamed")
        listener.close()

        assert client.put_file.call_count == 1
        assert client.put_file.call_args.args[2] == "audit: PROJECT_UPDATE - Renamed"

    def test_failures_are_logged_not_raised(self, client, caplog):
        client.get_file.side_effect = GitHubNotFoundError("missing")
        client.put_file.side_effect = GitHubConflictError("stale")
        listener = AuditMirrorListener(AuditMirror(client))
        entry = create_audit_entry("X", "y")

        listener.handle(Event(type=EventType.AUDIT_RECORDED, details={"entry": entry}))
        listener.flush()
        listener.close()

        assert "Failed to mirror audit entry" in caplog.text

    def test_transport_failures_do_not_escape_close(self, github_client, session, caplog):
        session.request.side_effect = requests.exceptions.TooManyRedirects("loop")
        listener = AuditMirrorListener(AuditMirror(github_client))
        entry = create_audit_entry("X", "y")

        listener.handle(Event(type=EventType.AUDIT_RECORDED, details={"entry": entry}))
        listener.close()

        assert "Failed to mirror audit entry" in caplog.text
        assert "loop" in caplog.text

    def test_unexpected_errors_are_logged(self, client, caplog):
        client.get_file.side_effect = RuntimeError("boom")
        listener = AuditMirrorListener(AuditMirror(client))

        listener.handle(Event(type=EventType.AUDIT_RECORDED,
                              details={"entry": create_audit_entry("X", "y")}))
        listener.close()

        assert "boom" in caplog.text
