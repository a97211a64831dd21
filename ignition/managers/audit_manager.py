"""
Audit trail for Ignition.

- create_audit_entry builds immutable log entries.
- AuditRecorder turns published events into entries in ProjectData.auditLog.
- AuditMirror persists the log to audit-log.json in the GitHub repository.
- AuditMirrorListener mirrors each new entry in the background.

The in-memory log in ProjectData is the source of truth; the mirror is a
best-effort copy.
"""

import json
import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from ignition.constants import (
    AUDIT_BATCH_MESSAGE,
    AUDIT_ENTRY_MESSAGE,
    AUDIT_EVENT_PREFIXES,
    AUDIT_INIT_MESSAGE,
    AUDIT_UPDATE_MESSAGE,
    DEFAULT_AUDIT_LOG_PATH,
)
from ignition.exceptions import (
    GitHubConflictError,
    GitHubNotFoundError,
    IgnitionError,
    ValidationError,
)
from ignition.managers.events import (
    Event,
    EventBus,
    EventListener,
    EventType,
    ItemEvent,
    all_event_types,
)
from ignition.models.audit import AuditLogEntry, AuditLogFile, AuditLogMetadata
from ignition.models.base import Actor
from ignition.models.github import CommitResult
from ignition.models.project import ProjectData
from ignition.utils import utc_now

if TYPE_CHECKING:
    from ignition.github.client import GitHubClient

logger = logging.getLogger(__name__)

_ITEM_EVENT_SUFFIXES = {
    EventType.ITEM_CREATED: "CREATE",
    EventType.ITEM_UPDATED: "UPDATE",
    EventType.ITEM_DELETED: "DELETE",
    EventType.LINKS_UPDATED: "LINK_UPDATE",
}

_EVENT_NAMES = {
    EventType.ASSET_USED: "ASSET_USAGE",
    EventType.DOCUMENT_UPDATED: "DOCUMENT_UPDATE",
    EventType.PROJECT_UPDATED: "PROJECT_UPDATE",
    EventType.PROJECT_RESET: "PROJECT_RESET",
    EventType.PROJECT_EXPORTED: "PROJECT_EXPORT",
    EventType.PROJECT_IMPORTED: "PROJECT_IMPORT",
    EventType.GITHUB_LOADED: "PROJECT_IMPORT_GITHUB",
    EventType.GITHUB_SAVED: "PROJECT_EXPORT_GITHUB",
    EventType.PR_ANALYZED: "PR_ANALYSIS",
    EventType.PR_COMMENTED: "PR_COMMENT",
    EventType.REPO_SCAFFOLDED: "REPO_SCAFFOLD",
    EventType.WORKFLOW_GENERATED: "TEST_WORKFLOW_GENERATED",
}


def create_audit_entry(
    event_type: str,
    summary: str,
    details: Optional[Dict[str, Any]] = None,
    actor: Actor = Actor.USER,
) -> AuditLogEntry:
    """
    Build a new audit log entry with a unique id and a UTC timestamp.

    Args:
        event_type: Upper-case event name, e.g. REQUIREMENT_CREATE.
        summary: Human-readable one-line description.
        details: Structured payload stored with the entry.
        actor: Who performed the action.
    """
    if not event_type:
        raise ValidationError("Audit event type cannot be empty.")
    return AuditLogEntry(
        id=f"audit_{uuid.uuid4().hex}",
        timestamp=utc_now(),
        actor=actor,
        event_type=event_type,
        summary=summary,
        details=dict(details or {}),
    )


def audit_event_name(event: Event) -> str:
    """Map a published event to its audit event name."""
    if isinstance(event, ItemEvent) and event.type in _ITEM_EVENT_SUFFIXES:
        prefix = AUDIT_EVENT_PREFIXES.get(event.item_type, event.item_type.upper())
        return f"{prefix}_{_ITEM_EVENT_SUFFIXES[event.type]}"
    return _EVENT_NAMES.get(event.type, event.type.name)


def merge_entries(existing: Iterable[AuditLogEntry], new: Iterable[AuditLogEntry]) -> List[AuditLogEntry]:
    """Union two entry lists by id (new wins), sorted newest first."""
    merged: Dict[str, AuditLogEntry] = {entry.id: entry for entry in existing}
    for entry in new:
        merged[entry.id] = entry
    return sorted(merged.values(), key=lambda e: e.timestamp, reverse=True)


class AuditRecorder(EventListener):
    """
    Appends an audit entry to the project's log for every domain event,
    then publishes AUDIT_RECORDED with the entry.
    """

    def __init__(self, project: ProjectData, event_bus: EventBus) -> None:
        self.project = project
        self.event_bus = event_bus

    @property
    def subscribed_events(self) -> List[EventType]:
        return all_event_types(exclude=[EventType.AUDIT_RECORDED])

    def handle(self, event: Event) -> None:
        details = dict(event.details)
        if isinstance(event, ItemEvent) and event.item_id:
            details.setdefault("itemId", event.item_id)
        entry = self.record(audit_event_name(event), event.summary, details, event.actor)
        logger.debug("Recorded audit entry %s (%s)", entry.id, entry.event_type)

    def record(
        self,
        event_type: str,
        summary: str,
        details: Optional[Dict[str, Any]] = None,
        actor: Actor = Actor.USER,
    ) -> AuditLogEntry:
        """Append an entry directly and announce it."""
        entry = create_audit_entry(event_type, summary, details, actor)
        self.project.audit_log.append(entry)
        self.event_bus.publish(Event(
            type=EventType.AUDIT_RECORDED,
            summary=entry.summary,
            actor=entry.actor,
            details={"entry": entry},
        ))
        return entry


class AuditMirror:
    """
    Mirrors the audit log to a JSON file in the GitHub repository.

    Keeps a cache of the remote entries and the last known blob SHA.
    Thread-safe: saves from the background listener and from commands are
    serialized by a lock.
    """

    def __init__(
        self,
        client: "GitHubClient",
        path: str = DEFAULT_AUDIT_LOG_PATH,
        project_name: Optional[str] = None,
    ) -> None:
        self.client = client
        self.path = path
        self.project_name = project_name
        self._entries: List[AuditLogEntry] = []
        self._metadata: Optional[AuditLogMetadata] = None
        self._sha: Optional[str] = None
        self._loaded = False
        self._lock = threading.RLock()

    @property
    def sha(self) -> Optional[str]:
        return self._sha

    @property
    def cached_entries(self) -> List[AuditLogEntry]:
        with self._lock:
            return list(self._entries)

    def load(self) -> List[AuditLogEntry]:
        """
        Fetch audit-log.json from GitHub and refresh the cache.

        A missing file yields an empty log.

        Raises:
            GitHubError: On any failure other than 404.
            ValidationError: If the remote file is malformed.
        """
        with self._lock:
            try:
                remote = self.client.get_file(self.path)
            except GitHubNotFoundError:
                logger.info("Audit log %s does not exist yet", self.path)
                self._entries, self._metadata, self._sha = [], None, None
                self._loaded = True
                return []

            try:
                log_file = AuditLogFile.model_validate(json.loads(remote.content))
            except (json.JSONDecodeError, PydanticValidationError) as e:
                raise ValidationError(f"Invalid audit log file {self.path}: {e}")

            self._entries = merge_entries([], log_file.audit_log)
            self._metadata = log_file.metadata
            self._sha = remote.sha
            self._loaded = True
            return list(self._entries)

    def exists(self) -> bool:
        """Return True if audit-log.json exists in the repository."""
        try:
            self.client.get_file(self.path)
        except GitHubNotFoundError:
            return False
        return True

    def _build_file(self, entries: List[AuditLogEntry]) -> AuditLogFile:
        now = utc_now()
        metadata = (self._metadata.model_copy() if self._metadata else AuditLogMetadata(created=now))
        if self.project_name:
            metadata.project_name = self.project_name
        metadata.last_updated = now
        metadata.total_entries = len(entries)
        return AuditLogFile(audit_log=entries, metadata=metadata)

    def save(self, entries: Iterable[AuditLogEntry], message: Optional[str] = None) -> CommitResult:
        """
        Merge entries into the remote log and commit it.

        Raises:
            GitHubConflictError: If the file changed remotely; the cached SHA
                is cleared so the next call reloads it.
        """
        with self._lock:
            if not self._loaded:
                self.load()
            merged = merge_entries(self._entries, entries)
            log_file = self._build_file(merged)
            content = json.dumps(log_file.to_dict(), indent=2)
            commit_message = message or AUDIT_UPDATE_MESSAGE.format(count=len(merged))

            try:
                result = self.client.put_file(self.path, content, commit_message, sha=self._sha)
            except GitHubConflictError:
                logger.warning("Audit log %s changed remotely; reload required", self.path)
                self._sha = None
                self._loaded = False
                raise

            self._entries = merged
            self._metadata = log_file.metadata
            self._sha = result.content_sha
            logger.info("Saved %d audit entries to %s", len(merged), self.path)
            return result

    def add_entry(self, entry: AuditLogEntry) -> CommitResult:
        message = AUDIT_ENTRY_MESSAGE.format(event_type=entry.event_type, summary=entry.summary)
        return self.save([entry], message)

    def add_entries(self, entries: List[AuditLogEntry]) -> Optional[CommitResult]:
        if not entries:
            return None
        return self.save(entries, AUDIT_BATCH_MESSAGE.format(count=len(entries)))

    def initialize(self, project_name: Optional[str] = None) -> Optional[CommitResult]:
        """
        Create audit-log.json with an AUDIT_LOG_INIT entry.

        Returns:
            The commit, or None if the file already exists.
        """
        with self._lock:
            if project_name:
                self.project_name = project_name
            self.load()
            if self._sha is not None:
                logger.info("Audit log %s already exists", self.path)
                return None
            entry = create_audit_entry(
                "AUDIT_LOG_INIT",
                "Persistent audit log initialized",
                {"projectName": self.project_name, "metaCompliance": True},
                Actor.SYSTEM,
            )
            return self.save([entry], AUDIT_INIT_MESSAGE)


class AuditMirrorListener(EventListener):
    """
    Saves each newly recorded entry to the AuditMirror on a single worker
    thread. Failures are logged and never reach the caller.
    """

    def __init__(self, mirror: AuditMirror, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self.mirror = mirror
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="ignition-audit"
        )
        self._pending: List[Future] = []

    @property
    def subscribed_events(self) -> List[EventType]:
        return [EventType.AUDIT_RECORDED]

    def handle(self, event: Event) -> None:
        entry = event.details.get("entry")
        if entry is None:
            return
        self._pending.append(self._executor.submit(self._save, entry))

    def _save(self, entry: AuditLogEntry) -> None:
        try:
            self.mirror.add_entry(entry)
        except Exception as e:
            logger.warning(
                "Failed to mirror audit entry %s (%s): %s",
                entry.id, entry.event_type, e,
                exc_info=not isinstance(e, IgnitionError),
            )

    def flush(self) -> None:
        """Block until every queued save has finished."""
        pending, self._pending = self._pending, []
        wait(pending)
        for future in pending:
            future.result()

    def close(self) -> None:
        try:
            self.flush()
        finally:
            self._executor.shutdown(wait=True)
