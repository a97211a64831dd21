"""
IgnitionCore - Core business logic for Ignition using .ignition/ storage.

Orchestrates manager classes for all business operations.
Uses StorageManager for the local working copy.
Uses EventBus for decoupled event-driven auditing.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ignition.ai.client import AIClient
from ignition.constants import (
    GEMINI_API_KEY_ENV_VAR,
    GITHUB_TOKEN_ENV_VARS,
    IMPORTED_PROJECT_NAME,
)
from ignition.exceptions import (
    ConfigurationError,
    GitHubConflictError,
    NotFoundError,
    ValidationError,
)
from ignition.github.client import GitHubClient
from ignition.github.settings import GitHubSettings
from ignition.managers import (
    AuditMirror,
    AuditMirrorListener,
    AuditRecorder,
    DashboardMetrics,
    Event,
    EventBus,
    EventType,
    ItemManager,
    LinkManager,
    MetricsTracker,
    StorageManager,
)
from ignition.managers.audit_manager import merge_entries
from ignition.managers.metrics_tracker import TraceabilityRow
from ignition.managers.sync_manager import SyncManager
from ignition.models.analysis import PrAnalysisResult
from ignition.models.audit import AuditLogEntry
from ignition.models.base import Actor, AuditableItem
from ignition.models.files import ConfigFile
from ignition.models.github import (
    CommitResult,
    ConnectionReport,
    GitHubIssue,
    PullRequest,
    PullRequestFile,
)
from ignition.models.project import DocumentSection, ProjectData, RequirementLinks

logger = logging.getLogger(__name__)


class IgnitionCore:
    """
    Core class for business logic operations.

    Orchestrates manager classes:
    - StorageManager: Persistence to .ignition/ folder
    - ItemManager: CRUD operations
    - LinkManager: Link maps and referential integrity
    - MetricsTracker: Dashboard metrics
    - AuditRecorder: Audit entries for every published event
    - SyncManager: GitHub workflows (created on demand)
    - AuditMirrorListener: Background audit mirroring (optional)
    """

    def __init__(
        self,
        ignition_dir: Optional[Path] = None,
        config: Optional[ConfigFile] = None,
        environ: Optional[Mapping[str, str]] = None,
        session: Any = None,
        ai_client: Optional[AIClient] = None,
        github_client: Optional[GitHubClient] = None,
    ):
        """
        Initialize the IgnitionCore with a .ignition/ directory.

        Args:
            ignition_dir: Path to .ignition/ directory. Defaults to .ignition/ in current directory.
            config: Configuration to use instead of config.json.
            environ: Environment to read secrets from. Defaults to os.environ.
            session: requests.Session passed to the GitHub client.
            ai_client: Pre-built AIClient.
            github_client: Pre-built GitHubClient.
        """
        self.storage = StorageManager(ignition_dir)
        self.config = config if config is not None else self.storage.load_config()
        self.state = self.storage.load_state()
        self.environ = os.environ if environ is None else environ
        self.event_bus = EventBus()

        self._session = session
        self._ai_client = ai_client
        self._github_client = github_client
        self._github_client_injected = github_client is not None
        self._audit_mirror: Optional[AuditMirror] = None
        self.audit_mirror_listener: Optional[AuditMirrorListener] = None
        self.recorder: Optional[AuditRecorder] = None

        self._attach_project(self.storage.load_project())

        if self.config.audit_mirror_enabled and self.github_settings().is_configured:
            self.enable_audit_mirror()

    def __enter__(self) -> "IgnitionCore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Wait for background audit saves and release HTTP resources."""
        if self.audit_mirror_listener is not None:
            self.audit_mirror_listener.close()
            self.event_bus.unsubscribe(self.audit_mirror_listener)
            self.audit_mirror_listener = None
        if self._audit_mirror is not None and self._audit_mirror.client is not self._github_client:
            self._audit_mirror.client.close()
        if self._github_client is not None:
            self._github_client.close()

    def _attach_project(self, project: ProjectData) -> None:
        """Point every manager at a (new) project."""
        if self.recorder is not None:
            self.event_bus.unsubscribe(self.recorder)
        self.project = project
        self.links = LinkManager(project, self.event_bus)
        self.item_manager = ItemManager(project, self.links, self.event_bus)
        self.metrics_tracker = MetricsTracker(project)
        self.recorder = AuditRecorder(project, self.event_bus)
        self.event_bus.subscribe(self.recorder)
        if self._audit_mirror is not None:
            self._audit_mirror.project_name = project.project_name

    def _publish(self, event_type: EventType, summary: str, actor: Actor = Actor.USER,
                 details: Optional[Dict[str, Any]] = None) -> None:
        self.event_bus.publish(Event(type=event_type, summary=summary, actor=actor,
                                     details=details or {}))

    def save(self) -> None:
        """Save project and sync state to storage."""
        self.storage.save_project(self.project)
        self.storage.save_state(self.state)

    # =========================================================================
    # Configuration and clients
    # =========================================================================

    def github_token(self) -> Optional[str]:
        for name in GITHUB_TOKEN_ENV_VARS:
            value = self.environ.get(name)
            if value:
                return value
        return self.config.github_token

    def gemini_api_key(self) -> Optional[str]:
        return self.environ.get(GEMINI_API_KEY_ENV_VAR) or self.config.gemini_api_key

    def github_settings(self) -> GitHubSettings:
        return GitHubSettings(
            repo_url=self.config.repo_url,
            pat=self.github_token() or "",
            file_path=self.config.file_path,
        )

    @property
    def github(self) -> GitHubClient:
        """GitHub client built from configuration.

        Raises:
            ConfigurationError: If the repository URL or token is missing or malformed.
        """
        if self._github_client is None:
            self._github_client = self._build_github_client(self._session)
        return self._github_client

    def _build_github_client(self, session: Any) -> GitHubClient:
        settings = self.github_settings()
        if not settings.repo_url:
            raise ConfigurationError(
                "No GitHub repository configured. Run 'ignition config set repo_url <url>'."
            )
        if not settings.pat:
            raise ConfigurationError(
                "No GitHub token found. Set IGNITION_GITHUB_TOKEN or GITHUB_TOKEN."
            )
        settings.validate_settings()
        return GitHubClient(
            settings,
            session=session,
            api_url=self.config.api_url,
            max_retries=self.config.max_retries,
            backoff_base=self.config.backoff_base,
            max_rate_limit_wait=self.config.max_rate_limit_wait,
            timeout=self.config.request_timeout,
            low_rate_limit_threshold=self.config.low_rate_limit_threshold,
        )

    @property
    def ai(self) -> AIClient:
        if self._ai_client is None:
            self._ai_client = AIClient(api_key=self.gemini_api_key(), model=self.config.ai_model)
        return self._ai_client

    @property
    def sync(self) -> SyncManager:
        return SyncManager(self.github, self.state, self.ai)

    @property
    def audit_mirror(self) -> AuditMirror:
        """Audit log mirror with its own HTTP session.

        Background saves run on a worker thread, so the mirror never shares the
        requests.Session of :attr:`github` unless a client was passed in.
        """
        if self._audit_mirror is None:
            if self._github_client_injected:
                client = self.github
            else:
                client = self._build_github_client(session=None)
            self._audit_mirror = AuditMirror(
                client, self.config.audit_log_path, self.project.project_name
            )
        return self._audit_mirror

    def enable_audit_mirror(self) -> AuditMirrorListener:
        """Mirror every new audit entry to GitHub in the background."""
        if self.audit_mirror_listener is None:
            self.audit_mirror_listener = AuditMirrorListener(self.audit_mirror)
            self.event_bus.subscribe(self.audit_mirror_listener)
        return self.audit_mirror_listener

    # =========================================================================
    # Entities
    # =========================================================================

    def add_item(self, item_type: str, fields: Dict[str, Any], actor: Actor = Actor.USER) -> AuditableItem:
        """Add a new entity to the project."""
        item = self.item_manager.add_item(item_type, fields, actor)
        self.save()
        return item

    def update_item(self, item_id: str, changes: Dict[str, Any], actor: Actor = Actor.USER) -> AuditableItem:
        """Update an existing entity."""
        item = self.item_manager.update_item(item_id, changes, actor)
        self.save()
        return item

    def delete_item(self, item_id: str, actor: Actor = Actor.USER) -> AuditableItem:
        """Delete an entity and its links."""
        item = self.item_manager.delete_item(item_id, actor)
        self.save()
        return item

    def get_item(self, item_id: str, item_type: Optional[str] = None) -> AuditableItem:
        return self.item_manager.get_item(item_id, item_type)

    def list_items(self, item_type: str, status: Optional[str] = None) -> List[AuditableItem]:
        return self.item_manager.list_items(item_type, status)

    # =========================================================================
    # Links
    # =========================================================================

    def requirement_links(self, requirement_id: str) -> RequirementLinks:
        return self.links.get_requirement_links(requirement_id)

    def link_requirement(self, requirement_id: str, tests=None, cis=None, issues=None,
                         actor: Actor = Actor.USER) -> RequirementLinks:
        row = self.links.set_requirement_links(requirement_id, tests, cis, issues, actor)
        self.save()
        return row

    def link_risk(self, risk_id: str, requirements=None, cis=None, actor: Actor = Actor.USER):
        linked = self.links.set_risk_links(risk_id, requirements, cis, actor)
        self.save()
        return linked

    def link_issue(self, issue_number: int, requirements=None, cis=None, risks=None,
                   actor: Actor = Actor.USER) -> Dict[str, list]:
        linked = self.links.set_issue_links(issue_number, requirements, cis, risks, actor)
        self.save()
        return linked

    def link_asset(self, asset_id: str, requirements=None, risks=None, cis=None,
                   actor: Actor = Actor.USER):
        row = self.links.set_asset_links(asset_id, requirements, risks, cis, actor)
        self.save()
        return row

    def use_asset(self, asset_id: str, generated_type: str, generated_id: str,
                  actor: Actor = Actor.USER):
        usage = self.links.record_asset_usage(asset_id, generated_type, generated_id, actor)
        self.save()
        return usage

    # =========================================================================
    # Project and documents
    # =========================================================================

    def rename_project(self, name: str) -> None:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Project name cannot be empty.")
        old_name = self.project.project_name
        self.project.project_name = name
        if self._audit_mirror is not None:
            self._audit_mirror.project_name = name
        self._publish(
            EventType.PROJECT_UPDATED,
            f'Renamed project from "{old_name}" to "{name}"',
            details={"oldName": old_name, "newName": name},
        )
        self.save()

    def update_document_section(self, doc_id: str, section_id: str, description: str,
                                actor: Actor = Actor.USER) -> DocumentSection:
        document = self.project.documents.get(doc_id)
        if document is None:
            raise NotFoundError(f"Document '{doc_id}' not found.")
        section = document.find_section(section_id)
        if section is None:
            raise NotFoundError(f"Section '{section_id}' not found in document '{doc_id}'.")
        before = section.description
        section.description = description
        self._publish(
            EventType.DOCUMENT_UPDATED,
            f'Updated section "{section.title}" in {document.title}',
            actor,
            {"documentId": doc_id, "sectionId": section_id, "before": before, "after": description},
        )
        self.save()
        return section

    def export_project(self, destination: Path) -> Path:
        path = self.storage.export_project(self.project, destination)
        self._publish(
            EventType.PROJECT_EXPORTED,
            f"Exported project to {path.name}",
            details={"path": str(path)},
        )
        self.save()
        return path

    def import_project(self, source: Path) -> ProjectData:
        """Replace the working copy with a project file from disk."""
        project = self.storage.import_project(source)
        if "project_name" not in project.model_fields_set:
            project.project_name = IMPORTED_PROJECT_NAME
        self._attach_project(project)
        self.state.project_sha = None
        self._publish(
            EventType.PROJECT_IMPORTED,
            f'Imported project "{project.project_name}" from {Path(source).name}',
            details={"path": str(source), "requirements": len(project.requirements)},
        )
        self.save()
        return project

    def reset_project(self) -> ProjectData:
        """Discard the working copy and start an empty project."""
        old_name = self.project.project_name
        self._attach_project(ProjectData())
        self.state.project_sha = None
        self._publish(
            EventType.PROJECT_RESET,
            f'Reset project (was "{old_name}")',
            details={"previousName": old_name},
        )
        self.save()
        return self.project

    def metrics(self) -> DashboardMetrics:
        return self.metrics_tracker.calculate()

    def traceability(self) -> List[TraceabilityRow]:
        return self.metrics_tracker.traceability_matrix()

    def dangling_references(self) -> List[Tuple[str, str, str]]:
        return self.links.dangling_references()

    # =========================================================================
    # Audit log
    # =========================================================================

    def audit_entries(self, event_type: Optional[str] = None, actor: Optional[str] = None,
                      limit: Optional[int] = None) -> List[AuditLogEntry]:
        """Audit entries, newest first, optionally filtered."""
        entries = sorted(self.project.audit_log, key=lambda e: e.timestamp, reverse=True)
        if event_type:
            entries = [e for e in entries if e.event_type == event_type.upper()]
        if actor:
            entries = [e for e in entries if e.actor.value.lower() == actor.lower()]
        if limit is not None:
            entries = entries[:limit]
        return entries

    def audit_push(self) -> CommitResult:
        """Merge the local audit log into audit-log.json on GitHub."""
        return self.audit_mirror.save(self.project.audit_log)

    def audit_pull(self) -> int:
        """Merge the remote audit log into the local one.

        Returns:
            Number of entries added locally.
        """
        remote = self.audit_mirror.load()
        known = {entry.id for entry in self.project.audit_log}
        added = [entry for entry in remote if entry.id not in known]
        if added:
            self.project.audit_log[:] = list(reversed(merge_entries(self.project.audit_log, added)))
            self.save()
        return len(added)

    def audit_init(self) -> Optional[CommitResult]:
        return self.audit_mirror.initialize(self.project.project_name)

    # =========================================================================
    # GitHub workflows
    # =========================================================================

    def test_connection(self) -> ConnectionReport:
        return self.github.test_connection()

    def github_load(self) -> ProjectData:
        """Replace the working copy with the project file from GitHub."""
        project = self.sync.load_project()
        self._attach_project(project)
        self._publish(
            EventType.GITHUB_LOADED,
            f"Loaded project from GitHub ({self.config.file_path})",
            Actor.SYSTEM,
            {"filePath": self.config.file_path, "sha": self.state.project_sha},
        )
        self.save()
        return project

    def github_save(self, message: Optional[str] = None) -> CommitResult:
        """Commit the working copy to GitHub.

        Raises:
            GitHubConflictError: If the remote file changed since it was loaded.
        """
        try:
            result = self.sync.save_project(self.project, message)
        except GitHubConflictError:
            self.storage.save_state(self.state)
            raise
        self._publish(
            EventType.GITHUB_SAVED,
            f"Saved project to GitHub ({self.config.file_path})",
            Actor.SYSTEM,
            {"filePath": self.config.file_path, "commitSha": result.commit_sha},
        )
        self.save()
        return result

    def fetch_issues(self) -> List[GitHubIssue]:
        return self.sync.fetch_issues()

    def fetch_pull_requests(self) -> List[PullRequest]:
        return self.sync.fetch_pull_requests()

    def pull_request_files(self, number: int) -> List[PullRequestFile]:
        return self.sync.fetch_pull_request_files(number)

    def analyze_pull_request(self, number: int) -> PrAnalysisResult:
        result = self.sync.analyze_pull_request(number, self.project)
        self._publish(
            EventType.PR_ANALYZED,
            f"Analyzed pull request #{number}",
            Actor.AI,
            {
                "prNumber": number,
                "summary": result.summary,
                "linkedRequirementIds": [r.id for r in result.linked_requirements],
                "linkedCiIds": [c.id for c in result.linked_cis],
                "linkedRiskIds": [r.id for r in result.linked_risks],
            },
        )
        self.save()
        return result

    def post_pr_comment(self, number: int, body: str) -> Dict:
        comment = self.sync.post_pr_comment(number, body)
        self._publish(
            EventType.PR_COMMENTED,
            f"Posted comment on pull request #{number}",
            Actor.SYSTEM,
            {"prNumber": number, "commentUrl": comment.get("html_url")},
        )
        self.save()
        return comment

    def scaffold_repository(self) -> Dict[str, CommitResult]:
        results = self.sync.scaffold_repository(self.project, self.config.audit_log_path)
        self._publish(
            EventType.REPO_SCAFFOLDED,
            f"Scaffolded repository with {len(results)} files",
            Actor.AI,
            {"files": sorted(results)},
        )
        self.save()
        return results

    def generate_test_workflow(self) -> Dict[str, CommitResult]:
        results = self.sync.generate_test_workflow()
        self._publish(
            EventType.WORKFLOW_GENERATED,
            "Added Ignition testing workflow",
            Actor.AI,
            {"files": sorted(results)},
        )
        self.save()
        return results

    def import_commits(self, since=None, limit: Optional[int] = None) -> List[AuditLogEntry]:
        """Record recent repository commits as audit entries (skipping known ones)."""
        kwargs = {"since": since}
        if limit is not None:
            kwargs["limit"] = limit
        entries = self.sync.import_commits(**kwargs)
        known = {
            e.details.get("sha") for e in self.project.audit_log
            if e.event_type == "REPOSITORY_COMMIT"
        }
        new_entries = [e for e in entries if e.details.get("sha") not in known]
        self.project.audit_log.extend(new_entries)
        if new_entries:
            self.save()
        return new_entries

    # =========================================================================
    # AI assistance
    # =========================================================================

    def improve_content(self, text: str) -> str:
        if not text or not text.strip():
            raise ValidationError("Text to improve cannot be empty.")
        return self.ai.improve_content(text)

    def suggest_requirement(self, apply: bool = False) -> Dict[str, str]:
        suggestion = self.ai.suggest_requirement_details(self.project)
        if apply:
            fields = {"description": suggestion["suggested_description"]}
            if self.project.find_item(suggestion["suggested_id"]) is None:
                fields["id"] = suggestion["suggested_id"]
            item = self.add_item("requirement", fields, Actor.AI)
            suggestion["created_id"] = item.id
        return suggestion

    def suggest_test_cases(self, requirement_id: str, apply: bool = False) -> List[Dict[str, str]]:
        requirement = self.item_manager.get_item(requirement_id, "requirement")
        suggestions = self.ai.suggest_test_cases(requirement, self.project)
        if apply:
            created = []
            for suggestion in suggestions:
                item = self.item_manager.add_item("test", suggestion, Actor.AI)
                suggestion["created_id"] = item.id
                created.append(item.id)
            existing = self.links.get_requirement_links(requirement_id).tests
            self.links.set_requirement_links(
                requirement_id, tests=list(existing) + created, actor=Actor.AI
            )
            self.save()
        return suggestions

    def generate_section(self, doc_id: str, section_id: str, apply: bool = False) -> str:
        document = self.project.documents.get(doc_id)
        if document is None:
            raise NotFoundError(f"Document '{doc_id}' not found.")
        section = document.find_section(section_id)
        if section is None:
            raise NotFoundError(f"Section '{section_id}' not found in document '{doc_id}'.")
        text = self.ai.generate_document_section(document.title, section.title, self.project)
        if apply:
            self.update_document_section(doc_id, section_id, text, Actor.AI)
        return text
