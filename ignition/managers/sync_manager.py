"""
GitHub sync workflows for Ignition.

SyncManager loads and saves the project file, fetches issues and pull
requests, runs AI-assisted repository operations and converts commits to
audit entries. It tracks the project file's blob SHA in StateFile so that
concurrent writes surface as GitHubConflictError instead of being
overwritten. It does not publish events; IgnitionCore does that once the
results are applied.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from ignition.ai.client import AIClient
from ignition.constants import (
    DEFAULT_AUDIT_LOG_PATH,
    DEFAULT_COMMIT_LIMIT,
    PROJECT_SAVE_MESSAGE,
    SCAFFOLD_COMMIT_MESSAGE,
    SYSTEM_COMMIT_MARKERS,
    WORKFLOW_COMMIT_MESSAGE,
)
from ignition.exceptions import AIGenerationError, GitHubConflictError
from ignition.github.client import GitHubClient
from ignition.managers.audit_manager import create_audit_entry
from ignition.models.analysis import PrAnalysisResult
from ignition.models.audit import AuditLogEntry
from ignition.models.base import Actor
from ignition.models.files import StateFile
from ignition.models.github import (
    Commit,
    CommitResult,
    GitHubIssue,
    PullRequest,
    PullRequestFile,
)
from ignition.models.project import ProjectData
from ignition.utils import format_timestamp, sanitize_commit_message, utc_now

logger = logging.getLogger(__name__)


def commits_to_audit_entries(commits: List[Commit]) -> List[AuditLogEntry]:
    """
    Convert repository commits into REPOSITORY_COMMIT audit entries.

    Commits whose message carries an Ignition marker (audit:, ignition:,
    meta-compliance) are attributed to System, the rest to User.
    """
    entries = []
    for commit in commits:
        message = commit.message or ""
        lowered = message.lower()
        actor = Actor.SYSTEM if any(marker in lowered for marker in SYSTEM_COMMIT_MARKERS) else Actor.USER
        subject = message.splitlines()[0] if message else commit.sha[:7]
        entry = create_audit_entry(
            "REPOSITORY_COMMIT",
            f"Commit {commit.sha[:7]}: {sanitize_commit_message(subject)}",
            {
                "sha": commit.sha,
                "author": commit.author_login or commit.author_name,
                "email": commit.author_email,
                "url": commit.html_url,
                "fullMessage": message,
            },
            actor,
        )
        if commit.date is not None:
            entry.timestamp = commit.date
        entries.append(entry)
    return entries


class SyncManager:
    """
    Runs GitHub-backed workflows for a project.

    Args:
        client: Configured GitHubClient.
        state: StateFile holding the last known project SHA; mutated in place.
        ai: AIClient for the AI-assisted operations.
    """

    def __init__(self, client: GitHubClient, state: StateFile, ai: Optional[AIClient] = None) -> None:
        self.client = client
        self.state = state
        self.ai = ai

    def _require_ai(self) -> AIClient:
        if self.ai is None or not self.ai.available:
            raise AIGenerationError(
                "AI client not available. Set GEMINI_API_KEY to enable AI features."
            )
        return self.ai

    @property
    def file_path(self) -> str:
        return self.client.settings.file_path

    # ── Project file ────────────────────────────────────────────────────────

    def load_project(self) -> ProjectData:
        """
        Fetch and validate the project file, remembering its SHA.

        Raises:
            GitHubNotFoundError: If the file does not exist yet.
            ValidationError: If the file is not valid project data.
        """
        remote = self.client.get_file(self.file_path)
        project = ProjectData.from_json(remote.content)
        self.state.project_sha = remote.sha
        self.state.needs_reload = False
        self.state.last_loaded_at = utc_now()
        logger.info("Loaded %s at %s", self.file_path, remote.sha)
        return project

    def save_project(self, project: ProjectData, message: Optional[str] = None) -> CommitResult:
        """
        Commit the project file using the last known SHA.

        When no SHA has ever been known the current one is resolved first
        (a missing file is created). A conflict marks the state as needing
        a reload; every save is refused until load_project runs again.

        Raises:
            GitHubConflictError: On a stale SHA, or while a reload is pending.
        """
        if self.state.needs_reload:
            raise GitHubConflictError(
                f"Project file {self.file_path} changed on GitHub since it was last loaded.",
                status=None,
            )
        commit_message = message or PROJECT_SAVE_MESSAGE.format(timestamp=format_timestamp(utc_now()))
        sha = self.state.project_sha
        if sha is None:
            sha = self.client.get_file_sha(self.file_path)
        try:
            result = self.client.put_file(self.file_path, project.to_json(), commit_message, sha=sha)
        except GitHubConflictError:
            logger.warning("Project file %s changed remotely; save rejected", self.file_path)
            self.state.project_sha = None
            self.state.needs_reload = True
            raise
        self.state.project_sha = result.content_sha
        self.state.last_saved_at = utc_now()
        logger.info("Saved %s as %s", self.file_path, result.commit_sha)
        return result

    # ── Issues and pull requests ────────────────────────────────────────────

    def fetch_issues(self) -> List[GitHubIssue]:
        return self.client.list_open_issues()

    def fetch_pull_requests(self) -> List[PullRequest]:
        return self.client.list_open_pull_requests()

    def fetch_pull_request_files(self, number: int) -> List[PullRequestFile]:
        return self.client.list_pull_request_files(number)

    def analyze_pull_request(self, number: int, project: ProjectData) -> PrAnalysisResult:
        ai = self._require_ai()
        pr = self.client.get_pull_request(number)
        files = self.client.list_pull_request_files(number)
        return ai.analyze_pull_request(pr, files, project)

    def post_pr_comment(self, number: int, body: str) -> Dict:
        return self.client.post_comment(number, body)

    # ── AI-assisted repository operations ───────────────────────────────────

    def _commit_files(self, files: Dict[str, str], message_template: str) -> Dict[str, CommitResult]:
        results = {}
        for path, content in files.items():
            results[path] = self.client.save_file(
                path, content, message_template.format(path=path)
            )
            logger.info("Committed %s", path)
        return results

    def scaffold_repository(
        self, project: ProjectData, audit_log_path: str = DEFAULT_AUDIT_LOG_PATH
    ) -> Dict[str, CommitResult]:
        """Generate starter files with AI and commit each one."""
        files = self._require_ai().scaffold_repository_files(
            project, project_path=self.file_path, audit_log_path=audit_log_path
        )
        results = self._commit_files(files, SCAFFOLD_COMMIT_MESSAGE)
        project_commit = results.get(self.file_path)
        if project_commit is not None:
            self.state.project_sha = project_commit.content_sha
            self.state.needs_reload = False
        return results

    def generate_test_workflow(self) -> Dict[str, CommitResult]:
        """Generate the test workflow with AI and commit it."""
        files = self._require_ai().generate_test_workflow_files()
        return self._commit_files(files, WORKFLOW_COMMIT_MESSAGE)

    # ── Commits ─────────────────────────────────────────────────────────────

    def import_commits(
        self, since: Optional[datetime] = None, limit: int = DEFAULT_COMMIT_LIMIT
    ) -> List[AuditLogEntry]:
        commits = self.client.list_recent_commits(since=since, limit=limit)
        return commits_to_audit_entries(commits)
