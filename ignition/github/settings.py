"""
GitHub connection settings and repository URL parsing.
"""

import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from ignition.constants import DEFAULT_PROJECT_FILE_PATH, GITHUB_HOSTNAMES, PAT_PATTERNS
from ignition.exceptions import ConfigurationError


@dataclass(frozen=True)
class RepoRef:
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_repo_url(url: str) -> Optional[RepoRef]:
    """
    Parse a github.com repository URL into owner and repo.

    Returns None for anything that is not a github.com repository URL.

    Examples:
        >>> parse_repo_url("https://github.com/acme/ignition.git")
        RepoRef(owner='acme', repo='ignition')
    """
    if not url:
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or parsed.hostname not in GITHUB_HOSTNAMES:
        return None
    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        return None
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        return None
    return RepoRef(owner=owner, repo=repo)


def is_valid_token(token: str) -> bool:
    return any(re.match(pattern, token or "") for pattern in PAT_PATTERNS)


def is_safe_path(path: str) -> bool:
    """Repository-relative path with no traversal and no leading slash."""
    return bool(path) and ".." not in path and not path.startswith("/")


class GitHubSettings(BaseModel):
    """Repository URL, personal access token and project file path."""

    repo_url: str = ""
    pat: str = Field(default="", repr=False)
    file_path: str = DEFAULT_PROJECT_FILE_PATH

    @property
    def is_configured(self) -> bool:
        return bool(self.repo_url and self.pat and self.file_path)

    @property
    def repo(self) -> RepoRef:
        """Owner and repo parsed from repo_url.

        Raises:
            ConfigurationError: If repo_url is not a github.com repository URL.
        """
        ref = parse_repo_url(self.repo_url)
        if ref is None:
            raise ConfigurationError(
                f"Invalid GitHub repository URL '{self.repo_url}'. "
                "Expected https://github.com/<owner>/<repo>."
            )
        return ref

    def validation_errors(self) -> List[str]:
        """Return a list of problems; empty when the settings are usable."""
        errors = []
        if not self.repo_url:
            errors.append("Repository URL is required.")
        elif parse_repo_url(self.repo_url) is None:
            errors.append("Repository URL must be a valid github.com repository URL.")
        if not self.pat:
            errors.append("Personal Access Token is required.")
        elif not is_valid_token(self.pat):
            errors.append("Personal Access Token format is invalid.")
        if not self.file_path:
            errors.append("File path is required.")
        elif not is_safe_path(self.file_path):
            errors.append("File path must be relative and must not contain '..'.")
        return errors

    def validate_settings(self) -> None:
        """Raise ConfigurationError listing every problem, if any."""
        errors = self.validation_errors()
        if errors:
            raise ConfigurationError(" ".join(errors))
