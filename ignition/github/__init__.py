"""
GitHub integration for Ignition.

- GitHubSettings / parse_repo_url: connection settings
- GitHubClient: REST client with retries and pagination
- remediation_for: user guidance for a GitHubError
"""

from ignition.github.client import GitHubClient
from ignition.github.errors import remediation_for
from ignition.github.settings import GitHubSettings, RepoRef, parse_repo_url

__all__ = [
    "GitHubClient",
    "GitHubSettings",
    "RepoRef",
    "parse_repo_url",
    "remediation_for",
]
