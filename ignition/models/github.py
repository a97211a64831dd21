"""
GitHub payload models.

Small, read-only views of GitHub REST responses, trimmed to the fields
Ignition uses.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RateLimitInfo(BaseModel):
    limit: int = 5000
    remaining: int = 5000
    reset: int = 0
    used: int = 0


class FileContent(BaseModel):
    path: str
    content: str
    sha: str


class CommitResult(BaseModel):
    path: str
    content_sha: str
    commit_sha: str
    html_url: Optional[str] = None


class GitHubIssue(BaseModel):
    number: int
    title: str
    state: str = "open"
    html_url: Optional[str] = None
    labels: List[str] = Field(default_factory=list)


class PullRequest(BaseModel):
    number: int
    title: str
    user_login: str = ""
    html_url: Optional[str] = None
    state: str = "open"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PullRequestFile(BaseModel):
    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0


class Commit(BaseModel):
    sha: str
    message: str
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    author_login: Optional[str] = None
    date: Optional[datetime] = None
    html_url: Optional[str] = None


class ConnectionReport(BaseModel):
    success: bool
    message: str
    permissions: Dict[str, bool] = Field(default_factory=dict)
