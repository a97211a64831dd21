"""
GitHub REST API client for Ignition.

All outbound calls to GitHub go through GitHubClient. It handles
authentication headers, retries (rate limits, 5xx and network errors),
pagination and rate-limit tracking, and maps failures to typed
GitHubError subclasses.

Testability: pass a mock ``session`` and ``sleep`` to GitHubClient() in
tests instead of letting it create a real requests.Session.
"""

import base64
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from ignition.constants import (
    DEFAULT_BACKOFF_BASE,
    DEFAULT_COMMIT_LIMIT,
    DEFAULT_LOW_RATE_LIMIT_THRESHOLD,
    DEFAULT_MAX_PAGES,
    DEFAULT_MAX_RATE_LIMIT_WAIT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PER_PAGE,
    DEFAULT_REQUEST_TIMEOUT,
    GITHUB_ACCEPT_HEADER,
    GITHUB_API_URL,
    GITHUB_API_VERSION,
    MAX_COMMENT_LENGTH,
    MIN_RATE_LIMIT_WAIT,
    USER_AGENT,
)
from ignition.exceptions import (
    ErrorCategory,
    GitHubError,
    GitHubNotFoundError,
    ValidationError,
)
from ignition.github.errors import error_from_response, is_rate_limited
from ignition.github.settings import GitHubSettings
from ignition.models.github import (
    Commit,
    CommitResult,
    ConnectionReport,
    FileContent,
    GitHubIssue,
    PullRequest,
    PullRequestFile,
    RateLimitInfo,
)

logger = logging.getLogger(__name__)

# Failures worth retrying; any other requests.RequestException fails at once.
TRANSIENT_REQUEST_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


class GitHubClient:
    """
    Client for the repository endpoints Ignition uses.

    Args:
        settings: Repository URL, token and default file path.
        session: requests.Session to use; created lazily when omitted.
        api_url: Base URL of the REST API.
        max_retries: Retries after the first attempt for retryable failures.
        backoff_base: Seconds for the first exponential backoff step.
        max_rate_limit_wait: Upper bound on a single rate-limit wait.
        timeout: Per-request timeout in seconds.
        low_rate_limit_threshold: Warn when fewer requests remain.
        on_rate_limit_warning: Called with RateLimitInfo when low.
        sleep: Sleep function (injectable for tests).
        clock: Returns the current epoch seconds (injectable for tests).
    """

    def __init__(
        self,
        settings: GitHubSettings,
        session: Optional[requests.Session] = None,
        api_url: str = GITHUB_API_URL,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        max_rate_limit_wait: float = DEFAULT_MAX_RATE_LIMIT_WAIT,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        low_rate_limit_threshold: int = DEFAULT_LOW_RATE_LIMIT_THRESHOLD,
        on_rate_limit_warning: Optional[Callable[[RateLimitInfo], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.repo = settings.repo
        self.api_url = api_url.rstrip("/")
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.max_rate_limit_wait = max_rate_limit_wait
        self.timeout = timeout
        self.low_rate_limit_threshold = low_rate_limit_threshold
        self.on_rate_limit_warning = on_rate_limit_warning
        self.rate_limit: Optional[RateLimitInfo] = None
        self._session = session
        self._sleep = sleep
        self._clock = clock

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()

    # ── Request plumbing ────────────────────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"token {self.settings.pat}",
            "Accept": GITHUB_ACCEPT_HEADER,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": USER_AGENT,
        }

    def _repo_url(self, *parts: str) -> str:
        base = f"{self.api_url}/repos/{self.repo.owner}/{self.repo.repo}"
        if not parts:
            return base
        return base + "/" + "/".join(quote(str(part), safe="/") for part in parts)

    def _track_rate_limit(self, response: requests.Response) -> None:
        headers = response.headers
        if "x-ratelimit-remaining" not in headers:
            return
        try:
            info = RateLimitInfo(
                limit=int(headers.get("x-ratelimit-limit", 5000)),
                remaining=int(headers["x-ratelimit-remaining"]),
                reset=int(headers.get("x-ratelimit-reset", 0)),
                used=int(headers.get("x-ratelimit-used", 0)),
            )
        except ValueError:
            return
        self.rate_limit = info
        if info.remaining < self.low_rate_limit_threshold:
            logger.warning(
                "GitHub rate limit low: %d/%d requests remaining", info.remaining, info.limit
            )
            if self.on_rate_limit_warning is not None:
                self.on_rate_limit_warning(info)

    def _rate_limit_delay(self, response: requests.Response) -> float:
        retry_after = response.headers.get("retry-after")
        if retry_after and retry_after.isdigit():
            delay = float(retry_after)
        else:
            try:
                reset = float(response.headers.get("x-ratelimit-reset", 0))
            except ValueError:
                reset = 0.0
            delay = reset - self._clock()
        return min(max(delay, MIN_RATE_LIMIT_WAIT), self.max_rate_limit_wait)

    def _backoff_delay(self, attempt: int) -> float:
        return self.backoff_base * (2 ** attempt)

    def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Perform one logical request, retrying where it is safe.

        Rate-limited responses wait for the reset time; 5xx responses and
        network errors back off exponentially. Other failures raise at once.

        Raises:
            GitHubError: (or a subclass) when the request ultimately fails.
        """
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                response = self.session.request(
                    method,
                    url,
                    headers=self._headers(),
                    params=params,
                    json=json_body,
                    timeout=self.timeout,
                )
            except TRANSIENT_REQUEST_ERRORS as e:
                if is_last:
                    raise GitHubError(
                        f"Network error contacting GitHub: {e}",
                        category=ErrorCategory.NETWORK_ERROR,
                    ) from e
                delay = self._backoff_delay(attempt)
                logger.warning(
                    "GitHub network error attempt=%d/%d %s %s error=%s; retrying in %.1fs",
                    attempt + 1, attempts, method, url, e, delay,
                )
                self._sleep(delay)
                continue
            except requests.RequestException as e:
                raise GitHubError(
                    f"Network error contacting GitHub: {e}",
                    category=ErrorCategory.NETWORK_ERROR,
                ) from e

            self._track_rate_limit(response)

            if is_rate_limited(response):
                if is_last:
                    raise error_from_response(response)
                delay = self._rate_limit_delay(response)
                logger.warning(
                    "GitHub rate limited attempt=%d/%d %s %s; waiting %.1fs",
                    attempt + 1, attempts, method, url, delay,
                )
                self._sleep(delay)
                continue

            if response.status_code >= 500:
                if is_last:
                    raise error_from_response(response)
                delay = self._backoff_delay(attempt)
                logger.warning(
                    "GitHub request failed attempt=%d/%d status=%d %s %s; retrying in %.1fs",
                    attempt + 1, attempts, response.status_code, method, url, delay,
                )
                self._sleep(delay)
                continue

            if not response.ok:
                raise error_from_response(response)

            logger.debug("GitHub %s %s -> %d", method, url, response.status_code)
            return response

        # the loop always returns or raises on its last attempt
        raise GitHubError("Request was not attempted.", category=ErrorCategory.CLIENT_ERROR)

    def _json(self, response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GitHubError(
                f"GitHub returned a malformed response: {e}",
                category=ErrorCategory.CLIENT_ERROR,
                status=response.status_code,
            )

    def _paginate(self, url: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Collect every page of a list endpoint by following Link: rel="next"."""
        items: List[Any] = []
        query: Optional[Dict[str, Any]] = {"per_page": DEFAULT_PER_PAGE, **(params or {})}
        next_url: Optional[str] = url
        pages = 0
        while next_url and pages < DEFAULT_MAX_PAGES:
            response = self.request("GET", next_url, params=query)
            data = self._json(response)
            if not isinstance(data, list):
                raise GitHubError(
                    "Expected a list response from GitHub.",
                    category=ErrorCategory.CLIENT_ERROR,
                    status=response.status_code,
                )
            items.extend(data)
            pages += 1
            next_url = response.links.get("next", {}).get("url")
            # the next link already carries the query string
            query = None
        return items

    # ── Repository contents ─────────────────────────────────────────────────

    def get_file(self, path: Optional[str] = None) -> FileContent:
        """
        Fetch and decode a file from the repository.

        Args:
            path: Repository-relative path; defaults to settings.file_path.

        Raises:
            GitHubNotFoundError: If the file does not exist.
            GitHubError: If the path is not a file or is too large to fetch inline.
        """
        file_path = path or self.settings.file_path
        response = self.request("GET", self._repo_url("contents", file_path))
        data = self._json(response)
        if not isinstance(data, dict) or data.get("type") != "file":
            raise GitHubError(
                f"Path '{file_path}' is not a file.",
                category=ErrorCategory.CLIENT_ERROR,
                status=response.status_code,
            )
        # files over 1 MB come back with encoding "none" and no content
        encoding = data.get("encoding", "base64")
        if encoding != "base64":
            raise GitHubError(
                f"'{file_path}' is too large to fetch through the contents API "
                f"(encoding '{encoding}').",
                category=ErrorCategory.CLIENT_ERROR,
                status=response.status_code,
            )
        try:
            content = base64.b64decode(data.get("content") or "").decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise GitHubError(
                f"Could not decode '{file_path}': {e}",
                category=ErrorCategory.CLIENT_ERROR,
                status=response.status_code,
            )
        return FileContent(path=file_path, content=content, sha=data["sha"])

    def get_file_sha(self, path: Optional[str] = None) -> Optional[str]:
        """Current blob SHA of a file, or None if it does not exist."""
        try:
            return self.get_file(path).sha
        except GitHubNotFoundError:
            return None

    def put_file(
        self,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
    ) -> CommitResult:
        """
        Create or update a file in a single call.

        A stale or missing SHA for an existing file raises
        GitHubConflictError; it is never retried.
        """
        if not message or not message.strip():
            raise ValidationError("Commit message cannot be empty.")
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if sha:
            body["sha"] = sha
        response = self.request("PUT", self._repo_url("contents", path), json_body=body)
        data = self._json(response) or {}
        try:
            return CommitResult(
                path=path,
                content_sha=data["content"]["sha"],
                commit_sha=data["commit"]["sha"],
                html_url=data["commit"].get("html_url"),
            )
        except (KeyError, TypeError) as e:
            raise GitHubError(
                f"Unexpected response committing '{path}': missing {e}",
                category=ErrorCategory.CLIENT_ERROR,
                status=response.status_code,
            )

    def save_file(
        self,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
    ) -> CommitResult:
        """put_file, resolving the current SHA first when none is given."""
        if sha is None:
            sha = self.get_file_sha(path)
        return self.put_file(path, content, message, sha=sha)

    # ── Issues, pull requests, comments, commits ────────────────────────────

    def list_open_issues(self) -> List[GitHubIssue]:
        """Open issues, excluding pull requests."""
        raw = self._paginate(self._repo_url("issues"), {"state": "open"})
        return [
            GitHubIssue(
                number=issue["number"],
                title=issue.get("title", ""),
                state=issue.get("state", "open"),
                html_url=issue.get("html_url"),
                labels=[
                    label["name"] if isinstance(label, dict) else str(label)
                    for label in issue.get("labels", [])
                ],
            )
            for issue in raw
            if "pull_request" not in issue
        ]

    def list_open_pull_requests(self) -> List[PullRequest]:
        raw = self._paginate(self._repo_url("pulls"), {"state": "open"})
        return [
            PullRequest(
                number=pr["number"],
                title=pr.get("title", ""),
                user_login=(pr.get("user") or {}).get("login", ""),
                html_url=pr.get("html_url"),
                state=pr.get("state", "open"),
                created_at=pr.get("created_at"),
                updated_at=pr.get("updated_at"),
            )
            for pr in raw
        ]

    def get_pull_request(self, number: int) -> PullRequest:
        response = self.request("GET", self._repo_url("pulls", str(number)))
        pr = self._json(response) or {}
        return PullRequest(
            number=pr.get("number", number),
            title=pr.get("title", ""),
            user_login=(pr.get("user") or {}).get("login", ""),
            html_url=pr.get("html_url"),
            state=pr.get("state", "open"),
            created_at=pr.get("created_at"),
            updated_at=pr.get("updated_at"),
        )

    def list_pull_request_files(self, number: int) -> List[PullRequestFile]:
        raw = self._paginate(self._repo_url("pulls", str(number), "files"))
        return [
            PullRequestFile(
                filename=f["filename"],
                status=f.get("status", "modified"),
                additions=f.get("additions", 0),
                deletions=f.get("deletions", 0),
                changes=f.get("changes", 0),
            )
            for f in raw
        ]

    def post_comment(self, number: int, body: str) -> Dict[str, Any]:
        """
        Post a comment on a pull request (through the issues endpoint).

        Raises:
            ValidationError: If the body is empty or too long.
        """
        if not body or not body.strip():
            raise ValidationError("Comment body cannot be empty.")
        if len(body) > MAX_COMMENT_LENGTH:
            raise ValidationError(
                f"Comment body exceeds {MAX_COMMENT_LENGTH} characters."
            )
        response = self.request(
            "POST", self._repo_url("issues", str(number), "comments"), json_body={"body": body}
        )
        return self._json(response) or {}

    def list_recent_commits(
        self, since: Optional[datetime] = None, limit: int = DEFAULT_COMMIT_LIMIT
    ) -> List[Commit]:
        params: Dict[str, Any] = {"per_page": min(limit, DEFAULT_PER_PAGE)}
        if since is not None:
            params["since"] = since.isoformat()
        response = self.request("GET", self._repo_url("commits"), params=params)
        commits = []
        for raw in (self._json(response) or [])[:limit]:
            details = raw.get("commit") or {}
            author = details.get("author") or {}
            commits.append(Commit(
                sha=raw["sha"],
                message=details.get("message", ""),
                author_name=author.get("name"),
                author_email=author.get("email"),
                author_login=(raw.get("author") or {}).get("login"),
                date=author.get("date"),
                html_url=raw.get("html_url"),
            ))
        return commits

    def get_repository(self) -> Dict[str, Any]:
        return self._json(self.request("GET", self._repo_url())) or {}

    def test_connection(self) -> ConnectionReport:
        """Check the settings and report the token's permissions on the repository."""
        errors = self.settings.validation_errors()
        if errors:
            return ConnectionReport(success=False, message=" ".join(errors))
        try:
            repo = self.get_repository()
        except GitHubError as e:
            messages = {
                ErrorCategory.UNAUTHORIZED: "Invalid Personal Access Token.",
                ErrorCategory.NOT_FOUND: "Repository not found or no access.",
                ErrorCategory.FORBIDDEN: "Access forbidden. Check token permissions.",
            }
            return ConnectionReport(
                success=False,
                message=messages.get(e.category, f"Connection failed: {e.message}"),
            )
        permissions = repo.get("permissions") or {}
        return ConnectionReport(
            success=True,
            message=f"Connected to {repo.get('full_name', self.repo.full_name)}.",
            permissions={
                "read": bool(permissions.get("pull")),
                "write": bool(permissions.get("push")),
                "admin": bool(permissions.get("admin")),
            },
        )
