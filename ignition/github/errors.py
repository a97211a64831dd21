"""
Mapping of GitHub responses to typed errors, and the remediation text
shown to users for each error category.
"""

from typing import Any

from ignition.exceptions import (
    ErrorCategory,
    GitHubConflictError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)

REMEDIATIONS = {
    ErrorCategory.UNAUTHORIZED: (
        "Authentication failed. Check that your Personal Access Token is "
        "correct and has not expired."
    ),
    ErrorCategory.FORBIDDEN: (
        "Your Personal Access Token (PAT) may not have the required 'repo' "
        "scope or access to this repository."
    ),
    ErrorCategory.NOT_FOUND: (
        "The repository or file was not found. Check the repository URL and "
        "file path, and that your token can access the repository."
    ),
    ErrorCategory.CONFLICT: (
        "The file on GitHub has changed since it was last loaded. Run "
        "'ignition github load' to get the latest version, then save again."
    ),
    ErrorCategory.UNPROCESSABLE: "GitHub rejected the request as invalid.",
    ErrorCategory.RATE_LIMITED: (
        "GitHub API rate limit exceeded. Wait for the limit to reset and try again."
    ),
    ErrorCategory.SERVER_ERROR: "GitHub is having problems right now. Try again later.",
    ErrorCategory.NETWORK_ERROR: (
        "Could not reach GitHub. Check your network connection and try again."
    ),
    ErrorCategory.CLIENT_ERROR: "The request to GitHub failed.",
}

_CATEGORY_ERRORS = {
    ErrorCategory.NOT_FOUND: GitHubNotFoundError,
    ErrorCategory.CONFLICT: GitHubConflictError,
    ErrorCategory.RATE_LIMITED: GitHubRateLimitError,
}


def remediation_for(error: GitHubError) -> str:
    return REMEDIATIONS.get(error.category, REMEDIATIONS[ErrorCategory.CLIENT_ERROR])


def is_rate_limited(response: Any) -> bool:
    """429, or 403 with no requests remaining."""
    if response.status_code == 429:
        return True
    return (
        response.status_code == 403
        and response.headers.get("x-ratelimit-remaining") == "0"
    )


def categorize(status: int, message: str = "", rate_limited: bool = False) -> ErrorCategory:
    if rate_limited:
        return ErrorCategory.RATE_LIMITED
    if status == 401:
        return ErrorCategory.UNAUTHORIZED
    if status == 403:
        return ErrorCategory.FORBIDDEN
    if status == 404:
        return ErrorCategory.NOT_FOUND
    if status == 409:
        return ErrorCategory.CONFLICT
    if status == 422:
        if "sha" in (message or "").lower():
            return ErrorCategory.CONFLICT
        return ErrorCategory.UNPROCESSABLE
    if status >= 500:
        return ErrorCategory.SERVER_ERROR
    return ErrorCategory.CLIENT_ERROR


def error_from_response(response: Any) -> GitHubError:
    """Build the typed GitHubError for a failed response."""
    status = response.status_code
    documentation_url = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or response.reason or ""
        documentation_url = body.get("documentation_url")
    else:
        message = response.reason or response.text or ""

    category = categorize(status, message, is_rate_limited(response))
    error_cls = _CATEGORY_ERRORS.get(category)
    text = f"GitHub API error ({status}): {message}".rstrip(": ")
    if error_cls is not None:
        return error_cls(text, status=status, documentation_url=documentation_url)
    return GitHubError(text, category=category, status=status, documentation_url=documentation_url)
