"""
Custom exceptions for the Ignition application.
"""

from enum import Enum
from typing import Optional


class IgnitionError(Exception):
    """Base exception for all Ignition-related errors."""
    pass


class ValidationError(IgnitionError):
    """Raised when validation fails for an item or operation."""
    pass


class NotFoundError(IgnitionError):
    """Raised when a requested item is not found."""
    pass


class DuplicateError(IgnitionError):
    """Raised when attempting to create a duplicate item."""
    pass


class ConfigurationError(IgnitionError):
    """Raised when there's a configuration or setup issue."""
    pass


class StorageError(IgnitionError):
    """Raised when a local file cannot be read or written."""
    pass


class AIGenerationError(IgnitionError):
    """Raised when the AI service is unavailable or returns unusable output."""
    pass


class ErrorCategory(str, Enum):
    """Classification of GitHub API failures."""

    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNPROCESSABLE = "unprocessable"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    CLIENT_ERROR = "client_error"


class GitHubError(IgnitionError):
    """Raised when a GitHub API call fails.

    Attributes:
        category: The ErrorCategory of the failure.
        status: HTTP status code, or None for network failures.
        documentation_url: Link returned by GitHub alongside the error, if any.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.CLIENT_ERROR,
        status: Optional[int] = None,
        documentation_url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.status = status
        self.documentation_url = documentation_url


class GitHubNotFoundError(GitHubError):
    """Raised when a repository, file or resource does not exist (404)."""

    def __init__(self, message: str, status: Optional[int] = 404, **kwargs) -> None:
        super().__init__(message, category=ErrorCategory.NOT_FOUND, status=status, **kwargs)


class GitHubConflictError(GitHubError):
    """Raised when a write is rejected because the blob SHA is stale."""

    def __init__(self, message: str, status: Optional[int] = 409, **kwargs) -> None:
        super().__init__(message, category=ErrorCategory.CONFLICT, status=status, **kwargs)


class GitHubRateLimitError(GitHubError):
    """Raised when the rate limit is still exhausted after all retries."""

    def __init__(self, message: str, status: Optional[int] = 429, **kwargs) -> None:
        super().__init__(message, category=ErrorCategory.RATE_LIMITED, status=status, **kwargs)
