"""Exception types raised while minting and revoking installation tokens."""

from __future__ import annotations

from datetime import datetime


class GithubError(Exception):
    """Base exception for token lifecycle failures."""


class GithubConfigurationError(GithubError):
    """Raised when required configuration is missing."""


class GithubValidationError(GithubError):
    """Raised when caller input is rejected before any request is sent."""


class GithubJWTError(GithubError):
    """Raised when the app JWT cannot be signed with the given key."""


class GithubTransportError(GithubError):
    """Raised when the request never produced an HTTP response."""


class GithubRateLimitError(GithubError):
    """Raised when the rate limit resets too far in the future to wait for."""

    def __init__(self, message: str, reset_at: datetime | None = None, retry_after: float | None = None):
        super().__init__(message)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GithubApiError(GithubError):
    """Raised for a non-2xx response from the GitHub API."""

    def __init__(self, message: str, status_code: int | None = None, detail: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class GithubNotFoundError(GithubApiError):
    """Installation lookup returned 404 or the search found nothing."""


class GithubAuthError(GithubApiError):
    """The app JWT was rejected (401)."""


class GithubPermissionError(GithubApiError):
    """The app is not allowed to perform the request (403)."""


class GithubConflictError(GithubApiError):
    """Token request parameters were rejected (422)."""
