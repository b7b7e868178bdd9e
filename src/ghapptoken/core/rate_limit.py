from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional

from ghapptoken.core.constants import MAX_RATE_LIMIT_WAIT_SECONDS, RATE_LIMIT_BUFFER_SECONDS
from ghapptoken.core.errors import GithubRateLimitError


@dataclass(frozen=True)
class RateLimitStatus:
    """Rate limit headers of a single GitHub response."""
    remaining: Optional[int] = None
    reset_epoch: Optional[int] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitStatus":
        return cls(
            remaining=_int_header(headers, "x-ratelimit-remaining"),
            reset_epoch=_int_header(headers, "x-ratelimit-reset"),
        )

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    @property
    def reset_at(self) -> datetime | None:
        if self.reset_epoch is None:
            return None
        return datetime.fromtimestamp(self.reset_epoch, tz=timezone.utc)


@dataclass(frozen=True)
class RateLimitPolicy:
    """How long we are willing to wait for an exhausted rate limit to reset."""
    max_wait_seconds: float = MAX_RATE_LIMIT_WAIT_SECONDS
    buffer_seconds: float = RATE_LIMIT_BUFFER_SECONDS

    def wait_seconds(self, status: RateLimitStatus, now: float) -> float:
        """
        Seconds to sleep before the next request.

        Returns 0 when requests can continue right away. Raises
        GithubRateLimitError when the reset is further away than
        ``max_wait_seconds``.
        """
        if not status.exhausted or status.reset_epoch is None:
            return 0.0

        until_reset = status.reset_epoch - now
        if until_reset <= 0:
            return 0.0

        if until_reset > self.max_wait_seconds:
            reset_at = status.reset_at
            raise GithubRateLimitError(
                f"GitHub API rate limit exceeded. Rate limit resets at {reset_at.isoformat()}.",
                reset_at=reset_at,
                retry_after=until_reset,
            )

        return until_reset + self.buffer_seconds


def _int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
