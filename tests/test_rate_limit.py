import pytest

from ghapptoken.core.errors import GithubRateLimitError
from ghapptoken.core.rate_limit import RateLimitPolicy, RateLimitStatus

NOW = 1_700_000_000


def test_status_from_headers():
    status = RateLimitStatus.from_headers({"x-ratelimit-remaining": "0", "x-ratelimit-reset": str(NOW)})
    assert status.exhausted
    assert status.reset_at.timestamp() == NOW


def test_missing_or_garbled_headers():
    status = RateLimitStatus.from_headers({"x-ratelimit-remaining": "lots"})
    assert status.remaining is None
    assert not status.exhausted
    assert status.reset_at is None


@pytest.mark.parametrize(
    "remaining,reset,expected",
    [
        (10, NOW + 120, 0),
        (0, NOW - 1, 0),
        (0, NOW, 0),
        (0, NOW + 1, 11),
        (0, NOW + 120, 130),
        (0, NOW + 300, 310),
    ],
)
def test_wait_seconds(remaining, reset, expected):
    status = RateLimitStatus(remaining=remaining, reset_epoch=reset)
    assert RateLimitPolicy().wait_seconds(status, NOW) == expected


def test_wait_beyond_bound_raises():
    status = RateLimitStatus(remaining=0, reset_epoch=NOW + 301)
    with pytest.raises(GithubRateLimitError) as exc_info:
        RateLimitPolicy().wait_seconds(status, NOW)
    assert exc_info.value.retry_after == 301


def test_exhausted_without_reset_does_not_wait():
    assert RateLimitPolicy().wait_seconds(RateLimitStatus(remaining=0), NOW) == 0
