from collections import defaultdict, namedtuple

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ghapptoken.github.client.github_client import GitHubClient

BASE_URL = "https://api.github.com"
NOW = 1_700_000_000.0

RsaKeys = namedtuple("RsaKeys", ["private_pem", "public_pem"])


@pytest.fixture(scope="session")
def rsa_keys() -> RsaKeys:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return RsaKeys(private_pem, public_pem)


class FakeGitHub:
    """
    Canned GitHub API behind an httpx.MockTransport.

    Responses are queued per (method, path) and consumed in order; every
    request is recorded. An unexpected request fails the test.
    """

    def __init__(self):
        self.queues = defaultdict(list)
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def reply(self, method: str, path: str, status: int = 200, json=None, headers=None, text=None) -> "FakeGitHub":
        self.queues[(method, path)].append(
            lambda request: httpx.Response(status, json=json, text=text, headers=headers)
        )
        return self

    def fail_connection(self, method: str, path: str) -> "FakeGitHub":
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        self.queues[(method, path)].append(refuse)
        return self

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.queues.get((request.method, request.url.path))
        if not queue:
            raise AssertionError(f"unexpected request: {request.method} {request.url}")
        return queue.pop(0)(request)

    def client(self, **kwargs) -> GitHubClient:
        return GitHubClient(base_url=BASE_URL, transport=self.transport, **kwargs)


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


class RecordingSleep:
    """Async sleep replacement that records the requested delays."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
