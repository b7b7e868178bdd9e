import json

import pytest

from ghapptoken.core.errors import (
    GithubApiError,
    GithubConflictError,
    GithubNotFoundError,
    GithubTransportError,
)
from ghapptoken.github.client.github_client import GitHubClient
from ghapptoken.github.client.proxy import ProxyConfig
from ghapptoken.github.tokens import TokenIssuer, TokenRevoker, build_token_request

APP_JWT = "app.jwt"
TOKEN_RESPONSE = {
    "token": "ghs_mock_installation_token",
    "expires_at": "2024-01-01T13:00:00Z",
    "repository_selection": "selected",
    "permissions": {"contents": "read", "issues": "write"},
}


def _body(request) -> dict:
    return json.loads(request.content)


def test_request_body_omits_empty_values():
    assert build_token_request() == {}
    assert build_token_request([], {}) == {}
    assert build_token_request(["a"], None) == {"repositories": ["a"]}
    assert build_token_request([], {"contents": "read"}) == {"permissions": {"contents": "read"}}
    assert build_token_request(("a", "b"), {"issues": "write"}) == {
        "repositories": ["a", "b"],
        "permissions": {"issues": "write"},
    }


@pytest.mark.asyncio
async def test_issue_with_empty_body(fake_github):
    fake_github.reply("POST", "/app/installations/42/access_tokens", status=201, json=TOKEN_RESPONSE)

    token = await TokenIssuer(client=fake_github.client()).issue(APP_JWT, 42)

    assert token.token == "ghs_mock_installation_token"
    assert token.expires_at == "2024-01-01T13:00:00Z"
    request = fake_github.requests[0]
    assert _body(request) == {}
    assert request.headers["Authorization"] == "Bearer app.jwt"


@pytest.mark.asyncio
async def test_issue_scoped_to_repositories_and_permissions(fake_github):
    fake_github.reply("POST", "/app/installations/42/access_tokens", status=201, json=TOKEN_RESPONSE)

    await TokenIssuer(client=fake_github.client()).issue(
        APP_JWT, 42, ["octo-repo", "other"], {"contents": "read"}
    )

    assert _body(fake_github.requests[0]) == {
        "repositories": ["octo-repo", "other"],
        "permissions": {"contents": "read"},
    }


@pytest.mark.asyncio
async def test_installation_not_found(fake_github):
    fake_github.reply("POST", "/app/installations/42/access_tokens", status=404, json={"message": "Not Found"})

    with pytest.raises(GithubNotFoundError, match="Installation ID 42 not found"):
        await TokenIssuer(client=fake_github.client()).issue(APP_JWT, 42)


@pytest.mark.asyncio
async def test_unprocessable_request_with_hints(fake_github):
    fake_github.reply(
        "POST",
        "/app/installations/42/access_tokens",
        status=422,
        json={"message": "The permissions requested are not granted to this installation."},
    )

    with pytest.raises(GithubConflictError) as exc_info:
        await TokenIssuer(client=fake_github.client()).issue(APP_JWT, 42, ["octo-repo"], {"admin": "write"})

    message = str(exc_info.value)
    assert message.startswith("Invalid request: The permissions requested are not granted to this installation.")
    assert "You can only downgrade app permissions." in message
    assert "already selected or exist." in message


@pytest.mark.asyncio
async def test_unprocessable_request_without_scoping_has_no_hints(fake_github):
    fake_github.reply("POST", "/app/installations/42/access_tokens", status=422, json={"message": "Nope"})

    with pytest.raises(GithubConflictError) as exc_info:
        await TokenIssuer(client=fake_github.client()).issue(APP_JWT, 42)

    assert str(exc_info.value) == "Invalid request: Nope"


@pytest.mark.asyncio
async def test_other_failure(fake_github):
    fake_github.reply("POST", "/app/installations/42/access_tokens", status=500, json={"message": "boom"})

    with pytest.raises(GithubApiError, match="Failed to create installation token: .*boom") as exc_info:
        await TokenIssuer(client=fake_github.client()).issue(APP_JWT, 42)
    assert type(exc_info.value) is GithubApiError


@pytest.mark.asyncio
async def test_network_failure_on_issue(fake_github):
    fake_github.fail_connection("POST", "/app/installations/42/access_tokens")

    with pytest.raises(GithubTransportError, match="Failed to create installation token"):
        await TokenIssuer(client=fake_github.client()).issue(APP_JWT, 42)


@pytest.mark.asyncio
async def test_revoke_uses_token_as_credential(fake_github):
    fake_github.reply("DELETE", "/installation/token", status=204)

    assert await TokenRevoker(client=fake_github.client()).revoke("ghs_token") is True

    request = fake_github.requests[0]
    assert request.method == "DELETE"
    assert request.headers["Authorization"] == "Bearer ghs_token"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403, 404, 500, 503])
async def test_revoke_http_failure_returns_false(fake_github, status):
    fake_github.reply("DELETE", "/installation/token", status=status, json={"message": "nope"})

    assert await TokenRevoker(client=fake_github.client()).revoke("ghs_token") is False


@pytest.mark.asyncio
async def test_revoke_network_failure_returns_false(fake_github):
    fake_github.fail_connection("DELETE", "/installation/token")

    assert await TokenRevoker(client=fake_github.client()).revoke("ghs_token") is False


@pytest.mark.asyncio
async def test_unprocessable_request_without_message(fake_github):
    fake_github.reply("POST", "/app/installations/42/access_tokens", status=422)

    with pytest.raises(GithubConflictError) as exc_info:
        await TokenIssuer(client=fake_github.client()).issue(APP_JWT, 42, ["octo-repo"])

    assert str(exc_info.value) == (
        "Invalid request: The provided parameters are invalid Please check the repositories. "
        "You can only scope the token to the repositories that are already selected or exist."
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [{"text": "<html>proxy login</html>"}, {"json": {"expires_at": "soon"}}])
async def test_unexpected_token_payload(fake_github, reply):
    fake_github.reply("POST", "/app/installations/42/access_tokens", status=201, **reply)

    with pytest.raises(GithubApiError, match="Failed to create installation token: unexpected response payload"):
        await TokenIssuer(client=fake_github.client()).issue(APP_JWT, 42)


@pytest.mark.asyncio
async def test_revoke_with_unusable_proxy_returns_false():
    client = GitHubClient(proxy=ProxyConfig(url="proxy.corp:8080"))

    assert await TokenRevoker(client=client).revoke("ghs_token") is False
