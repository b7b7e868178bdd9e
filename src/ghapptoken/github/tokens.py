"""
Create and revoke installation access tokens.

API: https://docs.github.com/en/rest/apps/apps#create-an-installation-access-token-for-an-app
API: https://docs.github.com/en/rest/apps/installations#revoke-an-installation-access-token
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from pydantic import ValidationError

from ghapptoken.core.errors import (
    GithubApiError,
    GithubConflictError,
    GithubError,
    GithubNotFoundError,
    GithubTransportError,
)
from ghapptoken.core.types import AccessToken, format_permissions
from ghapptoken.github.client.github_client import GitHubClient


def build_token_request(
    repositories: Sequence[str] = (),
    permissions: Optional[Mapping[str, str]] = None,
) -> dict:
    """Request body with ``repositories`` and ``permissions`` only when non-empty."""
    body: dict = {}
    if repositories:
        body["repositories"] = list(repositories)
    if permissions:
        body["permissions"] = dict(permissions)
    return body


@dataclass
class TokenIssuer:
    client: GitHubClient
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    async def issue(
        self,
        app_jwt: str,
        installation_id: int,
        repositories: Sequence[str] = (),
        permissions: Optional[Mapping[str, str]] = None,
    ) -> AccessToken:
        """
        Exchange the app JWT for a token of installation ``installation_id``.

        The token can be narrowed to ``repositories`` and downgraded to
        ``permissions``; GitHub rejects anything broader than the
        installation itself with a 422.
        """
        if repositories:
            self.logger.info(f"Creating installation token for repositories {', '.join(repositories)} with installation {installation_id}")
        else:
            self.logger.info(f"Creating installation token for owner with installation {installation_id}")

        body = build_token_request(repositories, permissions)
        path = f"/app/installations/{installation_id}/access_tokens"

        try:
            response = await self.client.post(path, app_jwt, body)
        except GithubApiError as api_error:
            raise _issue_error(api_error, installation_id, body) from api_error
        except GithubTransportError as transport_error:
            raise GithubTransportError(f"Failed to create installation token: {transport_error}") from transport_error

        try:
            access_token = AccessToken.model_validate(response.json())
        except (ValueError, ValidationError) as payload_error:
            raise GithubApiError(
                "Failed to create installation token: unexpected response payload",
                status_code=response.status_code,
            ) from payload_error

        self.logger.debug(f"Expires: {access_token.expires_at}")
        self.logger.info(f"Repository selection: {access_token.repository_selection}")
        self.logger.info(f"Permissions: {format_permissions(access_token.permissions)}")
        return access_token


@dataclass
class TokenRevoker:
    client: GitHubClient
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    async def revoke(self, token: str) -> bool:
        """
        Revoke ``token`` using the token itself as credential.

        Returns False instead of raising; revocation runs during cleanup and
        must not fail the job.
        """
        self.logger.info("Revoking GitHub App installation token")
        try:
            await self.client.delete("/installation/token", token)
        except GithubError as revoke_error:
            self.logger.warning(f"Error revoking token: {revoke_error}")
            return False
        return True


def _issue_error(api_error: GithubApiError, installation_id: int, body: dict) -> GithubApiError:
    if api_error.status_code == 404:
        return GithubNotFoundError(
            f"Installation ID {installation_id} not found. Please verify the installation ID is correct.",
            status_code=404,
            detail=api_error.detail,
        )

    if api_error.status_code == 422:
        message = api_error.detail or "The provided parameters are invalid"
        if "permissions" in body:
            message += " Please check the permissions. You can only downgrade app permissions."
        if "repositories" in body:
            message += (
                " Please check the repositories. You can only scope the token to the "
                "repositories that are already selected or exist."
            )
        return GithubConflictError(f"Invalid request: {message}", status_code=422, detail=api_error.detail)

    return GithubApiError(
        f"Failed to create installation token: {api_error}",
        status_code=api_error.status_code,
        detail=api_error.detail,
    )
