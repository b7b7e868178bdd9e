"""
Resolve which installation of the GitHub App a token should be minted for.

APIs:
- https://docs.github.com/en/rest/apps/apps#get-a-user-installation-for-the-authenticated-app
- https://docs.github.com/en/rest/apps/apps#get-an-organization-installation-for-the-authenticated-app
- https://docs.github.com/en/rest/apps/apps#get-a-repository-installation-for-the-authenticated-app
- https://docs.github.com/en/rest/apps/apps#list-installations-for-the-authenticated-app

Enterprises have no direct lookup endpoint, so enterprise installations are
found by paging through every installation of the app.
"""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

from pydantic import ValidationError

from ghapptoken.core.constants import INSTALLATIONS_PAGE_SIZE
from ghapptoken.core.errors import (
    GithubApiError,
    GithubAuthError,
    GithubNotFoundError,
    GithubPermissionError,
    GithubTransportError,
)
from ghapptoken.core.rate_limit import RateLimitPolicy, RateLimitStatus
from ghapptoken.core.types import (
    EnterpriseScope,
    Installation,
    OrganizationScope,
    RepositoryScope,
    Scope,
    UserScope,
    format_permissions,
)
from ghapptoken.core.validation import ensure_repository_names
from ghapptoken.github.client.github_client import GitHubClient


@dataclass
class InstallationResolver:
    client: GitHubClient
    app_id: str
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    clock: Callable[[], float] = time.time
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    rate_limit: RateLimitPolicy = field(default_factory=RateLimitPolicy)

    async def resolve(self, app_jwt: str, scope: Scope) -> int:
        installation = await self.resolve_installation(app_jwt, scope)
        return installation.id

    async def resolve_installation(self, app_jwt: str, scope: Scope) -> Installation:
        if isinstance(scope, EnterpriseScope):
            self.logger.info(f"Searching installation for enterprise {scope.slug}")
            return await self.find_enterprise_installation(app_jwt, enterprise=scope.slug)

        if isinstance(scope, RepositoryScope):
            # Names go into the URL path, reject them before any request is sent
            ensure_repository_names(scope.repositories)
            repo = scope.repositories[0]
            path = f"/repos/{scope.owner}/{repo}/installation"
            target = f"repository {scope.owner}/{repo}"
            not_found_hint = " and repository access"
        elif isinstance(scope, OrganizationScope):
            path = f"/orgs/{scope.owner}/installation"
            target = f"organization {scope.owner}"
            not_found_hint = ""
        elif isinstance(scope, UserScope):
            path = f"/users/{scope.owner}/installation"
            target = f"user {scope.owner}"
            not_found_hint = ""
        else:
            raise TypeError(f"Unsupported scope: {scope!r}")

        self.logger.info(f"Getting installation ID for {target}")

        try:
            response = await self.client.get(path, app_jwt)
        except GithubApiError as api_error:
            if api_error.status_code == 404:
                raise GithubNotFoundError(
                    f"GitHub App not found for {target}. Please verify the installation{not_found_hint}.",
                    status_code=404,
                    detail=api_error.detail,
                ) from api_error
            raise GithubApiError(
                f"Failed to get installation ID: {api_error}",
                status_code=api_error.status_code,
                detail=api_error.detail,
            ) from api_error
        except GithubTransportError as transport_error:
            raise GithubTransportError(f"Failed to get installation ID: {transport_error}") from transport_error

        try:
            installation = Installation.model_validate(response.json())
        except (ValueError, ValidationError) as payload_error:
            raise GithubApiError(
                "Failed to get installation ID: unexpected response payload",
                status_code=response.status_code,
            ) from payload_error
        self._log_installation(installation)
        return installation

    async def search_enterprise_installation(self, app_jwt: str) -> int:
        installation = await self.find_enterprise_installation(app_jwt)
        return installation.id

    async def find_enterprise_installation(self, app_jwt: str, enterprise: str | None = None) -> Installation:
        """
        Page through the app's installations and return the first enterprise
        installation whose app ID or client ID matches ``self.app_id``.
        """
        async with aclosing(self.iter_installations(app_jwt)) as pages:
            async for page in pages:
                for installation in page:
                    if installation.target_type != "Enterprise" or not installation.matches_app(self.app_id):
                        continue

                    handle = installation.account.handle if installation.account else ""
                    if enterprise and handle and handle.lower() != enterprise.lower():
                        self.logger.warning(f"Matched enterprise installation belongs to {handle}, not {enterprise}")
                    self.logger.info(f"Found enterprise installation {installation.id} for {handle or 'unknown enterprise'}")
                    self._log_installation(installation)
                    return installation

        raise GithubNotFoundError(
            f"GitHub App installation not found for app ID/client ID '{self.app_id}'. "
            "Please verify the app ID/client ID and enterprise installation.",
            status_code=None,
        )

    async def iter_installations(self, app_jwt: str) -> AsyncIterator[list[Installation]]:
        """
        Yield each page of ``GET /app/installations``.

        Pagination follows the ``rel="next"`` link only. Before the next page
        is requested an exhausted rate limit is waited out, or
        GithubRateLimitError is raised when the reset is too far away.
        """
        url: str | None = "/app/installations"
        params: dict | None = {"per_page": INSTALLATIONS_PAGE_SIZE, "page": 1}
        page_number = 1

        while url:
            self.logger.debug(f"Fetching installations page {page_number}")
            try:
                response = await self.client.get(url, app_jwt, params=params)
            except GithubApiError as api_error:
                raise _listing_error(api_error) from api_error
            except GithubTransportError as transport_error:
                raise GithubTransportError(f"Failed to list installations: {transport_error}") from transport_error

            try:
                page = _installations_page(response.json())
            except (ValueError, ValidationError) as payload_error:
                raise GithubApiError(
                    "Failed to list installations: unexpected response payload",
                    status_code=response.status_code,
                ) from payload_error
            yield page

            next_link = response.links.get("next")
            if not next_link or not next_link.get("url"):
                return

            wait = self.rate_limit.wait_seconds(RateLimitStatus.from_headers(response.headers), self.clock())
            if wait > 0:
                self.logger.warning(f"Rate limit exhausted, waiting {wait:.0f}s before fetching the next page")
                await self.sleep(wait)

            url = next_link["url"]
            params = None
            page_number += 1

    def _log_installation(self, installation: Installation) -> None:
        self.logger.info(f"Repository selection: {installation.repository_selection}")
        if installation.repository_selection == "selected" and installation.repositories:
            self.logger.info(f"Repositories count: {len(installation.repositories)}")
            self.logger.debug(f"Repositories: {', '.join(repo.name for repo in installation.repositories)}")
        self.logger.info(f"Permissions: {format_permissions(installation.permissions)}")
        self.logger.debug(f"App slug: {installation.app_slug}")
        self.logger.debug(f"Target type: {installation.target_type}")


def _installations_page(entries) -> list[Installation]:
    if not isinstance(entries, list):
        raise ValueError("installations payload is not a list")
    return [Installation.model_validate(entry) for entry in entries]


def _listing_error(api_error: GithubApiError) -> GithubApiError:
    if api_error.status_code == 401:
        return GithubAuthError(
            "GitHub App JWT authentication failed. Please verify the app credentials.",
            status_code=401,
            detail=api_error.detail,
        )
    if api_error.status_code == 403:
        return GithubPermissionError(
            "GitHub App does not have permission to list installations. Please verify the app permissions.",
            status_code=403,
            detail=api_error.detail,
        )
    return GithubApiError(
        f"Failed to list installations: {api_error}",
        status_code=api_error.status_code,
        detail=api_error.detail,
    )
