from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ghapptoken.core.constants import ACCEPT_HEADER, API_VERSION, DEFAULT_API_URL, USER_AGENT
from ghapptoken.core.errors import GithubApiError, GithubConfigurationError, GithubTransportError
from ghapptoken.github.client.proxy import ProxyConfig


@dataclass(frozen=True)
class GitHubClient:
    """
    Thin REST transport for the handful of App endpoints we call.

    Every request carries its own bearer credential (app JWT or installation
    token), so the client itself holds no secret. A fresh ``httpx.AsyncClient``
    is opened per request; ``transport`` lets tests swap the network out.
    """
    base_url: str = DEFAULT_API_URL
    proxy: Optional[ProxyConfig] = None
    timeout: float = 30
    transport: Optional[httpx.AsyncBaseTransport] = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__), compare=False)

    def __post_init__(self) -> None:
        if not self.base_url or not self.base_url.strip():
            raise GithubConfigurationError("GitHub API base URL is required")
        object.__setattr__(self, "base_url", self.base_url.strip().rstrip("/"))

    def headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": ACCEPT_HEADER,
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": API_VERSION,
        }

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _client_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"timeout": self.timeout}
        if self.transport is not None:
            options["transport"] = self.transport
        elif self.proxy is not None and self.proxy.has_proxy_configuration():
            options["proxy"] = self.proxy.proxy_url()
        return options

    async def request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send one request and return the response.

        Raises GithubTransportError when no response was received and
        GithubApiError for any non-2xx status.
        """
        url = self.url(path)
        self.logger.debug(f"{method} {url}")

        try:
            async with httpx.AsyncClient(**self._client_options()) as client:
                response = await client.request(method, url, headers=self.headers(token), json=json, params=params)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as http_error:
            # ValueError covers a proxy URL httpx cannot use
            raise GithubTransportError(str(http_error) or http_error.__class__.__name__) from http_error

        self.dump_headers(response.headers)

        if response.is_error:
            detail = error_detail(response)
            raise GithubApiError(
                f"Request failed with status code {response.status_code}: {detail or status_reason(response)}",
                status_code=response.status_code,
                detail=detail,
            )
        return response

    async def get(self, path: str, token: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        return await self.request("GET", path, token, params=params)

    async def post(self, path: str, token: str, body: dict) -> httpx.Response:
        return await self.request("POST", path, token, json=body)

    async def delete(self, path: str, token: str) -> httpx.Response:
        return await self.request("DELETE", path, token)

    def dump_headers(self, headers: httpx.Headers) -> None:
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        for name, value in headers.items():
            self.logger.debug(f"Header: {name} = {value}")


def error_detail(response: httpx.Response) -> str:
    """The ``message`` GitHub put in the error body, or an empty string."""
    try:
        body = response.json()
    except ValueError:
        return ""

    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return ""


def status_reason(response: httpx.Response) -> str:
    text = response.text.strip()
    if text:
        return text[:200]
    return response.reason_phrase or f"HTTP {response.status_code}"
