"""
Outbound proxy settings shared by every GitHub request.

On pipeline agents the proxy is published through ``AGENT_PROXY*``
environment variables, together with an optional bypass list.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import quote, urlsplit, urlunsplit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProxyConfig:
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def has_proxy_configuration(self) -> bool:
        return bool(self.url)

    def proxy_url(self) -> str | None:
        """Proxy URL with basic auth credentials embedded, if any were given."""
        if not self.url:
            return None
        if not (self.username and self.password):
            return self.url

        parts = urlsplit(self.url)
        credentials = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}"
        host = parts.hostname or ""
        if parts.port:
            host = f"{host}:{parts.port}"
        return urlunsplit((parts.scheme, f"{credentials}@{host}", parts.path, parts.query, parts.fragment))

    @classmethod
    def from_environment(
        cls,
        base_url: str,
        environ: Mapping[str, str] | None = None,
        log: logging.Logger | None = None,
    ) -> "ProxyConfig | None":
        """
        Build the proxy config from agent variables.

        Returns None when no proxy is configured or ``base_url`` matches the
        bypass list.
        """
        env = os.environ if environ is None else environ
        log = log or logger

        proxy_url = env.get("AGENT_PROXYURL", "").strip()
        if not proxy_url:
            log.info("No proxy configuration found")
            return None

        for pattern in _bypass_patterns(env.get("AGENT_PROXYBYPASSLIST", ""), log):
            try:
                bypassed = re.search(pattern, base_url, re.IGNORECASE)
            except re.error:
                log.warning(f"Ignoring invalid proxy bypass pattern: {pattern}")
                continue
            if bypassed:
                log.info(f"Proxy bypassed for {base_url}")
                return None

        username = env.get("AGENT_PROXYUSERNAME") or None
        password = env.get("AGENT_PROXYPASSWORD") or None
        if bool(username) != bool(password):
            log.warning("Ignoring proxy credentials: both username and password are required")
        log.info(
            f"Proxy configuration: proxyUrl={proxy_url}, "
            f"proxyUsername={'provided' if username else 'not provided'}"
        )
        return cls(url=proxy_url, username=username, password=password)


def _bypass_patterns(raw: str, log: logging.Logger) -> list[str]:
    if not raw.strip():
        return []
    try:
        patterns = json.loads(raw)
    except json.JSONDecodeError:
        log.warning("Ignoring proxy bypass list that is not a JSON array")
        return []
    if not isinstance(patterns, list):
        return []
    return [str(pattern) for pattern in patterns if pattern]
