"""
Post step: revoke the token minted by the main step.

Revocation is cleanup, so this step never fails the job.
"""
from __future__ import annotations

import asyncio
import os
from typing import Mapping, Optional

import httpx

from ghapptoken.core import constants
from ghapptoken.core.errors import GithubError
from ghapptoken.core.logging import get_logger
from ghapptoken.github.client.github_client import GitHubClient
from ghapptoken.github.client.proxy import ProxyConfig
from ghapptoken.github.tokens import TokenRevoker
from ghapptoken.tasks import pipeline


def run_post(
    environ: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    env = os.environ if environ is None else environ
    logger = get_logger("post")

    skip_token_revoke = (pipeline.get_task_variable(constants.SKIP_TOKEN_TASK_VARNAME, env) or "false").lower() == "true"
    base_url = pipeline.get_task_variable(constants.BASE_URL_TASK_VARNAME, env) or constants.DEFAULT_API_URL

    logger.info("GitHub App token revocation post-execution started")
    logger.info(f"skipTokenRevoke: {skip_token_revoke}")
    logger.info(f"baseUrl: {base_url}")

    if skip_token_revoke:
        logger.info("Token revocation skipped as specified by skipTokenRevoke input")
        return 0

    token = pipeline.get_task_variable(constants.INSTALLATION_TOKEN_OUTPUT_VARNAME, env)
    if not token:
        logger.info("No installation token found in saved state to revoke token.")
        return 0

    try:
        proxy = ProxyConfig.from_environment(base_url, env, logger)
        client = GitHubClient(base_url=base_url, proxy=proxy, transport=transport, logger=get_logger("http"))
        revoked = asyncio.run(TokenRevoker(client=client, logger=logger).revoke(token))
    except GithubError as error:
        logger.error(f"Error in post-execution: {error}")
        return 0
    except Exception as error:
        logger.error(f"Unexpected error in post-execution: {error!r}")
        return 0

    if revoked:
        logger.info("GitHub App installation token has been successfully revoked")
    else:
        logger.warning("Failed to revoke GitHub App installation token")
    return 0
