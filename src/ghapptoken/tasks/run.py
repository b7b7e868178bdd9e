"""
Main step: mint an installation access token.

1. Read and validate task inputs
2. Sign the app JWT
3. Resolve the installation for the requested scope
4. Create the installation token
5. Publish outputs and save state for the post step
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Awaitable, Callable, Mapping, Optional

import httpx
from pydantic import BaseModel

from ghapptoken.core import constants
from ghapptoken.core.config_models import TaskInputs, TokenRequestConfig, build_token_config
from ghapptoken.core.errors import GithubError
from ghapptoken.core.logging import get_logger
from ghapptoken.core.rate_limit import RateLimitPolicy
from ghapptoken.core.types import AccessToken
from ghapptoken.github.auth import create_identity_jwt
from ghapptoken.github.client.github_client import GitHubClient
from ghapptoken.github.client.proxy import ProxyConfig
from ghapptoken.github.installations import InstallationResolver
from ghapptoken.github.tokens import TokenIssuer
from ghapptoken.tasks import pipeline


class TokenResult(BaseModel):
    installation_id: int
    access_token: AccessToken


async def create_installation_token(
    config: TokenRequestConfig,
    client: GitHubClient,
    logger: logging.Logger,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> TokenResult:
    app_jwt = create_identity_jwt(config.identity, now=clock())
    logger.info("JWT token generated successfully")

    resolver = InstallationResolver(
        client=client,
        app_id=config.identity.app_id,
        logger=logger,
        clock=clock,
        sleep=sleep,
        rate_limit=RateLimitPolicy(max_wait_seconds=config.max_rate_limit_wait),
    )
    with pipeline.group("Get installation ID", logger):
        installation_id = await resolver.resolve(app_jwt, config.scope)
    logger.info(f"Found installation ID: {installation_id}")

    issuer = TokenIssuer(client=client, logger=logger)
    with pipeline.group("Create installation token", logger):
        access_token = await issuer.issue(app_jwt, installation_id, config.repositories, config.permissions)
    logger.info("Installation token generated successfully")

    return TokenResult(installation_id=installation_id, access_token=access_token)


def publish_outputs(result: TokenResult, config: TokenRequestConfig) -> None:
    token = result.access_token.token
    pipeline.set_variable(constants.INSTALLATION_ID_OUTPUT_VARNAME, str(result.installation_id))
    pipeline.set_variable(constants.INSTALLATION_TOKEN_OUTPUT_VARNAME, token, secret=True)
    pipeline.set_variable(constants.INSTALLATION_TOKEN_EXPIRES_OUTPUT_VARNAME, result.access_token.expires_at)

    # State for the post step
    pipeline.set_task_variable(constants.INSTALLATION_TOKEN_OUTPUT_VARNAME, token, secret=True)
    pipeline.set_task_variable(constants.SKIP_TOKEN_TASK_VARNAME, str(config.skip_token_revoke).lower())
    pipeline.set_task_variable(constants.BASE_URL_TASK_VARNAME, config.base_url)


def run(
    environ: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """Run the main step. Returns the process exit code."""
    env = os.environ if environ is None else environ
    logger = get_logger("run")

    try:
        inputs = TaskInputs.from_environment(env)
        with pipeline.group("Inputs", logger):
            for line in inputs.describe():
                logger.info(line)

        config = build_token_config(inputs, env, logger)
        proxy = ProxyConfig.from_environment(config.base_url, env, logger)
        client = GitHubClient(base_url=config.base_url, proxy=proxy, transport=transport, logger=get_logger("http"))

        result = asyncio.run(create_installation_token(config, client, logger, clock=clock, sleep=sleep))
    except GithubError as error:
        logger.error(str(error))
        pipeline.set_result_failed(str(error))
        return 1

    publish_outputs(result, config)
    return 0
