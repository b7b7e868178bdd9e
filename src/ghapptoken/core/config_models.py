"""
Configuration models for the token task.

Pipeline task inputs arrive as ``INPUT_<NAME>`` environment variables. They
are validated here, combined with an optional GitHub App service connection,
and turned into the already-validated parameters the token flow needs.

Private key precedence:
1. Service connection
2. Inline certificate input
3. Certificate file path
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from ghapptoken.core.constants import (
    ACCOUNT_TYPE_ENTERPRISE,
    ACCOUNT_TYPE_ORG,
    ACCOUNT_TYPE_USER,
    DEFAULT_API_URL,
    MAX_RATE_LIMIT_WAIT_SECONDS,
)
from ghapptoken.core.errors import GithubConfigurationError
from ghapptoken.core.types import (
    AppIdentity,
    EnterpriseScope,
    OrganizationScope,
    RepositoryScope,
    Scope,
    ScopeDescriptor,
    UserScope,
)
from ghapptoken.core.validation import parse_permissions, parse_repositories, validate_account_type

# Input name -> model field
INPUT_FIELDS = {
    "OWNER": "owner",
    "ACCOUNTTYPE": "account_type",
    "APPCLIENTID": "app_client_id",
    "CERTIFICATE": "certificate",
    "CERTIFICATEFILE": "certificate_file",
    "REPOSITORIES": "repositories",
    "PERMISSIONS": "permissions",
    "GITHUBAPPCONNECTION": "github_app_connection",
    "SKIPTOKENREVOKE": "skip_token_revoke",
    "MAXRATELIMITWAIT": "max_rate_limit_wait",
}


def env_name(name: str) -> str:
    """Pipeline variable name -> environment variable name."""
    return name.replace(".", "_").replace(" ", "_").upper()


# =============================================================================
# TASK INPUTS
# =============================================================================


class TaskInputs(BaseModel):
    owner: str = ""
    account_type: str = ACCOUNT_TYPE_ORG
    app_client_id: Optional[str] = None
    certificate: Optional[SecretStr] = None
    certificate_file: Optional[str] = None
    repositories: list[str] = Field(default_factory=list)
    permissions: dict[str, str] = Field(default_factory=dict)
    github_app_connection: Optional[str] = None
    skip_token_revoke: bool = False
    max_rate_limit_wait: int = Field(default=MAX_RATE_LIMIT_WAIT_SECONDS, ge=0, le=3600)

    @field_validator("owner")
    @classmethod
    def strip_owner(cls, owner: str) -> str:
        return owner.strip()

    @field_validator("account_type", mode="before")
    @classmethod
    def normalize_account_type(cls, account_type: Optional[str]) -> str:
        return (account_type or ACCOUNT_TYPE_ORG).strip().lower()

    @field_validator("repositories", mode="before")
    @classmethod
    def split_repositories(cls, repositories: object) -> object:
        if isinstance(repositories, str):
            return parse_repositories(repositories)
        return repositories

    @field_validator("permissions", mode="before")
    @classmethod
    def split_permissions(cls, permissions: object) -> object:
        if isinstance(permissions, str):
            return parse_permissions(permissions)
        return permissions

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "TaskInputs":
        env = os.environ if environ is None else environ
        values = {}
        for input_name, field_name in INPUT_FIELDS.items():
            value = env.get(f"INPUT_{input_name}", "").strip()
            if value:
                values[field_name] = value

        try:
            return cls.model_validate(values)
        except ValidationError as validation_error:
            raise GithubConfigurationError(f"Invalid task inputs: {validation_error}") from validation_error

    def describe(self) -> list[str]:
        """Input summary safe to print; never includes key material."""
        return [
            f"App client ID: {self.app_client_id}",
            f"Connected Service Name: {self.github_app_connection}",
            f"Private Key Input: {'Provided' if self.certificate else 'Not Provided'}",
            f"Private Key Path: {self.certificate_file or ''}",
            f"Owner: {self.owner}",
            f"Account Type: {self.account_type}",
            f"Repositories List: {', '.join(self.repositories) if self.repositories else 'Not Provided'}",
            f"Permissions: {', '.join(f'{name}={level}' for name, level in self.permissions.items()) or 'Not Provided'}",
            f"Skip Token Revoke: {self.skip_token_revoke}",
        ]


# =============================================================================
# SERVICE CONNECTION
# =============================================================================


class ServiceConnection(BaseModel):
    """GitHub App service connection parameters exposed to the task."""
    name: str
    certificate: Optional[SecretStr] = None
    app_client_id: Optional[str] = None
    url: Optional[str] = None
    force_repo_scope: bool = False

    @classmethod
    def from_environment(cls, name: str, environ: Mapping[str, str] | None = None) -> "ServiceConnection":
        env = os.environ if environ is None else environ

        def parameter(key: str) -> str:
            return env.get(env_name(f"ENDPOINT_AUTH_PARAMETER_{name}_{key}"), "").strip()

        certificate = parameter("CERTIFICATE")
        app_client_id = parameter("APPCLIENTID")
        if not certificate and not app_client_id:
            raise GithubConfigurationError(f"Service connection {name} not found")

        return cls(
            name=name,
            certificate=certificate or None,
            app_client_id=app_client_id or None,
            url=parameter("URL") or None,
            force_repo_scope=parameter("FORCEREPOSCOPE").lower() == "true",
        )


# =============================================================================
# RESOLVED CONFIG
# =============================================================================


class Credentials(BaseModel):
    identity: AppIdentity
    base_url: str = DEFAULT_API_URL
    forced_repository: Optional[str] = None


class TokenRequestConfig(BaseModel):
    """Everything the token flow needs, already validated."""
    identity: AppIdentity
    base_url: str = DEFAULT_API_URL
    scope: ScopeDescriptor
    repositories: list[str] = Field(default_factory=list)
    permissions: dict[str, str] = Field(default_factory=dict)
    skip_token_revoke: bool = False
    max_rate_limit_wait: int = MAX_RATE_LIMIT_WAIT_SECONDS


def resolve_credentials(
    inputs: TaskInputs,
    environ: Mapping[str, str] | None = None,
    logger: logging.Logger | None = None,
) -> Credentials:
    """Pick the app ID, private key and API URL from the configured sources."""
    env = os.environ if environ is None else environ
    log = logger or logging.getLogger(__name__)

    base_url = DEFAULT_API_URL
    app_client_id = inputs.app_client_id
    private_key = ""
    forced_repository = None

    if inputs.github_app_connection:
        log.info("Using GitHub App service connection")
        connection = ServiceConnection.from_environment(inputs.github_app_connection, env)
        if connection.certificate:
            private_key = connection.certificate.get_secret_value()
        app_client_id = connection.app_client_id or app_client_id
        base_url = connection.url or base_url
        if connection.force_repo_scope:
            forced_repository = _forced_repository(env, log)
        log.info(f"Base URL: {base_url}")
        log.info(f"App ID from service connection: {app_client_id}")

    if not private_key and inputs.certificate:
        log.info("Using private key from certificate input")
        private_key = inputs.certificate.get_secret_value()

    if not private_key and inputs.certificate_file:
        log.info("Using private key certificate file")
        key_path = Path(inputs.certificate_file)
        if not key_path.is_file():
            raise GithubConfigurationError(f"Private key not found in the path: {inputs.certificate_file}")
        private_key = key_path.read_text(encoding="utf-8")

    if not private_key:
        raise GithubConfigurationError(
            "Private key not provided. Please configure either a GitHub App service connection, "
            "certificate input, or certificate file path."
        )

    if not app_client_id:
        raise GithubConfigurationError(
            "App ID not provided. Please configure either a GitHub App service connection or app ID input."
        )

    return Credentials(
        identity=AppIdentity(app_id=app_client_id, private_key=private_key),
        base_url=base_url,
        forced_repository=forced_repository,
    )


def build_token_config(
    inputs: TaskInputs,
    environ: Mapping[str, str] | None = None,
    logger: logging.Logger | None = None,
) -> TokenRequestConfig:
    log = logger or logging.getLogger(__name__)

    if not inputs.owner:
        raise GithubConfigurationError("Input required: owner")

    credentials = resolve_credentials(inputs, environ, log)

    repositories = list(inputs.repositories)
    if credentials.forced_repository:
        forced = credentials.forced_repository
        if not repositories:
            log.warning(f"Forcing repo scope to {forced}, even though no repositories were provided")
        elif repositories != [forced]:
            log.warning(f"Forcing repo scope to {forced}. Ignoring repositories input {', '.join(repositories)}")
        repositories = [forced]

    return TokenRequestConfig(
        identity=credentials.identity,
        base_url=credentials.base_url,
        scope=build_scope(inputs.owner, inputs.account_type, repositories),
        repositories=repositories,
        permissions=inputs.permissions,
        skip_token_revoke=inputs.skip_token_revoke,
        max_rate_limit_wait=inputs.max_rate_limit_wait,
    )


def build_scope(owner: str, account_type: str, repositories: list[str]) -> Scope:
    """
    Repositories win over the account type; the account type is only
    validated when no repositories were given.
    """
    if repositories:
        return RepositoryScope(owner=owner, repositories=repositories)

    account_type = validate_account_type(account_type)
    if account_type == ACCOUNT_TYPE_ENTERPRISE:
        return EnterpriseScope(slug=owner)
    if account_type == ACCOUNT_TYPE_USER:
        return UserScope(owner=owner)
    return OrganizationScope(owner=owner)


def _forced_repository(env: Mapping[str, str], log: logging.Logger) -> str | None:
    log.info("Forcing repo scope")
    provider = env.get("BUILD_REPOSITORY_PROVIDER", "")
    log.info(f"Repo Provider: {provider}")

    if provider.lower() != "github":
        raise GithubConfigurationError(
            f"Forcing repo scope is only supported for GitHub repositories. Repo provider is {provider}"
        )

    name_with_owner = env.get("BUILD_REPOSITORY_NAME", "")
    if not name_with_owner:
        return None
    repo = name_with_owner.split("/")[-1]
    log.info(f"Forcing repo scope to {repo}")
    return repo
