from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class AppIdentity(BaseModel):
    """App ID (or client ID) plus the PEM private key used to sign JWTs."""
    model_config = ConfigDict(frozen=True)

    app_id: str = Field(min_length=1)
    private_key: SecretStr


# =============================================================================
# SCOPES
# =============================================================================
# What the token is for. Exactly one scope is resolved per run.
# =============================================================================


class UserScope(BaseModel):
    kind: Literal["user"] = "user"
    owner: str


class OrganizationScope(BaseModel):
    kind: Literal["org"] = "org"
    owner: str


class EnterpriseScope(BaseModel):
    kind: Literal["enterprise"] = "enterprise"
    slug: str


class RepositoryScope(BaseModel):
    """
    One or more repositories of a single owner.

    Only the first repository is used to look up the installation; the whole
    list is sent when the token is created.
    """
    kind: Literal["repositories"] = "repositories"
    owner: str
    repositories: list[str] = Field(min_length=1)


Scope = Union[UserScope, OrganizationScope, EnterpriseScope, RepositoryScope]
ScopeDescriptor = Annotated[Scope, Field(discriminator="kind")]


# =============================================================================
# API PAYLOADS
# =============================================================================


class InstallationAccount(BaseModel):
    """User or organization (``login``) or enterprise (``slug``, ``name``)."""
    login: Optional[str] = None
    slug: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None

    @property
    def handle(self) -> str:
        return self.slug or self.login or ""


class InstallationRepository(BaseModel):
    name: str


class Installation(BaseModel):
    """Subset of the installation object GitHub returns."""
    id: int
    target_type: Optional[str] = None
    account: Optional[InstallationAccount] = None
    permissions: dict[str, str] = Field(default_factory=dict)
    repository_selection: Optional[str] = None
    app_id: Optional[Union[int, str]] = None
    client_id: Optional[str] = None
    app_slug: Optional[str] = None
    created_at: Optional[str] = None
    repositories: Optional[list[InstallationRepository]] = None

    def matches_app(self, app_id: str) -> bool:
        """True if either the numeric app ID or the client ID equals ``app_id``."""
        if self.app_id is not None and str(self.app_id) == app_id:
            return True
        return self.client_id is not None and self.client_id == app_id


class AccessToken(BaseModel):
    """Installation access token exactly as GitHub returned it."""
    token: str
    expires_at: str
    repository_selection: Optional[str] = None
    permissions: dict[str, str] = Field(default_factory=dict)


def format_permissions(permissions: dict[str, str] | None) -> str:
    return ", ".join(f"{name}={level}" for name, level in (permissions or {}).items())
