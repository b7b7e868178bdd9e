from ghapptoken.github.auth import create_app_jwt, create_identity_jwt
from ghapptoken.github.client.github_client import GitHubClient
from ghapptoken.github.client.proxy import ProxyConfig
from ghapptoken.github.installations import InstallationResolver
from ghapptoken.github.tokens import TokenIssuer, TokenRevoker, build_token_request

__all__ = [
    "create_app_jwt",
    "create_identity_jwt",
    "GitHubClient",
    "ProxyConfig",
    "InstallationResolver",
    "TokenIssuer",
    "TokenRevoker",
    "build_token_request",
]
