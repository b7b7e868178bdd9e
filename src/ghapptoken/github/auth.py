from __future__ import annotations

import time

import jwt

from ghapptoken.core.constants import JWT_CLOCK_DRIFT, JWT_MAX_LIFETIME
from ghapptoken.core.errors import GithubJWTError
from ghapptoken.core.types import AppIdentity


def create_app_jwt(app_id: str, private_key: str | bytes, now: float | None = None) -> str:
    """
    Sign a short-lived JWT that authenticates as the GitHub App itself.

    ``app_id`` may be the numeric App ID or the app's client ID (preferred by
    GitHub). ``iat`` is backdated to absorb clock drift with GitHub's servers.
    """
    if not app_id:
        raise GithubJWTError("App ID or client ID is required to sign the app JWT")

    issued = int(time.time() if now is None else now)
    payload = {
        "iat": issued - JWT_CLOCK_DRIFT,
        "exp": issued + JWT_MAX_LIFETIME - JWT_CLOCK_DRIFT,
        "iss": app_id,
    }

    try:
        token = jwt.encode(payload, private_key, algorithm="RS256")
    except (jwt.PyJWTError, ValueError, TypeError, AttributeError) as sign_error:
        raise GithubJWTError(f"Failed to sign the app JWT: {sign_error}") from sign_error

    if isinstance(token, bytes):
        token = token.decode()
    return token


def create_identity_jwt(identity: AppIdentity, now: float | None = None) -> str:
    return create_app_jwt(identity.app_id, identity.private_key.get_secret_value(), now=now)
