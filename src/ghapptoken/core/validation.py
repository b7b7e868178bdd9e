"""
Input validation that must happen before any request is sent.

Repository names end up in URL paths, so they are restricted to the
characters GitHub itself allows.
"""
from __future__ import annotations

import re

from ghapptoken.core.constants import ACCOUNT_TYPES, PERMISSION_LEVELS
from ghapptoken.core.errors import GithubValidationError

REPOSITORY_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_repository_name(repo: str) -> bool:
    return bool(REPOSITORY_NAME_PATTERN.fullmatch(repo or ""))


def ensure_repository_names(repositories: list[str]) -> None:
    """Raise GithubValidationError for the first invalid repository name."""
    for repo in repositories:
        if not validate_repository_name(repo):
            raise GithubValidationError(
                f"Invalid repository name format: {repo}. It can only contain "
                "ASCII letters, digits, and the characters ., -, and _"
            )


def validate_account_type(account_type: str) -> str:
    normalized = (account_type or "").strip().lower()
    if normalized not in ACCOUNT_TYPES:
        raise GithubValidationError(
            f"Invalid account type {account_type}. Must be one of: {', '.join(ACCOUNT_TYPES)}"
        )
    return normalized


def parse_repositories(value: str | None) -> list[str]:
    """Split a comma-separated repository list, dropping blanks."""
    if not value:
        return []
    return [repo.strip() for repo in value.split(",") if repo.strip()]


def parse_permissions(value: str | None) -> dict[str, str]:
    """
    Parse ``name=level`` (or ``name:level``) pairs separated by commas or newlines.

    Example: ``contents=read, issues=write``
    """
    permissions: dict[str, str] = {}
    if not value or not value.strip():
        return permissions

    for raw_entry in re.split(r"[,\n]", value):
        entry = raw_entry.strip()
        if not entry:
            continue

        name, separator, level = entry.partition("=")
        if not separator:
            name, separator, level = entry.partition(":")
        name = name.strip()
        level = level.strip().lower()

        if not separator or not name or not level:
            raise GithubValidationError(
                f"Invalid permission entry '{entry}'. Expected the form name=level"
            )
        if not re.fullmatch(r"[a-z_]+", name):
            raise GithubValidationError(f"Invalid permission name '{name}'")
        if level not in PERMISSION_LEVELS:
            raise GithubValidationError(
                f"Invalid permission level '{level}' for {name}. Must be one of: {', '.join(PERMISSION_LEVELS)}"
            )
        permissions[name] = level

    return permissions
