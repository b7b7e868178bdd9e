from __future__ import annotations

__version__ = "1.0.0"

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = f"ghapptoken/{__version__}"
API_VERSION = "2022-11-28"
ACCEPT_HEADER = "application/vnd.github.v3+json"

# =============================================================================
# JWT
# =============================================================================
# GitHub rejects app JWTs that expire more than 10 minutes after issue.
# =============================================================================

JWT_MAX_LIFETIME = 10 * 60
JWT_CLOCK_DRIFT = 60

# =============================================================================
# ENTERPRISE SEARCH
# =============================================================================

INSTALLATIONS_PAGE_SIZE = 100  # API maximum
RATE_LIMIT_BUFFER_SECONDS = 10
MAX_RATE_LIMIT_WAIT_SECONDS = 300

# =============================================================================
# PIPELINE VARIABLES
# =============================================================================

INSTALLATION_ID_OUTPUT_VARNAME = "installationId"
INSTALLATION_TOKEN_OUTPUT_VARNAME = "installationToken"
INSTALLATION_TOKEN_EXPIRES_OUTPUT_VARNAME = "installationTokenExpiresAt"
SKIP_TOKEN_TASK_VARNAME = "skipTokenRevoke"
BASE_URL_TASK_VARNAME = "baseUrl"

ACCOUNT_TYPE_USER = "user"
ACCOUNT_TYPE_ORG = "org"
ACCOUNT_TYPE_ENTERPRISE = "enterprise"
ACCOUNT_TYPES = (ACCOUNT_TYPE_ORG, ACCOUNT_TYPE_USER, ACCOUNT_TYPE_ENTERPRISE)

PERMISSION_LEVELS = ("read", "write", "admin")
