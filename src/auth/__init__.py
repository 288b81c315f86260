"""
Authentication module for the JobAdder integration.

Provides the JobAdder OAuth client and authentication exceptions.
"""

from src.auth.config import (
    JOBADDER_CLIENT_ID,
    JOBADDER_AUTH_URL,
    OAUTH_REDIRECT_URI,
)
from src.auth.exceptions import (
    AuthenticationError,
    InvalidTokenError,
)
from src.auth.jobadder_oauth import JobAdderOAuthClient

__all__ = [
    # Config
    "JOBADDER_CLIENT_ID",
    "JOBADDER_AUTH_URL",
    "OAUTH_REDIRECT_URI",
    # Exceptions
    "AuthenticationError",
    "InvalidTokenError",
    # Client
    "JobAdderOAuthClient",
]
