"""
Authentication exceptions for the JobAdder OAuth flow.
"""
from typing import Any, Dict, Optional
from fastapi import status

from src.exceptions import SyncBackendException


class AuthenticationError(SyncBackendException):
    """Raised when a credential is invalid or cannot be refreshed."""

    def __init__(self, message: str = "Authentication required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, details)


class InvalidTokenError(AuthenticationError):
    """Raised when JobAdder rejects a token (or a token response is malformed)."""

    def __init__(self, message: str = "Invalid or malformed token", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
