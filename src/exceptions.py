"""
Custom exception classes and error handling.

This module provides custom exceptions and utilities for consistent
error handling across the application.
"""
from typing import Any, Dict, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse


class SyncBackendException(Exception):
    """Base exception for all sync backend errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigError(SyncBackendException):
    """Raised when required configuration is missing."""

    def __init__(self, setting: str, details: Optional[Dict[str, Any]] = None):
        message = f"{setting} is not configured"
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)
        self.setting = setting


class NotFoundError(SyncBackendException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, resource_id: str, details: Optional[Dict[str, Any]] = None):
        message = f"{resource} not found: {resource_id}"
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(SyncBackendException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)
        self.field = field


class SignatureError(SyncBackendException):
    """Raised when a webhook signature does not verify."""

    def __init__(self, message: str = "Invalid webhook signature", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, details)


class ExternalServiceError(SyncBackendException):
    """Raised when the external ATS answers with an unusable response."""

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY, details)
        self.upstream_status = upstream_status


class TransientNetworkError(ExternalServiceError):
    """Raised when network errors or 5xx responses outlast the retry limit."""

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, upstream_status, details)
        self.status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class PartialFetchError(SyncBackendException):
    """A candidate sub-resource could not be fetched. Never fatal for the candidate."""

    def __init__(self, resource: str, candidate_id: str, cause: Optional[BaseException] = None):
        message = f"Could not fetch {resource} for candidate {candidate_id}: {cause}"
        super().__init__(message, status.HTTP_502_BAD_GATEWAY, {"resource": resource})
        self.resource = resource
        self.candidate_id = candidate_id
        self.cause = cause


class PersistenceError(SyncBackendException):
    """Raised when a store write fails."""

    def __init__(self, message: str, collection: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)
        self.collection = collection


# =============================================================================
# Exception Handlers
# =============================================================================

async def sync_backend_exception_handler(request: Request, exc: SyncBackendException) -> JSONResponse:
    """Handle SyncBackendException instances."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "details": exc.details
        }
    )


def register_exception_handlers(app):
    """
    Register all custom exception handlers with the FastAPI app.

    Call this during app initialization:
        from src.exceptions import register_exception_handlers
        register_exception_handlers(app)
    """
    app.add_exception_handler(SyncBackendException, sync_backend_exception_handler)
