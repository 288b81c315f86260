"""
API routers for endpoint organization.
"""
from .health import router as health_router
from .webhooks import router as webhooks_router
from .oauth import router as oauth_router
from .sync import router as sync_router

__all__ = [
    "health_router",
    "webhooks_router",
    "oauth_router",
    "sync_router",
]
