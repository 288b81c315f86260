"""
OAuth router - connects a tenant to JobAdder.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, RedirectResponse

from src.config import ADMIN_URL
from src.exceptions import SyncBackendException
from src.dependencies import get_token_service
from src.services import JobAdderTokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/oauth/jobadder", tags=["OAuth"])

CONNECTED_MESSAGE = "message=JobAdder+connected+successfully"
CONNECT_FAILED_MESSAGE = "error=Failed+to+connect+JobAdder"


def _tenant_admin_url(tenant_id: Optional[str], query: str) -> str:
    if tenant_id:
        return f"{ADMIN_URL}/admin/collections/tenants/{tenant_id}?{query}"
    return f"{ADMIN_URL}/admin/collections/tenants?{query}"


@router.get("/authorize")
async def authorize(
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    service: JobAdderTokenService = Depends(get_token_service),
):
    """Redirect the admin user to JobAdder to grant access for a tenant."""
    if not tenant_id:
        return PlainTextResponse("Missing tenantId", status_code=400)

    try:
        url = service.get_authorization_url(tenant_id)
    except SyncBackendException as e:
        logger.error(f"Could not start JobAdder OAuth for tenant {tenant_id}: {e.message}")
        return RedirectResponse(_tenant_admin_url(tenant_id, CONNECT_FAILED_MESSAGE))

    return RedirectResponse(url)


@router.get("/callback")
async def callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    service: JobAdderTokenService = Depends(get_token_service),
):
    """
    Handle the redirect back from JobAdder.

    `state` carries the tenant id. Failures of the post-connect steps
    (webhook registration, initial sync) are logged but the tenant stays
    connected.
    """
    if not code or not state:
        return PlainTextResponse("Missing code or state", status_code=400)

    try:
        result = await service.handle_callback(code, state)
    except SyncBackendException as e:
        logger.error(f"JobAdder OAuth callback failed for tenant {state}: {e.message}")
        return RedirectResponse(_tenant_admin_url(state, CONNECT_FAILED_MESSAGE))

    for outcome in result.outcomes:
        if not outcome.ok:
            logger.warning(f"JobAdder connected for tenant {state} but {outcome.name} failed: {outcome.error}")

    return RedirectResponse(_tenant_admin_url(state, CONNECTED_MESSAGE))
