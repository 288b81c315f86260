"""
Sync router - manually triggered JobAdder reconciliation.
"""
import hmac
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, ConfigDict, Field

from src.auth.exceptions import AuthenticationError
from src.dependencies import get_scheduler, get_sync_admin_token
from src.exceptions import ConfigError, ValidationError
from src.models.enums import SyncMode
from src.services import ReconciliationScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["Sync"])


class SyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: Optional[str] = Field(default=None, alias="tenantId")
    mode: SyncMode = SyncMode.SCHEDULED


def require_sync_admin(
    authorization: Optional[str] = Header(None),
    admin_token: str = Depends(get_sync_admin_token),
):
    """Check the Authorization: Bearer <SYNC_ADMIN_TOKEN> header."""
    if not admin_token:
        raise ConfigError("SYNC_ADMIN_TOKEN")
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip(), admin_token):
        raise AuthenticationError("Invalid sync token")


@router.post("/sync", dependencies=[Depends(require_sync_admin)])
async def trigger_sync(
    request: SyncRequest,
    scheduler: ReconciliationScheduler = Depends(get_scheduler),
):
    """
    Run a JobAdder sync now.

    - mode=initial: full sync for one tenant (tenantId required)
    - mode=scheduled with tenantId: delta sync for that tenant
    - mode=scheduled without tenantId: delta sync for every enabled tenant
    """
    logger.info(f"Manual {request.mode.value} sync requested (tenant={request.tenant_id or 'all'})")

    if request.mode == SyncMode.INITIAL:
        if not request.tenant_id:
            raise ValidationError("tenantId is required for an initial sync", field="tenantId")
        reports = [await scheduler.run_initial(request.tenant_id)]
    elif request.tenant_id:
        updated_since = (scheduler.clock() - scheduler.lookback).isoformat()
        reports = [await scheduler.sync_tenant(request.tenant_id, SyncMode.SCHEDULED, updated_since=updated_since)]
    else:
        reports = await scheduler.run_scheduled()

    return {
        "mode": request.mode.value,
        "completed_at": datetime.now(timezone.utc).isoformat(),
        "reports": [report.to_dict() for report in reports],
    }
