"""
Service layer for business logic.
"""
from .jobadder_client import JobAdderClient
from .transform_service import transform_job, transform_candidate
from .token_service import JobAdderTokenService, CallbackResult
from .privacy_service import PrivacyService
from .record_service import RecordService
from .sync_service import JobAdderSyncService, fetch_candidate_details
from .sync_scheduler import (
    ReconciliationScheduler,
    TenantSyncReport,
    Trigger,
    IntervalTrigger,
)
from .webhook_service import JobAdderWebhookService, WebhookResult

__all__ = [
    "JobAdderClient",
    "transform_job",
    "transform_candidate",
    "JobAdderTokenService",
    "CallbackResult",
    "PrivacyService",
    "RecordService",
    "JobAdderSyncService",
    "fetch_candidate_details",
    "ReconciliationScheduler",
    "TenantSyncReport",
    "Trigger",
    "IntervalTrigger",
    "JobAdderWebhookService",
    "WebhookResult",
]
