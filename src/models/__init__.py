"""
Pydantic models for the ATS sync backend.
"""
from .enums import (
    JobStatus,
    EmploymentType,
    CandidateStatus,
    EnrichmentStatus,
    QueueStatus,
    AccessType,
    SyncMode,
    WebhookEvent,
)
from .jobadder import (
    JobAdderJob,
    JobAdderCandidate,
    JobAdderCandidateResume,
    JobAdderCandidateExperience,
    JobAdderCandidateEducation,
    JobAdderCandidatePlacement,
    JobAdderTokenResponse,
    JobAdderWebhookSubscription,
)
from .records import (
    RichText,
    InternalJob,
    InternalCandidate,
    TenantCredential,
    SyncStats,
    CandidateSyncStats,
    UpsertResult,
)
from .webhook import (
    JobAdderWebhookPayload,
    PayloadValidation,
    parse_webhook_payload,
)
from .outcome import Outcome

__all__ = [
    # Enums
    "JobStatus",
    "EmploymentType",
    "CandidateStatus",
    "EnrichmentStatus",
    "QueueStatus",
    "AccessType",
    "SyncMode",
    "WebhookEvent",
    # JobAdder
    "JobAdderJob",
    "JobAdderCandidate",
    "JobAdderCandidateResume",
    "JobAdderCandidateExperience",
    "JobAdderCandidateEducation",
    "JobAdderCandidatePlacement",
    "JobAdderTokenResponse",
    "JobAdderWebhookSubscription",
    # Records
    "RichText",
    "InternalJob",
    "InternalCandidate",
    "TenantCredential",
    "SyncStats",
    "CandidateSyncStats",
    "UpsertResult",
    # Webhook
    "JobAdderWebhookPayload",
    "PayloadValidation",
    "parse_webhook_payload",
    # Outcome
    "Outcome",
]
