"""
Enums for the ATS sync backend.
"""
from enum import Enum


class JobStatus(str, Enum):
    """Internal job lifecycle status."""
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class EmploymentType(str, Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    TEMPORARY = "temporary"


class CandidateStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PLACED = "placed"


class EnrichmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class QueueStatus(str, Enum):
    """Status of an entry in the candidate enrichment queue."""
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"


class AccessType(str, Enum):
    """Kinds of candidate data access written to the audit log."""
    READ = "read"
    SYNC = "sync"
    WEBHOOK = "webhook"
    DELETE = "delete"


class SyncMode(str, Enum):
    INITIAL = "initial"
    SCHEDULED = "scheduled"


class WebhookEvent(str, Enum):
    JOB_CREATED = "job.created"
    JOB_UPDATED = "job.updated"
    JOB_DELETED = "job.deleted"
    CANDIDATE_CREATED = "candidate.created"
    CANDIDATE_UPDATED = "candidate.updated"
    CANDIDATE_DELETED = "candidate.deleted"
