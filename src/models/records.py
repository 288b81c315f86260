"""
Internal domain records produced by the transformation layer.

Jobs and candidates are persisted as documents keyed by
(tenant_id, ats_data.source_id).
"""
from typing import Any, Optional
from pydantic import BaseModel

from src.models.enums import (
    CandidateStatus,
    EmploymentType,
    EnrichmentStatus,
    JobStatus,
)


# =============================================================================
# Rich text
# =============================================================================

class RichTextLeaf(BaseModel):
    text: str


class RichTextBlock(BaseModel):
    type: str = "paragraph"
    version: int = 1
    format: str = "left"
    children: list[RichTextLeaf] = []


class RichTextRoot(BaseModel):
    type: str = "root"
    children: list[RichTextBlock] = []
    direction: str = "ltr"
    format: str = "left"
    indent: int = 0
    version: int = 1


class RichText(BaseModel):
    """Block document: one paragraph block per blank-line separated paragraph."""
    root: RichTextRoot = RichTextRoot()


# =============================================================================
# Shared bookkeeping
# =============================================================================

class ATSReference(BaseModel):
    id: str
    reference: Optional[str] = None


class ATSData(BaseModel):
    """Where a record came from and when it was last reconciled."""
    source: str
    source_id: str
    source_reference: Optional[str] = None
    last_synced: str
    jobadder: ATSReference


class Salary(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    currency: str
    period: str = "annual"


# =============================================================================
# Jobs
# =============================================================================

class InternalJob(BaseModel):
    title: str
    slug: str
    description: RichText
    location: str = ""
    type: EmploymentType = EmploymentType.FULL_TIME
    salary: Salary
    apply_link: Optional[str] = None
    expiry_date: Optional[str] = None
    created_at: Optional[str] = None
    status: JobStatus = JobStatus.DRAFT
    tenant_id: str
    ats_data: ATSData


# =============================================================================
# Candidates
# =============================================================================

class CandidateExperience(BaseModel):
    job_title: str
    employer: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: bool = False
    description: Optional[str] = None
    responsibilities: list[str] = []
    achievements: list[str] = []


class CandidateEducation(BaseModel):
    institution: str
    qualification: str
    field: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_completed: bool = False
    description: Optional[str] = None


class CandidatePlacement(BaseModel):
    job_title: str
    employer: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: Optional[str] = None
    feedback: Optional[str] = None
    rating: Optional[float] = None


class DataSharingPreferences(BaseModel):
    allow_internal_use: bool = True
    allow_anonymized_analytics: bool = True
    allow_third_party_sharing: bool = False
    specific_restrictions: list[str] = []


class AIEnrichment(BaseModel):
    """Placeholder filled in later by the enrichment worker."""
    status: EnrichmentStatus = EnrichmentStatus.PENDING
    last_processed: Optional[str] = None


class InternalCandidate(BaseModel):
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: CandidateStatus = CandidateStatus.ACTIVE
    resume: Optional[RichText] = None
    skills: list[str] = []
    experiences: list[CandidateExperience] = []
    education: list[CandidateEducation] = []
    placements: list[CandidatePlacement] = []
    current_job_title: Optional[str] = None
    current_employer: Optional[str] = None
    location: Optional[str] = None
    work_rights: Optional[str] = None
    availability: Optional[str] = None
    salary_expectation: Optional[Salary] = None
    work_types: list[EmploymentType] = []
    preferred_locations: list[str] = []
    tags: list[str] = []
    source: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    tenant_id: str
    ats_data: ATSData
    # Privacy and compliance
    data_usage_consent: bool = True
    data_retention_date: str
    data_sharing_preferences: DataSharingPreferences = DataSharingPreferences()
    ai_enrichment: AIEnrichment = AIEnrichment()


# =============================================================================
# Credentials
# =============================================================================

class TenantCredential(BaseModel):
    """OAuth token pair for one tenant's JobAdder connection."""
    tenant_id: str
    access_token: str
    refresh_token: str
    expires_at: str  # ISO-8601, UTC


# =============================================================================
# Sync statistics
# =============================================================================

class SyncStats(BaseModel):
    total: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: int = 0


class CandidateSyncStats(SyncStats):
    enriched: int = 0
    skipped: int = 0
    privacy_filtered: int = 0


class UpsertResult(BaseModel):
    """Outcome of an idempotent upsert."""
    id: str
    created: bool
    document: dict[str, Any] = {}
