"""
JobAdder to internal record transformation.

Pure functions: given the same JobAdder payloads and the same `now` they
always produce the same record. Unknown enum values fall back to a default
and missing optional fields become empty collections, so a sparse record
never raises here.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from src.config import (
    ATS_SOURCE,
    DATA_RETENTION_DAYS,
    JOBADDER_DEFAULT_CURRENCY,
    JOBADDER_HOME_COUNTRY,
)
from src.models.enums import CandidateStatus, EmploymentType, JobStatus
from src.models.jobadder import (
    JobAdderAddress,
    JobAdderCandidate,
    JobAdderCandidateEducation,
    JobAdderCandidateExperience,
    JobAdderCandidatePlacement,
    JobAdderCandidateResume,
    JobAdderJob,
    JobAdderLocation,
)
from src.models.records import (
    ATSData,
    ATSReference,
    CandidateEducation,
    CandidateExperience,
    CandidatePlacement,
    InternalCandidate,
    InternalJob,
    Salary,
)
from src.utils.rich_text import convert_to_rich_text, slugify
from src.utils.text_extraction import (
    extract_achievements,
    extract_responsibilities,
    extract_skills,
    merge_unique,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Lookup tables
# =============================================================================

# Keys are lowercased; JobAdder uses both workType ("permanent") and the
# older employmentType spelling ("FullTime").
WORK_TYPE_MAP: dict[str, EmploymentType] = {
    "permanent": EmploymentType.FULL_TIME,
    "fulltime": EmploymentType.FULL_TIME,
    "full-time": EmploymentType.FULL_TIME,
    "parttime": EmploymentType.PART_TIME,
    "part-time": EmploymentType.PART_TIME,
    "contract": EmploymentType.CONTRACT,
    "temporary": EmploymentType.TEMPORARY,
    "casual": EmploymentType.TEMPORARY,
}
DEFAULT_WORK_TYPE = EmploymentType.FULL_TIME

JOB_STATUS_MAP: dict[str, JobStatus] = {
    "active": JobStatus.PUBLISHED,
    "open": JobStatus.PUBLISHED,
    "onhold": JobStatus.DRAFT,
    "draft": JobStatus.DRAFT,
    "filled": JobStatus.CLOSED,
    "cancelled": JobStatus.CLOSED,
    "closed": JobStatus.CLOSED,
}
DEFAULT_JOB_STATUS = JobStatus.CLOSED

CANDIDATE_STATUS_MAP: dict[str, CandidateStatus] = {
    "active": CandidateStatus.ACTIVE,
    "inactive": CandidateStatus.INACTIVE,
    "placed": CandidateStatus.PLACED,
}
DEFAULT_CANDIDATE_STATUS = CandidateStatus.ACTIVE

SALARY_PERIODS = {"annual", "hourly"}


def map_work_type(value: Optional[str]) -> EmploymentType:
    if not value:
        return DEFAULT_WORK_TYPE
    return WORK_TYPE_MAP.get(value.strip().lower(), DEFAULT_WORK_TYPE)


def map_job_status(value: Optional[str]) -> JobStatus:
    if not value:
        return DEFAULT_JOB_STATUS
    return JOB_STATUS_MAP.get(value.strip().lower(), DEFAULT_JOB_STATUS)


def map_candidate_status(value: Optional[str]) -> CandidateStatus:
    if not value:
        return DEFAULT_CANDIDATE_STATUS
    return CANDIDATE_STATUS_MAP.get(value.strip().lower(), DEFAULT_CANDIDATE_STATUS)


def _salary_period(value: Optional[str]) -> str:
    return value if value in SALARY_PERIODS else "annual"


# =============================================================================
# Shared helpers
# =============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_location(
    location: Optional[JobAdderLocation | JobAdderAddress],
    home_country: str = JOBADDER_HOME_COUNTRY,
) -> str:
    """
    Format a location as "city, state[, country]".

    The country is omitted when it is the home country. A location that
    only carries a display name falls back to that name.
    """
    if location is None:
        return ""

    country = location.country if location.country and location.country != home_country else None
    parts = [part for part in (location.city, location.state, country) if part]
    if parts:
        return ", ".join(parts)
    return getattr(location, "name", None) or ""


def _ats_data(source_id: str, reference: Optional[str], now: datetime) -> ATSData:
    return ATSData(
        source=ATS_SOURCE,
        source_id=source_id,
        source_reference=reference,
        last_synced=now.isoformat(),
        jobadder=ATSReference(id=source_id, reference=reference),
    )


# =============================================================================
# Jobs
# =============================================================================

def transform_job(job: JobAdderJob, tenant_id: str, now: Optional[datetime] = None) -> InternalJob:
    """
    Transform a JobAdder job into an internal job record.

    Args:
        job: Job as returned by the JobAdder API
        tenant_id: Owning tenant
        now: Sync timestamp (defaults to the current UTC time)

    Returns:
        InternalJob: Record ready for upsert
    """
    now = now or _utcnow()
    logger.debug(f"Transforming job {job.id} for tenant {tenant_id}")

    salary = job.salary
    return InternalJob(
        title=job.title or "",
        slug=slugify(job.title),
        description=convert_to_rich_text(job.description),
        location=format_location(job.location),
        type=map_work_type(job.work_type or job.employment_type),
        salary=Salary(
            min=salary.minimum if salary else None,
            max=salary.maximum if salary else None,
            currency=(salary.currency if salary and salary.currency else JOBADDER_DEFAULT_CURRENCY),
            period=_salary_period(salary.type if salary else None),
        ),
        apply_link=job.application_url,
        expiry_date=job.expiry_date,
        created_at=job.posted_date,
        status=map_job_status(job.status),
        tenant_id=tenant_id,
        ats_data=_ats_data(job.id, job.reference, now),
    )


# =============================================================================
# Candidates
# =============================================================================

def _transform_experience(exp: JobAdderCandidateExperience) -> CandidateExperience:
    # Structured lists from JobAdder win over text heuristics
    responsibilities = exp.responsibilities if exp.responsibilities is not None else extract_responsibilities(exp.description)
    achievements = exp.achievements if exp.achievements is not None else extract_achievements(exp.description)
    return CandidateExperience(
        job_title=exp.job_title or "",
        employer=exp.employer or "",
        start_date=exp.start_date,
        end_date=exp.end_date,
        is_current=bool(exp.is_current),
        description=exp.description,
        responsibilities=responsibilities,
        achievements=achievements,
    )


def _transform_education(edu: JobAdderCandidateEducation) -> CandidateEducation:
    return CandidateEducation(
        institution=edu.institution or "",
        qualification=edu.qualification or "",
        field=edu.field or "",
        start_date=edu.start_date,
        end_date=edu.end_date,
        is_completed=bool(edu.is_completed),
        description=edu.description,
    )


def _transform_placement(placement: JobAdderCandidatePlacement) -> CandidatePlacement:
    return CandidatePlacement(
        job_title=placement.job_title or "",
        employer=placement.employer or "",
        start_date=placement.start_date,
        end_date=placement.end_date,
        status=placement.status,
        feedback=placement.feedback,
        rating=placement.rating,
    )


def _candidate_work_types(work_types: Optional[list[str]]) -> list[EmploymentType]:
    if not work_types:
        return [DEFAULT_WORK_TYPE]
    mapped: list[EmploymentType] = []
    for work_type in work_types:
        value = map_work_type(work_type)
        if value not in mapped:
            mapped.append(value)
    return mapped


def transform_candidate(
    candidate: JobAdderCandidate,
    tenant_id: str,
    resume: Optional[JobAdderCandidateResume] = None,
    experiences: Optional[list[JobAdderCandidateExperience]] = None,
    education: Optional[list[JobAdderCandidateEducation]] = None,
    placements: Optional[list[JobAdderCandidatePlacement]] = None,
    now: Optional[datetime] = None,
    consent: bool = True,
) -> InternalCandidate:
    """
    Transform a JobAdder candidate and its sub-resources into an internal record.

    Sub-resources are optional: a candidate whose resume (or any other
    sub-resource) could not be fetched is transformed from what is available.
    Skills are the JobAdder skills followed by vocabulary skills found in the
    resume, deduplicated. The enrichment placeholder is always `pending`.
    """
    now = now or _utcnow()
    experiences = experiences or []
    education = education or []
    placements = placements or []
    logger.debug(f"Transforming candidate {candidate.id} for tenant {tenant_id}")

    resume_text = resume.content if resume and resume.content else None
    skills = merge_unique(candidate.skills, extract_skills(resume_text))

    current = next((exp for exp in experiences if exp.is_current), None)
    expectation = candidate.salary_expectation

    return InternalCandidate(
        first_name=candidate.first_name or "",
        last_name=candidate.last_name or "",
        email=candidate.email,
        phone=candidate.phone,
        status=map_candidate_status(candidate.status),
        resume=convert_to_rich_text(resume_text) if resume_text else None,
        skills=skills,
        experiences=[_transform_experience(exp) for exp in experiences],
        education=[_transform_education(edu) for edu in education],
        placements=[_transform_placement(p) for p in placements],
        current_job_title=candidate.current_job_title or (current.job_title if current else None),
        current_employer=candidate.current_employer or (current.employer if current else None),
        location=format_location(candidate.address) or None,
        work_rights=candidate.work_rights,
        availability=candidate.availability,
        salary_expectation=Salary(
            min=expectation.minimum,
            max=expectation.maximum,
            currency=expectation.currency or JOBADDER_DEFAULT_CURRENCY,
            period=_salary_period(expectation.period),
        ) if expectation else None,
        work_types=_candidate_work_types(candidate.work_types),
        preferred_locations=list(candidate.locations or []),
        tags=list(candidate.tags or []),
        source=candidate.source,
        created_at=candidate.created_at,
        updated_at=candidate.updated_at,
        tenant_id=tenant_id,
        ats_data=_ats_data(candidate.id, candidate.reference, now),
        data_usage_consent=consent,
        data_retention_date=(now + timedelta(days=DATA_RETENTION_DAYS)).isoformat(),
    )
