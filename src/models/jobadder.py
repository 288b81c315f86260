"""
JobAdder API models.

Represents the data shape of the external JobAdder API. Field names follow
JobAdder's camelCase JSON; every model also accepts snake_case input.
Only `id` is required so a sparse record never fails to parse.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobAdderModel(BaseModel):
    """Base for JobAdder payloads: camelCase aliases, unknown fields kept."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )


class JobAdderLocation(JobAdderModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    name: Optional[str] = None


class JobAdderSalary(JobAdderModel):
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    type: Optional[str] = None  # "annual" | "hourly"
    currency: Optional[str] = None


class JobAdderCompany(JobAdderModel):
    id: Optional[str] = None
    name: Optional[str] = None


class JobAdderJob(JobAdderModel):
    """Job as represented in JobAdder."""
    id: str = Field(..., description="JobAdder job ID")
    reference: Optional[str] = None
    title: str = ""
    status: Optional[str] = None  # "active" | "filled" | "cancelled" (or Open/OnHold/...)
    location: Optional[JobAdderLocation] = None
    salary: Optional[JobAdderSalary] = None
    work_type: Optional[str] = None  # "permanent" | "contract" | "temporary"
    employment_type: Optional[str] = None  # legacy spelling: FullTime, PartTime, ...
    description: Optional[str] = None
    application_url: Optional[str] = None
    posted_date: Optional[str] = None
    expiry_date: Optional[str] = None
    updated_at: Optional[str] = None
    company: Optional[JobAdderCompany] = None


class JobAdderAddress(JobAdderModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class JobAdderSalaryExpectation(JobAdderModel):
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    currency: Optional[str] = None
    period: Optional[str] = None  # "annual" | "hourly"


class JobAdderCandidate(JobAdderModel):
    """Candidate as represented in JobAdder."""
    id: str = Field(..., description="JobAdder candidate ID")
    reference: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None  # "active" | "inactive" | "placed"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    skills: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    source: Optional[str] = None
    address: Optional[JobAdderAddress] = None
    work_rights: Optional[str] = None
    availability: Optional[str] = None
    current_job_title: Optional[str] = None
    current_employer: Optional[str] = None
    salary_expectation: Optional[JobAdderSalaryExpectation] = None
    work_types: Optional[list[str]] = None
    locations: Optional[list[str]] = None
    custom_fields: Optional[dict[str, Any]] = None


class JobAdderCandidateResume(JobAdderModel):
    """Resume attachment metadata plus its text content."""
    id: str
    candidate_id: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_at: Optional[str] = None
    url: Optional[str] = None
    content: Optional[str] = None


class JobAdderCandidateExperience(JobAdderModel):
    id: Optional[str] = None
    candidate_id: Optional[str] = None
    job_title: str = ""
    employer: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: bool = False
    description: Optional[str] = None
    responsibilities: Optional[list[str]] = None
    achievements: Optional[list[str]] = None


class JobAdderCandidateEducation(JobAdderModel):
    id: Optional[str] = None
    candidate_id: Optional[str] = None
    institution: str = ""
    qualification: str = ""
    field: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_completed: bool = False
    description: Optional[str] = None


class JobAdderPlacementSalary(JobAdderModel):
    amount: Optional[float] = None
    currency: Optional[str] = None
    period: Optional[str] = None


class JobAdderCandidatePlacement(JobAdderModel):
    id: Optional[str] = None
    candidate_id: Optional[str] = None
    job_id: Optional[str] = None
    job_title: str = ""
    employer: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: Optional[str] = None  # "active" | "completed" | "cancelled"
    salary: Optional[JobAdderPlacementSalary] = None
    feedback: Optional[str] = None
    rating: Optional[float] = None


class JobAdderTokenResponse(BaseModel):
    """Token endpoint response (authorization_code and refresh_token grants)."""
    access_token: str
    refresh_token: str
    expires_in: int = 3600
    token_type: str = "Bearer"


class JobAdderWebhookSubscription(JobAdderModel):
    """A webhook subscription registered with JobAdder."""
    id: str
    url: str
    events: list[str] = []
    metadata: dict[str, Any] = {}
