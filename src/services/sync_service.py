"""
JobAdder sync service - pulls jobs and candidates for one tenant.

Per-record failures are logged and counted; they never abort the batch.
Failures listing the records themselves (auth, network) propagate so the
scheduler can report the tenant as failed.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from src.exceptions import PartialFetchError
from src.models.enums import AccessType
from src.models.jobadder import (
    JobAdderCandidate,
    JobAdderCandidateEducation,
    JobAdderCandidateExperience,
    JobAdderCandidatePlacement,
    JobAdderCandidateResume,
    JobAdderJob,
)
from src.models.outcome import Outcome
from src.models.records import CandidateSyncStats, SyncStats, UpsertResult
from src.services.jobadder_client import JobAdderClient
from src.services.privacy_service import PrivacyService
from src.services.record_service import RecordService
from src.services.transform_service import transform_candidate, transform_job

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CandidateDetails:
    """Sub-resources of a candidate; anything that failed to load is empty."""
    resume: Optional[JobAdderCandidateResume] = None
    experiences: list[JobAdderCandidateExperience] = field(default_factory=list)
    education: list[JobAdderCandidateEducation] = field(default_factory=list)
    placements: list[JobAdderCandidatePlacement] = field(default_factory=list)
    failures: list[PartialFetchError] = field(default_factory=list)


@dataclass
class CandidateIngestResult:
    upsert: UpsertResult
    enrichment: Optional[Outcome]
    audit: Outcome
    partial_failures: list[PartialFetchError] = field(default_factory=list)


async def fetch_candidate_details(client: JobAdderClient, candidate_id: str) -> CandidateDetails:
    """
    Fetch resume, experiences, education and placements concurrently.

    Each call is independent: one failing leaves the others intact and is
    recorded as a PartialFetchError.
    """
    names = ("resume", "experiences", "education", "placements")
    results = await asyncio.gather(
        client.get_candidate_resume(candidate_id),
        client.get_candidate_experiences(candidate_id),
        client.get_candidate_education(candidate_id),
        client.get_candidate_placements(candidate_id),
        return_exceptions=True,
    )

    details = CandidateDetails()
    for name, result in zip(names, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            error = PartialFetchError(name, candidate_id, result)
            logger.warning(error.message)
            details.failures.append(error)
            continue
        if name == "resume":
            details.resume = result
        else:
            setattr(details, name, result or [])
    return details


class JobAdderSyncService:
    """Reconciles JobAdder jobs and candidates into the record store."""

    def __init__(
        self,
        records: RecordService,
        privacy: PrivacyService,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.records = records
        self.privacy = privacy
        self.clock = clock

    # =========================================================================
    # Single records (shared with the webhook handler)
    # =========================================================================

    async def ingest_job(self, job: JobAdderJob, tenant_id: str) -> UpsertResult:
        return await self.records.upsert_job(transform_job(job, tenant_id, now=self.clock()))

    async def ingest_candidate(
        self,
        client: JobAdderClient,
        candidate: JobAdderCandidate,
        tenant_id: str,
        access_type: AccessType = AccessType.SYNC,
        enrichment_enabled: bool = True,
    ) -> CandidateIngestResult:
        """
        Fetch sub-resources, transform, upsert, queue and audit one candidate.

        Callers must have passed the consent gate for this candidate.
        """
        details = await fetch_candidate_details(client, candidate.id)
        record = transform_candidate(
            candidate,
            tenant_id,
            resume=details.resume,
            experiences=details.experiences,
            education=details.education,
            placements=details.placements,
            now=self.clock(),
            consent=True,
        )
        upsert = await self.records.upsert_candidate(record)

        enrichment = None
        if enrichment_enabled:
            enrichment = await self.privacy.enqueue_for_enrichment(upsert.id, candidate.id, tenant_id)
        audit = await self.privacy.log_data_access(candidate.id, access_type, "system", tenant_id)
        return CandidateIngestResult(upsert, enrichment, audit, details.failures)

    # =========================================================================
    # Batches
    # =========================================================================

    async def sync_jobs(
        self,
        client: JobAdderClient,
        tenant_id: str,
        updated_since: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> SyncStats:
        """Sync JobAdder jobs (optionally only those updated since a cutoff)."""
        stats = SyncStats()
        started = time.monotonic()
        logger.info(f"Starting job sync for tenant {tenant_id} (updated_since={updated_since}, limit={limit})")

        async for job in client.iter_jobs(updated_since=updated_since, limit=limit):
            stats.total += 1
            try:
                result = await self.ingest_job(job, tenant_id)
                if result.created:
                    stats.created += 1
                else:
                    stats.updated += 1
            except Exception as e:
                logger.error(f"Error processing job {job.id} for tenant {tenant_id}: {e}")
                stats.errors += 1

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"Job sync completed for tenant {tenant_id} in {duration_ms}ms: {stats.model_dump()}")
        return stats

    async def sync_candidates(
        self,
        client: JobAdderClient,
        tenant_id: str,
        updated_since: Optional[str] = None,
        limit: Optional[int] = None,
        enrichment_enabled: bool = True,
        priority_only: bool = False,
    ) -> CandidateSyncStats:
        """
        Sync JobAdder candidates.

        Candidates without consent are counted as privacy_filtered and never
        written. A candidate whose sub-resources partly fail to load is still
        written from the data that did load. priority_only restricts the
        fetch to active candidates. Candidates whose enrichment could not be
        queued count as skipped.
        """
        stats = CandidateSyncStats()
        started = time.monotonic()
        status = "active" if priority_only else None
        logger.info(
            f"Starting candidate sync for tenant {tenant_id} "
            f"(updated_since={updated_since}, limit={limit}, priority_only={priority_only})"
        )

        async for candidate in client.iter_candidates(updated_since=updated_since, status=status, limit=limit):
            stats.total += 1
            try:
                if not await self.privacy.check_consent(tenant_id, candidate.id):
                    logger.info(f"Skipping candidate {candidate.id} for tenant {tenant_id}: no consent")
                    stats.privacy_filtered += 1
                    continue

                result = await self.ingest_candidate(
                    client, candidate, tenant_id, AccessType.SYNC, enrichment_enabled
                )
                if result.upsert.created:
                    stats.created += 1
                else:
                    stats.updated += 1

                if result.enrichment is None:
                    stats.skipped += 1
                elif result.enrichment.ok:
                    stats.enriched += 1
                else:
                    logger.warning(
                        f"Candidate {candidate.id} for tenant {tenant_id} not queued for enrichment: "
                        f"{result.enrichment.error}"
                    )
                    stats.skipped += 1
            except Exception as e:
                logger.error(f"Error processing candidate {candidate.id} for tenant {tenant_id}: {e}")
                stats.errors += 1

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"Candidate sync completed for tenant {tenant_id} in {duration_ms}ms: {stats.model_dump()}")
        return stats
