"""
Record service - idempotent writes of synced jobs and candidates.

Shared by the webhook handler and the reconciliation sync so both paths
resolve (tenant_id, JobAdder id) to the same document.
"""
import logging
from typing import Any, Optional

from src.config import COLLECTION_CANDIDATES, COLLECTION_JOBS, COLLECTION_TENANTS
from src.models.enums import CandidateStatus, JobStatus
from src.models.records import InternalCandidate, InternalJob, UpsertResult
from src.repositories.document_store import DocumentStore

logger = logging.getLogger(__name__)


class RecordService:
    """Upserts and soft deletes on the document store."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_tenant(self, tenant_id: str) -> Optional[dict[str, Any]]:
        return await self.store.find_by_id(COLLECTION_TENANTS, tenant_id)

    async def list_enabled_tenants(self) -> list[dict[str, Any]]:
        """Tenants with the JobAdder integration switched on."""
        return await self.store.find(COLLECTION_TENANTS, {"features.jobadder": True})

    async def upsert_job(self, job: InternalJob) -> UpsertResult:
        result = await self.store.upsert(
            COLLECTION_JOBS,
            job.tenant_id,
            job.ats_data.source_id,
            job.model_dump(mode="json"),
        )
        logger.debug(
            f"{'Created' if result.created else 'Updated'} job {result.id} "
            f"(source {job.ats_data.source_id}, tenant {job.tenant_id})"
        )
        return result

    async def upsert_candidate(self, candidate: InternalCandidate) -> UpsertResult:
        result = await self.store.upsert(
            COLLECTION_CANDIDATES,
            candidate.tenant_id,
            candidate.ats_data.source_id,
            candidate.model_dump(mode="json"),
        )
        logger.debug(
            f"{'Created' if result.created else 'Updated'} candidate {result.id} "
            f"(source {candidate.ats_data.source_id}, tenant {candidate.tenant_id})"
        )
        return result

    async def _soft_delete(self, collection: str, tenant_id: str, source_id: str, status: str) -> Optional[str]:
        existing = await self.store.find_by_source_id(collection, tenant_id, source_id)
        if existing is None:
            logger.info(f"No {collection} record for source {source_id} (tenant {tenant_id}), nothing to delete")
            return None
        await self.store.update(collection, existing["id"], {"status": status})
        logger.info(f"Marked {collection} record {existing['id']} as {status}")
        return existing["id"]

    async def soft_delete_job(self, tenant_id: str, source_id: str) -> Optional[str]:
        """Close the job; returns its internal id, or None when it was never synced."""
        return await self._soft_delete(COLLECTION_JOBS, tenant_id, source_id, JobStatus.CLOSED.value)

    async def soft_delete_candidate(self, tenant_id: str, source_id: str) -> Optional[str]:
        """Deactivate the candidate; returns its internal id, or None when it was never synced."""
        return await self._soft_delete(COLLECTION_CANDIDATES, tenant_id, source_id, CandidateStatus.INACTIVE.value)
