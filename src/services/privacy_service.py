"""
Privacy service - consent gate, enrichment queue and data access audit.
"""
import logging
from typing import Optional

from src.config import PRIVACY_ASSUME_CONSENT
from src.models.enums import AccessType
from src.models.outcome import Outcome
from src.repositories.consent_repo import ConsentRepository
from src.repositories.data_access_repo import DataAccessLogRepository
from src.repositories.enrichment_queue_repo import EnrichmentQueueRepository

logger = logging.getLogger(__name__)


class PrivacyService:
    """
    Guards candidate processing.

    No candidate is written or queued unless check_consent returned True.
    Queue and audit writes never raise; they return an Outcome.
    """

    def __init__(
        self,
        consent_repo: ConsentRepository,
        queue_repo: EnrichmentQueueRepository,
        access_log_repo: DataAccessLogRepository,
        assume_consent: bool = PRIVACY_ASSUME_CONSENT,
    ):
        self.consent_repo = consent_repo
        self.queue_repo = queue_repo
        self.access_log_repo = access_log_repo
        self.assume_consent = assume_consent

    async def check_consent(self, tenant_id: str, candidate_source_id: str) -> bool:
        """
        Whether the candidate may be processed.

        An explicit consent record wins; without one the configured default
        applies. Any lookup error means no consent.
        """
        try:
            consent: Optional[bool] = await self.consent_repo.get_consent(tenant_id, candidate_source_id)
        except Exception as e:
            logger.error(f"Consent lookup failed for candidate {candidate_source_id} (tenant {tenant_id}): {e}")
            return False

        if consent is None:
            return self.assume_consent
        return bool(consent)

    async def enqueue_for_enrichment(self, candidate_id: str, source_id: str, tenant_id: str) -> Outcome:
        """Queue (or re-queue as pending) a stored candidate for enrichment."""
        try:
            await self.queue_repo.enqueue(candidate_id, source_id, tenant_id)
        except Exception as e:
            logger.error(f"Could not queue candidate {candidate_id} (source {source_id}) for enrichment: {e}")
            return Outcome.failure("enrichment_queue", e)
        logger.debug(f"Queued candidate {candidate_id} for enrichment")
        return Outcome.success("enrichment_queue")

    async def log_data_access(
        self,
        subject_id: str,
        access_type: AccessType,
        actor_id: str = "system",
        tenant_id: Optional[str] = None,
    ) -> Outcome:
        """Append an audit entry for access to a candidate's data."""
        try:
            await self.access_log_repo.create(subject_id, access_type.value, actor_id, tenant_id)
        except Exception as e:
            logger.error(f"Could not log {access_type.value} access to candidate {subject_id}: {e}")
            return Outcome.failure("data_access_log", e)
        return Outcome.success("data_access_log")
