"""
Consent repository - candidate data processing consent records.
"""
import asyncpg
from typing import Optional


class ConsentRepository:
    """Read access to explicit candidate consent records."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get_consent(self, tenant_id: str, candidate_source_id: str) -> Optional[bool]:
        """
        Explicit consent for a candidate.

        Returns:
            True/False when a consent record exists, None otherwise
        """
        return await self.pool.fetchval(
            """
            SELECT consent_given
            FROM ats.candidate_consents
            WHERE tenant_id = $1 AND candidate_source_id = $2
            """,
            tenant_id,
            candidate_source_id,
        )

    async def set_consent(self, tenant_id: str, candidate_source_id: str, consent_given: bool) -> None:
        """Record (or change) a candidate's consent."""
        await self.pool.execute(
            """
            INSERT INTO ats.candidate_consents (tenant_id, candidate_source_id, consent_given)
            VALUES ($1, $2, $3)
            ON CONFLICT (tenant_id, candidate_source_id)
            DO UPDATE SET consent_given = EXCLUDED.consent_given, updated_at = NOW()
            """,
            tenant_id,
            candidate_source_id,
            consent_given,
        )
