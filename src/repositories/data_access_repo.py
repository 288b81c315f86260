"""
Data access log repository - append-only audit trail of candidate data access.
"""
import asyncpg
import uuid


class DataAccessLogRepository:
    """Repository for the candidate data access log."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create(
        self,
        subject_id: str,
        access_type: str,
        actor_id: str = "system",
        tenant_id: str | None = None,
    ) -> uuid.UUID:
        """Append an access entry."""
        return await self.pool.fetchval(
            """
            INSERT INTO ats.candidate_data_access_log
            (subject_id, access_type, actor_id, tenant_id)
            VALUES ($1, $2, $3, $4)
            RETURNING id
            """,
            subject_id,
            access_type,
            actor_id,
            tenant_id,
        )

    async def list_for_subject(self, subject_id: str, limit: int = 100) -> list[asyncpg.Record]:
        """Access entries for one candidate, newest first."""
        return await self.pool.fetch(
            """
            SELECT id, subject_id, access_type, actor_id, tenant_id, accessed_at
            FROM ats.candidate_data_access_log
            WHERE subject_id = $1
            ORDER BY accessed_at DESC
            LIMIT $2
            """,
            subject_id,
            limit,
        )
