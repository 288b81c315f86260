"""
Enrichment queue repository - hand-off point to the enrichment worker.
"""
import asyncpg


class EnrichmentQueueRepository:
    """Repository for the candidate enrichment queue."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def enqueue(self, candidate_id: str, source_id: str, tenant_id: str) -> None:
        """
        Queue a candidate for enrichment.

        One row per candidate; re-queueing resets the row to pending.
        """
        await self.pool.execute(
            """
            INSERT INTO ats.candidate_enrichment_queue
            (candidate_id, source_id, tenant_id, status, created_at, updated_at)
            VALUES ($1, $2, $3, 'pending', NOW(), NOW())
            ON CONFLICT (candidate_id)
            DO UPDATE SET
                source_id = EXCLUDED.source_id,
                status = 'pending',
                updated_at = NOW()
            """,
            candidate_id,
            source_id,
            tenant_id,
        )

    async def list_pending(self, limit: int = 50) -> list[asyncpg.Record]:
        """Oldest pending entries first."""
        return await self.pool.fetch(
            """
            SELECT candidate_id, source_id, tenant_id, status, created_at, updated_at
            FROM ats.candidate_enrichment_queue
            WHERE status = 'pending'
            ORDER BY created_at
            LIMIT $1
            """,
            limit,
        )
