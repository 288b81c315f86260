"""
Database connection management and migrations.
"""
import asyncpg
import logging
from typing import Optional
from src.config import DATABASE_URL
from src.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Global connection pool
_db_pool: Optional[asyncpg.Pool] = None


async def get_db_pool() -> asyncpg.Pool:
    """Get or create the database connection pool.

    - setup callback validates connections on acquire
    - min_size=2 pre-warms connections to avoid cold start latency
    """
    global _db_pool
    if _db_pool is None:
        if not DATABASE_URL:
            raise ConfigError("DATABASE_URL")

        # Accept SQLAlchemy-style URLs too
        raw_url = DATABASE_URL.replace("postgresql+asyncpg://", "postgresql://")

        async def setup_connection(conn):
            """Validate connection on acquire."""
            await conn.execute("SELECT 1")

        _db_pool = await asyncpg.create_pool(
            raw_url,
            min_size=2,
            max_size=10,
            command_timeout=60,
            max_inactive_connection_lifetime=300.0,
            setup=setup_connection,
        )
        logger.info("Database connection pool created (min=2, max=10, idle_lifetime=300s)")
    return _db_pool


async def close_db_pool():
    """Close the database connection pool."""
    global _db_pool
    if _db_pool is not None:
        await _db_pool.close()
        _db_pool = None
        logger.info("Database connection pool closed")


async def run_schema_migrations(pool: asyncpg.Pool):
    """Create the ats schema, document table and privacy tables if missing."""
    try:
        await pool.execute("CREATE SCHEMA IF NOT EXISTS ats;")
        await pool.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")

        # Documents: tenants, jobs, candidates, credentials
        await pool.execute("""
            CREATE TABLE IF NOT EXISTS ats.documents (
                id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                collection  VARCHAR(100) NOT NULL,
                tenant_id   VARCHAR(255),
                source_id   VARCHAR(255),
                data        JSONB NOT NULL DEFAULT '{}'::jsonb,
                created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                CONSTRAINT uq_documents_tenant_source UNIQUE (collection, tenant_id, source_id)
            );
        """)
        await pool.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_data
            ON ats.documents USING GIN (data jsonb_path_ops);
        """)
        logger.info("Document table ensured")

        await pool.execute("""
            CREATE TABLE IF NOT EXISTS ats.candidate_consents (
                tenant_id            VARCHAR(255) NOT NULL,
                candidate_source_id  VARCHAR(255) NOT NULL,
                consent_given        BOOLEAN NOT NULL,
                created_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                PRIMARY KEY (tenant_id, candidate_source_id)
            );
        """)

        await pool.execute("""
            CREATE TABLE IF NOT EXISTS ats.candidate_enrichment_queue (
                candidate_id  VARCHAR(255) PRIMARY KEY,
                source_id     VARCHAR(255) NOT NULL,
                tenant_id     VARCHAR(255) NOT NULL,
                status        VARCHAR(20) NOT NULL DEFAULT 'pending'
                              CHECK (status IN ('pending', 'processing', 'done')),
                created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
        """)
        await pool.execute("""
            CREATE INDEX IF NOT EXISTS idx_enrichment_queue_status
            ON ats.candidate_enrichment_queue(status, created_at);
        """)

        # Append-only: rows are never updated or deleted by the application
        await pool.execute("""
            CREATE TABLE IF NOT EXISTS ats.candidate_data_access_log (
                id           UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                subject_id   VARCHAR(255) NOT NULL,
                access_type  VARCHAR(20) NOT NULL,
                actor_id     VARCHAR(255) NOT NULL DEFAULT 'system',
                tenant_id    VARCHAR(255),
                accessed_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
        """)
        await pool.execute("""
            CREATE INDEX IF NOT EXISTS idx_data_access_log_subject
            ON ats.candidate_data_access_log(subject_id, accessed_at DESC);
        """)
        logger.info("Privacy tables ensured")

        logger.info("Schema migrations completed")
    except asyncpg.PostgresError as e:
        logger.warning(f"Schema migration warning (may be ok if already done): {e}")
