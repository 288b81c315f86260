"""
Health check router with database connectivity verification.
"""
import asyncpg
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.dependencies import get_pool

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(pool: asyncpg.Pool = Depends(get_pool)):
    """Health check endpoint with database connectivity verification.

    Returns 200 if the service and database are healthy.
    Returns 503 if the database is unreachable.
    """
    try:
        await pool.fetchval("SELECT 1")
        return {"status": "healthy", "service": "jobadder-sync-backend", "database": "connected"}
    except (asyncpg.PostgresError, OSError) as e:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": "jobadder-sync-backend", "database": str(e)}
        )
