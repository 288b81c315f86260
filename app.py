"""
JobAdder sync backend - FastAPI application.

Run with:
    uvicorn app:app --host 0.0.0.0 --port 8080
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.config import SYNC_SCHEDULER_ENABLED
from src.database import close_db_pool, get_db_pool, run_schema_migrations
from src.dependencies import build_postgres_services, set_services
from src.exceptions import register_exception_handlers
from src.routers import health_router, oauth_router, sync_router, webhooks_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - pool, migrations, services and scheduler."""
    pool = await get_db_pool()
    await run_schema_migrations(pool)

    services = build_postgres_services(pool)
    set_services(services)

    if SYNC_SCHEDULER_ENABLED:
        services.scheduler.start()
    else:
        logger.info("Reconciliation scheduler disabled (SYNC_SCHEDULER_ENABLED=false)")

    yield

    # Cleanup on shutdown
    await services.scheduler.stop()
    set_services(None)
    await close_db_pool()


app = FastAPI(title="JobAdder Sync Backend", lifespan=lifespan)

register_exception_handlers(app)

app.include_router(health_router)
app.include_router(webhooks_router)
app.include_router(oauth_router)
app.include_router(sync_router)
