"""
FastAPI dependency injection factories.

Services that hold in-process state (token refresh single-flight, webhook
delivery cache, scheduler) must be shared across requests, so they are
built once during app startup and registered here.
"""
import asyncpg
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from fastapi import Depends

from src.auth.jobadder_oauth import JobAdderOAuthClient
from src.config import SYNC_ADMIN_TOKEN, WEBHOOK_DEDUP_TTL_SECONDS
from src.database import get_db_pool
from src.repositories import (
    ConsentRepository,
    DataAccessLogRepository,
    DocumentStore,
    EnrichmentQueueRepository,
    PostgresDocumentStore,
)
from src.services import (
    JobAdderSyncService,
    JobAdderTokenService,
    JobAdderWebhookService,
    PrivacyService,
    ReconciliationScheduler,
    RecordService,
    Trigger,
)
from src.services.jobadder_client import JobAdderClient
from src.utils.delivery_cache import WebhookDeliveryCache


@dataclass
class SyncBackendServices:
    """Application-wide service instances."""
    store: DocumentStore
    records: RecordService
    privacy: PrivacyService
    token_service: JobAdderTokenService
    sync_service: JobAdderSyncService
    webhook_service: JobAdderWebhookService
    scheduler: ReconciliationScheduler


def build_services(
    store: DocumentStore,
    consent_repo: ConsentRepository,
    queue_repo: EnrichmentQueueRepository,
    access_log_repo: DataAccessLogRepository,
    oauth: Optional[JobAdderOAuthClient] = None,
    client_factory: Optional[Callable[[str, str], JobAdderClient]] = None,
    trigger: Optional[Trigger] = None,
    clock: Optional[Callable[[], datetime]] = None,
    delivery_cache: Optional[WebhookDeliveryCache] = None,
    webhook_secret: Optional[str] = None,
) -> SyncBackendServices:
    """Wire the services together and register the OAuth connect hooks."""
    clock_kwargs = {"clock": clock} if clock else {}

    records = RecordService(store)
    privacy = PrivacyService(consent_repo, queue_repo, access_log_repo)
    token_service = JobAdderTokenService(store, oauth=oauth, **clock_kwargs)
    sync_service = JobAdderSyncService(records, privacy, **clock_kwargs)

    webhook_kwargs = {"secret": webhook_secret} if webhook_secret is not None else {}
    webhook_service = JobAdderWebhookService(
        records,
        sync_service,
        privacy,
        token_service,
        delivery_cache=delivery_cache or WebhookDeliveryCache(ttl_seconds=WEBHOOK_DEDUP_TTL_SECONDS),
        client_factory=client_factory,
        **webhook_kwargs,
    )
    scheduler = ReconciliationScheduler(
        sync_service,
        token_service,
        records,
        trigger=trigger,
        client_factory=client_factory,
        **clock_kwargs,
    )

    # Order matters: the webhook must exist before the initial sync starts
    token_service.add_connect_hook("register_webhook", webhook_service.on_connect)
    token_service.add_connect_hook("initial_sync", scheduler.on_connect)

    return SyncBackendServices(
        store=store,
        records=records,
        privacy=privacy,
        token_service=token_service,
        sync_service=sync_service,
        webhook_service=webhook_service,
        scheduler=scheduler,
    )


def build_postgres_services(pool: asyncpg.Pool) -> SyncBackendServices:
    """Production wiring on top of the asyncpg pool."""
    return build_services(
        store=PostgresDocumentStore(pool),
        consent_repo=ConsentRepository(pool),
        queue_repo=EnrichmentQueueRepository(pool),
        access_log_repo=DataAccessLogRepository(pool),
    )


# Global service registry (set during app startup)
_services: Optional[SyncBackendServices] = None


def set_services(services: Optional[SyncBackendServices]):
    """Set the global service registry."""
    global _services
    _services = services


def get_services() -> SyncBackendServices:
    """Get the global service registry."""
    if _services is None:
        raise RuntimeError("Services not initialized. Call set_services() during app startup.")
    return _services


# =============================================================================
# Database Dependencies
# =============================================================================

async def get_pool() -> asyncpg.Pool:
    """Get the database connection pool."""
    return await get_db_pool()


# =============================================================================
# Service Dependencies
# =============================================================================

def get_token_service(services: SyncBackendServices = Depends(get_services)) -> JobAdderTokenService:
    return services.token_service


def get_webhook_service(services: SyncBackendServices = Depends(get_services)) -> JobAdderWebhookService:
    return services.webhook_service


def get_scheduler(services: SyncBackendServices = Depends(get_services)) -> ReconciliationScheduler:
    return services.scheduler


def get_sync_admin_token() -> str:
    """Bearer token guarding the manual sync endpoint."""
    return SYNC_ADMIN_TOKEN
