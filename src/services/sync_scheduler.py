"""
Reconciliation scheduler - periodic and on-demand JobAdder syncs.

Webhooks keep records current in near real time; the scheduler catches
whatever they missed by re-pulling everything updated within a lookback
window, for every tenant with the integration enabled.

Tenants are processed in their own tasks under a semaphore. One tenant
failing or hanging never stops the others, and a tenant is never synced
twice at the same time.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from src.config import (
    JOBADDER_INITIAL_SYNC_LIMIT,
    SYNC_INTERVAL_SECONDS,
    SYNC_LOOKBACK_HOURS,
    SYNC_MAX_CONCURRENCY,
)
from src.models.enums import SyncMode
from src.models.records import CandidateSyncStats, SyncStats
from src.services.jobadder_client import JobAdderClient
from src.services.record_service import RecordService
from src.services.sync_service import JobAdderSyncService
from src.services.token_service import JobAdderTokenService

logger = logging.getLogger(__name__)

# (tenant_id, access_token) -> client
ClientFactory = Callable[[str, str], JobAdderClient]

SKIP_NO_TOKEN = "no_access_token"
SKIP_ALREADY_RUNNING = "already_running"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Trigger(ABC):
    """Decides when the next scheduled run starts."""

    @abstractmethod
    async def wait(self) -> None:
        """Return when the next run is due."""


class IntervalTrigger(Trigger):
    """Fires every `interval_seconds`."""

    def __init__(self, interval_seconds: float = SYNC_INTERVAL_SECONDS, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.interval_seconds = interval_seconds
        self._sleep = sleep

    async def wait(self) -> None:
        await self._sleep(self.interval_seconds)


@dataclass
class TenantSyncReport:
    """What happened for one tenant during a sync run."""
    tenant_id: str
    mode: SyncMode
    jobs: Optional[SyncStats] = None
    candidates: Optional[CandidateSyncStats] = None
    error: Optional[str] = None
    skipped_reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.skipped_reason is None

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "mode": self.mode.value,
            "jobs": self.jobs.model_dump() if self.jobs else None,
            "candidates": self.candidates.model_dump() if self.candidates else None,
            "error": self.error,
            "skipped_reason": self.skipped_reason,
        }


class ReconciliationScheduler:
    """Runs initial and scheduled syncs across tenants."""

    def __init__(
        self,
        sync_service: JobAdderSyncService,
        token_service: JobAdderTokenService,
        records: RecordService,
        trigger: Optional[Trigger] = None,
        clock: Callable[[], datetime] = _utcnow,
        lookback_hours: int = SYNC_LOOKBACK_HOURS,
        max_concurrency: int = SYNC_MAX_CONCURRENCY,
        initial_limit: Optional[int] = JOBADDER_INITIAL_SYNC_LIMIT,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.sync_service = sync_service
        self.token_service = token_service
        self.records = records
        self.trigger = trigger or IntervalTrigger()
        self.clock = clock
        self.lookback = timedelta(hours=lookback_hours)
        self.initial_limit = initial_limit
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._client_factory = client_factory or self._default_client
        self._running: set[str] = set()
        self._loop_task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()

    def _default_client(self, tenant_id: str, access_token: str) -> JobAdderClient:
        return JobAdderClient(
            access_token,
            token_refresher=self.token_service.token_refresher(tenant_id, access_token),
        )

    # =========================================================================
    # Runs
    # =========================================================================

    async def sync_tenant(
        self,
        tenant_id: str,
        mode: SyncMode,
        updated_since: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> TenantSyncReport:
        """Sync jobs then candidates for one tenant. Never raises for tenant-level failures."""
        report = TenantSyncReport(tenant_id=tenant_id, mode=mode)

        if tenant_id in self._running:
            logger.info(f"Sync already running for tenant {tenant_id}, skipping")
            report.skipped_reason = SKIP_ALREADY_RUNNING
            return report

        self._running.add(tenant_id)
        try:
            access_token = await self.token_service.get_access_token(tenant_id)
            if not access_token:
                logger.warning(f"No access token for tenant {tenant_id}, skipping {mode.value} sync")
                report.skipped_reason = SKIP_NO_TOKEN
                return report

            async with self._client_factory(tenant_id, access_token) as client:
                report.jobs = await self.sync_service.sync_jobs(
                    client, tenant_id, updated_since=updated_since, limit=limit
                )
                report.candidates = await self.sync_service.sync_candidates(
                    client, tenant_id, updated_since=updated_since, limit=limit
                )
        except Exception as e:
            logger.error(f"{mode.value.capitalize()} sync failed for tenant {tenant_id}: {e}")
            report.error = str(e) or type(e).__name__
        finally:
            self._running.discard(tenant_id)

        return report

    async def run_initial(self, tenant_id: str, limit: Optional[int] = None) -> TenantSyncReport:
        """Full sync for a newly connected tenant, capped at `limit` records per resource."""
        logger.info(f"Starting initial JobAdder sync for tenant {tenant_id}")
        return await self.sync_tenant(
            tenant_id,
            SyncMode.INITIAL,
            limit=limit if limit is not None else self.initial_limit,
        )

    async def run_scheduled(self) -> list[TenantSyncReport]:
        """Delta sync for every enabled tenant."""
        tenants = await self.records.list_enabled_tenants()
        updated_since = (self.clock() - self.lookback).isoformat()
        logger.info(f"Starting scheduled JobAdder sync for {len(tenants)} tenants (updated_since={updated_since})")

        async def guarded(tenant_id: str) -> TenantSyncReport:
            async with self._semaphore:
                return await self.sync_tenant(tenant_id, SyncMode.SCHEDULED, updated_since=updated_since)

        reports = await asyncio.gather(*(guarded(str(tenant["id"])) for tenant in tenants))

        failed = sum(1 for r in reports if r.error)
        logger.info(f"Scheduled JobAdder sync completed: {len(reports)} tenants, {failed} failed")
        return list(reports)

    async def on_connect(self, tenant_id: str, access_token: str):
        """Connect hook: start the initial sync in the background."""
        task = asyncio.create_task(self.run_initial(tenant_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self):
        """Start the periodic loop on the running event loop."""
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._loop())
        logger.info("Reconciliation scheduler started")

    async def _loop(self):
        while True:
            await self.trigger.wait()
            try:
                await self.run_scheduled()
            except Exception as e:
                logger.error(f"Scheduled sync run failed: {e}")

    async def stop(self):
        """Cancel the loop and any in-flight syncs; each record write is atomic."""
        tasks = list(self._background)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._background.clear()
        logger.info("Reconciliation scheduler stopped")
