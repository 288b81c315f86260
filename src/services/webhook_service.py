"""
JobAdder webhook service - ingestion of pushed job and candidate events.

A delivery moves through validate -> verify signature -> resolve tenant ->
obtain token -> fetch resource -> transform -> upsert. Every step can end
the request early with an HTTP status; handle() always returns a result
and never raises, so JobAdder always gets an answer.

Deliveries are at-least-once. Upserts are idempotent, and recently
processed deliveries are additionally short-circuited via a TTL cache.
A webhookId names the subscription, not the delivery, so the cache key
also carries a digest of the raw body.
"""
import hashlib
import hmac
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from src.config import (
    ENVIRONMENT,
    JOBADDER_WEBHOOK_EVENTS,
    JOBADDER_WEBHOOK_SECRET,
    JOBADDER_WEBHOOK_URL,
)
from src.exceptions import NotFoundError, SignatureError
from src.models.enums import AccessType, WebhookEvent
from src.models.jobadder import JobAdderWebhookSubscription
from src.models.webhook import JobAdderWebhookPayload, parse_webhook_payload
from src.services.jobadder_client import JobAdderClient
from src.services.privacy_service import PrivacyService
from src.services.record_service import RecordService
from src.services.sync_service import JobAdderSyncService
from src.services.token_service import JobAdderTokenService
from src.utils.delivery_cache import WebhookDeliveryCache

logger = logging.getLogger(__name__)

# (tenant_id, access_token) -> client
ClientFactory = Callable[[str, str], JobAdderClient]


@dataclass(frozen=True)
class WebhookResult:
    status_code: int
    message: str


def delivery_key(payload: JobAdderWebhookPayload, raw_body: bytes) -> Optional[str]:
    """Cache key of one exact delivery, or None when the payload has no webhookId."""
    if not payload.webhook_id:
        return None
    return f"{payload.webhook_id}:{hashlib.sha256(raw_body).hexdigest()}"


class JobAdderWebhookService:
    """Handles JobAdder webhook deliveries and webhook registration."""

    def __init__(
        self,
        records: RecordService,
        sync_service: JobAdderSyncService,
        privacy: PrivacyService,
        token_service: JobAdderTokenService,
        delivery_cache: Optional[WebhookDeliveryCache] = None,
        secret: str = JOBADDER_WEBHOOK_SECRET,
        environment: str = ENVIRONMENT,
        webhook_url: str = JOBADDER_WEBHOOK_URL,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.records = records
        self.sync_service = sync_service
        self.privacy = privacy
        self.token_service = token_service
        self.delivery_cache = delivery_cache or WebhookDeliveryCache(ttl_seconds=0)
        self.secret = secret
        self.environment = environment
        self.webhook_url = webhook_url
        self._client_factory = client_factory or self._default_client

    def _default_client(self, tenant_id: str, access_token: str) -> JobAdderClient:
        return JobAdderClient(
            access_token,
            token_refresher=self.token_service.token_refresher(tenant_id, access_token),
        )

    # =========================================================================
    # Signature
    # =========================================================================

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """
        Verify the hex HMAC-SHA256 of the raw body against the signature header.

        Without a configured secret verification is skipped outside
        production, and every delivery is rejected in production.
        """
        if not self.secret:
            if self.environment == "production":
                logger.error("JOBADDER_WEBHOOK_SECRET not set in production, rejecting webhook")
                return False
            logger.warning("JOBADDER_WEBHOOK_SECRET not set, skipping signature validation")
            return True

        if not signature:
            logger.warning("No X-JobAdder-Signature header provided")
            return False

        provided = signature.strip().lower()
        if provided.startswith("sha256="):
            provided = provided[len("sha256="):]
        expected = hmac.new(self.secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(provided, expected):
            logger.warning(f"SECURITY: JobAdder webhook signature mismatch ({len(raw_body)} byte body)")
            return False
        return True

    def check_signature(self, raw_body: bytes, signature: Optional[str]):
        """Raise SignatureError unless the delivery verifies."""
        if not self.verify_signature(raw_body, signature):
            raise SignatureError()

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def handle(self, raw_body: bytes, signature: Optional[str]) -> WebhookResult:
        """Process one webhook delivery."""
        request_id = uuid.uuid4().hex[:12]
        started = time.monotonic()
        tenant_id: Optional[str] = None
        event: Optional[str] = None

        def done(status_code: int, message: str) -> WebhookResult:
            duration_ms = int((time.monotonic() - started) * 1000)
            log = logger.info if status_code < 400 else logger.warning
            log(f"[{request_id}] Webhook {event or '-'} tenant={tenant_id or '-'} -> {status_code} {message} ({duration_ms}ms)")
            return WebhookResult(status_code, message)

        validation = parse_webhook_payload(raw_body)
        if not validation.ok:
            return done(400, validation.error or "Invalid webhook payload")

        payload = validation.payload
        tenant_id = payload.tenant_id
        event = payload.event

        try:
            self.check_signature(raw_body, signature)
        except SignatureError as e:
            return done(e.status_code, e.message)

        key = delivery_key(payload, raw_body)
        try:
            if key and await self.delivery_cache.seen(key):
                return done(200, "Duplicate delivery ignored")

            tenant = await self.records.get_tenant(tenant_id)
            if tenant is None:
                return done(404, "Tenant not found")

            access_token = await self.token_service.get_access_token(tenant_id)
            if not access_token:
                return done(401, "Unable to authenticate with JobAdder")

            async with self._client_factory(tenant_id, access_token) as client:
                message = await self._dispatch(client, payload, request_id)

            if key:
                await self.delivery_cache.mark(key)
            return done(200, message)
        except NotFoundError as e:
            logger.info(f"[{request_id}] {e.message}")
            return done(200, "Resource no longer exists")
        except Exception:
            logger.exception(f"[{request_id}] Error processing webhook {event} for tenant {tenant_id}")
            return done(500, "Error processing webhook")

    async def _dispatch(self, client: JobAdderClient, payload: JobAdderWebhookPayload, request_id: str) -> str:
        tenant_id = payload.tenant_id
        resource_id = payload.resource_id

        if payload.event in (WebhookEvent.JOB_CREATED, WebhookEvent.JOB_UPDATED):
            job = await client.get_job(resource_id)
            result = await self.sync_service.ingest_job(job, tenant_id)
            return f"Job {'created' if result.created else 'updated'}"

        if payload.event == WebhookEvent.JOB_DELETED:
            record_id = await self.records.soft_delete_job(tenant_id, resource_id)
            return "Job closed" if record_id else "Job not found, nothing to delete"

        if payload.event in (WebhookEvent.CANDIDATE_CREATED, WebhookEvent.CANDIDATE_UPDATED):
            if not await self.privacy.check_consent(tenant_id, resource_id):
                logger.info(f"[{request_id}] Skipping candidate {resource_id}: no consent")
                return "Candidate skipped: no consent"
            candidate = await client.get_candidate(resource_id)
            result = await self.sync_service.ingest_candidate(
                client, candidate, tenant_id, AccessType.WEBHOOK
            )
            for failure in result.partial_failures:
                logger.warning(f"[{request_id}] {failure.message}")
            return f"Candidate {'created' if result.upsert.created else 'updated'}"

        if payload.event == WebhookEvent.CANDIDATE_DELETED:
            record_id = await self.records.soft_delete_candidate(tenant_id, resource_id)
            if not record_id:
                return "Candidate not found, nothing to delete"
            await self.privacy.log_data_access(resource_id, AccessType.DELETE, "system", tenant_id)
            return "Candidate deactivated"

        logger.info(f"[{request_id}] Unhandled webhook event: {payload.event}")
        return "Event ignored"

    # =========================================================================
    # Registration
    # =========================================================================

    async def register_webhook(self, access_token: str, tenant_id: str) -> JobAdderWebhookSubscription:
        """
        Make sure JobAdder delivers all our events for this tenant.

        Creates the subscription when none targets our URL, adds missing
        events to an existing one, and otherwise leaves it alone.
        """
        async with self._client_factory(tenant_id, access_token) as client:
            existing = next(
                (hook for hook in await client.list_webhooks() if hook.url == self.webhook_url),
                None,
            )

            if existing is None:
                created = await client.create_webhook(
                    self.webhook_url,
                    list(JOBADDER_WEBHOOK_EVENTS),
                    {"tenantId": tenant_id},
                    self.secret or None,
                )
                logger.info(f"Registered JobAdder webhook {created.id} for tenant {tenant_id}")
                return created

            missing = [e for e in JOBADDER_WEBHOOK_EVENTS if e not in existing.events]
            if not missing:
                logger.info(f"JobAdder webhook {existing.id} already complete for tenant {tenant_id}")
                return existing

            updated = await client.update_webhook(
                existing.id,
                self.webhook_url,
                existing.events + missing,
                {**existing.metadata, "tenantId": tenant_id},
                self.secret or None,
            )
            logger.info(f"Added events {missing} to JobAdder webhook {existing.id} for tenant {tenant_id}")
            return updated

    async def on_connect(self, tenant_id: str, access_token: str):
        """Connect hook: register the webhook for a newly connected tenant."""
        await self.register_webhook(access_token, tenant_id)
