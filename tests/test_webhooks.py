"""
Tests for JobAdder webhook ingestion and webhook registration.

Run with: pytest tests/test_webhooks.py -v
"""
import logging

import pytest

from src.exceptions import SignatureError
from src.services.webhook_service import JobAdderWebhookService
from src.utils.delivery_cache import WebhookDeliveryCache

from conftest import TENANT_ID, make_candidate, make_job, make_webhook_body, sign


def job_docs(store):
    return store.all("jobs")


class TestSignature:
    """HMAC-SHA256 over the raw body, hex encoded."""

    def test_valid_signature(self, services):
        body = make_webhook_body("job.created", "101")
        assert services.webhook_service.verify_signature(body, sign(body))
        assert services.webhook_service.verify_signature(body, f"sha256={sign(body)}")

    def test_any_byte_flip_fails(self, services):
        body = make_webhook_body("job.created", "101")
        signature = sign(body)
        tampered = body.replace(b"101", b"102")
        assert not services.webhook_service.verify_signature(tampered, signature)

    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, services, connected_tenant):
        result = await services.webhook_service.handle(make_webhook_body("job.created", "101"), None)
        assert result.status_code == 401

    @pytest.mark.asyncio
    async def test_mismatch_is_logged_as_security_event(self, services, store, connected_tenant, caplog):
        body = make_webhook_body("job.created", "101")

        with caplog.at_level(logging.WARNING, logger="src.services.webhook_service"):
            result = await services.webhook_service.handle(body, "ab" * 32)

        assert (result.status_code, result.message) == (401, "Invalid webhook signature")
        assert any("SECURITY" in r.getMessage() for r in caplog.records)
        assert job_docs(store) == []

    def test_check_signature_raises(self, services):
        body = make_webhook_body("job.created", "101")
        services.webhook_service.check_signature(body, sign(body))
        with pytest.raises(SignatureError) as exc_info:
            services.webhook_service.check_signature(body, sign(body, "other-secret"))
        assert exc_info.value.status_code == 401

    def test_production_without_secret_rejects(self, services):
        service = JobAdderWebhookService(
            services.records, services.sync_service, services.privacy, services.token_service,
            secret="", environment="production",
        )
        body = make_webhook_body("job.created", "101")
        assert not service.verify_signature(body, sign(body))

    def test_development_without_secret_skips(self, services):
        service = JobAdderWebhookService(
            services.records, services.sync_service, services.privacy, services.token_service,
            secret="", environment="development",
        )
        assert service.verify_signature(b"{}", None)


class TestJobEvents:
    @pytest.mark.asyncio
    async def test_job_created_is_upserted(self, services, store, api, connected_tenant):
        api.jobs["101"] = make_job("101")
        body = make_webhook_body("job.created", "101")

        result = await services.webhook_service.handle(body, sign(body))

        assert result.status_code == 200, result.message
        assert result.message == "Job created"
        docs = job_docs(store)
        assert len(docs) == 1
        assert docs[0]["ats_data"]["source_id"] == "101"
        assert docs[0]["tenant_id"] == TENANT_ID
        assert docs[0]["status"] == "published"

    @pytest.mark.asyncio
    async def test_redelivery_is_idempotent(self, services, store, api, connected_tenant):
        api.jobs["101"] = make_job("101")
        body = make_webhook_body("job.updated", "101")

        first = await services.webhook_service.handle(body, sign(body))
        second = await services.webhook_service.handle(body, sign(body))

        assert (first.status_code, second.status_code) == (200, 200)
        assert second.message == "Job updated"
        assert len(job_docs(store)) == 1, "Same (tenant, source id) must map to one record"

    @pytest.mark.asyncio
    async def test_job_deleted_closes_record(self, services, store, api, connected_tenant):
        api.jobs["101"] = make_job("101")
        created = make_webhook_body("job.created", "101")
        await services.webhook_service.handle(created, sign(created))

        deleted = make_webhook_body("job.deleted", "101")
        result = await services.webhook_service.handle(deleted, sign(deleted))

        assert result.status_code == 200
        assert result.message == "Job closed"
        assert job_docs(store)[0]["status"] == "closed"

    @pytest.mark.asyncio
    async def test_delete_of_unknown_job_is_noop(self, services, store, connected_tenant):
        body = make_webhook_body("job.deleted", "999")

        result = await services.webhook_service.handle(body, sign(body))

        assert result.status_code == 200
        assert result.message == "Job not found, nothing to delete"
        assert job_docs(store) == [], "Deleting an unknown job must not create a record"

    @pytest.mark.asyncio
    async def test_job_gone_upstream_is_acknowledged(self, services, store, connected_tenant):
        body = make_webhook_body("job.updated", "404")

        result = await services.webhook_service.handle(body, sign(body))

        assert result.status_code == 200
        assert result.message == "Resource no longer exists"
        assert job_docs(store) == []

    @pytest.mark.asyncio
    async def test_upstream_failure_is_500(self, services, api, connected_tenant):
        api.fail["/jobs/101"] = 503
        body = make_webhook_body("job.updated", "101")

        result = await services.webhook_service.handle(body, sign(body))

        assert result.status_code == 500


class TestCandidateEvents:
    @pytest.mark.asyncio
    async def test_candidate_without_consent_is_skipped(self, services, store, api, connected_tenant, queue_repo):
        api.candidates["201"] = make_candidate("201")
        body = make_webhook_body("candidate.created", "201")

        result = await services.webhook_service.handle(body, sign(body))

        assert result.status_code == 200
        assert result.message == "Candidate skipped: no consent"
        assert store.all("candidates") == []
        assert queue_repo.entries == {}
        assert not any("/candidates/201" in p for p in api.paths()), "No JobAdder fetch without consent"

    @pytest.mark.asyncio
    async def test_candidate_with_consent_is_written_queued_and_audited(
        self, services, store, api, connected_tenant, consent_repo, queue_repo, access_log_repo
    ):
        consent_repo.grant(TENANT_ID, "201")
        api.candidates["201"] = make_candidate("201")
        api.resumes["201"] = ({"id": "r1"}, "Senior Python engineer with AWS experience")
        body = make_webhook_body("candidate.updated", "201")

        result = await services.webhook_service.handle(body, sign(body))

        assert result.status_code == 200, result.message
        docs = store.all("candidates")
        assert len(docs) == 1
        assert docs[0]["skills"] == ["Python", "AWS"]
        assert docs[0]["ai_enrichment"]["status"] == "pending"
        assert queue_repo.entries[docs[0]["id"]]["status"] == "pending"
        assert [(e["subject_id"], e["access_type"]) for e in access_log_repo.entries] == [("201", "webhook")]

    @pytest.mark.asyncio
    async def test_candidate_deleted_deactivates_and_audits(
        self, services, store, api, connected_tenant, consent_repo, access_log_repo
    ):
        consent_repo.grant(TENANT_ID, "201")
        api.candidates["201"] = make_candidate("201")
        created = make_webhook_body("candidate.created", "201")
        await services.webhook_service.handle(created, sign(created))

        deleted = make_webhook_body("candidate.deleted", "201")
        result = await services.webhook_service.handle(deleted, sign(deleted))

        assert result.message == "Candidate deactivated"
        assert store.all("candidates")[0]["status"] == "inactive"
        assert access_log_repo.entries[-1]["access_type"] == "delete"

    @pytest.mark.asyncio
    async def test_delete_of_unknown_candidate_is_noop(self, services, store, connected_tenant, access_log_repo):
        body = make_webhook_body("candidate.deleted", "999")

        result = await services.webhook_service.handle(body, sign(body))

        assert result.status_code == 200
        assert result.message == "Candidate not found, nothing to delete"
        assert store.all("candidates") == []
        assert access_log_repo.entries == []


class TestRejections:
    @pytest.mark.asyncio
    async def test_invalid_json_is_400(self, services):
        result = await services.webhook_service.handle(b"not json", "sig")
        assert result.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_tenant_is_400(self, services):
        body = b'{"event": "job.created", "data": {"id": "1"}, "metadata": {}}'
        result = await services.webhook_service.handle(body, sign(body))
        assert result.status_code == 400
        assert "metadata.tenantId" in result.message

    @pytest.mark.asyncio
    async def test_unknown_tenant_is_404(self, services):
        body = make_webhook_body("job.created", "101", tenant_id="nobody")
        result = await services.webhook_service.handle(body, sign(body))
        assert result.status_code == 404

    @pytest.mark.asyncio
    async def test_tenant_without_credential_is_401(self, services, store):
        store.add("tenants", {"id": "tenant-b", "features": {"jobadder": True}})
        body = make_webhook_body("job.created", "101", tenant_id="tenant-b")
        result = await services.webhook_service.handle(body, sign(body))
        assert result.status_code == 401
        assert result.message == "Unable to authenticate with JobAdder"

    @pytest.mark.asyncio
    async def test_unhandled_event_is_acknowledged(self, services, connected_tenant):
        body = make_webhook_body("placement.created", "1")
        result = await services.webhook_service.handle(body, sign(body))
        assert (result.status_code, result.message) == (200, "Event ignored")


class TestDeliveryCache:
    @pytest.mark.asyncio
    async def test_duplicate_delivery_short_circuits(self, services, api, connected_tenant):
        api.jobs["101"] = make_job("101")
        body = make_webhook_body("job.updated", "101", webhook_id="delivery-1")

        await services.webhook_service.handle(body, sign(body))
        calls_after_first = len(api.requests)
        result = await services.webhook_service.handle(body, sign(body))

        assert result.message == "Duplicate delivery ignored"
        assert len(api.requests) == calls_after_first, "Duplicate must not call JobAdder"

    @pytest.mark.asyncio
    async def test_distinct_events_from_one_subscription_are_processed(self, services, store, api, connected_tenant):
        api.jobs["101"] = make_job("101")
        api.jobs["102"] = make_job("102")
        first = make_webhook_body("job.created", "101", webhook_id="wh-1")
        second = make_webhook_body("job.created", "102", webhook_id="wh-1")
        update = make_webhook_body("job.updated", "101", webhook_id="wh-1")

        results = [await services.webhook_service.handle(b, sign(b)) for b in (first, second, update)]

        assert [r.message for r in results] == ["Job created", "Job created", "Job updated"]
        assert len(job_docs(store)) == 2

    @pytest.mark.asyncio
    async def test_failed_delivery_is_not_remembered(self, services, api, connected_tenant):
        api.fail["/jobs/101"] = 503
        body = make_webhook_body("job.updated", "101", webhook_id="delivery-2")
        assert (await services.webhook_service.handle(body, sign(body))).status_code == 500

        del api.fail["/jobs/101"]
        api.jobs["101"] = make_job("101")
        result = await services.webhook_service.handle(body, sign(body))

        assert (result.status_code, result.message) == (200, "Job created")

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        now = [0.0]
        cache = WebhookDeliveryCache(ttl_seconds=10, clock=lambda: now[0])
        await cache.mark("d1")
        assert await cache.seen("d1")
        now[0] = 11.0
        assert not await cache.seen("d1")

    @pytest.mark.asyncio
    async def test_mark_evicts_expired_entries(self):
        now = [0.0]
        cache = WebhookDeliveryCache(ttl_seconds=10, clock=lambda: now[0])
        for i in range(1000):
            await cache.mark(f"d{i}")
        now[0] = 5.0
        await cache.mark("d0")

        now[0] = 12.0
        await cache.mark("fresh")

        assert len(cache) == 2
        assert await cache.seen("d0")
        assert not await cache.seen("d1")

    @pytest.mark.asyncio
    async def test_cleanup_expired(self):
        now = [0.0]
        cache = WebhookDeliveryCache(ttl_seconds=10, clock=lambda: now[0])
        await cache.mark("d1")
        await cache.mark("d2")
        now[0] = 11.0
        assert await cache.cleanup_expired() == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_cache(self):
        cache = WebhookDeliveryCache(ttl_seconds=0)
        await cache.mark("d1")
        assert not await cache.seen("d1")


class TestRegistration:
    """Connect-time webhook registration: create, extend, or leave alone."""

    @pytest.mark.asyncio
    async def test_creates_subscription(self, services, api):
        hook = await services.webhook_service.register_webhook("token", TENANT_ID)

        assert len(api.webhooks) == 1
        assert hook.url == services.webhook_service.webhook_url
        assert hook.metadata == {"tenantId": TENANT_ID}
        assert "candidate.deleted" in hook.events

    @pytest.mark.asyncio
    async def test_adds_missing_events(self, services, api):
        api.webhooks.append({
            "id": "wh-1",
            "url": services.webhook_service.webhook_url,
            "events": ["job.created"],
            "metadata": {},
        })

        hook = await services.webhook_service.register_webhook("token", TENANT_ID)

        assert len(api.webhooks) == 1
        assert hook.events[0] == "job.created"
        assert len(hook.events) == 6
        assert api.requests[-1].method == "PUT"

    @pytest.mark.asyncio
    async def test_complete_subscription_untouched(self, services, api):
        from src.config import JOBADDER_WEBHOOK_EVENTS
        api.webhooks.append({
            "id": "wh-1",
            "url": services.webhook_service.webhook_url,
            "events": list(JOBADDER_WEBHOOK_EVENTS),
            "metadata": {"tenantId": TENANT_ID},
        })

        await services.webhook_service.register_webhook("token", TENANT_ID)

        assert [r.method for r in api.requests] == ["GET"]
