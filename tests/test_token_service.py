"""
Tests for the JobAdder token service: expiry handling, single-flight
refresh and the OAuth callback hooks.

Run with: pytest tests/test_token_service.py -v
"""
import asyncio

import pytest

from src.auth.exceptions import InvalidTokenError

from conftest import TENANT_ID, seed_credential

VALID_UNTIL = "2026-01-15T13:00:00+00:00"   # one hour after the fixed clock
NEARLY_EXPIRED = "2026-01-15T12:00:30+00:00"  # inside the 60s safety margin


class TestAccessToken:
    """get_access_token refreshes only when the stored token is (nearly) expired."""

    @pytest.mark.asyncio
    async def test_valid_token_needs_no_refresh(self, services, store, oauth):
        seed_credential(store, TENANT_ID, "current", VALID_UNTIL)

        token = await services.token_service.get_access_token(TENANT_ID)

        assert token == "current"
        assert oauth.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_expired_token_refreshed_once(self, services, store, oauth):
        seed_credential(store, TENANT_ID, "stale", NEARLY_EXPIRED)

        token = await services.token_service.get_access_token(TENANT_ID)

        assert token == "refreshed-1"
        assert oauth.refresh_calls == 1
        credential = await services.token_service.get_credential(TENANT_ID)
        assert credential.access_token == "refreshed-1", "New token pair is persisted"
        assert credential.expires_at == "2026-01-15T13:00:00+00:00"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, services, store, oauth):
        seed_credential(store, TENANT_ID, "stale", NEARLY_EXPIRED)

        tokens = await asyncio.gather(*(
            services.token_service.get_access_token(TENANT_ID) for _ in range(5)
        ))

        assert oauth.refresh_calls == 1, f"Expected a single refresh, got {oauth.refresh_calls}"
        assert set(tokens) == {"refreshed-1"}

    @pytest.mark.asyncio
    async def test_already_replaced_token_is_reused(self, services, store, oauth):
        seed_credential(store, TENANT_ID, "newer", VALID_UNTIL)

        token = await services.token_service.refresh_access_token(TENANT_ID, stale_token="older")

        assert token == "newer"
        assert oauth.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_missing_credential_returns_none(self, services, oauth):
        assert await services.token_service.get_access_token("unknown-tenant") is None
        assert oauth.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_failed_refresh_returns_none(self, services, store, oauth):
        seed_credential(store, TENANT_ID, "stale", NEARLY_EXPIRED)
        oauth.fail_refresh = True

        assert await services.token_service.get_access_token(TENANT_ID) is None

    @pytest.mark.asyncio
    async def test_refresh_can_be_retried_after_failure(self, services, store, oauth):
        seed_credential(store, TENANT_ID, "stale", NEARLY_EXPIRED)
        oauth.fail_refresh = True
        with pytest.raises(InvalidTokenError):
            await services.token_service.refresh_access_token(TENANT_ID, stale_token="stale")

        oauth.fail_refresh = False
        token = await services.token_service.refresh_access_token(TENANT_ID, stale_token="stale")

        assert token == "refreshed-1"
        assert oauth.refresh_calls == 2


class TestCallback:
    """OAuth callback: credential stored, then connect hooks run in order."""

    @pytest.mark.asyncio
    async def test_callback_stores_credential_and_runs_hooks(self, services, store, oauth):
        token_service = services.token_service
        token_service._connect_hooks.clear()
        calls = []

        async def first(tenant_id, access_token):
            calls.append(("first", tenant_id, access_token))

        async def second(tenant_id, access_token):
            calls.append(("second", tenant_id, access_token))

        token_service.add_connect_hook("first", first)
        token_service.add_connect_hook("second", second)

        result = await token_service.handle_callback("abc", TENANT_ID)

        assert result.ok
        assert calls == [("first", TENANT_ID, "access-abc"), ("second", TENANT_ID, "access-abc")]
        credential = await token_service.get_credential(TENANT_ID)
        assert credential.refresh_token == "refresh-abc"

    @pytest.mark.asyncio
    async def test_failing_hook_is_reported_not_raised(self, services, oauth):
        token_service = services.token_service
        token_service._connect_hooks.clear()

        async def broken(tenant_id, access_token):
            raise RuntimeError("webhook registration failed")

        async def after(tenant_id, access_token):
            return None

        token_service.add_connect_hook("register_webhook", broken)
        token_service.add_connect_hook("initial_sync", after)

        result = await token_service.handle_callback("abc", TENANT_ID)

        assert not result.ok
        assert [(o.name, o.ok) for o in result.outcomes] == [("register_webhook", False), ("initial_sync", True)]
        assert result.outcomes[0].error == "webhook registration failed"
        assert await token_service.get_credential(TENANT_ID) is not None, "Credential is kept"

    @pytest.mark.asyncio
    async def test_rejected_code_raises(self, services):
        with pytest.raises(InvalidTokenError):
            await services.token_service.handle_callback("bad-code", TENANT_ID)
        assert await services.token_service.get_credential(TENANT_ID) is None

    def test_authorization_url_carries_tenant_state(self, services):
        url = services.token_service.get_authorization_url(TENANT_ID)
        assert f"state={TENANT_ID}" in url
