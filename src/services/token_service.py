"""
JobAdder token service - credential lifecycle per tenant.

Stores the OAuth token pair for each tenant, hands out valid access
tokens (refreshing transparently shortly before expiry) and runs the
post-connect hooks after a successful OAuth callback.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

from src.auth.config import DEFAULT_TOKEN_EXPIRY_SECONDS, TOKEN_EXPIRY_MARGIN_SECONDS
from src.auth.exceptions import AuthenticationError
from src.auth.jobadder_oauth import JobAdderOAuthClient
from src.config import ATS_SOURCE, COLLECTION_CREDENTIALS
from src.exceptions import SyncBackendException
from src.models.jobadder import JobAdderTokenResponse
from src.models.outcome import Outcome
from src.models.records import TenantCredential
from src.repositories.document_store import DocumentStore

logger = logging.getLogger(__name__)

# (tenant_id, access_token) -> anything
ConnectHook = Callable[[str, str], Awaitable[Any]]


@dataclass
class CallbackResult:
    """Result of a completed OAuth callback."""
    tenant_id: str
    outcomes: list[Outcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_expiry(value: str) -> datetime:
    expires_at = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at


class JobAdderTokenService:
    """
    OAuth credential manager for JobAdder.

    Refreshes are single-flight per tenant: concurrent callers share one
    in-flight refresh instead of each spending the refresh token.
    """

    def __init__(
        self,
        store: DocumentStore,
        oauth: Optional[JobAdderOAuthClient] = None,
        clock: Callable[[], datetime] = _utcnow,
        expiry_margin_seconds: int = TOKEN_EXPIRY_MARGIN_SECONDS,
    ):
        self.store = store
        self.oauth = oauth or JobAdderOAuthClient()
        self.clock = clock
        self.expiry_margin = timedelta(seconds=expiry_margin_seconds)
        self._refreshes: dict[str, asyncio.Task] = {}
        self._connect_hooks: list[tuple[str, ConnectHook]] = []

    def add_connect_hook(self, name: str, hook: ConnectHook):
        """Register a coroutine run after every successful OAuth callback."""
        self._connect_hooks.append((name, hook))

    # =========================================================================
    # OAuth flow
    # =========================================================================

    def get_authorization_url(self, tenant_id: str) -> str:
        return self.oauth.get_authorization_url(state=tenant_id)

    async def handle_callback(self, code: str, tenant_id: str) -> CallbackResult:
        """
        Complete the OAuth flow for a tenant.

        Exchanges the code, stores the credential, then runs the connect
        hooks in registration order. A failing hook is logged and reported
        in the result; the stored credential is kept.

        Raises:
            AuthenticationError: If JobAdder rejects the code
            ConfigError: If OAuth client credentials are missing
        """
        tokens = await self.oauth.exchange_code(code)
        credential = await self.save_credential(tenant_id, tokens)
        logger.info(f"JobAdder connected for tenant {tenant_id}")

        result = CallbackResult(tenant_id=tenant_id)
        for name, hook in self._connect_hooks:
            try:
                await hook(tenant_id, credential.access_token)
                result.outcomes.append(Outcome.success(name))
            except Exception as e:
                logger.error(f"Connect hook '{name}' failed for tenant {tenant_id}: {e}")
                result.outcomes.append(Outcome.failure(name, e))
        return result

    # =========================================================================
    # Credential storage
    # =========================================================================

    async def get_credential(self, tenant_id: str) -> Optional[TenantCredential]:
        doc = await self.store.find_one(COLLECTION_CREDENTIALS, {"tenant_id": tenant_id, "source": ATS_SOURCE})
        return TenantCredential.model_validate(doc) if doc else None

    async def save_credential(self, tenant_id: str, tokens: JobAdderTokenResponse) -> TenantCredential:
        expires_in = tokens.expires_in or DEFAULT_TOKEN_EXPIRY_SECONDS
        credential = TenantCredential(
            tenant_id=tenant_id,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=(self.clock() + timedelta(seconds=expires_in)).isoformat(),
        )
        await self.store.upsert(
            COLLECTION_CREDENTIALS,
            tenant_id,
            ATS_SOURCE,
            {**credential.model_dump(), "source": ATS_SOURCE},
        )
        return credential

    def is_expired(self, credential: TenantCredential) -> bool:
        """True when the token expires within the safety margin."""
        return _parse_expiry(credential.expires_at) <= self.clock() + self.expiry_margin

    # =========================================================================
    # Access tokens
    # =========================================================================

    async def get_access_token(self, tenant_id: str) -> Optional[str]:
        """
        A usable access token for the tenant, refreshing if needed.

        Returns:
            The access token, or None when the tenant has no credential or
            the refresh failed
        """
        credential = await self.get_credential(tenant_id)
        if credential is None:
            logger.warning(f"No JobAdder credential for tenant {tenant_id}")
            return None

        if not self.is_expired(credential):
            return credential.access_token

        try:
            return await self.refresh_access_token(tenant_id, stale_token=credential.access_token)
        except SyncBackendException as e:
            logger.error(f"JobAdder token refresh failed for tenant {tenant_id}: {e.message}")
            return None

    async def refresh_access_token(self, tenant_id: str, stale_token: Optional[str] = None) -> str:
        """
        Refresh the tenant's access token (single-flight).

        Args:
            tenant_id: Tenant to refresh
            stale_token: The token the caller found unusable; if the stored
                token has already been replaced by a fresh one it is returned
                without another refresh

        Raises:
            AuthenticationError: If there is no refresh token or JobAdder rejects it
        """
        task = self._refreshes.get(tenant_id)
        if task is None:
            task = asyncio.ensure_future(self._refresh(tenant_id, stale_token))
            self._refreshes[tenant_id] = task

            def _done(finished: asyncio.Task):
                if self._refreshes.get(tenant_id) is finished:
                    del self._refreshes[tenant_id]
                if not finished.cancelled():
                    finished.exception()

            task.add_done_callback(_done)
        else:
            logger.debug(f"Joining in-flight token refresh for tenant {tenant_id}")

        return await asyncio.shield(task)

    async def _refresh(self, tenant_id: str, stale_token: Optional[str]) -> str:
        credential = await self.get_credential(tenant_id)
        if credential is None or not credential.refresh_token:
            raise AuthenticationError(f"No refresh token available for tenant {tenant_id}")

        if stale_token and credential.access_token != stale_token and not self.is_expired(credential):
            logger.debug(f"Token for tenant {tenant_id} already refreshed, reusing")
            return credential.access_token

        tokens = await self.oauth.refresh(credential.refresh_token)
        refreshed = await self.save_credential(tenant_id, tokens)
        logger.info(f"Refreshed JobAdder access token for tenant {tenant_id}")
        return refreshed.access_token

    def token_refresher(self, tenant_id: str, current_token: str) -> Callable[[], Awaitable[str]]:
        """A zero-arg refresher for JobAdderClient, bound to the token it was built with."""
        state = {"token": current_token}

        async def refresh() -> str:
            state["token"] = await self.refresh_access_token(tenant_id, stale_token=state["token"])
            return state["token"]

        return refresh
