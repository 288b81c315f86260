"""
JobAdder REST API client.

One client per tenant, authenticated with that tenant's bearer token.
Network errors and 5xx responses are retried with exponential backoff
(tenacity); 4xx responses are not retried, except for a single token
refresh when JobAdder reports the token as invalid/expired.
"""
import logging
import time
import uuid
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.auth.exceptions import AuthenticationError
from src.config import (
    JOBADDER_API_URL,
    JOBADDER_HTTP_TIMEOUT,
    JOBADDER_MAX_ATTEMPTS,
    JOBADDER_PAGE_SIZE,
)
from src.exceptions import ExternalServiceError, NotFoundError, TransientNetworkError
from src.models.jobadder import (
    JobAdderCandidate,
    JobAdderCandidateEducation,
    JobAdderCandidateExperience,
    JobAdderCandidatePlacement,
    JobAdderCandidateResume,
    JobAdderJob,
    JobAdderWebhookSubscription,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

TokenRefresher = Callable[[], Awaitable[str]]


class _RetryableStatus(Exception):
    """A 5xx response; raised inside the retry loop only."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _unwrap(body: Any) -> Any:
    """Accept bare bodies as well as {"data": ...} / {"items": [...]} envelopes."""
    if isinstance(body, dict):
        if "data" in body:
            return body["data"]
        if "items" in body and isinstance(body["items"], list):
            return body["items"]
    return body


def _is_invalid_token(response: httpx.Response) -> bool:
    if "invalid_token" in response.headers.get("WWW-Authenticate", ""):
        return True
    try:
        body = response.json()
    except ValueError:
        return False
    return isinstance(body, dict) and body.get("error") == "invalid_token"


class JobAdderClient:
    """
    Async client for the JobAdder v2 API.

    Usage:
        async with JobAdderClient(access_token) as client:
            jobs = await client.get_jobs(updated_since=cutoff)
    """

    def __init__(
        self,
        access_token: str,
        token_refresher: Optional[TokenRefresher] = None,
        base_url: str = JOBADDER_API_URL,
        timeout: float = JOBADDER_HTTP_TIMEOUT,
        max_attempts: int = JOBADDER_MAX_ATTEMPTS,
        page_size: int = JOBADDER_PAGE_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        wait=None,
    ):
        self._access_token = access_token
        self._token_refresher = token_refresher
        self.max_attempts = max(1, max_attempts)
        self.page_size = page_size
        self._wait = wait if wait is not None else wait_exponential(multiplier=0.5, min=0.5, max=8)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "JobAdderClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _send(self, method: str, path: str, request_id: str, **kwargs) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "X-Request-ID": request_id,
        }
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            reraise=True,
        ):
            with attempt:
                attempt_no = attempt.retry_state.attempt_number
                if attempt_no > 1:
                    logger.warning(f"[{request_id}] Retrying {method} {path} (attempt {attempt_no}/{self.max_attempts})")
                response = await self._client.request(method, path, headers=headers, **kwargs)
                if response.status_code >= 500:
                    raise _RetryableStatus(response)
        return response

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        request_id = uuid.uuid4().hex[:12]
        refreshed = False

        while True:
            started = time.monotonic()
            try:
                response = await self._send(method, path, request_id, **kwargs)
            except _RetryableStatus as e:
                duration_ms = int((time.monotonic() - started) * 1000)
                logger.error(
                    f"[{request_id}] {method} {path} failed with {e.response.status_code} "
                    f"after {self.max_attempts} attempts ({duration_ms}ms)"
                )
                raise TransientNetworkError(
                    f"JobAdder {method} {path} failed with status {e.response.status_code}",
                    upstream_status=e.response.status_code,
                )
            except httpx.TransportError as e:
                duration_ms = int((time.monotonic() - started) * 1000)
                logger.error(
                    f"[{request_id}] {method} {path} network error {type(e).__name__} "
                    f"after {self.max_attempts} attempts ({duration_ms}ms)"
                )
                raise TransientNetworkError(f"JobAdder {method} {path} unreachable: {type(e).__name__}")

            duration_ms = int((time.monotonic() - started) * 1000)
            status_code = response.status_code

            if status_code == 401 and self._token_refresher and not refreshed and _is_invalid_token(response):
                logger.info(f"[{request_id}] Access token rejected, refreshing once")
                self._access_token = await self._token_refresher()
                refreshed = True
                continue

            if status_code >= 400:
                logger.error(f"[{request_id}] {method} {path} -> {status_code} ({duration_ms}ms)")
                if status_code == 404:
                    raise NotFoundError("JobAdder resource", path)
                if status_code in (401, 403):
                    raise AuthenticationError(
                        f"JobAdder rejected credentials for {method} {path}",
                        details={"status": status_code},
                    )
                raise ExternalServiceError(
                    f"JobAdder {method} {path} returned {status_code}",
                    upstream_status=status_code,
                )

            logger.debug(f"[{request_id}] {method} {path} -> {status_code} ({duration_ms}ms)")
            if status_code == 204 or not response.content:
                return None
            try:
                return _unwrap(response.json())
            except ValueError:
                raise ExternalServiceError(f"JobAdder {method} {path} returned a non-JSON body", status_code)

    @staticmethod
    def _parse(model: Type[ModelT], body: Any, path: str) -> ModelT:
        try:
            return model.model_validate(body)
        except PydanticValidationError as e:
            raise ExternalServiceError(f"Unexpected {model.__name__} payload from {path}: {e.error_count()} errors")

    @classmethod
    def _parse_list(cls, model: Type[ModelT], body: Any, path: str) -> list[ModelT]:
        if body is None:
            return []
        if not isinstance(body, list):
            raise ExternalServiceError(f"Expected a list from {path}, got {type(body).__name__}")
        return [cls._parse(model, item, path) for item in body]

    async def _paginate(
        self,
        model: Type[ModelT],
        path: str,
        params: dict[str, Any],
        limit: Optional[int] = None,
    ) -> AsyncIterator[ModelT]:
        offset = 0
        yielded = 0
        while True:
            page_size = self.page_size if limit is None else min(self.page_size, limit - yielded)
            if page_size <= 0:
                return
            query = {k: v for k, v in params.items() if v is not None}
            query.update({"limit": page_size, "offset": offset})
            page = self._parse_list(model, await self._request("GET", path, params=query), path)
            for item in page:
                yield item
                yielded += 1
            if len(page) < page_size:
                return
            offset += len(page)

    # =========================================================================
    # Jobs
    # =========================================================================

    def iter_jobs(
        self,
        updated_since: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> AsyncIterator[JobAdderJob]:
        """Iterate jobs page by page (limit/offset)."""
        return self._paginate(JobAdderJob, "/jobs", {"updatedSince": updated_since, "status": status}, limit)

    async def get_jobs(
        self,
        updated_since: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[JobAdderJob]:
        return [job async for job in self.iter_jobs(updated_since, status, limit)]

    async def get_job(self, job_id: str) -> JobAdderJob:
        path = f"/jobs/{job_id}"
        return self._parse(JobAdderJob, await self._request("GET", path), path)

    # =========================================================================
    # Candidates
    # =========================================================================

    def iter_candidates(
        self,
        updated_since: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> AsyncIterator[JobAdderCandidate]:
        """Iterate candidates page by page (limit/offset)."""
        return self._paginate(
            JobAdderCandidate, "/candidates", {"updatedSince": updated_since, "status": status}, limit
        )

    async def get_candidates(
        self,
        updated_since: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[JobAdderCandidate]:
        return [c async for c in self.iter_candidates(updated_since, status, limit)]

    async def get_candidate(self, candidate_id: str) -> JobAdderCandidate:
        path = f"/candidates/{candidate_id}"
        return self._parse(JobAdderCandidate, await self._request("GET", path), path)

    async def get_candidate_resume(self, candidate_id: str) -> Optional[JobAdderCandidateResume]:
        """
        Most recent resume attachment with its text content.

        Returns:
            The resume, or None when the candidate has no resume attached
        """
        path = f"/candidates/{candidate_id}/attachments"
        attachments = self._parse_list(
            JobAdderCandidateResume,
            await self._request("GET", path, params={"type": "resume"}),
            path,
        )
        if not attachments:
            return None

        resume = attachments[0]
        content_path = f"/candidates/{candidate_id}/attachments/{resume.id}/content"
        body = await self._request("GET", content_path)
        content = body.get("content") if isinstance(body, dict) else body
        return resume.model_copy(update={"content": content if isinstance(content, str) else None})

    async def get_candidate_experiences(self, candidate_id: str) -> list[JobAdderCandidateExperience]:
        path = f"/candidates/{candidate_id}/experiences"
        return self._parse_list(JobAdderCandidateExperience, await self._request("GET", path), path)

    async def get_candidate_education(self, candidate_id: str) -> list[JobAdderCandidateEducation]:
        path = f"/candidates/{candidate_id}/education"
        return self._parse_list(JobAdderCandidateEducation, await self._request("GET", path), path)

    async def get_candidate_placements(self, candidate_id: str) -> list[JobAdderCandidatePlacement]:
        path = f"/candidates/{candidate_id}/placements"
        return self._parse_list(JobAdderCandidatePlacement, await self._request("GET", path), path)

    # =========================================================================
    # Webhooks
    # =========================================================================

    async def list_webhooks(self) -> list[JobAdderWebhookSubscription]:
        return self._parse_list(JobAdderWebhookSubscription, await self._request("GET", "/webhooks"), "/webhooks")

    @staticmethod
    def _webhook_body(url: str, events: list[str], metadata: dict[str, Any], secret: Optional[str]) -> dict[str, Any]:
        body: dict[str, Any] = {"url": url, "events": events, "metadata": metadata}
        if secret:
            body["secret"] = secret
        return body

    async def create_webhook(
        self,
        url: str,
        events: list[str],
        metadata: dict[str, Any],
        secret: Optional[str] = None,
    ) -> JobAdderWebhookSubscription:
        body = await self._request("POST", "/webhooks", json=self._webhook_body(url, events, metadata, secret))
        return self._parse(JobAdderWebhookSubscription, body, "/webhooks")

    async def update_webhook(
        self,
        webhook_id: str,
        url: str,
        events: list[str],
        metadata: dict[str, Any],
        secret: Optional[str] = None,
    ) -> JobAdderWebhookSubscription:
        path = f"/webhooks/{webhook_id}"
        body = await self._request("PUT", path, json=self._webhook_body(url, events, metadata, secret))
        return self._parse(JobAdderWebhookSubscription, body, path)
