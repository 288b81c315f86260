"""
Pytest fixtures for JobAdder sync backend tests.

These fixtures wire the real services to in-memory stand-ins for the
database-backed repositories and to a fake JobAdder API served through
httpx.MockTransport, so no network or Postgres is needed.
"""
import asyncio
import hashlib
import hmac
import itertools
import json
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import pytest
from tenacity import wait_none

from src.auth.exceptions import InvalidTokenError
from src.dependencies import build_services
from src.exceptions import NotFoundError
from src.models.jobadder import JobAdderTokenResponse
from src.models.records import UpsertResult
from src.repositories.document_store import DocumentStore, get_path
from src.services.jobadder_client import JobAdderClient

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
TENANT_ID = "tenant-a"
WEBHOOK_SECRET = "test-webhook-secret"


# =============================================================================
# In-memory repositories
# =============================================================================

class InMemoryDocumentStore(DocumentStore):
    """DocumentStore over plain dicts; upsert keyed by (collection, tenant_id, source_id)."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._keys: dict[tuple[str, str, str], str] = {}
        self._lock = asyncio.Lock()

    def add(self, collection: str, document: dict[str, Any], source_id: Optional[str] = None) -> dict[str, Any]:
        """Seed a document directly; with source_id it is also the upsert target for that key."""
        doc = {**document}
        doc.setdefault("id", str(uuid.uuid4()))
        self.collections.setdefault(collection, {})[doc["id"]] = doc
        if source_id is not None:
            self._keys[(collection, doc["tenant_id"], source_id)] = doc["id"]
        return doc

    def all(self, collection: str) -> list[dict[str, Any]]:
        return list(self.collections.get(collection, {}).values())

    async def find(self, collection: str, where: dict[str, Any], limit: Optional[int] = None) -> list[dict[str, Any]]:
        docs = [
            dict(doc) for doc in self.all(collection)
            if all(get_path(doc, path) == value for path, value in where.items())
        ]
        return docs[:limit] if limit is not None else docs

    async def find_by_id(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        doc = self.collections.get(collection, {}).get(document_id)
        return dict(doc) if doc else None

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        return dict(self.add(collection, {k: v for k, v in data.items() if k != "id"}))

    async def update(self, collection: str, document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        doc = self.collections.get(collection, {}).get(document_id)
        if doc is None:
            raise NotFoundError(collection, document_id)
        doc.update({k: v for k, v in data.items() if k != "id"})
        return dict(doc)

    async def upsert(self, collection: str, tenant_id: str, source_id: str, data: dict[str, Any]) -> UpsertResult:
        async with self._lock:
            key = (collection, tenant_id, source_id)
            existing_id = self._keys.get(key)
            body = {k: v for k, v in data.items() if k != "id"}
            if existing_id is None:
                doc = self.add(collection, body)
                self._keys[key] = doc["id"]
                return UpsertResult(id=doc["id"], created=True, document=dict(doc))
            doc = {**body, "id": existing_id}
            self.collections[collection][existing_id] = doc
            return UpsertResult(id=existing_id, created=False, document=dict(doc))


class FakeConsentRepository:
    def __init__(self):
        self.consents: dict[tuple[str, str], bool] = {}
        self.fail = False

    async def get_consent(self, tenant_id: str, candidate_source_id: str) -> Optional[bool]:
        if self.fail:
            raise ConnectionError("consent store unavailable")
        return self.consents.get((tenant_id, candidate_source_id))

    def grant(self, tenant_id: str, *candidate_ids: str):
        for candidate_id in candidate_ids:
            self.consents[(tenant_id, candidate_id)] = True

    def deny(self, tenant_id: str, *candidate_ids: str):
        for candidate_id in candidate_ids:
            self.consents[(tenant_id, candidate_id)] = False


class FakeEnrichmentQueueRepository:
    def __init__(self):
        self.entries: dict[str, dict[str, Any]] = {}
        self.fail = False

    async def enqueue(self, candidate_id: str, source_id: str, tenant_id: str) -> None:
        if self.fail:
            raise ConnectionError("queue unavailable")
        self.entries[candidate_id] = {
            "candidate_id": candidate_id,
            "source_id": source_id,
            "tenant_id": tenant_id,
            "status": "pending",
        }

    async def list_pending(self, limit: int = 50) -> list[dict[str, Any]]:
        return [e for e in self.entries.values() if e["status"] == "pending"][:limit]


class FakeDataAccessLogRepository:
    def __init__(self):
        self.entries: list[dict[str, Any]] = []

    async def create(self, subject_id: str, access_type: str, actor_id: str = "system", tenant_id: Optional[str] = None):
        entry_id = uuid.uuid4()
        self.entries.append({
            "id": entry_id,
            "subject_id": subject_id,
            "access_type": access_type,
            "actor_id": actor_id,
            "tenant_id": tenant_id,
        })
        return entry_id

    async def list_for_subject(self, subject_id: str, limit: int = 100) -> list[dict[str, Any]]:
        return [e for e in reversed(self.entries) if e["subject_id"] == subject_id][:limit]


class FakeOAuthClient:
    """Stands in for JobAdderOAuthClient; counts token endpoint calls."""

    def __init__(self):
        self.refresh_calls = 0
        self.exchange_calls = 0
        self.fail_refresh = False
        self._counter = itertools.count(1)

    def get_authorization_url(self, state: str) -> str:
        return f"https://id.jobadder.com/connect/authorize?client_id=test-client&state={state}"

    async def exchange_code(self, code: str) -> JobAdderTokenResponse:
        self.exchange_calls += 1
        if code == "bad-code":
            raise InvalidTokenError("JobAdder rejected the authorization_code grant")
        return JobAdderTokenResponse(access_token=f"access-{code}", refresh_token=f"refresh-{code}", expires_in=3600)

    async def refresh(self, refresh_token: str) -> JobAdderTokenResponse:
        self.refresh_calls += 1
        await asyncio.sleep(0)
        if self.fail_refresh:
            raise InvalidTokenError("JobAdder rejected the refresh_token grant")
        n = next(self._counter)
        return JobAdderTokenResponse(access_token=f"refreshed-{n}", refresh_token=f"refresh-{n}", expires_in=3600)


# =============================================================================
# Fake JobAdder API
# =============================================================================

class FakeJobAdderAPI:
    """
    Minimal JobAdder v2 API behind httpx.MockTransport.

    `fail` maps a path (without the /v2 prefix) to a status code returned
    for every request on it; `requests` records every request seen.
    """

    def __init__(self):
        self.jobs: dict[str, dict[str, Any]] = {}
        self.candidates: dict[str, dict[str, Any]] = {}
        self.resumes: dict[str, tuple[dict[str, Any], str]] = {}
        self.experiences: dict[str, list[dict[str, Any]]] = {}
        self.education: dict[str, list[dict[str, Any]]] = {}
        self.placements: dict[str, list[dict[str, Any]]] = {}
        self.webhooks: list[dict[str, Any]] = []
        self.fail: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[str]:
        return [self._path(r) for r in self.requests]

    @staticmethod
    def _path(request: httpx.Request) -> str:
        path = request.url.path
        return path[len("/v2"):] if path.startswith("/v2") else path

    @staticmethod
    def _page(items: list[dict[str, Any]], request: httpx.Request) -> httpx.Response:
        limit = int(request.url.params.get("limit", len(items) or 1))
        offset = int(request.url.params.get("offset", 0))
        return httpx.Response(200, json={"data": items[offset:offset + limit]})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self._path(request)

        if path in self.fail:
            return httpx.Response(self.fail[path], json={"error": "failure"})

        if path == "/jobs":
            return self._page(list(self.jobs.values()), request)
        if match := re.fullmatch(r"/jobs/([^/]+)", path):
            job = self.jobs.get(match.group(1))
            return httpx.Response(200, json=job) if job else httpx.Response(404, json={"error": "not_found"})

        if path == "/candidates":
            return self._page(list(self.candidates.values()), request)
        if match := re.fullmatch(r"/candidates/([^/]+)", path):
            candidate = self.candidates.get(match.group(1))
            return httpx.Response(200, json=candidate) if candidate else httpx.Response(404, json={"error": "not_found"})
        if match := re.fullmatch(r"/candidates/([^/]+)/attachments", path):
            resume = self.resumes.get(match.group(1))
            return httpx.Response(200, json=[resume[0]] if resume else [])
        if match := re.fullmatch(r"/candidates/([^/]+)/attachments/([^/]+)/content", path):
            resume = self.resumes.get(match.group(1))
            return httpx.Response(200, json={"content": resume[1]}) if resume else httpx.Response(404)
        if match := re.fullmatch(r"/candidates/([^/]+)/(experiences|education|placements)", path):
            source = getattr(self, match.group(2))
            return httpx.Response(200, json=source.get(match.group(1), []))

        if path == "/webhooks" and request.method == "GET":
            return httpx.Response(200, json={"data": self.webhooks})
        if path == "/webhooks" and request.method == "POST":
            body = json.loads(request.content)
            hook = {"id": f"wh-{len(self.webhooks) + 1}", **body}
            self.webhooks.append(hook)
            return httpx.Response(201, json=hook)
        if match := re.fullmatch(r"/webhooks/([^/]+)", path):
            body = json.loads(request.content)
            for hook in self.webhooks:
                if hook["id"] == match.group(1):
                    hook.update(body)
                    return httpx.Response(200, json=hook)
            return httpx.Response(404)

        return httpx.Response(404, json={"error": f"unknown path {path}"})


# =============================================================================
# Sample payloads
# =============================================================================

def make_job(job_id: str = "101", **overrides) -> dict[str, Any]:
    job = {
        "id": job_id,
        "reference": f"JOB-{job_id}",
        "title": "Senior Backend Engineer",
        "status": "active",
        "workType": "permanent",
        "description": "Build APIs.\n\nWork with a great team.",
        "location": {"city": "Sydney", "state": "NSW", "country": "Australia"},
        "salary": {"minimum": 150000, "maximum": 180000, "type": "annual", "currency": "AUD"},
        "applicationUrl": f"https://apply.example.com/{job_id}",
        "postedDate": "2026-01-10T00:00:00Z",
    }
    job.update(overrides)
    return job


def make_candidate(candidate_id: str = "201", **overrides) -> dict[str, Any]:
    candidate = {
        "id": candidate_id,
        "reference": f"CAND-{candidate_id}",
        "firstName": "Alex",
        "lastName": "Morgan",
        "email": f"alex{candidate_id}@example.com",
        "status": "active",
        "skills": ["Python"],
        "address": {"city": "Melbourne", "state": "VIC", "country": "Australia"},
        "workTypes": ["permanent"],
    }
    candidate.update(overrides)
    return candidate


def make_webhook_body(event: str, resource_id: str, tenant_id: str = TENANT_ID, webhook_id: Optional[str] = None) -> bytes:
    body: dict[str, Any] = {
        "event": event,
        "data": {"id": resource_id},
        "metadata": {"tenantId": tenant_id},
        "timestamp": "2026-01-15T12:00:00Z",
    }
    if webhook_id:
        body["webhookId"] = webhook_id
    return json.dumps(body).encode()


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    """Fixed clock; tests may move it by assigning clock.now."""
    class Clock:
        now = NOW

        def __call__(self) -> datetime:
            return self.now

    return Clock()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def consent_repo() -> FakeConsentRepository:
    return FakeConsentRepository()


@pytest.fixture
def queue_repo() -> FakeEnrichmentQueueRepository:
    return FakeEnrichmentQueueRepository()


@pytest.fixture
def access_log_repo() -> FakeDataAccessLogRepository:
    return FakeDataAccessLogRepository()


@pytest.fixture
def oauth() -> FakeOAuthClient:
    return FakeOAuthClient()


@pytest.fixture
def api() -> FakeJobAdderAPI:
    return FakeJobAdderAPI()


@pytest.fixture
def client_factory(api: FakeJobAdderAPI):
    """Builds JobAdder clients on the fake API without retry back-off."""
    def factory(tenant_id: str, access_token: str) -> JobAdderClient:
        return JobAdderClient(access_token, transport=api.transport(), wait=wait_none())
    return factory


@pytest.fixture
def services(store, consent_repo, queue_repo, access_log_repo, oauth, client_factory, clock):
    return build_services(
        store=store,
        consent_repo=consent_repo,
        queue_repo=queue_repo,
        access_log_repo=access_log_repo,
        oauth=oauth,
        client_factory=client_factory,
        clock=clock,
        webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def connected_tenant(store: InMemoryDocumentStore, services) -> str:
    """A JobAdder-enabled tenant with a valid stored credential."""
    store.add("tenants", {"id": TENANT_ID, "name": "Tenant A", "features": {"jobadder": True}})
    store.add("ats_credentials", {
        "tenant_id": TENANT_ID,
        "source": "jobadder",
        "access_token": "valid-token",
        "refresh_token": "refresh-0",
        "expires_at": "2026-01-15T13:00:00+00:00",
    }, source_id="jobadder")
    return TENANT_ID


def seed_credential(store: InMemoryDocumentStore, tenant_id: str, access_token: str, expires_at: str):
    """Store (or replace) a tenant credential the way save_credential keys it."""
    key = ("ats_credentials", tenant_id, "jobadder")
    existing = store._keys.get(key)
    if existing:
        del store.collections["ats_credentials"][existing]
    store.add("ats_credentials", {
        "tenant_id": tenant_id,
        "source": "jobadder",
        "access_token": access_token,
        "refresh_token": f"refresh-for-{access_token}",
        "expires_at": expires_at,
    }, source_id="jobadder")
