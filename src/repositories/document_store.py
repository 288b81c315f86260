"""
Document store - collection-keyed JSON documents.

Tenants, jobs, candidates and ATS credentials all live here. Synced
records are keyed by (collection, tenant_id, source_id); the pair
(tenant_id, source_id) identifies exactly one document per collection,
enforced by a unique constraint and an atomic upsert.
"""
import asyncpg
import json
import uuid
from abc import ABC, abstractmethod
from typing import Any, Optional

from src.exceptions import NotFoundError, PersistenceError
from src.models.records import UpsertResult


def expand_where(where: dict[str, Any]) -> dict[str, Any]:
    """
    Turn dotted-path filters into a nested document for JSONB containment.

    Example:
        >>> expand_where({"ats_data.source_id": "42", "tenant_id": "t1"})
        {'ats_data': {'source_id': '42'}, 'tenant_id': 't1'}
    """
    nested: dict[str, Any] = {}
    for path, value in where.items():
        node = nested
        keys = path.split(".")
        for key in keys[:-1]:
            node = node.setdefault(key, {})
        node[keys[-1]] = value
    return nested


def get_path(document: dict[str, Any], path: str) -> Any:
    """Resolve a dotted path in a document; None when any segment is missing."""
    node: Any = document
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


class DocumentStore(ABC):
    """
    Collection-keyed document store.

    Every returned document is a plain dict carrying its `id`.
    """

    @abstractmethod
    async def find(self, collection: str, where: dict[str, Any], limit: Optional[int] = None) -> list[dict[str, Any]]:
        """Documents whose fields equal every (dotted path -> value) filter."""

    @abstractmethod
    async def find_by_id(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        """A single document, or None."""

    @abstractmethod
    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a new document."""

    @abstractmethod
    async def update(self, collection: str, document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Shallow-merge data into an existing document. Raises NotFoundError."""

    @abstractmethod
    async def upsert(
        self,
        collection: str,
        tenant_id: str,
        source_id: str,
        data: dict[str, Any],
    ) -> UpsertResult:
        """Atomically insert or replace the document keyed by (tenant_id, source_id)."""

    async def find_one(self, collection: str, where: dict[str, Any]) -> Optional[dict[str, Any]]:
        docs = await self.find(collection, where, limit=1)
        return docs[0] if docs else None

    async def find_by_source_id(self, collection: str, tenant_id: str, source_id: str) -> Optional[dict[str, Any]]:
        return await self.find_one(collection, {"tenant_id": tenant_id, "ats_data.source_id": source_id})


class PostgresDocumentStore(DocumentStore):
    """DocumentStore backed by the ats.documents JSONB table."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @staticmethod
    def _to_document(row: asyncpg.Record) -> dict[str, Any]:
        data = row["data"]
        if isinstance(data, str):
            data = json.loads(data)
        return {**data, "id": str(row["id"])}

    @staticmethod
    def _dump(data: dict[str, Any]) -> str:
        return json.dumps({k: v for k, v in data.items() if k != "id"}, default=str)

    async def find(self, collection: str, where: dict[str, Any], limit: Optional[int] = None) -> list[dict[str, Any]]:
        filters = dict(where)
        conditions = ["collection = $1"]
        params: list[Any] = [collection]
        param_idx = 2

        document_id = filters.pop("id", None)
        if document_id is not None:
            conditions.append(f"id = ${param_idx}")
            params.append(uuid.UUID(str(document_id)))
            param_idx += 1

        if filters:
            conditions.append(f"data @> ${param_idx}::jsonb")
            params.append(json.dumps(expand_where(filters), default=str))
            param_idx += 1

        query = f"""
            SELECT id, data
            FROM ats.documents
            WHERE {' AND '.join(conditions)}
            ORDER BY created_at
        """
        if limit is not None:
            query += f" LIMIT ${param_idx}"
            params.append(limit)

        rows = await self.pool.fetch(query, *params)
        return [self._to_document(row) for row in rows]

    async def find_by_id(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        try:
            doc_uuid = uuid.UUID(str(document_id))
        except ValueError:
            return None
        row = await self.pool.fetchrow(
            """
            SELECT id, data
            FROM ats.documents
            WHERE collection = $1 AND id = $2
            """,
            collection,
            doc_uuid,
        )
        return self._to_document(row) if row else None

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        try:
            row = await self.pool.fetchrow(
                """
                INSERT INTO ats.documents (collection, tenant_id, source_id, data)
                VALUES ($1, $2, $3, $4::jsonb)
                RETURNING id, data
                """,
                collection,
                data.get("tenant_id"),
                get_path(data, "ats_data.source_id"),
                self._dump(data),
            )
        except asyncpg.PostgresError as e:
            raise PersistenceError(f"Could not create {collection} document: {e}", collection)
        return self._to_document(row)

    async def update(self, collection: str, document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        try:
            row = await self.pool.fetchrow(
                """
                UPDATE ats.documents
                SET data = data || $3::jsonb, updated_at = NOW()
                WHERE collection = $1 AND id = $2
                RETURNING id, data
                """,
                collection,
                uuid.UUID(str(document_id)),
                self._dump(data),
            )
        except asyncpg.PostgresError as e:
            raise PersistenceError(f"Could not update {collection} document: {e}", collection)
        if row is None:
            raise NotFoundError(collection, str(document_id))
        return self._to_document(row)

    async def upsert(
        self,
        collection: str,
        tenant_id: str,
        source_id: str,
        data: dict[str, Any],
    ) -> UpsertResult:
        # xmax = 0 only for freshly inserted rows
        try:
            row = await self.pool.fetchrow(
                """
                INSERT INTO ats.documents (collection, tenant_id, source_id, data)
                VALUES ($1, $2, $3, $4::jsonb)
                ON CONFLICT (collection, tenant_id, source_id)
                DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
                RETURNING id, data, (xmax = 0) AS inserted
                """,
                collection,
                tenant_id,
                source_id,
                self._dump(data),
            )
        except asyncpg.PostgresError as e:
            raise PersistenceError(f"Could not upsert {collection} document: {e}", collection)
        return UpsertResult(id=str(row["id"]), created=bool(row["inserted"]), document=self._to_document(row))
