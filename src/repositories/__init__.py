"""
Repository layer for data access.
"""
from .document_store import DocumentStore, PostgresDocumentStore
from .consent_repo import ConsentRepository
from .enrichment_queue_repo import EnrichmentQueueRepository
from .data_access_repo import DataAccessLogRepository

__all__ = [
    "DocumentStore",
    "PostgresDocumentStore",
    "ConsentRepository",
    "EnrichmentQueueRepository",
    "DataAccessLogRepository",
]
