"""Relational storage: schema, idempotent ingestion store and read queries."""

from skillmind_indexer.storage.schema import metadata
from skillmind_indexer.storage.store import SqlIngestionStore, create_store_engine

__all__ = ["metadata", "SqlIngestionStore", "create_store_engine"]
