"""Vector store contract and backends."""

from .base import VectorStore, VectorStoreRegistry
from .pgvector import PgVectorStore

__all__ = ["VectorStore", "VectorStoreRegistry", "PgVectorStore"]
