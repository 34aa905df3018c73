"""Chunk and document storage adapters."""

from .qdrant_adapter import QdrantChunkStore
from .sqlite_adapter import SQLiteStore

__all__ = ["QdrantChunkStore", "SQLiteStore"]
