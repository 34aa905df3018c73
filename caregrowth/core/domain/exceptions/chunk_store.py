"""Chunk store exceptions."""

from .base import CareGrowthError


class ChunkStoreError(CareGrowthError):
    """Base error for chunk and document storage."""

    error_code = "CG_STO_001"


class ChunkStoreConnectionError(ChunkStoreError):
    """Failed to connect to the chunk store.

    Common causes:
    - Invalid Qdrant URL or API key
    - SQLite database path not writable
    """

    error_code = "CG_STO_002"


class ChunkStoreQueryError(ChunkStoreError):
    """A read or write against the chunk store failed."""

    error_code = "CG_STO_003"
