"""FastAPI dependency accessors.

Routers resolve services through these names so tests can patch them.
"""

from ....composition.container import (
    get_chunk_store,
    get_ingestion_service,
    get_search_service,
    get_store,
)

__all__ = [
    "get_chunk_store",
    "get_ingestion_service",
    "get_search_service",
    "get_store",
]
