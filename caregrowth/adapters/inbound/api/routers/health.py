"""Health check endpoints."""

from fastapi import APIRouter

from ..... import __version__
from .....core.domain.exceptions import ChunkStoreError
from ..deps import get_chunk_store
from ..models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Basic liveness check."""
    return HealthResponse(status="healthy", version=__version__, chunk_store="not_checked")


@router.get("/ready", response_model=HealthResponse)
def readiness_check() -> HealthResponse:
    """Readiness check: confirms that the chunk store answers.

    Returns:
        HealthResponse with "ready" or "degraded" status.
    """
    try:
        count = get_chunk_store().count_chunks()
    except ChunkStoreError as e:
        return HealthResponse(status="degraded", version=__version__, chunk_store=f"error: {e.message}")

    return HealthResponse(
        status="ready",
        version=__version__,
        chunk_store=f"connected ({count} chunks)",
    )
