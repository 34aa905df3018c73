"""Embedding exceptions."""

from .base import CareGrowthError


class EmbeddingError(CareGrowthError):
    """Failed to generate embeddings."""

    error_code = "CG_EMB_001"


class EmbeddingAPIError(EmbeddingError):
    """Embedding API returned an error."""

    error_code = "CG_EMB_002"


class EmbeddingRateLimitError(EmbeddingError):
    """Embedding API rate limit exceeded."""

    error_code = "CG_EMB_003"
