"""Exception hierarchy for the CareGrowth service.

Every error type is importable from this package:

    from caregrowth.core.domain.exceptions import CareGrowthError, LLMConnectionError
"""

from .base import CareGrowthError, ExceptionContext
from .chunk_store import (
    ChunkStoreConnectionError,
    ChunkStoreError,
    ChunkStoreQueryError,
)
from .configuration import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingAPIKeyError,
)
from .document import (
    ContentFetchError,
    DocumentError,
    DocumentNotFoundError,
)
from .embedding import (
    EmbeddingAPIError,
    EmbeddingError,
    EmbeddingRateLimitError,
)
from .llm import (
    LLMConnectionError,
    LLMError,
    LLMGenerationError,
    LLMRateLimitError,
)
from .validation import (
    EmptyQueryError,
    MissingUserError,
    QueryTooLongError,
    ValidationError,
)

__all__ = [
    "ExceptionContext",
    "CareGrowthError",
    "ConfigurationError",
    "MissingAPIKeyError",
    "InvalidConfigurationError",
    "DocumentError",
    "DocumentNotFoundError",
    "ContentFetchError",
    "ChunkStoreError",
    "ChunkStoreConnectionError",
    "ChunkStoreQueryError",
    "EmbeddingError",
    "EmbeddingAPIError",
    "EmbeddingRateLimitError",
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMGenerationError",
    "ValidationError",
    "EmptyQueryError",
    "MissingUserError",
    "QueryTooLongError",
]
