"""Language model exceptions."""

from .base import CareGrowthError


class LLMError(CareGrowthError):
    """Base error for language model operations."""

    error_code = "CG_LLM_001"


class LLMConnectionError(LLMError):
    """Failed to reach the language model provider.

    Common causes:
    - Invalid API key
    - Network issues or timeouts
    - Provider returned a 5xx status
    """

    error_code = "CG_LLM_002"


class LLMRateLimitError(LLMError):
    """Rate limit exceeded on the language model provider."""

    error_code = "CG_LLM_003"


class LLMGenerationError(LLMError):
    """The provider answered but no usable completion came back.

    Common causes:
    - Malformed JSON body
    - Empty ``choices`` list
    - Content filtered by safety settings
    """

    error_code = "CG_LLM_004"
