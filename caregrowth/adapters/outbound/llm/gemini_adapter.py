"""Google Gemini adapters for generation and embeddings using the google-genai SDK."""

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

import httpx

from ....common.rate_limiter import RateLimiter
from ....common.retry import retry_with_backoff
from ....core.domain import Completion
from ....core.domain.exceptions import (
    EmbeddingAPIError,
    EmbeddingRateLimitError,
    LLMConnectionError,
    LLMGenerationError,
    LLMRateLimitError,
    MissingAPIKeyError,
)
from ....core.ports.embedding_port import EmbeddingPort
from ....core.ports.llm_port import LLMPort

if TYPE_CHECKING:
    from google import genai
    from google.genai.types import GenerateContentConfig

logger = logging.getLogger(__name__)

# Constants
EMBEDDING_BATCH_SIZE = 20


class _GeminiClientMixin:
    """Lazy ``genai.Client`` creation shared by the Gemini adapters."""

    api_key: str
    _client: "genai.Client | None"

    def _get_client(self) -> "genai.Client":
        """Lazy load the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise MissingAPIKeyError(
                    "Google API key not set. Set GOOGLE_API_KEY in your .env file."
                )

            from google import genai

            self._client = genai.Client(api_key=self.api_key)
            logger.info("Gemini client initialized")
        return self._client


class GeminiLLMAdapter(_GeminiClientMixin, LLMPort):
    """Text generation with Gemini models."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        max_attempts: int = 3,
        base_delay: float = 1.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: Google AI API key.
            model: Default Gemini model.
            max_attempts: Attempts for rate limits and server errors.
            base_delay: First backoff delay in seconds.
            rate_limiter: Optional limiter acquired before each call.
        """
        self.api_key = api_key
        self.model = model
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.rate_limiter = rate_limiter
        self._client = None

    @staticmethod
    def _translate(exc: Exception, model: str) -> Exception:
        """Map an SDK or transport failure onto the LLM error family."""
        from google.genai import errors

        if isinstance(exc, errors.APIError):
            context = {"model": model, "status": exc.code}
            if exc.code == 429:
                return LLMRateLimitError(
                    "Language model rate limit exceeded", cause=exc, context=context
                )
            if exc.code and exc.code >= 500:
                return LLMConnectionError(
                    "Language model provider is unavailable", cause=exc, context=context
                )
            return LLMGenerationError(
                "Language model rejected the request", cause=exc, context=context
            )
        # The SDK transport raises httpx errors for timeouts and refused connections
        return LLMConnectionError(
            "Could not reach the language model provider", cause=exc, context={"model": model}
        )

    def _call(self, prompt: str, model: str, config) -> object:
        from google.genai import errors

        if self.rate_limiter:
            self.rate_limiter.acquire()

        try:
            return self._get_client().models.generate_content(
                model=model, contents=prompt, config=config
            )
        except (errors.APIError, httpx.HTTPError, ConnectionError, TimeoutError) as exc:
            raise self._translate(exc, model) from exc

    def _config(
        self, system_prompt: str | None, temperature: float, max_tokens: int
    ) -> "GenerateContentConfig":
        from google.genai.types import GenerateContentConfig

        return GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )

    def _model_name(self, model: str | None) -> str:
        # Names of OpenAI models passed for categorization do not apply here
        return model if model and model.startswith("gemini") else self.model

    def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        model: str | None = None,
    ) -> Completion:
        """Generate a completion for ``prompt``.

        Raises:
            MissingAPIKeyError: If no API key is configured.
            LLMError: On provider failures or an empty (e.g. safety-filtered) answer.
        """
        model_name = self._model_name(model)
        config = self._config(system_prompt, temperature, max_tokens)

        response = retry_with_backoff(
            lambda: self._call(prompt, model_name, config),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            retry_on=(LLMConnectionError, LLMRateLimitError),
            operation_name="Gemini generate_content",
        )

        text = getattr(response, "text", None)
        if not text or not text.strip():
            raise LLMGenerationError(
                "Language model returned an empty answer", context={"model": model_name}
            )

        usage = getattr(response, "usage_metadata", None)
        tokens = getattr(usage, "total_token_count", None) if usage else None
        return Completion(text=text, tokens_used=tokens)

    def generate_stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        model: str | None = None,
    ) -> Iterator[str]:
        """Yield answer text as Gemini produces it.

        Failures are raised as ``LLMError`` whether they happen before the
        first chunk or mid-stream. Streams are not retried.
        """
        from google.genai import errors

        model_name = self._model_name(model)
        config = self._config(system_prompt, temperature, max_tokens)
        if self.rate_limiter:
            self.rate_limiter.acquire()

        produced = False
        try:
            for chunk in self._get_client().models.generate_content_stream(
                model=model_name, contents=prompt, config=config
            ):
                if chunk.text:
                    produced = True
                    yield chunk.text
        except (errors.APIError, httpx.HTTPError, ConnectionError, TimeoutError) as exc:
            raise self._translate(exc, model_name) from exc

        if not produced:
            raise LLMGenerationError(
                "Language model returned an empty answer", context={"model": model_name}
            )


class GeminiEmbeddingAdapter(_GeminiClientMixin, EmbeddingPort):
    """Embeddings with Gemini embedding models."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-embedding-001",
        dimensions: int | None = 512,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.dimensions = dimensions
        self._client = None

    def _embed(self, texts: list[str], task_type: str) -> list[list[float]]:
        from google.genai import errors
        from google.genai.types import EmbedContentConfig

        try:
            result = self._get_client().models.embed_content(
                model=self.model,
                contents=texts,
                config=EmbedContentConfig(
                    task_type=task_type,
                    output_dimensionality=self.dimensions,
                ),
            )
        except errors.APIError as exc:
            if exc.code == 429:
                raise EmbeddingRateLimitError(
                    "Embedding rate limit exceeded", cause=exc, context={"model": self.model}
                ) from exc
            raise EmbeddingAPIError(
                "Embedding request failed", cause=exc, context={"model": self.model}
            ) from exc
        except (httpx.HTTPError, ConnectionError, TimeoutError) as exc:
            raise EmbeddingAPIError(
                "Could not reach the embedding provider", cause=exc, context={"model": self.model}
            ) from exc

        return [list(embedding.values or []) for embedding in result.embeddings or []]

    def embed_query(self, text: str) -> list[float] | None:
        embeddings = self._embed([text], task_type="RETRIEVAL_QUERY")
        return embeddings[0] if embeddings and embeddings[0] else None

    def embed_documents(self, texts: list[str]) -> list[list[float] | None]:
        """Embed texts in batches. A failed batch yields None for each of its texts."""
        results: list[list[float] | None] = []
        for start in range(0, len(texts), EMBEDDING_BATCH_SIZE):
            batch = texts[start : start + EMBEDDING_BATCH_SIZE]
            try:
                embeddings: list[list[float] | None] = [
                    vector or None for vector in self._embed(batch, "RETRIEVAL_DOCUMENT")
                ]
            except (EmbeddingAPIError, EmbeddingRateLimitError) as exc:
                logger.warning("Embedding batch at %d failed: %s", start, exc)
                embeddings = []
            embeddings.extend([None] * (len(batch) - len(embeddings)))
            results.extend(embeddings[: len(batch)])
        return results
