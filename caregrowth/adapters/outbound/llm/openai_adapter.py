"""OpenAI chat completion and embedding adapters over the REST API."""

import json
import logging
from collections.abc import Iterator
from typing import Any

import requests

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

logger = logging.getLogger(__name__)

# Constants
OPENAI_BASE_URL = "https://api.openai.com/v1"
CHAT_TIMEOUT = 60
EMBEDDING_TIMEOUT = 30
EMBEDDING_BATCH_SIZE = 100


class _OpenAIHTTP:
    """Session, credentials and JSON POST shared by the OpenAI adapters."""

    def __init__(
        self,
        api_key: str,
        session: requests.Session | None = None,
        base_url: str = OPENAI_BASE_URL,
    ) -> None:
        self.api_key = api_key
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")

    def _require_key(self) -> None:
        if not self.api_key:
            raise MissingAPIKeyError(
                "OpenAI API key not set. Set OPENAI_API_KEY in your .env file."
            )

    def _post(
        self, path: str, payload: dict[str, Any], timeout: float, stream: bool = False
    ) -> requests.Response:
        extra: dict[str, Any] = {"stream": True} if stream else {}
        return self.session.post(
            f"{self.base_url}{path}",
            json=payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            **extra,
        )

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()


class OpenAIChatAdapter(_OpenAIHTTP, LLMPort):
    """Chat completions via ``POST /v1/chat/completions``.

    Timeouts, connection errors, 429 and 5xx responses are retried with
    exponential backoff. Any other failure raises immediately.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        session: requests.Session | None = None,
        timeout: float = CHAT_TIMEOUT,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        rate_limiter: RateLimiter | None = None,
        base_url: str = OPENAI_BASE_URL,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: OpenAI API key.
            model: Default chat model.
            session: HTTP session to reuse.
            timeout: Request timeout in seconds.
            max_attempts: Attempts for transient failures.
            base_delay: First backoff delay in seconds.
            rate_limiter: Optional limiter acquired before each call.
            base_url: API base URL, for OpenAI-compatible gateways.
        """
        super().__init__(api_key, session=session, base_url=base_url)
        self.model = model
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.rate_limiter = rate_limiter

    def _payload(
        self,
        prompt: str,
        system_prompt: str | None,
        temperature: float,
        max_tokens: int,
        model: str | None,
    ) -> dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def _send(self, payload: dict[str, Any]) -> requests.Response:
        stream = bool(payload.get("stream"))
        if self.rate_limiter:
            self.rate_limiter.acquire()

        context = {"model": payload["model"]}
        try:
            response = self._post("/chat/completions", payload, self.timeout, stream=stream)
        except requests.Timeout as exc:
            raise LLMConnectionError(
                "Language model request timed out", cause=exc, context=context
            ) from exc
        except requests.RequestException as exc:
            raise LLMConnectionError(
                "Could not reach the language model provider", cause=exc, context=context
            ) from exc

        if response.status_code == 429:
            raise LLMRateLimitError(
                "Language model rate limit exceeded", context={**context, "status": 429}
            )
        if response.status_code >= 500:
            raise LLMConnectionError(
                "Language model provider is unavailable",
                context={**context, "status": response.status_code},
            )
        if not response.ok:
            logger.error("OpenAI API error %s: %s", response.status_code, response.text[:500])
            raise LLMGenerationError(
                "Language model rejected the request",
                context={**context, "status": response.status_code},
            )
        return response

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
            LLMConnectionError: On timeouts, network failures and 5xx after retries.
            LLMRateLimitError: On 429 after retries.
            LLMGenerationError: On other errors or a malformed response body.
        """
        self._require_key()
        payload = self._payload(prompt, system_prompt, temperature, max_tokens, model)

        response = retry_with_backoff(
            lambda: self._send(payload),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            retry_on=(LLMConnectionError, LLMRateLimitError),
            operation_name="OpenAI chat completion",
        )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LLMGenerationError(
                "Invalid response from language model", cause=exc, context={"model": payload["model"]}
            ) from exc

        if not isinstance(content, str) or not content.strip():
            raise LLMGenerationError(
                "Language model returned an empty answer", context={"model": payload["model"]}
            )

        usage = data.get("usage") or {}
        return Completion(text=content, tokens_used=usage.get("total_tokens"))

    def generate_stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        model: str | None = None,
    ) -> Iterator[str]:
        """Yield answer deltas from a ``stream: true`` chat completion.

        Opening the stream is retried like ``generate``; a failure after the
        first delta raises ``LLMConnectionError``. Malformed event lines are
        skipped.
        """
        self._require_key()
        payload = self._payload(prompt, system_prompt, temperature, max_tokens, model)
        payload["stream"] = True

        response = retry_with_backoff(
            lambda: self._send(payload),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            retry_on=(LLMConnectionError, LLMRateLimitError),
            operation_name="OpenAI chat completion stream",
        )

        produced = False
        try:
            for line in response.iter_lines(decode_unicode=True):
                if not line or not line.startswith("data:"):
                    continue
                data = line[len("data:") :].strip()
                if data == "[DONE]":
                    break
                try:
                    delta = json.loads(data)["choices"][0]["delta"].get("content")
                except (ValueError, KeyError, IndexError, TypeError, AttributeError):
                    logger.debug("Skipping malformed stream event: %s", data[:200])
                    continue
                if delta:
                    produced = True
                    yield delta
        except requests.RequestException as exc:
            raise LLMConnectionError(
                "Language model stream was interrupted",
                cause=exc,
                context={"model": payload["model"]},
            ) from exc
        finally:
            response.close()

        if not produced:
            raise LLMGenerationError(
                "Language model returned an empty answer", context={"model": payload["model"]}
            )


class OpenAIEmbeddingAdapter(_OpenAIHTTP, EmbeddingPort):
    """Embeddings via ``POST /v1/embeddings``."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int | None = 512,
        session: requests.Session | None = None,
        timeout: float = EMBEDDING_TIMEOUT,
        base_url: str = OPENAI_BASE_URL,
    ) -> None:
        super().__init__(api_key, session=session, base_url=base_url)
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout

    def _embed(self, inputs: list[str]) -> list[list[float]]:
        self._require_key()

        payload: dict[str, Any] = {"model": self.model, "input": inputs}
        if self.dimensions:
            payload["dimensions"] = self.dimensions

        try:
            response = self._post("/embeddings", payload, self.timeout)
        except requests.RequestException as exc:
            raise EmbeddingAPIError(
                "Could not reach the embedding provider", cause=exc, context={"model": self.model}
            ) from exc

        if response.status_code == 429:
            raise EmbeddingRateLimitError("Embedding rate limit exceeded", context={"model": self.model})
        if not response.ok:
            raise EmbeddingAPIError(
                "Embedding request failed",
                context={"model": self.model, "status": response.status_code},
            )

        try:
            items = sorted(response.json()["data"], key=lambda item: item.get("index", 0))
            return [item["embedding"] for item in items]
        except (ValueError, KeyError, TypeError) as exc:
            raise EmbeddingAPIError(
                "Invalid embedding response", cause=exc, context={"model": self.model}
            ) from exc

    def embed_query(self, text: str) -> list[float] | None:
        """Embedding of a single query, or None if the provider returned nothing."""
        embeddings = self._embed([text])
        return embeddings[0] if embeddings else None

    def embed_documents(self, texts: list[str]) -> list[list[float] | None]:
        """Embed texts in batches. A failed batch yields None for each of its texts."""
        results: list[list[float] | None] = []
        for start in range(0, len(texts), EMBEDDING_BATCH_SIZE):
            batch = texts[start : start + EMBEDDING_BATCH_SIZE]
            try:
                embeddings: list[list[float] | None] = list(self._embed(batch))
            except (EmbeddingAPIError, EmbeddingRateLimitError) as exc:
                logger.warning("Embedding batch at %d failed: %s", start, exc)
                embeddings = []
            # Keep positions aligned with the input texts
            embeddings.extend([None] * (len(batch) - len(embeddings)))
            results.extend(embeddings[: len(batch)])
        return results
