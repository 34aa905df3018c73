"""Composition root wiring adapters to the core services."""

from __future__ import annotations

import logging
from functools import lru_cache

from ..adapters.outbound.chunk_store.qdrant_adapter import QdrantChunkStore
from ..adapters.outbound.chunk_store.sqlite_adapter import SQLiteStore
from ..adapters.outbound.content.google_export_adapter import GoogleExportAdapter
from ..adapters.outbound.llm.gemini_adapter import GeminiEmbeddingAdapter, GeminiLLMAdapter
from ..adapters.outbound.llm.openai_adapter import OpenAIChatAdapter, OpenAIEmbeddingAdapter
from ..common.rate_limiter import RateLimiter
from ..config import settings
from ..core.domain.exceptions import InvalidConfigurationError
from ..core.ports.chunk_store_port import ChunkStorePort
from ..core.ports.embedding_port import EmbeddingPort
from ..core.ports.llm_port import LLMPort
from ..core.services.answer_synthesis import AnswerSynthesizer
from ..core.services.chunk_scoring import ChunkScorer
from ..core.services.ingestion_service import IngestionService
from ..core.services.search_service import DocumentSearchService

logger = logging.getLogger(__name__)


@lru_cache
def get_store() -> SQLiteStore:
    """Document registry and Q&A log, always SQLite."""
    logger.info("Initializing SQLiteStore at %s...", settings.sqlite_path)
    settings.ensure_directories()
    return SQLiteStore(settings.sqlite_path)


@lru_cache
def get_chunk_store() -> ChunkStorePort:
    if settings.chunk_store_backend == "qdrant":
        if not settings.qdrant_url:
            raise InvalidConfigurationError(
                "CHUNK_STORE_BACKEND is qdrant but QDRANT_URL is not set",
                context={"chunk_store_backend": settings.chunk_store_backend},
            )
        logger.info("Initializing QdrantChunkStore...")
        return QdrantChunkStore(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            collection_name=settings.qdrant_collection,
            dimension=settings.embedding_dimensions,
        )
    return get_store()


@lru_cache
def get_llm() -> LLMPort:
    llm_rate_limiter = RateLimiter(settings.llm_requests_per_minute)
    if settings.llm_provider == "gemini":
        logger.info("Initializing GeminiLLMAdapter (%s)...", settings.llm_model)
        return GeminiLLMAdapter(
            api_key=settings.google_api_key,
            model=settings.llm_model,
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            rate_limiter=llm_rate_limiter,
        )

    logger.info("Initializing OpenAIChatAdapter (%s)...", settings.llm_model)
    return OpenAIChatAdapter(
        api_key=settings.openai_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout,
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay,
        rate_limiter=llm_rate_limiter,
    )


@lru_cache
def get_embedder() -> EmbeddingPort | None:
    """Embedding adapter, or None when the provider has no API key.

    Without an embedder, search falls back to keyword scoring.
    """
    if settings.embedding_provider == "gemini":
        if not settings.google_api_key:
            logger.warning("GOOGLE_API_KEY not set, vector search disabled")
            return None
        return GeminiEmbeddingAdapter(
            api_key=settings.google_api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
        )

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set, vector search disabled")
        return None
    return OpenAIEmbeddingAdapter(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        timeout=settings.request_timeout,
    )


@lru_cache
def get_fetcher() -> GoogleExportAdapter:
    return GoogleExportAdapter(
        access_token=settings.google_drive_access_token,
        timeout=settings.request_timeout,
        min_content_length=settings.min_content_length,
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay,
    )


@lru_cache
def get_search_service() -> DocumentSearchService:
    logger.info("Initializing DocumentSearchService...")
    synthesizer = AnswerSynthesizer(
        get_llm(),
        context_char_budget=settings.context_char_budget,
        chars_per_page=settings.chars_per_page,
        excerpt_chars=settings.excerpt_chars,
        history_messages=settings.history_messages,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        categorization_model=settings.categorization_model,
    )
    store = get_store()
    return DocumentSearchService(
        documents=store,
        chunk_store=get_chunk_store(),
        embedder=get_embedder(),
        scorer=ChunkScorer.from_settings(settings),
        synthesizer=synthesizer,
        qa_log=store,
        max_query_length=settings.max_query_length,
    )


@lru_cache
def get_ingestion_service() -> IngestionService:
    logger.info("Initializing IngestionService...")
    return IngestionService(
        documents=get_store(),
        chunk_store=get_chunk_store(),
        fetcher=get_fetcher(),
        embedder=get_embedder(),
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
    )


def check_configuration() -> list[str]:
    """Human-readable problems with the current configuration."""
    problems = []
    if settings.llm_provider == "openai" and not settings.openai_api_key:
        problems.append("OPENAI_API_KEY is not set")
    if settings.llm_provider == "gemini" and not settings.google_api_key:
        problems.append("GOOGLE_API_KEY is not set")
    if settings.chunk_store_backend == "qdrant" and not settings.qdrant_url:
        problems.append("QDRANT_URL is not set")
    return problems
