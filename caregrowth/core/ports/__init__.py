"""Port interfaces implemented by outbound adapters."""

from .chunk_store_port import ChunkStorePort, DocumentRepositoryPort
from .content_port import ContentFetcherPort
from .embedding_port import EmbeddingPort
from .llm_port import LLMPort
from .qa_log_port import QALogPort

__all__ = [
    "ChunkStorePort",
    "ContentFetcherPort",
    "DocumentRepositoryPort",
    "EmbeddingPort",
    "LLMPort",
    "QALogPort",
]
