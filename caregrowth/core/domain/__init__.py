"""Domain models for the CareGrowth service.

- document: Document, Chunk and ScoredChunk
- answer: SearchAnswer, SourceCitation, ChatMessage and friends

All models are re-exported here:

    from caregrowth.core.domain import Chunk, ScoredChunk, SearchAnswer
"""

from .answer import (
    AnswerCategory,
    ChatMessage,
    Completion,
    IngestionReport,
    SearchAnswer,
    SourceCitation,
)
from .document import Chunk, Document, ScoredChunk, ScoringMethod

__all__ = [
    # Document models
    "Document",
    "Chunk",
    "ScoredChunk",
    "ScoringMethod",
    # Answer models
    "AnswerCategory",
    "ChatMessage",
    "Completion",
    "IngestionReport",
    "SearchAnswer",
    "SourceCitation",
]
