"""Chunk scoring: rank a query's candidate chunks by relevance.

Scoring runs an ordered list of strategies that share one signature,
``score(query, chunks) -> list[ScoredChunk]``:

1. ``VectorSimilarityStrategy``: cosine similarity with an adaptive threshold.
2. ``KeywordStrategy``: token overlap, used when vectors are unavailable or
   return too few chunks.
3. ``LongestContentStrategy``: last resort when nothing else matched.

Results are merged in strategy order and deduplicated by
``(document_id, chunk_index)``. Sorting is stable so equal scores keep the
input chunk order, which makes ranking deterministic for identical inputs.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from ..domain import Chunk, ScoredChunk, ScoringMethod
from .similarity import cosine_similarity

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    {
        "the", "is", "at", "which", "on", "and", "a", "to", "are", "as",
        "was", "were", "been", "be", "have", "has", "had", "do", "does",
        "did", "will", "would", "could", "should", "may", "might", "must",
        "can", "shall", "of", "in", "for", "with", "by", "from", "about",
        "an", "or", "but", "if", "then", "than", "when", "where", "how",
        "what", "who", "why", "not", "you", "all", "this", "that", "these",
        "those", "there", "their", "our", "your", "any", "into",
    }
)  # fmt: skip


@dataclass(frozen=True)
class ScoringQuery:
    """The query as seen by scoring strategies."""

    text: str
    embedding: list[float] | None = None


def tokenize_query(text: str, max_tokens: int = 10) -> list[str]:
    """Extract distinct keyword tokens from a query.

    Splits on non-word characters, lowercases, drops tokens of two characters
    or fewer and stop words, and keeps the first ``max_tokens`` in order.
    """
    tokens: list[str] = []
    for token in re.split(r"\W+", text.lower()):
        if len(token) <= 2 or token in STOP_WORDS or token in tokens:
            continue
        tokens.append(token)
        if len(tokens) >= max_tokens:
            break
    return tokens


class ChunkScoringStrategy(ABC):
    """A single way of scoring chunks against a query."""

    method: ScoringMethod
    # Only consulted when every earlier strategy came back empty
    last_resort: bool = False

    @abstractmethod
    def score(self, query: ScoringQuery, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
        """Return the chunks this strategy considers relevant, best first."""
        ...


class VectorSimilarityStrategy(ChunkScoringStrategy):
    """Cosine similarity against chunk embeddings with an adaptive cutoff.

    The cutoff is ``max(threshold_floor, top_score * threshold_ratio)``. When
    no chunk clears it, the ``min_keep`` best positive chunks are kept anyway
    so a request with any signal never comes back empty.
    """

    method = ScoringMethod.VECTOR

    def __init__(
        self,
        threshold_floor: float = 0.1,
        threshold_ratio: float = 0.4,
        min_keep: int = 3,
        max_results: int = 5,
    ) -> None:
        self.threshold_floor = threshold_floor
        self.threshold_ratio = threshold_ratio
        self.min_keep = min_keep
        self.max_results = max_results

    @staticmethod
    def is_applicable(query: ScoringQuery, chunks: Sequence[Chunk]) -> bool:
        """True when the query has an embedding and some chunk matches its dimension."""
        if not query.embedding:
            return False
        dimension = len(query.embedding)
        return any(chunk.embedding and len(chunk.embedding) == dimension for chunk in chunks)

    def score(self, query: ScoringQuery, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
        if not self.is_applicable(query, chunks):
            return []

        scored = [
            (chunk, max(0.0, cosine_similarity(query.embedding, chunk.embedding)))
            for chunk in chunks
            if chunk.embedding
        ]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        positive = [pair for pair in scored if pair[1] > 0.0]
        if not positive:
            return []

        threshold = max(self.threshold_floor, positive[0][1] * self.threshold_ratio)
        kept = [pair for pair in positive if pair[1] >= threshold]
        if not kept:
            kept = positive[: self.min_keep]

        logger.debug(
            "Vector scoring: %d candidates, threshold %.3f, kept %d",
            len(positive),
            threshold,
            len(kept),
        )
        return [
            ScoredChunk(chunk=chunk, score=similarity, method=self.method)
            for chunk, similarity in kept[: self.max_results]
        ]


class KeywordStrategy(ChunkScoringStrategy):
    """Fraction of query tokens found as substrings of the chunk content."""

    method = ScoringMethod.KEYWORD

    def __init__(self, max_tokens: int = 10, min_score: float = 0.2, max_results: int = 5) -> None:
        self.max_tokens = max_tokens
        self.min_score = min_score
        self.max_results = max_results

    def score(self, query: ScoringQuery, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
        tokens = tokenize_query(query.text, self.max_tokens)
        if not tokens:
            return []

        results = []
        for chunk in chunks:
            content = chunk.content.lower()
            matched = sum(1 for token in tokens if token in content)
            ratio = matched / len(tokens)
            if ratio > self.min_score:
                results.append(ScoredChunk(chunk=chunk, score=ratio, method=self.method))

        results.sort(key=lambda scored: scored.score, reverse=True)
        return results[: self.max_results]


class LongestContentStrategy(ChunkScoringStrategy):
    """Pick the longest chunks with a fixed low confidence."""

    method = ScoringMethod.FALLBACK
    last_resort = True

    def __init__(self, max_results: int = 3, confidence: float = 0.05) -> None:
        self.max_results = max_results
        self.confidence = confidence

    def score(self, query: ScoringQuery, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
        candidates = [chunk for chunk in chunks if chunk.content.strip()]
        candidates.sort(key=lambda chunk: len(chunk.content), reverse=True)
        return [
            ScoredChunk(chunk=chunk, score=self.confidence, method=self.method)
            for chunk in candidates[: self.max_results]
        ]


class ChunkScorer:
    """Runs scoring strategies in order and merges their results.

    A strategy runs only while the merged list is shorter than
    ``min_results``. Last-resort strategies run only when the merged list is
    still empty.

    Args:
        strategies: Strategies in priority order.
        min_results: Merged size at which later strategies are skipped.
        max_results: Cap on the merged list.
    """

    def __init__(
        self,
        strategies: Sequence[ChunkScoringStrategy] | None = None,
        min_results: int = 5,
        max_results: int = 8,
    ) -> None:
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self.min_results = min_results
        self.max_results = max_results

    @classmethod
    def from_settings(cls, settings) -> "ChunkScorer":
        """Build a scorer from application settings."""
        return cls(
            strategies=[
                VectorSimilarityStrategy(
                    threshold_floor=settings.vector_threshold_floor,
                    threshold_ratio=settings.vector_threshold_ratio,
                    min_keep=settings.vector_min_keep,
                    max_results=settings.vector_max_results,
                ),
                KeywordStrategy(
                    max_tokens=settings.keyword_max_tokens,
                    min_score=settings.keyword_min_score,
                    max_results=settings.keyword_max_results,
                ),
                LongestContentStrategy(
                    max_results=settings.fallback_max_results,
                    confidence=settings.fallback_confidence,
                ),
            ],
            min_results=settings.min_vector_results,
            max_results=settings.max_results,
        )

    def rank(self, query: ScoringQuery, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
        """Score ``chunks`` against ``query``.

        Args:
            query: Query text and optional embedding.
            chunks: Candidate chunks, in store order.

        Returns:
            Scored chunks, best first, capped at ``max_results``. Empty only
            when ``chunks`` holds no content at all.
        """
        merged: list[ScoredChunk] = []
        seen: set[tuple[str, int]] = set()

        for strategy in self.strategies:
            if merged and (strategy.last_resort or len(merged) >= self.min_results):
                break
            for scored in strategy.score(query, chunks):
                if scored.chunk.key in seen:
                    continue
                seen.add(scored.chunk.key)
                merged.append(scored)

        logger.debug(
            "Ranked %d of %d chunks (%s)",
            len(merged),
            len(chunks),
            ", ".join(sorted({scored.method.value for scored in merged})) or "none",
        )
        return merged[: self.max_results]


def default_strategies() -> list[ChunkScoringStrategy]:
    """Vector, keyword and longest-content strategies with default knobs."""
    return [VectorSimilarityStrategy(), KeywordStrategy(), LongestContentStrategy()]
