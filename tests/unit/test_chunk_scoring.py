"""Unit tests for chunk scoring strategies and the ChunkScorer pipeline."""

import pytest

from caregrowth.core.domain import ScoringMethod
from caregrowth.core.services.chunk_scoring import (
    ChunkScorer,
    KeywordStrategy,
    LongestContentStrategy,
    ScoringQuery,
    VectorSimilarityStrategy,
    tokenize_query,
)

pytestmark = pytest.mark.unit


def unit_vector_with_similarity(similarity: float) -> list[float]:
    """2-d unit vector whose cosine with [1, 0] equals ``similarity``."""
    return [similarity, (1 - similarity**2) ** 0.5]


QUERY_EMBEDDING = [1.0, 0.0]


class TestTokenizeQuery:
    """Tests for keyword extraction."""

    def test_drops_short_tokens_and_stop_words(self):
        assert tokenize_query("What is the pricing for home care?") == ["pricing", "home", "care"]

    def test_lowercases_and_splits_on_punctuation(self):
        assert tokenize_query("Home-Care PRICING, please") == ["home", "care", "pricing", "please"]

    def test_deduplicates_tokens(self):
        assert tokenize_query("care care CARE plans") == ["care", "plans"]

    def test_caps_token_count(self):
        query = " ".join(f"token{i}" for i in range(20))
        assert len(tokenize_query(query, max_tokens=10)) == 10

    def test_only_stop_words_yields_nothing(self):
        assert tokenize_query("what is it and how") == []


class TestVectorSimilarityStrategy:
    """Tests for vector scoring and the adaptive threshold."""

    def test_skipped_without_query_embedding(self, make_chunk):
        chunks = [make_chunk(embedding=[1.0, 0.0])]
        assert VectorSimilarityStrategy().score(ScoringQuery("q"), chunks) == []

    def test_skipped_when_no_chunk_matches_dimension(self, make_chunk):
        chunks = [make_chunk(embedding=[1.0, 0.0, 0.0])]
        query = ScoringQuery("q", embedding=QUERY_EMBEDDING)
        assert VectorSimilarityStrategy().score(query, chunks) == []

    def test_adaptive_threshold_keeps_only_strong_match(self, make_chunk):
        """Top 0.9 gives threshold 0.36, so chunks at 0.3 and below are dropped."""
        chunks = [
            make_chunk("weak a", chunk_index=0, embedding=unit_vector_with_similarity(0.3)),
            make_chunk("strong", chunk_index=1, embedding=unit_vector_with_similarity(0.9)),
            make_chunk("weak b", chunk_index=2, embedding=unit_vector_with_similarity(0.2)),
        ]
        query = ScoringQuery("q", embedding=QUERY_EMBEDDING)

        results = VectorSimilarityStrategy().score(query, chunks)

        assert [r.chunk.content for r in results] == ["strong"]
        assert results[0].score == pytest.approx(0.9)
        assert results[0].method == ScoringMethod.VECTOR

    def test_keeps_top_three_when_nothing_clears_floor(self, make_chunk):
        """Similarities below the 0.1 floor still yield the best three."""
        sims = [0.05, 0.08, 0.06, 0.07]
        chunks = [
            make_chunk(f"c{i}", chunk_index=i, embedding=unit_vector_with_similarity(s))
            for i, s in enumerate(sims)
        ]
        query = ScoringQuery("q", embedding=QUERY_EMBEDDING)

        results = VectorSimilarityStrategy().score(query, chunks)

        assert [r.chunk.content for r in results] == ["c1", "c3", "c2"]

    def test_never_empties_a_set_with_positive_similarity(self, make_chunk):
        chunks = [make_chunk("only", embedding=unit_vector_with_similarity(0.01))]
        query = ScoringQuery("q", embedding=QUERY_EMBEDDING)
        assert len(VectorSimilarityStrategy().score(query, chunks)) == 1

    def test_caps_results(self, make_chunk):
        chunks = [
            make_chunk(f"c{i}", chunk_index=i, embedding=unit_vector_with_similarity(0.9))
            for i in range(10)
        ]
        query = ScoringQuery("q", embedding=QUERY_EMBEDDING)
        assert len(VectorSimilarityStrategy(max_results=5).score(query, chunks)) == 5
        assert len(VectorSimilarityStrategy(max_results=8).score(query, chunks)) == 8

    def test_ties_keep_input_order(self, make_chunk):
        chunks = [
            make_chunk(f"c{i}", chunk_index=i, embedding=unit_vector_with_similarity(0.5))
            for i in range(4)
        ]
        query = ScoringQuery("q", embedding=QUERY_EMBEDDING)
        results = VectorSimilarityStrategy().score(query, chunks)
        assert [r.chunk.chunk_index for r in results] == [0, 1, 2, 3]

    def test_negative_similarity_is_not_kept(self, make_chunk):
        chunks = [make_chunk(embedding=[-1.0, 0.0])]
        query = ScoringQuery("q", embedding=QUERY_EMBEDDING)
        assert VectorSimilarityStrategy().score(query, chunks) == []


class TestKeywordStrategy:
    """Tests for keyword overlap scoring."""

    def test_chunk_with_all_tokens_scores_highest(self, make_chunk):
        chunks = [
            make_chunk("Our pricing depends on the region.", chunk_index=0),
            make_chunk("Home care pricing starts at $30 per hour.", chunk_index=1),
            make_chunk("Care plans are reviewed yearly.", chunk_index=2),
        ]

        results = KeywordStrategy().score(ScoringQuery("pricing for home care"), chunks)

        assert results[0].chunk.chunk_index == 1
        assert results[0].score == 1.0
        assert results[0].method == ScoringMethod.KEYWORD
        assert all(r.score <= results[0].score for r in results)

    def test_substring_matching_is_case_insensitive(self, make_chunk):
        chunks = [make_chunk("CAREGIVERS must complete ORIENTATION.")]
        results = KeywordStrategy().score(ScoringQuery("caregiver orientation"), chunks)
        assert results[0].score == 1.0

    def test_drops_scores_at_or_below_minimum(self, make_chunk):
        """One of five tokens matched is exactly 0.2, which is not kept."""
        chunks = [make_chunk("Only overtime is mentioned here.")]
        query = ScoringQuery("overtime payroll schedule mileage training")
        assert KeywordStrategy(min_score=0.2).score(query, chunks) == []

    def test_no_tokens_yields_nothing(self, make_chunk):
        assert KeywordStrategy().score(ScoringQuery("how is it"), [make_chunk()]) == []

    def test_caps_results(self, make_chunk):
        chunks = [make_chunk("hiring policy", chunk_index=i) for i in range(10)]
        results = KeywordStrategy(max_results=5).score(ScoringQuery("hiring policy"), chunks)
        assert len(results) == 5


class TestLongestContentStrategy:
    """Tests for the last-resort strategy."""

    def test_returns_longest_chunks_with_fixed_confidence(self, make_chunk):
        chunks = [
            make_chunk("short", chunk_index=0),
            make_chunk("a much longer chunk of text", chunk_index=1),
            make_chunk("medium length", chunk_index=2),
            make_chunk("the longest chunk of them all by far", chunk_index=3),
        ]

        results = LongestContentStrategy(max_results=3, confidence=0.05).score(
            ScoringQuery("q"), chunks
        )

        assert [r.chunk.chunk_index for r in results] == [3, 1, 2]
        assert all(r.score == 0.05 for r in results)
        assert all(r.method == ScoringMethod.FALLBACK for r in results)

    def test_skips_blank_chunks(self, make_chunk):
        assert LongestContentStrategy().score(ScoringQuery("q"), [make_chunk("   ")]) == []


class TestChunkScorer:
    """Tests for strategy ordering, merging and fallbacks."""

    def test_single_strong_vector_match(self, make_chunk):
        """Only the 0.9 chunk clears the adaptive threshold and no keywords match."""
        chunks = [
            make_chunk("Mileage is reimbursed monthly.", chunk_index=0,
                       embedding=unit_vector_with_similarity(0.9)),
            make_chunk("Holidays are paid at time and a half.", chunk_index=1,
                       embedding=unit_vector_with_similarity(0.3)),
            make_chunk("Uniforms are provided.", chunk_index=2,
                       embedding=unit_vector_with_similarity(0.1)),
        ]  # fmt: skip
        query = ScoringQuery("travel expenses", embedding=QUERY_EMBEDDING)

        results = ChunkScorer().rank(query, chunks)

        assert len(results) == 1
        assert results[0].chunk.chunk_index == 0
        assert results[0].method == ScoringMethod.VECTOR

    def test_keyword_fallback_without_embeddings(self, make_chunk):
        chunks = [
            make_chunk("Staff meetings happen on Mondays.", chunk_index=0),
            make_chunk("Our pricing for home care is $32 per hour.", chunk_index=1),
        ]

        results = ChunkScorer().rank(ScoringQuery("pricing for home care"), chunks)

        assert results[0].chunk.chunk_index == 1
        assert results[0].method == ScoringMethod.KEYWORD

    def test_keyword_results_top_up_sparse_vector_results(self, make_chunk):
        chunks = [
            make_chunk("Vacation accrual policy.", chunk_index=0,
                       embedding=unit_vector_with_similarity(0.9)),
            make_chunk("Overtime requires approval.", chunk_index=1),
        ]  # fmt: skip
        query = ScoringQuery("overtime approval", embedding=QUERY_EMBEDDING)

        results = ChunkScorer(min_results=5).rank(query, chunks)

        assert [(r.chunk.chunk_index, r.method) for r in results] == [
            (0, ScoringMethod.VECTOR),
            (1, ScoringMethod.KEYWORD),
        ]

    def test_merge_deduplicates_by_document_and_index(self, make_chunk):
        chunk = make_chunk("Overtime requires approval.", embedding=unit_vector_with_similarity(0.9))
        query = ScoringQuery("overtime approval", embedding=QUERY_EMBEDDING)

        results = ChunkScorer().rank(query, [chunk])

        assert len(results) == 1
        assert results[0].method == ScoringMethod.VECTOR

    def test_enough_vector_results_skip_keywords(self, make_chunk):
        chunks = [
            make_chunk(f"vector {i}", chunk_index=i, embedding=unit_vector_with_similarity(0.8))
            for i in range(5)
        ] + [make_chunk("keyword match", chunk_index=9)]
        query = ScoringQuery("keyword match", embedding=QUERY_EMBEDDING)

        results = ChunkScorer(min_results=5).rank(query, chunks)

        assert len(results) == 5
        assert all(r.method == ScoringMethod.VECTOR for r in results)

    def test_last_resort_when_nothing_matches(self, make_chunk):
        chunks = [
            make_chunk("Alpha", chunk_index=0),
            make_chunk("Bravo bravo bravo", chunk_index=1),
        ]

        results = ChunkScorer().rank(ScoringQuery("zebra xylophone"), chunks)

        assert [r.chunk.chunk_index for r in results] == [1, 0]
        assert all(r.method == ScoringMethod.FALLBACK for r in results)
        assert all(r.score == 0.05 for r in results)

    def test_merged_results_are_capped(self, make_chunk):
        """Four vector matches plus five keyword matches exceed the cap of eight."""
        vector_chunks = [
            make_chunk(f"vector {i}", chunk_index=i, embedding=unit_vector_with_similarity(0.9))
            for i in range(4)
        ]
        keyword_chunks = [make_chunk(f"hiring checklist {i}", chunk_index=i) for i in range(4, 12)]
        query = ScoringQuery("hiring checklist", embedding=QUERY_EMBEDDING)

        results = ChunkScorer(max_results=8).rank(query, vector_chunks + keyword_chunks)

        assert len(results) == 8
        assert [r.method for r in results[:4]] == [ScoringMethod.VECTOR] * 4

    def test_ranking_is_deterministic(self, make_chunk):
        chunks = [
            make_chunk(f"training module {i}", chunk_index=i,
                       embedding=unit_vector_with_similarity(0.1 * (i % 4) + 0.2))
            for i in range(10)
        ]  # fmt: skip
        query = ScoringQuery("training module", embedding=QUERY_EMBEDDING)
        scorer = ChunkScorer()

        first = [(r.chunk.key, r.score, r.method) for r in scorer.rank(query, chunks)]
        second = [(r.chunk.key, r.score, r.method) for r in scorer.rank(query, chunks)]

        assert first == second

    def test_empty_chunks(self):
        assert ChunkScorer().rank(ScoringQuery("anything"), []) == []

    def test_from_settings_uses_configured_knobs(self):
        from caregrowth.config import Settings

        scorer = ChunkScorer.from_settings(Settings(vector_max_results=8, max_results=10))

        assert scorer.max_results == 10
        assert isinstance(scorer.strategies[0], VectorSimilarityStrategy)
        assert scorer.strategies[0].max_results == 8
        assert isinstance(scorer.strategies[-1], LongestContentStrategy)
