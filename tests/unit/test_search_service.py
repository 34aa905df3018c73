"""Unit tests for DocumentSearchService."""

from unittest.mock import MagicMock

import httpx
import pytest

from caregrowth.adapters.outbound.llm.gemini_adapter import GeminiEmbeddingAdapter
from caregrowth.core.domain import Completion, ScoringMethod, SearchAnswer
from caregrowth.core.domain.exceptions import (
    ChunkStoreQueryError,
    DocumentNotFoundError,
    EmbeddingAPIError,
    EmptyQueryError,
    LLMConnectionError,
    MissingUserError,
    QueryTooLongError,
)
from caregrowth.core.services.answer_synthesis import AnswerSynthesizer
from caregrowth.core.services.chunk_scoring import ChunkScorer
from caregrowth.core.services.prompts import (
    NO_CONTENT_ANSWER,
    NO_DOCUMENTS_ANSWER,
    NO_RELEVANT_ANSWER,
)
from caregrowth.core.services.search_service import DocumentSearchService

pytestmark = pytest.mark.unit


@pytest.fixture
def documents(handbook):
    repo = MagicMock()
    repo.list_documents.return_value = [handbook]
    repo.list_shared_documents.return_value = []
    return repo


@pytest.fixture
def chunk_store(make_chunk):
    store = MagicMock()
    store.get_chunks.return_value = [
        make_chunk("Overtime must be approved by a supervisor.", chunk_index=0, start_offset=0),
        make_chunk("Mileage is reimbursed monthly.", chunk_index=1, start_offset=45),
    ]
    return store


@pytest.fixture
def embedder():
    embedder = MagicMock()
    embedder.embed_query.return_value = None
    return embedder


@pytest.fixture
def qa_log():
    return MagicMock()


@pytest.fixture
def service(documents, chunk_store, embedder, mock_llm, qa_log):
    return DocumentSearchService(
        documents=documents,
        chunk_store=chunk_store,
        embedder=embedder,
        scorer=ChunkScorer(),
        synthesizer=AnswerSynthesizer(mock_llm),
        qa_log=qa_log,
    )


class TestValidation:
    """Tests for question validation."""

    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    def test_empty_question_rejected(self, service, query):
        with pytest.raises(EmptyQueryError):
            service.search(query, user_id="agency-1")

    def test_oversized_question_rejected(self, service, documents):
        with pytest.raises(QueryTooLongError):
            service.search("x" * 1001, user_id="agency-1")
        documents.list_documents.assert_not_called()

    def test_question_at_limit_accepted(self, service):
        answer = service.search("overtime " + "x" * 991, user_id="agency-1")
        assert answer.answer == "Final answer"


class TestSearch:
    """Tests for the search pipeline."""

    def test_no_documents_returns_canned_answer_without_model_call(
        self, service, documents, chunk_store, mock_llm
    ):
        documents.list_documents.return_value = []

        answer = service.search("What is our overtime policy?", user_id="agency-1")

        assert answer.answer == NO_DOCUMENTS_ANSWER
        assert answer.sources == []
        mock_llm.generate.assert_not_called()
        chunk_store.get_chunks.assert_not_called()

    def test_unknown_explicit_documents_raise(self, service, documents):
        documents.list_documents.return_value = []

        with pytest.raises(DocumentNotFoundError):
            service.search("overtime policy", user_id="agency-1", document_ids=["nope"])

        documents.list_documents.assert_called_once_with(user_id="agency-1", document_ids=["nope"])

    def test_no_chunks_returns_canned_answer(self, service, chunk_store, mock_llm):
        chunk_store.get_chunks.return_value = []

        answer = service.search("overtime policy", user_id="agency-1")

        assert answer.answer == NO_CONTENT_ANSWER
        assert answer.documents_searched == 1
        mock_llm.generate.assert_not_called()

    def test_no_scored_chunks_returns_canned_answer(self, service, chunk_store, make_chunk):
        chunk_store.get_chunks.return_value = [make_chunk("   ")]

        answer = service.search("overtime policy", user_id="agency-1")

        assert answer.answer == NO_RELEVANT_ANSWER

    def test_keyword_answer_with_sources(self, service, chunk_store, mock_llm, handbook, qa_log):
        answer = service.search("Who approves overtime?", user_id="agency-1")

        assert answer.answer == "Final answer"
        assert answer.tokens_used == 123
        assert answer.search_method == ScoringMethod.KEYWORD
        assert answer.documents_searched == 1
        assert answer.sources[0].document_title == handbook.title
        assert answer.sources[0].page_number == 1
        assert answer.sources[0].excerpt.startswith("Overtime must be approved")
        chunk_store.get_chunks.assert_called_once_with([handbook.id])
        qa_log.log_interaction.assert_called_once()

    def test_vector_answer_when_embeddings_available(
        self, service, chunk_store, embedder, make_chunk
    ):
        embedder.embed_query.return_value = [1.0, 0.0]
        chunk_store.get_chunks.return_value = [
            make_chunk("Mileage is reimbursed monthly.", embedding=[0.9, 0.1]),
        ]

        answer = service.search("travel expenses", user_id="agency-1")

        assert answer.search_method == ScoringMethod.VECTOR
        assert 0.0 < answer.sources[0].confidence <= 1.0

    def test_embedding_failure_degrades_to_keywords(self, service, embedder):
        embedder.embed_query.side_effect = EmbeddingAPIError("quota")

        answer = service.search("Who approves overtime?", user_id="agency-1")

        assert answer.search_method == ScoringMethod.KEYWORD

    def test_missing_embedder_uses_keywords(self, service):
        service.embedder = None
        answer = service.search("Who approves overtime?", user_id="agency-1")
        assert answer.search_method == ScoringMethod.KEYWORD

    def test_chunk_store_failure_propagates(self, service, chunk_store):
        chunk_store.get_chunks.side_effect = ChunkStoreQueryError("db locked")

        with pytest.raises(ChunkStoreQueryError):
            service.search("overtime policy", user_id="agency-1")

    def test_llm_failure_propagates(self, service, mock_llm, qa_log):
        mock_llm.generate.side_effect = LLMConnectionError("timeout")

        with pytest.raises(LLMConnectionError):
            service.search("overtime policy", user_id="agency-1")
        qa_log.log_interaction.assert_not_called()

    def test_category_is_attached(self, service, mock_llm):
        mock_llm.generate.side_effect = [
            Completion(text="Ask your supervisor.", tokens_used=10),
            Completion(text="management"),
        ]

        answer = service.search("Who approves overtime?", user_id="agency-1")

        assert answer.category.value == "management"
        assert mock_llm.generate.call_count == 2

    def test_categorization_can_be_disabled(self, service, mock_llm):
        service.categorize = False
        service.search("Who approves overtime?", user_id="agency-1")
        assert mock_llm.generate.call_count == 1

    def test_qa_log_failure_does_not_fail_request(self, service, qa_log):
        qa_log.log_interaction.side_effect = ChunkStoreQueryError("disk full")

        answer = service.search("Who approves overtime?", user_id="agency-1")

        assert answer.answer == "Final answer"

    def test_conversation_history_reaches_prompt(self, service, mock_llm):
        from caregrowth.core.domain import ChatMessage

        service.search(
            "And for weekends?",
            user_id="agency-1",
            messages=[ChatMessage("user", "Who approves overtime?")],
        )

        prompt = mock_llm.generate.call_args_list[0].args[0]
        assert "Who approves overtime?" in prompt

    def test_gemini_embedder_outage_degrades_to_keywords(self, service, chunk_store):
        gemini = GeminiEmbeddingAdapter(api_key="test-key")
        gemini._client = MagicMock()
        gemini._client.models.embed_content.side_effect = httpx.ConnectError("network down")
        service.embedder = gemini

        answer = service.search("Who approves overtime?", user_id="agency-1")

        assert answer.search_method == ScoringMethod.KEYWORD
        assert answer.answer == "Final answer"
        chunk_store.get_chunks.assert_called_once()


class TestUserScope:
    """Tests for the required user and shared documents."""

    @pytest.mark.parametrize("user_id", [None, ""])
    def test_missing_user_rejected_before_any_lookup(self, service, documents, user_id):
        with pytest.raises(MissingUserError) as exc_info:
            service.search("Who approves overtime?", user_id=user_id)

        assert exc_info.value.error_code == "CG_VAL_004"
        documents.list_documents.assert_not_called()
        documents.list_shared_documents.assert_not_called()

    def test_empty_question_reported_before_missing_user(self, service):
        with pytest.raises(EmptyQueryError):
            service.search("   ")

    def test_shared_documents_join_the_scope(
        self, service, documents, chunk_store, handbook, shared_policy
    ):
        documents.list_shared_documents.return_value = [shared_policy]

        answer = service.search("Who approves overtime?", user_id="agency-1")

        assert answer.documents_searched == 2
        chunk_store.get_chunks.assert_called_once_with([handbook.id, shared_policy.id])

    def test_shared_documents_alone_are_searched(
        self, service, documents, chunk_store, shared_policy, mock_llm, make_chunk
    ):
        documents.list_documents.return_value = []
        documents.list_shared_documents.return_value = [shared_policy]
        chunk_store.get_chunks.return_value = [
            make_chunk("Overtime is approved by the office manager.", document_id="policy-1")
        ]

        answer = service.search("Who approves overtime?", user_id="new-user")

        assert answer.answer == "Final answer"
        assert answer.sources[0].document_title == "Agency Policy Manual"
        chunk_store.get_chunks.assert_called_once_with([shared_policy.id])
        mock_llm.generate.assert_called()

    def test_no_documents_only_when_both_sets_empty(self, service, documents, mock_llm):
        documents.list_documents.return_value = []
        documents.list_shared_documents.return_value = []

        answer = service.search("Who approves overtime?", user_id="new-user")

        assert answer.answer == NO_DOCUMENTS_ANSWER
        mock_llm.generate.assert_not_called()

    def test_own_shared_document_counted_once(self, service, documents, handbook):
        handbook.shared = True
        documents.list_shared_documents.return_value = [handbook]

        scope = service.resolve_scope("agency-1", None)

        assert scope == [handbook]

    def test_explicit_ids_may_name_shared_documents(
        self, service, documents, handbook, shared_policy
    ):
        documents.list_documents.return_value = []
        documents.list_shared_documents.return_value = [shared_policy]

        scope = service.resolve_scope("agency-1", ["policy-1"])

        assert scope == [shared_policy]
        documents.list_documents.assert_called_once_with(
            user_id="agency-1", document_ids=["policy-1"]
        )

    def test_explicit_ids_exclude_other_shared_documents(
        self, service, documents, handbook, shared_policy
    ):
        documents.list_shared_documents.return_value = [shared_policy]

        scope = service.resolve_scope("agency-1", ["doc-1"])

        assert scope == [handbook]


class TestSearchStream:
    """Tests for streamed answers."""

    def test_yields_pieces_then_answer(self, service, mock_llm, qa_log, handbook):
        events = list(service.search_stream("Who approves overtime?", user_id="agency-1"))

        assert events[:2] == ["Final ", "answer"]
        final = events[-1]
        assert isinstance(final, SearchAnswer)
        assert final.answer == "Final answer"
        assert final.tokens_used is None
        assert final.sources[0].document_title == handbook.title
        mock_llm.generate_stream.assert_called_once()
        qa_log.log_interaction.assert_called_once()

    def test_final_answer_is_cleaned(self, service, mock_llm):
        mock_llm.generate_stream.side_effect = lambda *a, **k: iter(["## Overtime\n", "**Ask** HR."])

        final = list(service.search_stream("Who approves overtime?", user_id="agency-1"))[-1]

        assert final.answer == "Overtime\nAsk HR."

    def test_canned_answer_streams_as_single_piece(self, service, documents, mock_llm):
        documents.list_documents.return_value = []

        events = list(service.search_stream("Who approves overtime?", user_id="agency-1"))

        assert events[0] == NO_DOCUMENTS_ANSWER
        assert events[1].answer == NO_DOCUMENTS_ANSWER
        assert len(events) == 2
        mock_llm.generate_stream.assert_not_called()

    def test_validation_errors_raise_on_first_next(self, service):
        events = service.search_stream("Who approves overtime?")

        with pytest.raises(MissingUserError):
            next(events)

    def test_llm_failure_mid_stream_propagates(self, service, mock_llm, qa_log):
        def broken(*args, **kwargs):
            yield "Final "
            raise LLMConnectionError("Language model stream was interrupted")

        mock_llm.generate_stream.side_effect = broken
        events = service.search_stream("Who approves overtime?", user_id="agency-1")

        assert next(events) == "Final "
        with pytest.raises(LLMConnectionError):
            next(events)
        qa_log.log_interaction.assert_not_called()
