"""Document search: answer a question from a user's linked documents."""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from ..domain import Chunk, ChatMessage, Document, ScoredChunk, SearchAnswer
from ..domain.exceptions import (
    ChunkStoreError,
    DocumentNotFoundError,
    EmbeddingError,
    EmptyQueryError,
    MissingUserError,
    QueryTooLongError,
)
from ..domain.utils import normalize_text
from ..ports.chunk_store_port import ChunkStorePort, DocumentRepositoryPort
from ..ports.embedding_port import EmbeddingPort
from ..ports.qa_log_port import QALogPort
from .answer_synthesis import AnswerSynthesizer, chunk_offsets, clean_markdown
from .chunk_scoring import ChunkScorer, ScoringQuery
from .prompts import NO_CONTENT_ANSWER, NO_DOCUMENTS_ANSWER, NO_RELEVANT_ANSWER

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 1000


@dataclass
class Retrieval:
    """Chunks selected for a question, or the canned answer that replaces them."""

    documents: dict[str, Document] = field(default_factory=dict)
    chunks: list[Chunk] = field(default_factory=list)
    scored: list[ScoredChunk] = field(default_factory=list)
    canned: SearchAnswer | None = None


class DocumentSearchService:
    """Answers questions against the chunks of a user's documents.

    One call runs the whole pipeline synchronously: resolve the document
    scope, embed the query, read chunks, score them, and synthesize a cited
    answer. Missing data yields a canned answer; infrastructure failures
    raise.
    """

    def __init__(
        self,
        documents: DocumentRepositoryPort,
        chunk_store: ChunkStorePort,
        embedder: EmbeddingPort | None,
        scorer: ChunkScorer,
        synthesizer: AnswerSynthesizer,
        qa_log: QALogPort | None = None,
        max_query_length: int = MAX_QUERY_LENGTH,
        categorize: bool = True,
    ) -> None:
        """Initialize the service.

        Args:
            documents: Registry of linked documents.
            chunk_store: Source of chunks for the documents in scope.
            embedder: Query embedder. None disables vector scoring.
            scorer: Chunk scoring pipeline.
            synthesizer: Answer synthesis stage.
            qa_log: Optional analytics sink for answered questions.
            max_query_length: Longest accepted question, in characters.
            categorize: Whether to run the categorization model call.
        """
        self.documents = documents
        self.chunk_store = chunk_store
        self.embedder = embedder
        self.scorer = scorer
        self.synthesizer = synthesizer
        self.qa_log = qa_log
        self.max_query_length = max_query_length
        self.categorize = categorize

    def validate_query(self, query: str) -> str:
        """Normalize a question and reject empty or oversized input.

        Raises:
            EmptyQueryError: If the question is empty or whitespace only.
            QueryTooLongError: If the question exceeds ``max_query_length``.
        """
        normalized = normalize_text(query or "")
        if not normalized:
            raise EmptyQueryError("Question cannot be empty")
        if len(normalized) > self.max_query_length:
            raise QueryTooLongError(
                f"Question exceeds {self.max_query_length} characters",
                context={"length": len(normalized)},
            )
        return normalized

    def resolve_scope(
        self, user_id: str | None, document_ids: Sequence[str] | None
    ) -> list[Document]:
        """The user's own documents plus every shared document.

        Explicit ``document_ids`` narrow the scope to those ids, which may
        name the user's documents or shared ones.

        Raises:
            MissingUserError: If no user is given.
            DocumentNotFoundError: If explicit ids were given and none are in scope.
        """
        if not user_id:
            raise MissingUserError("A user id is required to search documents")

        requested = list(document_ids) if document_ids else None
        own = self.documents.list_documents(user_id=user_id, document_ids=requested)
        shared = self.documents.list_shared_documents()
        if requested is not None:
            shared = [document for document in shared if document.id in requested]

        scope = {document.id: document for document in own}
        for document in shared:
            scope.setdefault(document.id, document)

        if requested is not None and not scope:
            raise DocumentNotFoundError(
                "None of the requested documents were found",
                context={"document_ids": requested},
            )
        return list(scope.values())

    def embed_query(self, query: str) -> list[float] | None:
        """Query embedding, or None when embedding is unavailable."""
        if self.embedder is None:
            return None
        try:
            return self.embedder.embed_query(query)
        except EmbeddingError as exc:
            logger.warning("Query embedding failed, continuing with keyword scoring: %s", exc)
            return None

    def retrieve(
        self, question: str, user_id: str | None, document_ids: Sequence[str] | None
    ) -> Retrieval:
        """Resolve the scope, read chunks and score them for ``question``."""
        documents = self.resolve_scope(user_id, document_ids)
        if not documents:
            logger.info("No documents in scope for user %s", user_id)
            return Retrieval(canned=SearchAnswer(answer=NO_DOCUMENTS_ANSWER))

        by_id = {document.id: document for document in documents}
        embedding = self.embed_query(question)
        chunks = self.chunk_store.get_chunks(list(by_id))
        logger.info(
            "Searching %d chunks across %d documents (%d shared, embedding: %s)",
            len(chunks),
            len(documents),
            sum(1 for document in documents if document.shared),
            "yes" if embedding else "no",
        )

        if not chunks:
            canned = SearchAnswer(answer=NO_CONTENT_ANSWER, documents_searched=len(documents))
            return Retrieval(documents=by_id, canned=canned)

        scored = self.scorer.rank(ScoringQuery(text=question, embedding=embedding), chunks)
        if not scored:
            canned = SearchAnswer(answer=NO_RELEVANT_ANSWER, documents_searched=len(documents))
            return Retrieval(documents=by_id, chunks=chunks, canned=canned)

        return Retrieval(documents=by_id, chunks=chunks, scored=scored)

    def search(
        self,
        query: str,
        user_id: str | None = None,
        document_ids: Sequence[str] | None = None,
        messages: Sequence[ChatMessage] | None = None,
    ) -> SearchAnswer:
        """Answer ``query`` from the documents in scope.

        Args:
            query: The user's question.
            user_id: User asking; their documents and shared ones are searched.
            document_ids: Explicit document scope, overriding the full set.
            messages: Prior conversation, oldest first.

        Returns:
            SearchAnswer with the cleaned answer and its sources.

        Raises:
            ValidationError: For empty or oversized questions or a missing user.
            DocumentNotFoundError: When explicit document ids match nothing.
            ChunkStoreError: When chunks cannot be read.
            LLMError: When the answer cannot be generated.
        """
        question = self.validate_query(query)
        retrieval = self.retrieve(question, user_id, document_ids)
        if retrieval.canned is not None:
            return retrieval.canned

        completion = self.synthesizer.generate(
            question, retrieval.scored, retrieval.documents, messages
        )
        return self._finish(question, retrieval, completion.text, completion.tokens_used, user_id)

    def search_stream(
        self,
        query: str,
        user_id: str | None = None,
        document_ids: Sequence[str] | None = None,
        messages: Sequence[ChatMessage] | None = None,
    ) -> Iterator[str | SearchAnswer]:
        """Stream the answer to ``query``.

        Yields answer text as it is generated, then one final ``SearchAnswer``
        whose ``answer`` is the cleaned full text. Canned answers are yielded
        as a single piece of text followed by the answer. Errors are raised
        the same way as in ``search``, from the first ``next()`` onwards.
        """
        question = self.validate_query(query)
        retrieval = self.retrieve(question, user_id, document_ids)
        if retrieval.canned is not None:
            yield retrieval.canned.answer
            yield retrieval.canned
            return

        pieces = []
        for piece in self.synthesizer.stream(
            question, retrieval.scored, retrieval.documents, messages
        ):
            pieces.append(piece)
            yield piece

        yield self._finish(question, retrieval, clean_markdown("".join(pieces)), None, user_id)

    def _finish(
        self,
        question: str,
        retrieval: Retrieval,
        text: str,
        tokens_used: int | None,
        user_id: str | None,
    ) -> SearchAnswer:
        answer = SearchAnswer(
            answer=text,
            sources=self.synthesizer.build_sources(
                retrieval.scored, retrieval.documents, chunk_offsets(retrieval.chunks)
            ),
            tokens_used=tokens_used,
            search_method=retrieval.scored[0].method,
            documents_searched=len(retrieval.documents),
        )
        if self.categorize:
            answer.category = self.synthesizer.categorize(question, answer.answer)

        self._log_interaction(
            question, answer, user_id, [item.chunk.document_id for item in retrieval.scored]
        )
        return answer

    def _log_interaction(
        self,
        question: str,
        answer: SearchAnswer,
        user_id: str | None,
        document_ids: list[str],
    ) -> None:
        if self.qa_log is None:
            return
        try:
            self.qa_log.log_interaction(
                question, answer, user_id=user_id, document_ids=sorted(set(document_ids))
            )
        except ChunkStoreError as exc:
            logger.warning("Failed to record Q&A interaction: %s", exc)
