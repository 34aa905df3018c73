"""Document ingestion: fetch, chunk, embed and store a linked document."""

import logging

from ..domain import Chunk, Document, IngestionReport
from ..domain.exceptions import DocumentNotFoundError, EmbeddingError
from ..domain.utils import chunk_text_with_offsets, normalize_text
from ..ports.chunk_store_port import ChunkStorePort, DocumentRepositoryPort
from ..ports.content_port import ContentFetcherPort
from ..ports.embedding_port import EmbeddingPort

logger = logging.getLogger(__name__)


class IngestionService:
    """Turns a linked document into stored, embedded chunks.

    Re-ingesting a document replaces its previous chunks.
    """

    def __init__(
        self,
        documents: DocumentRepositoryPort,
        chunk_store: ChunkStorePort,
        fetcher: ContentFetcherPort,
        embedder: EmbeddingPort | None,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
    ) -> None:
        self.documents = documents
        self.chunk_store = chunk_store
        self.fetcher = fetcher
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def register(self, document: Document) -> IngestionReport:
        """Save a new or updated document and ingest it."""
        self.documents.save_document(document)
        return self.ingest(document)

    def sync(self, document_id: str) -> IngestionReport:
        """Re-ingest a stored document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        document = self.documents.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(
                f"Document {document_id} not found", context={"document_id": document_id}
            )
        return self.ingest(document)

    def forget(self, document_id: str) -> None:
        """Delete a document and its chunks."""
        self.chunk_store.delete_chunks(document_id)
        self.documents.delete_document(document_id)
        logger.info("Deleted document %s", document_id)

    def build_chunks(self, document: Document, text: str) -> list[Chunk]:
        """Split extracted text into chunks, recording each chunk's offset."""
        pieces = chunk_text_with_offsets(text, self.chunk_size, self.chunk_overlap)
        return [
            Chunk(
                document_id=document.id,
                chunk_index=index,
                content=content,
                start_offset=offset,
            )
            for index, (offset, content) in enumerate(pieces)
        ]

    def embed_chunks(self, chunks: list[Chunk]) -> list[Chunk]:
        """Attach embeddings. Chunks whose embedding fails keep ``embedding=None``."""
        if self.embedder is None or not chunks:
            return chunks

        try:
            vectors = self.embedder.embed_documents([chunk.content for chunk in chunks])
        except EmbeddingError as exc:
            logger.warning("Embedding failed for %d chunks: %s", len(chunks), exc)
            return chunks

        embedded = []
        for chunk, vector in zip(chunks, vectors):
            embedded.append(
                Chunk(
                    document_id=chunk.document_id,
                    chunk_index=chunk.chunk_index,
                    content=chunk.content,
                    embedding=vector or None,
                    page_number=chunk.page_number,
                    start_offset=chunk.start_offset,
                )
            )
        # A short response leaves the remaining chunks unembedded
        embedded.extend(chunks[len(embedded) :])
        return embedded

    def ingest(self, document: Document) -> IngestionReport:
        """Fetch, chunk, embed and store one document.

        Unreadable documents are reported, not raised, so a batch sync can
        carry on with the remaining documents.

        Raises:
            ContentFetchError: If the fetcher cannot authenticate at all.
            ChunkStoreError: If the chunks cannot be stored.
        """
        logger.info("Ingesting document %s (%s)", document.id, document.title)
        raw = self.fetcher.fetch_text(document)
        text = normalize_text(raw) if raw else ""
        if not text:
            logger.warning("No content available for document %s", document.id)
            self.documents.mark_fetched(document.id, fetched=False)
            return IngestionReport(
                document_id=document.id,
                success=False,
                message="Could not access document content. Check that it is shared with view permission.",
            )

        chunks = self.embed_chunks(self.build_chunks(document, text))
        stored = self.chunk_store.replace_chunks(document.id, chunks)
        self.documents.mark_fetched(document.id)

        missing = sum(1 for chunk in chunks if chunk.embedding is None)
        if missing:
            logger.warning("%d of %d chunks stored without embeddings", missing, len(chunks))

        logger.info("Stored %d chunks for document %s", stored, document.id)
        return IngestionReport(
            document_id=document.id,
            success=True,
            chunks_created=stored,
            chunks_without_embedding=missing,
            content_length=len(text),
            message=f"Processed {stored} chunks",
        )
