"""Chunk store and document repository Port Interfaces."""

from abc import ABC, abstractmethod

from ..domain import Chunk, Document


class DocumentRepositoryPort(ABC):
    """Abstract interface for the registry of linked documents."""

    @abstractmethod
    def save_document(self, document: Document) -> Document:
        """Insert or update a document."""
        ...

    @abstractmethod
    def get_document(self, document_id: str) -> Document | None:
        """Look up a single document."""
        ...

    @abstractmethod
    def list_documents(
        self, user_id: str | None = None, document_ids: list[str] | None = None
    ) -> list[Document]:
        """List documents, optionally restricted to an owner and/or explicit ids."""
        ...

    @abstractmethod
    def list_shared_documents(self) -> list[Document]:
        """Documents shared with every user, whoever owns them."""
        ...

    @abstractmethod
    def mark_fetched(self, document_id: str, fetched: bool = True) -> None:
        """Record whether the document's content has been ingested."""
        ...

    @abstractmethod
    def delete_document(self, document_id: str) -> None:
        """Remove a document from the registry."""
        ...


class ChunkStorePort(ABC):
    """Abstract interface for persisted chunks.

    Implementations raise ``ChunkStoreError`` subclasses when the backing
    store is unreachable. An empty result is not an error.
    """

    @abstractmethod
    def get_chunks(self, document_ids: list[str]) -> list[Chunk]:
        """Return every chunk of the given documents, ordered by document then index."""
        ...

    @abstractmethod
    def replace_chunks(self, document_id: str, chunks: list[Chunk]) -> int:
        """Replace all chunks of a document. Returns the number stored."""
        ...

    @abstractmethod
    def delete_chunks(self, document_id: str) -> None:
        """Remove all chunks of a document."""
        ...

    @abstractmethod
    def count_chunks(self) -> int:
        """Total number of stored chunks."""
        ...
