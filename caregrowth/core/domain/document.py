"""Document and chunk models for document search."""

from dataclasses import dataclass, field
from enum import Enum


class ScoringMethod(str, Enum):
    """Strategy that produced a chunk's relevance score."""

    VECTOR = "vector"
    KEYWORD = "keyword"
    FALLBACK = "fallback"


@dataclass
class Document:
    """A user-linked document.

    Attributes:
        id: Unique identifier of the document.
        title: Display title used in citations.
        url: Share or export URL the content is acquired from.
        user_id: Owner of the document, if known.
        mime_type: Drive mime type, if known.
        fetched: Whether the content has been ingested into chunks.
        shared: Whether an administrator shared the document with every user.
    """

    id: str
    title: str
    url: str = ""
    user_id: str | None = None
    mime_type: str | None = None
    fetched: bool = False
    shared: bool = False


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a document's extracted text.

    Attributes:
        document_id: Identifier of the owning document.
        chunk_index: Position of the chunk within its document.
        content: The chunk text.
        embedding: Fixed-length vector, or None when the chunk was never
            embedded or embedding failed.
        page_number: Page the chunk starts on, when the source exposes pages.
        start_offset: Character offset of the chunk in the extracted text.
    """

    document_id: str
    chunk_index: int
    content: str
    embedding: list[float] | None = field(default=None, compare=False, repr=False)
    page_number: int | None = None
    start_offset: int | None = None

    @property
    def key(self) -> tuple[str, int]:
        """Identity of the chunk within a request."""
        return (self.document_id, self.chunk_index)


@dataclass
class ScoredChunk:
    """A chunk annotated with a relevance score for a single query.

    Scores are only comparable within the request that produced them.

    Attributes:
        chunk: The scored chunk.
        score: Relevance score in [0, 1].
        method: Strategy that produced the score.
    """

    chunk: Chunk
    score: float
    method: ScoringMethod
