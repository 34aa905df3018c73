"""Answer, citation and conversation models."""

from dataclasses import dataclass, field
from enum import Enum

from .document import ScoringMethod


class AnswerCategory(str, Enum):
    """Topic bucket an answered question falls into."""

    MANAGEMENT = "management"
    MARKETING = "marketing"
    HIRING = "hiring"
    COMPLIANCE = "compliance"
    OTHER = "other"


@dataclass
class ChatMessage:
    """A single message of prior conversation."""

    role: str
    content: str


@dataclass
class Completion:
    """Text returned by a language model call.

    Attributes:
        text: Completion text.
        tokens_used: Total tokens billed for the call, when reported.
    """

    text: str
    tokens_used: int | None = None


@dataclass
class SourceCitation:
    """A source shown alongside an answer.

    Attributes:
        document_title: Title of the cited document.
        document_url: URL of the cited document.
        excerpt: Leading characters of the cited chunk.
        page_number: Estimated page of the excerpt.
        confidence: Relevance score rounded to two decimals.
    """

    document_title: str
    document_url: str
    excerpt: str
    page_number: int | None
    confidence: float


@dataclass
class SearchAnswer:
    """The response to a document search question."""

    answer: str
    sources: list[SourceCitation] = field(default_factory=list)
    tokens_used: int | None = None
    search_method: ScoringMethod | None = None
    documents_searched: int = 0
    category: AnswerCategory = AnswerCategory.OTHER


@dataclass
class IngestionReport:
    """Outcome of ingesting one document."""

    document_id: str
    success: bool
    chunks_created: int = 0
    chunks_without_embedding: int = 0
    content_length: int = 0
    message: str = ""
