"""Pydantic models for API requests and responses.

Field names are camelCase on the wire to match the existing web client.
"""

from pydantic import BaseModel, ConfigDict, Field

from ....core.domain import Document, IngestionReport, SearchAnswer


class ApiModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


class ChatMessage(ApiModel):
    """A single message in the chat history."""

    role: str = Field(..., description="Role of the message sender (user, assistant)")
    content: str = Field(..., description="Content of the message")


class SearchRequest(ApiModel):
    """Request model for a document question."""

    # Length limits are enforced by the search service so they map to 400
    query: str = Field(
        ...,
        description="The question to answer from the user's documents (at most 1000 characters)",
        json_schema_extra={"example": "What is our pricing for home care?"},
    )
    user_id: str | None = Field(
        None,
        alias="userId",
        description="User asking the question (required; a missing value is rejected with 400)",
    )
    document_ids: list[str] | None = Field(
        None, alias="documentIds", description="Restrict the search to these documents"
    )
    messages: list[ChatMessage] = Field(
        default_factory=list,
        description="Chat history for context, oldest first",
    )


class SourceInfo(ApiModel):
    """A cited source."""

    document_title: str = Field(..., alias="documentTitle", description="Title of the document")
    document_url: str = Field("", alias="documentUrl", description="URL of the document")
    relevant_content: str = Field(
        ..., alias="relevantContent", description="Excerpt of the cited chunk"
    )
    page_number: int | None = Field(None, alias="pageNumber", description="Estimated page")
    confidence: float = Field(..., ge=0, le=1, description="Relevance score, two decimals")


class SearchResponse(ApiModel):
    """Response model for an answered question."""

    answer: str = Field(..., description="The generated answer")
    sources: list[SourceInfo] = Field(default_factory=list, description="Cited sources")
    tokens_used: int | None = Field(None, alias="tokensUsed", description="Tokens billed")
    search_method: str | None = Field(
        None, alias="searchMethod", description="Scoring method of the top source"
    )
    total_documents_searched: int = Field(
        0, alias="totalDocumentsSearched", description="Documents in scope"
    )
    category: str = Field("other", description="Topic category of the exchange")

    @classmethod
    def from_answer(cls, answer: SearchAnswer) -> "SearchResponse":
        return cls(
            answer=answer.answer,
            sources=[
                SourceInfo(
                    document_title=source.document_title,
                    document_url=source.document_url,
                    relevant_content=source.excerpt,
                    page_number=source.page_number,
                    confidence=source.confidence,
                )
                for source in answer.sources
            ],
            tokens_used=answer.tokens_used,
            search_method=answer.search_method.value if answer.search_method else None,
            total_documents_searched=answer.documents_searched,
            category=answer.category.value,
        )


class DocumentRequest(ApiModel):
    """Request model for linking a document."""

    id: str | None = Field(None, description="Document id; generated when omitted")
    title: str = Field(..., min_length=1, description="Display title")
    url: str = Field(..., min_length=1, description="Share or download URL")
    user_id: str | None = Field(None, alias="userId", description="Owner of the document")
    mime_type: str | None = Field(None, alias="mimeType", description="Drive mime type")
    shared: bool = Field(False, description="Searchable by every user of the agency")


class DocumentResponse(ApiModel):
    """A linked document."""

    id: str
    title: str
    url: str
    user_id: str | None = Field(None, alias="userId")
    mime_type: str | None = Field(None, alias="mimeType")
    fetched: bool = False
    shared: bool = False

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            title=document.title,
            url=document.url,
            user_id=document.user_id,
            mime_type=document.mime_type,
            fetched=document.fetched,
            shared=document.shared,
        )


class IngestionResponse(ApiModel):
    """Outcome of processing a document."""

    document_id: str = Field(..., alias="documentId")
    success: bool
    chunks_created: int = Field(0, alias="chunksCreated")
    chunks_without_embedding: int = Field(0, alias="chunksWithoutEmbedding")
    content_length: int = Field(0, alias="contentLength")
    message: str = ""

    @classmethod
    def from_report(cls, report: IngestionReport) -> "IngestionResponse":
        return cls(
            document_id=report.document_id,
            success=report.success,
            chunks_created=report.chunks_created,
            chunks_without_embedding=report.chunks_without_embedding,
            content_length=report.content_length,
            message=report.message,
        )


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    chunk_store: str = Field(..., description="Chunk store backend status")


class ErrorDetail(BaseModel):
    """Structured error detail information."""

    type: str = Field(..., description="Exception type name")
    code: str = Field(..., description="Error code (e.g., CG_LLM_002)")
    message: str = Field(..., description="Human-readable error message")


class ErrorResponse(BaseModel):
    """Response model for errors.

    Example:
        {"error": {"type": "LLMConnectionError", "code": "CG_LLM_002", "message": "..."}}

    In debug mode the body also carries ``location``, ``context``, ``cause``
    and ``stack_trace``.
    """

    error: ErrorDetail = Field(..., description="Error details including type, code, and message")
    location: dict | None = Field(None, description="Source location (debug mode only)")
    context: dict | None = Field(None, description="Additional debugging context (debug mode only)")
    cause: dict | None = Field(None, description="Underlying exception (debug mode only)")
    stack_trace: list[str] | None = Field(None, description="Stack trace (debug mode only)")
