"""Endpoints for linking, syncing and removing documents."""

import logging
import uuid

from fastapi import APIRouter, Query, Response, status

from .....core.domain import Document
from .....core.domain.exceptions import DocumentNotFoundError
from ..deps import get_ingestion_service, get_store
from ..models import DocumentRequest, DocumentResponse, ErrorResponse, IngestionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])


@router.get("", response_model=list[DocumentResponse])
def list_documents(
    user_id: str | None = Query(None, alias="userId", description="Owner to filter by"),
) -> list[DocumentResponse]:
    """List linked documents."""
    return [DocumentResponse.from_document(doc) for doc in get_store().list_documents(user_id)]


@router.post("", response_model=IngestionResponse, status_code=status.HTTP_201_CREATED)
def add_document(request: DocumentRequest) -> IngestionResponse:
    """Link a document and ingest its content.

    An unreadable document is still linked; the response reports
    ``success: false`` so the client can ask the user to fix sharing.
    """
    document = Document(
        id=request.id or uuid.uuid4().hex,
        title=request.title,
        url=request.url,
        user_id=request.user_id,
        mime_type=request.mime_type,
        shared=request.shared,
    )
    report = get_ingestion_service().register(document)
    return IngestionResponse.from_report(report)


@router.post(
    "/{document_id}/sync",
    response_model=IngestionResponse,
    responses={404: {"model": ErrorResponse, "description": "Document not found"}},
)
def sync_document(document_id: str) -> IngestionResponse:
    """Re-fetch a document and replace its chunks."""
    return IngestionResponse.from_report(get_ingestion_service().sync(document_id))


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Document not found"}},
)
def delete_document(document_id: str) -> Response:
    """Remove a document and its chunks."""
    if get_store().get_document(document_id) is None:
        raise DocumentNotFoundError(
            f"Document {document_id} not found", context={"document_id": document_id}
        )
    get_ingestion_service().forget(document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
