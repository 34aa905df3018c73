"""Search endpoints for asking questions about linked documents."""

import json
import logging
from collections.abc import Iterator
from itertools import chain
from typing import Any

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from .....core.domain import ChatMessage, SearchAnswer
from ....common.exception_handler import client_error_body, log_exception
from ..deps import get_search_service
from ..models import ErrorResponse, SearchRequest, SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["search"])

SEARCH_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid question or missing userId"},
    404: {"model": ErrorResponse, "description": "Requested documents not found"},
    502: {"model": ErrorResponse, "description": "Language model failure"},
    503: {"model": ErrorResponse, "description": "Chunk store unavailable"},
}


def _history(request: SearchRequest) -> list[ChatMessage]:
    return [ChatMessage(role=m.role, content=m.content) for m in request.messages]


def _log_answer(answer: SearchAnswer) -> None:
    logger.info(
        "Answered question with %d sources (method: %s)",
        len(answer.sources),
        answer.search_method.value if answer.search_method else "none",
    )


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.post("/search", response_model=SearchResponse, responses=SEARCH_ERRORS)
def search_documents(request: SearchRequest) -> SearchResponse:
    """Answer a question from the user's documents.

    Args:
        request: The question, its document scope and optional chat history.

    Returns:
        SearchResponse with the answer and cited sources.
    """
    service = get_search_service()
    answer = service.search(
        request.query,
        user_id=request.user_id,
        document_ids=request.document_ids,
        messages=_history(request),
    )
    _log_answer(answer)
    return SearchResponse.from_answer(answer)


@router.post(
    "/search/stream",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}, **SEARCH_ERRORS},
)
def stream_search(request: SearchRequest) -> StreamingResponse:
    """Answer a question as Server-Sent Events.

    Each ``content`` event carries the next piece of the answer. The last
    event is ``done`` with the full response, or ``error`` if generation
    failed after streaming started. Failures before the first piece are
    returned as ordinary error responses.
    """
    service = get_search_service()
    events = service.search_stream(
        request.query,
        user_id=request.user_id,
        document_ids=request.document_ids,
        messages=_history(request),
    )
    first = next(events)

    def event_stream() -> Iterator[str]:
        try:
            for event in chain([first], events):
                if isinstance(event, SearchAnswer):
                    _log_answer(event)
                    response = SearchResponse.from_answer(event)
                    yield _sse({"type": "done", **response.model_dump(by_alias=True)})
                else:
                    yield _sse({"type": "content", "content": event})
        except Exception as exc:
            log_exception(exc, extra_context={"path": "/api/v1/search/stream"})
            yield _sse({"type": "error", **client_error_body(exc)})

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )

