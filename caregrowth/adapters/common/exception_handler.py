"""Error reporting shared by the HTTP API and the CLI.

Both surfaces describe a failure with the same structured JSON: the API logs
it and returns a trimmed, client-safe body; the CLI prints the code and
message, or the whole structure with ``DEBUG=true``.
"""

import json
import logging
import traceback
from pathlib import PurePath
from typing import Any

from ...core.domain.exceptions import (
    CareGrowthError,
    ChunkStoreError,
    ConfigurationError,
    ContentFetchError,
    DocumentNotFoundError,
    EmbeddingError,
    EmbeddingRateLimitError,
    LLMError,
    LLMRateLimitError,
    ValidationError,
)

logger = logging.getLogger(__name__)

UNHANDLED_ERROR_CODE = "CG_ERR_000"
GENERIC_ERROR_MESSAGE = "An error occurred while processing your request. Please try again."

# First match wins, so subclasses must come before their bases
STATUS_BY_ERROR: tuple[tuple[type[Exception] | tuple[type[Exception], ...], int], ...] = (
    (ValidationError, 400),
    (DocumentNotFoundError, 404),
    ((LLMRateLimitError, EmbeddingRateLimitError), 429),
    (ChunkStoreError, 503),
    ((LLMError, EmbeddingError, ContentFetchError), 502),
    (ConfigurationError, 500),
    (CareGrowthError, 500),
    (ValueError, 400),
    ((ConnectionError, TimeoutError), 503),
)


def get_error_code(exc: Exception) -> str:
    """``CG_*`` code of a service error, or ``CG_ERR_000`` for anything else."""
    if isinstance(exc, CareGrowthError):
        return exc.error_code
    return UNHANDLED_ERROR_CODE


def get_http_status_code(exc: Exception) -> int:
    """HTTP status for an exception raised while serving a request."""
    for error_types, status in STATUS_BY_ERROR:
        if isinstance(exc, error_types):
            return status
    return 500


def _innermost_location(exc: Exception) -> dict[str, Any]:
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if not frames:
        return {"class": "<unknown>", "method": "<unknown>", "file": "<unknown>", "line": 0}
    last = frames[-1]
    return {
        "class": "<unknown>",
        "method": last.name,
        "file": PurePath(last.filename.replace("\\", "/")).name,
        "line": last.lineno or 0,
    }


def format_exception_json(
    exc: Exception,
    include_trace: bool = False,
    extra_context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Describe any exception in the structure produced by ``CareGrowthError.to_dict``.

    Args:
        exc: The exception to describe.
        include_trace: Include the stack trace lines.
        extra_context: Request details merged into ``context``.

    Returns:
        Dictionary with ``error`` and ``location`` and, when known,
        ``context``, ``cause`` and ``stack_trace``.
    """
    if isinstance(exc, CareGrowthError):
        result = exc.to_dict(include_trace=include_trace)
    else:
        result = {
            "error": {
                "type": type(exc).__name__,
                "code": get_error_code(exc),
                "message": str(exc),
            },
            "location": _innermost_location(exc),
        }
        if include_trace:
            lines = traceback.format_exception(type(exc), exc, exc.__traceback__)
            result["stack_trace"] = [line.strip() for line in lines if line.strip()]

    if extra_context:
        result.setdefault("context", {}).update(extra_context)
    return result


def client_error_body(exc: Exception, debug: bool = False) -> dict[str, Any]:
    """Body returned to API clients.

    Service errors keep their message. Anything else is reported with a
    generic message so internal details never reach the client. ``debug``
    returns the full structure with the stack trace instead.
    """
    if debug:
        return format_exception_json(exc, include_trace=True)

    if isinstance(exc, CareGrowthError):
        error_type, message = type(exc).__name__, exc.message
    else:
        error_type, message = "InternalError", GENERIC_ERROR_MESSAGE
    return {"error": {"type": error_type, "code": get_error_code(exc), "message": message}}


def log_exception(
    exc: Exception,
    log: logging.Logger | None = None,
    level: int = logging.ERROR,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """Log the full structured form of ``exc``, trace included."""
    data = format_exception_json(exc, include_trace=True, extra_context=extra_context)
    (log or logger).log(level, json.dumps(data, indent=2, default=str))
