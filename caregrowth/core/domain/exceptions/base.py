"""Root of the CareGrowth exception hierarchy.

``CareGrowthError`` subclasses set ``error_code`` (``CG_<AREA>_<NNN>``) and
are raised with a client-safe message. The raise site is recorded on
construction so log lines and debug responses point at the failing adapter
or service without a full traceback.
"""

import inspect
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePath
from typing import Any


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class ExceptionContext:
    """Where an error was raised."""

    class_name: str
    method_name: str
    file_name: str
    line_number: int
    timestamp: str = field(default_factory=_now)

    @classmethod
    def unknown(cls) -> "ExceptionContext":
        return cls("<unknown>", "<unknown>", "<unknown>", 0)

    @classmethod
    def from_frame(cls, frame: Any) -> "ExceptionContext":
        owner = frame.f_locals.get("self")
        return cls(
            class_name=type(owner).__name__ if owner is not None else "<module>",
            method_name=frame.f_code.co_name,
            file_name=PurePath(frame.f_code.co_filename.replace("\\", "/")).name,
            line_number=frame.f_lineno,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "class": self.class_name,
            "method": self.method_name,
            "file": self.file_name,
            "line": self.line_number,
            "timestamp": self.timestamp,
        }


class CareGrowthError(Exception):
    """Base class for every error the service raises on purpose.

    Adapters translate library failures at their boundary, keeping the
    original exception as ``cause``::

        except requests.Timeout as e:
            raise LLMConnectionError(
                "Language model request timed out", cause=e, context={"model": model}
            ) from e
    """

    error_code: str = "CG_ERR_001"

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Create the error.

        Args:
            message: Text that may be shown to API and CLI users.
            cause: Library exception being translated, if any.
            context: Debugging details such as model, url or document id.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.extra_context = dict(context or {})
        self.location = self._raise_site()
        self.stack_trace = traceback.format_exc() if cause is not None else None

    def _raise_site(self) -> ExceptionContext:
        # Walk out of __init__ (and subclass __init__ overrides) to the caller
        frame = inspect.currentframe()
        while frame is not None and (
            frame.f_code.co_name in ("_raise_site", "__init__")
            and isinstance(frame.f_locals.get("self"), CareGrowthError)
        ):
            frame = frame.f_back
        return ExceptionContext.from_frame(frame) if frame else ExceptionContext.unknown()

    def to_dict(self, include_trace: bool = False) -> dict[str, Any]:
        """Structured view used for error logs and HTTP error bodies.

        The stack trace is only included when ``include_trace`` is set.
        """
        data: dict[str, Any] = {
            "error": {
                "type": type(self).__name__,
                "code": self.error_code,
                "message": self.message,
            },
            "location": self.location.to_dict(),
        }
        if self.extra_context:
            data["context"] = self.extra_context
        if self.cause is not None:
            data["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}
        if include_trace and self.stack_trace:
            data["stack_trace"] = [line for line in self.stack_trace.splitlines() if line.strip()]
        return data
