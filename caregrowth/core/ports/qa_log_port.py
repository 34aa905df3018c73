"""Port definition for question/answer analytics logging."""

from typing import Protocol

from ..domain import SearchAnswer


class QALogPort(Protocol):
    """Port for recording answered questions."""

    def log_interaction(
        self,
        question: str,
        answer: SearchAnswer,
        user_id: str | None = None,
        document_ids: list[str] | None = None,
    ) -> None:
        """Persist one answered question for later analysis."""
        ...
