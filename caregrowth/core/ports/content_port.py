"""Content acquisition Port Interface."""

from abc import ABC, abstractmethod

from ..domain import Document


class ContentFetcherPort(ABC):
    """Abstract interface for turning a linked document into plain text."""

    @abstractmethod
    def fetch_text(self, document: Document) -> str | None:
        """Return the document's text, or None when no usable content exists."""
        ...
