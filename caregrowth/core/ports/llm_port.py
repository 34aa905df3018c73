"""LLM Port Interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from ..domain import Completion


class LLMPort(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        model: str | None = None,
    ) -> Completion:
        """Generate a completion.

        Any transport or provider failure must raise an ``LLMError``; the
        caller never receives a partial or placeholder answer.
        """
        ...

    @abstractmethod
    def generate_stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        model: str | None = None,
    ) -> Iterator[str]:
        """Yield the answer text in pieces as the provider produces it.

        Failures before or during the stream raise ``LLMError``. An empty
        stream raises ``LLMGenerationError``.
        """
        ...
