"""Answer synthesis: turn scored chunks into a cited, plain-text answer."""

import logging
import math
import re
from collections.abc import Iterator, Sequence

from ..domain import (
    AnswerCategory,
    ChatMessage,
    Chunk,
    Completion,
    Document,
    ScoredChunk,
    SourceCitation,
)
from ..domain.exceptions import LLMError
from ..ports.llm_port import LLMPort
from .prompts import ANSWER_PROMPT, CATEGORIZATION_PROMPT, HISTORY_BLOCK, SYSTEM_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_CHARS_PER_PAGE = 2800

_HEADING = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC = re.compile(r"\*([^*]+)\*")
_BLANK_RUNS = re.compile(r"\n{3,}")


def _clean_once(text: str) -> str:
    text = _HEADING.sub("", text)
    text = _BOLD.sub(r"\1", text)
    text = _ITALIC.sub(r"\1", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


def clean_markdown(text: str) -> str:
    """Strip heading and emphasis markers and collapse blank-line runs.

    Applied until the text stops changing, so ``clean_markdown`` is
    idempotent even for nested markers such as ``# # Title`` or ``***x***``.
    """
    previous = None
    cleaned = text or ""
    while cleaned != previous:
        previous = cleaned
        cleaned = _clean_once(cleaned)
    return cleaned


def estimate_page(offset: int, chars_per_page: int = DEFAULT_CHARS_PER_PAGE) -> int:
    """Estimated 1-based page for a character offset: ``max(1, ceil(offset / chars_per_page))``."""
    if chars_per_page <= 0:
        raise ValueError("chars_per_page must be positive")
    return max(1, math.ceil(max(offset, 0) / chars_per_page))


def truncate_excerpt(content: str, limit: int = 250) -> str:
    """First ``limit`` characters of ``content``, with "..." when cut."""
    content = content.strip()
    if len(content) <= limit:
        return content
    return content[:limit].rstrip() + "..."


def chunk_offsets(chunks: Sequence[Chunk]) -> dict[tuple[str, int], int]:
    """Character offset of every chunk within its document.

    Uses the offset recorded at ingestion when present, otherwise the summed
    length of the document's earlier chunks.
    """
    offsets: dict[tuple[str, int], int] = {}
    running: dict[str, int] = {}
    for chunk in sorted(chunks, key=lambda c: (c.document_id, c.chunk_index)):
        estimated = running.get(chunk.document_id, 0)
        offsets[chunk.key] = chunk.start_offset if chunk.start_offset is not None else estimated
        running[chunk.document_id] = estimated + len(chunk.content)
    return offsets


class AnswerSynthesizer:
    """Builds the prompt, calls the model and assembles cited sources."""

    def __init__(
        self,
        llm: LLMPort,
        *,
        context_char_budget: int = 4000,
        chars_per_page: int = DEFAULT_CHARS_PER_PAGE,
        excerpt_chars: int = 250,
        history_messages: int = 6,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        categorization_model: str | None = None,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            llm: Language model used for answers and categorization.
            context_char_budget: Maximum characters of chunk text in the prompt.
            chars_per_page: Page size used for page estimates.
            excerpt_chars: Length of the excerpt shown for each source.
            history_messages: How many trailing conversation messages to include.
            temperature: Sampling temperature for answers.
            max_tokens: Maximum answer length in tokens.
            categorization_model: Cheaper model for categorization, if any.
        """
        self.llm = llm
        self.context_char_budget = context_char_budget
        self.chars_per_page = chars_per_page
        self.excerpt_chars = excerpt_chars
        self.history_messages = history_messages
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.categorization_model = categorization_model

    def build_context(self, scored: Sequence[ScoredChunk], documents: dict[str, Document]) -> str:
        """Label each chunk "Source N (title)" and fit them into the character budget."""
        blocks = []
        remaining = self.context_char_budget
        for number, item in enumerate(scored, start=1):
            if remaining <= 0:
                break
            document = documents.get(item.chunk.document_id)
            label = f"Source {number}"
            if document and document.title:
                label = f"{label} ({document.title})"
            content = item.chunk.content.strip()[:remaining]
            remaining -= len(content)
            blocks.append(f"{label}:\n{content}")
        return "\n\n".join(blocks)

    def build_history(self, messages: Sequence[ChatMessage] | None) -> str:
        if not messages or self.history_messages <= 0:
            return ""
        recent = list(messages)[-self.history_messages :]
        lines = "\n".join(f"{message.role}: {message.content}" for message in recent)
        return HISTORY_BLOCK.format(messages=lines)

    def build_prompt(
        self,
        query: str,
        scored: Sequence[ScoredChunk],
        documents: dict[str, Document],
        messages: Sequence[ChatMessage] | None = None,
    ) -> str:
        return ANSWER_PROMPT.format(
            context=self.build_context(scored, documents),
            history=self.build_history(messages),
            question=query,
        )

    def page_for(self, chunk: Chunk, offsets: dict[tuple[str, int], int]) -> int:
        """Stored page number if known, otherwise the offset-based estimate."""
        if chunk.page_number:
            return chunk.page_number
        return estimate_page(offsets.get(chunk.key, 0), self.chars_per_page)

    def build_sources(
        self,
        scored: Sequence[ScoredChunk],
        documents: dict[str, Document],
        offsets: dict[tuple[str, int], int],
    ) -> list[SourceCitation]:
        """Citations in ranking order, without duplicate (title, page, excerpt) entries."""
        sources = []
        seen = set()
        for item in scored:
            document = documents.get(item.chunk.document_id)
            title = document.title if document else "Unknown Document"
            excerpt = truncate_excerpt(item.chunk.content, self.excerpt_chars)
            page = self.page_for(item.chunk, offsets)
            key = (title, page, excerpt)
            if key in seen:
                continue
            seen.add(key)
            sources.append(
                SourceCitation(
                    document_title=title,
                    document_url=document.url if document else "",
                    excerpt=excerpt,
                    page_number=page,
                    confidence=round(item.score, 2),
                )
            )
        return sources

    def generate(
        self,
        query: str,
        scored: Sequence[ScoredChunk],
        documents: dict[str, Document],
        messages: Sequence[ChatMessage] | None = None,
    ) -> Completion:
        """Ask the model for an answer and clean its formatting.

        Raises:
            LLMError: Propagated from the model; the request fails as a whole.
        """
        prompt = self.build_prompt(query, scored, documents, messages)
        completion = self.llm.generate(
            prompt,
            system_prompt=SYSTEM_PROMPT,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return Completion(text=clean_markdown(completion.text), tokens_used=completion.tokens_used)

    def stream(
        self,
        query: str,
        scored: Sequence[ScoredChunk],
        documents: dict[str, Document],
        messages: Sequence[ChatMessage] | None = None,
    ) -> Iterator[str]:
        """Yield raw answer text as the model streams it.

        Pieces are passed through uncleaned; markdown can span pieces, so
        callers clean the joined text with ``clean_markdown``.
        """
        prompt = self.build_prompt(query, scored, documents, messages)
        yield from self.llm.generate_stream(
            prompt,
            system_prompt=SYSTEM_PROMPT,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

    def categorize(self, question: str, answer: str) -> AnswerCategory:
        """Classify the exchange into a topic bucket. Falls back to ``other``."""
        try:
            completion = self.llm.generate(
                f"Question: {question}\n\nAnswer: {answer[:500]}",
                system_prompt=CATEGORIZATION_PROMPT,
                temperature=0.0,
                max_tokens=10,
                model=self.categorization_model,
            )
        except LLMError as exc:
            logger.warning("Categorization failed, using 'other': %s", exc)
            return AnswerCategory.OTHER

        label = completion.text.strip().strip(".").lower()
        try:
            return AnswerCategory(label)
        except ValueError:
            logger.debug("Unrecognized category %r, using 'other'", label)
            return AnswerCategory.OTHER
