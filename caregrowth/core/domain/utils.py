"""Text helpers shared by ingestion and answer synthesis.

Text entering the system (fetched documents and user questions) is normalized
once at the boundary. Internal layers assume clean text.
"""

import re
import unicodedata

_SENTENCE_BREAKS = (". ", ".\n", "? ", "?\n", "! ", "!\n")


def normalize_text(text: str) -> str:
    """Strip BOM markers, normalize line endings and collapse blank runs.

    Args:
        text: Raw text that may contain BOMs, CRLF line endings or runs of
            horizontal whitespace.

    Returns:
        NFKC-normalized text with single spaces inside lines, at most one
        blank line between paragraphs, and no surrounding whitespace.
    """
    if not text:
        return ""

    cleaned = text.replace("\ufeff", "").replace("\ufffd", "")
    cleaned = unicodedata.normalize("NFKC", cleaned)
    cleaned = cleaned.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = re.sub(r"[ \t\f\v]+", " ", cleaned)
    cleaned = re.sub(r" *\n *", "\n", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def chunk_text_with_offsets(
    text: str,
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
) -> list[tuple[int, str]]:
    """Split text into overlapping chunks, keeping each chunk's start offset.

    Chunks are roughly ``chunk_size`` characters and try to end on a sentence
    boundary in the second half of the window.

    Args:
        text: Text to chunk.
        chunk_size: Target size of each chunk in characters (must be positive).
        chunk_overlap: Overlap between consecutive chunks (must be less than chunk_size).

    Returns:
        List of ``(start_offset, chunk)`` pairs.

    Raises:
        ValueError: If chunk_overlap >= chunk_size or parameters are invalid.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if chunk_overlap < 0:
        raise ValueError("chunk_overlap must be non-negative")
    if chunk_overlap >= chunk_size:
        raise ValueError("chunk_overlap must be less than chunk_size to avoid infinite loop")

    if not text or not text.strip():
        return []

    if len(text) <= chunk_size:
        return [(0, text.strip())]

    chunks: list[tuple[int, str]] = []
    start = 0
    while start < len(text):
        end = start + chunk_size
        if end < len(text):
            for punct in _SENTENCE_BREAKS:
                last_punct = text.rfind(punct, start, end)
                if last_punct > start + chunk_size // 2:
                    end = last_punct + 1
                    break
        else:
            end = len(text)

        raw = text[start:end]
        chunk = raw.strip()
        if chunk:
            chunks.append((start + len(raw) - len(raw.lstrip()), chunk))

        if end >= len(text):
            break
        start = max(end - chunk_overlap, start + 1)
    return chunks
