"""
Pytest configuration and shared fixtures.
"""

from unittest.mock import MagicMock

import pytest

from caregrowth.core.domain import Chunk, Completion, Document


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (HTTP layer, mocked services)")
    config.addinivalue_line("markers", "slow: Slow tests (network, large data)")


@pytest.fixture
def make_chunk():
    """Factory for chunks with sensible defaults."""

    def _make(
        content: str = "Some chunk content",
        document_id: str = "doc-1",
        chunk_index: int = 0,
        embedding: list[float] | None = None,
        **kwargs,
    ) -> Chunk:
        return Chunk(
            document_id=document_id,
            chunk_index=chunk_index,
            content=content,
            embedding=embedding,
            **kwargs,
        )

    return _make


@pytest.fixture
def handbook():
    """A linked employee handbook document."""
    return Document(
        id="doc-1",
        title="Employee Handbook",
        url="https://docs.google.com/document/d/abc123/edit",
        user_id="agency-1",
        fetched=True,
    )


@pytest.fixture
def pricing_sheet():
    """A linked pricing spreadsheet."""
    return Document(
        id="doc-2",
        title="Pricing Sheet",
        url="https://docs.google.com/spreadsheets/d/xyz789/edit",
        user_id="agency-1",
        fetched=True,
    )


@pytest.fixture
def shared_policy():
    """An agency-wide policy document visible to every user."""
    return Document(
        id="policy-1",
        title="Agency Policy Manual",
        url="https://docs.google.com/document/d/policy/edit",
        user_id="admin",
        fetched=True,
        shared=True,
    )


@pytest.fixture
def mock_llm():
    """LLM port mock returning a fixed completion."""
    llm = MagicMock()
    llm.generate.return_value = Completion(text="Final answer", tokens_used=123)
    llm.generate_stream.side_effect = lambda *args, **kwargs: iter(["Final ", "answer"])
    return llm
