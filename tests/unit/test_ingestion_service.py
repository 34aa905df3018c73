"""Unit tests for IngestionService."""

from unittest.mock import MagicMock

import pytest

from caregrowth.core.domain import Document
from caregrowth.core.domain.exceptions import DocumentNotFoundError, EmbeddingAPIError
from caregrowth.core.services.ingestion_service import IngestionService

pytestmark = pytest.mark.unit

POLICY_TEXT = (
    "All caregivers complete orientation before their first visit. "
    "Orientation covers infection control, documentation and client rights. "
) * 20


@pytest.fixture
def fetcher():
    fetcher = MagicMock()
    fetcher.fetch_text.return_value = POLICY_TEXT
    return fetcher


@pytest.fixture
def embedder():
    embedder = MagicMock()
    embedder.embed_documents.side_effect = lambda texts: [[0.1, 0.2, 0.3] for _ in texts]
    return embedder


@pytest.fixture
def repo():
    return MagicMock()


@pytest.fixture
def chunk_store():
    store = MagicMock()
    store.replace_chunks.side_effect = lambda document_id, chunks: len(chunks)
    return store


@pytest.fixture
def service(repo, chunk_store, fetcher, embedder):
    return IngestionService(
        documents=repo,
        chunk_store=chunk_store,
        fetcher=fetcher,
        embedder=embedder,
        chunk_size=500,
        chunk_overlap=100,
    )


class TestIngest:
    """Tests for fetching, chunking and storing documents."""

    def test_register_saves_then_ingests(self, service, repo, chunk_store, handbook):
        report = service.register(handbook)

        repo.save_document.assert_called_once_with(handbook)
        repo.mark_fetched.assert_called_once_with(handbook.id)
        assert report.success
        assert report.chunks_created > 1
        assert report.chunks_without_embedding == 0
        assert report.content_length == len(POLICY_TEXT.strip())

        document_id, chunks = chunk_store.replace_chunks.call_args.args
        assert document_id == handbook.id
        assert [chunk.chunk_index for chunk in chunks] == list(range(len(chunks)))
        assert all(chunk.embedding == [0.1, 0.2, 0.3] for chunk in chunks)
        assert chunks[0].start_offset == 0
        assert all(chunk.document_id == handbook.id for chunk in chunks)

    def test_unreadable_document_is_reported(self, service, fetcher, repo, chunk_store, handbook):
        fetcher.fetch_text.return_value = None

        report = service.ingest(handbook)

        assert not report.success
        assert "view permission" in report.message
        repo.mark_fetched.assert_called_once_with(handbook.id, fetched=False)
        chunk_store.replace_chunks.assert_not_called()

    def test_whitespace_only_content_is_unreadable(self, service, fetcher, handbook):
        fetcher.fetch_text.return_value = " \n\ufeff "
        assert not service.ingest(handbook).success

    def test_embedding_failure_stores_chunks_without_vectors(
        self, service, embedder, chunk_store, handbook
    ):
        embedder.embed_documents.side_effect = EmbeddingAPIError("quota exceeded")

        report = service.ingest(handbook)

        assert report.success
        assert report.chunks_without_embedding == report.chunks_created
        _, chunks = chunk_store.replace_chunks.call_args.args
        assert all(chunk.embedding is None for chunk in chunks)

    def test_partial_embeddings(self, service, embedder, handbook):
        embedder.embed_documents.side_effect = lambda texts: [[1.0]] + [None] * (len(texts) - 1)

        report = service.ingest(handbook)

        assert report.chunks_without_embedding == report.chunks_created - 1

    def test_without_embedder(self, repo, chunk_store, fetcher, handbook):
        service = IngestionService(repo, chunk_store, fetcher, embedder=None)

        report = service.ingest(handbook)

        assert report.success
        assert report.chunks_without_embedding == report.chunks_created

    def test_short_document_is_one_chunk(self, service, fetcher):
        fetcher.fetch_text.return_value = "Office hours are 9 to 5."
        document = Document(id="doc-9", title="Hours")

        report = service.ingest(document)

        assert report.chunks_created == 1


class TestSyncAndForget:
    """Tests for re-ingestion and removal."""

    def test_sync_reingests_stored_document(self, service, repo, fetcher, handbook):
        repo.get_document.return_value = handbook

        report = service.sync(handbook.id)

        assert report.success
        fetcher.fetch_text.assert_called_once_with(handbook)

    def test_sync_unknown_document_raises(self, service, repo):
        repo.get_document.return_value = None

        with pytest.raises(DocumentNotFoundError):
            service.sync("missing")

    def test_forget_deletes_chunks_and_document(self, service, repo, chunk_store):
        service.forget("doc-1")

        chunk_store.delete_chunks.assert_called_once_with("doc-1")
        repo.delete_document.assert_called_once_with("doc-1")
