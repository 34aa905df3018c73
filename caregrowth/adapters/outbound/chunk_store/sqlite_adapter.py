"""SQLite storage for documents, chunks and the Q&A log."""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ....core.domain import Chunk, Document, SearchAnswer
from ....core.domain.exceptions import ChunkStoreConnectionError, ChunkStoreQueryError
from ....core.ports.chunk_store_port import ChunkStorePort, DocumentRepositoryPort

logger = logging.getLogger(__name__)


class SQLiteStore(DocumentRepositoryPort, ChunkStorePort):
    """Single-file store implementing the document, chunk and Q&A log ports.

    Embeddings are stored as JSON arrays. Every failure is raised as a
    ``ChunkStoreError`` subclass.
    """

    def __init__(self, db_path: str | Path = "data/caregrowth.db") -> None:
        """Initialize the store and create the schema if needed.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_db()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ChunkStoreConnectionError(
                f"Cannot create database directory {self.db_path.parent}",
                cause=e,
                context={"path": str(self.db_path)},
            ) from e

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and always close it."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise ChunkStoreConnectionError(
                "Failed to open the chunk store",
                cause=e,
                context={"path": str(self.db_path)},
            ) from e

        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise ChunkStoreQueryError(
                "Chunk store query failed",
                cause=e,
                context={"path": str(self.db_path)},
            ) from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id TEXT PRIMARY KEY,
                    user_id TEXT,
                    title TEXT NOT NULL,
                    url TEXT,
                    mime_type TEXT,
                    fetched INTEGER NOT NULL DEFAULT 0,
                    shared INTEGER NOT NULL DEFAULT 0,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
                    chunk_index INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    embedding TEXT,
                    page_number INTEGER,
                    start_offset INTEGER,
                    PRIMARY KEY (document_id, chunk_index)
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS qna_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT,
                    question TEXT NOT NULL,
                    response TEXT NOT NULL,
                    category TEXT,
                    sources TEXT,
                    tokens_used INTEGER,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # Databases created before documents could be shared lack the column
            columns = {row["name"] for row in conn.execute("PRAGMA table_info(documents)")}
            if "shared" not in columns:
                conn.execute("ALTER TABLE documents ADD COLUMN shared INTEGER NOT NULL DEFAULT 0")

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_user
                ON documents(user_id)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_qna_logs_user
                ON qna_logs(user_id, created_at)
            """)

    # Documents

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Document:
        return Document(
            id=row["id"],
            title=row["title"],
            url=row["url"] or "",
            user_id=row["user_id"],
            mime_type=row["mime_type"],
            fetched=bool(row["fetched"]),
            shared=bool(row["shared"]),
        )

    def save_document(self, document: Document) -> Document:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO documents (id, user_id, title, url, mime_type, fetched, shared)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    user_id = excluded.user_id,
                    title = excluded.title,
                    url = excluded.url,
                    mime_type = excluded.mime_type,
                    shared = excluded.shared,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    document.id,
                    document.user_id,
                    document.title,
                    document.url,
                    document.mime_type,
                    int(document.fetched),
                    int(document.shared),
                ),
            )
        return document

    def get_document(self, document_id: str) -> Document | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM documents WHERE id = ?", (document_id,)).fetchone()
        return self._row_to_document(row) if row else None

    def list_documents(
        self, user_id: str | None = None, document_ids: list[str] | None = None
    ) -> list[Document]:
        """List documents by owner and/or id, oldest first.

        Args:
            user_id: Restrict to this owner.
            document_ids: Restrict to these ids.

        Returns:
            Matching documents.
        """
        clauses = []
        params: list[str] = []
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if document_ids is not None:
            if not document_ids:
                return []
            clauses.append(f"id IN ({', '.join('?' for _ in document_ids)})")
            params.extend(document_ids)

        query = "SELECT * FROM documents"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY rowid"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_document(row) for row in rows]

    def list_shared_documents(self) -> list[Document]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM documents WHERE shared = 1 ORDER BY rowid").fetchall()
        return [self._row_to_document(row) for row in rows]

    def mark_fetched(self, document_id: str, fetched: bool = True) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE documents SET fetched = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (int(fetched), document_id),
            )

    def delete_document(self, document_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))

    # Chunks

    def get_chunks(self, document_ids: list[str]) -> list[Chunk]:
        if not document_ids:
            return []

        placeholders = ", ".join("?" for _ in document_ids)
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT document_id, chunk_index, content, embedding, page_number, start_offset
                FROM chunks
                WHERE document_id IN ({placeholders})
                ORDER BY document_id, chunk_index
                """,
                list(document_ids),
            ).fetchall()

        chunks = []
        for row in rows:
            chunks.append(
                Chunk(
                    document_id=row["document_id"],
                    chunk_index=row["chunk_index"],
                    content=row["content"],
                    embedding=self._decode_embedding(row["embedding"]),
                    page_number=row["page_number"],
                    start_offset=row["start_offset"],
                )
            )
        return chunks

    @staticmethod
    def _decode_embedding(raw: str | None) -> list[float] | None:
        """Stored JSON embedding, or None when missing or unreadable."""
        if not raw:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Skipping unreadable stored embedding")
            return None
        return value if isinstance(value, list) and value else None

    def replace_chunks(self, document_id: str, chunks: list[Chunk]) -> int:
        with self._connect() as conn:
            conn.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            conn.executemany(
                """
                INSERT INTO chunks
                    (document_id, chunk_index, content, embedding, page_number, start_offset)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        document_id,
                        chunk.chunk_index,
                        chunk.content,
                        json.dumps(chunk.embedding) if chunk.embedding else None,
                        chunk.page_number,
                        chunk.start_offset,
                    )
                    for chunk in chunks
                ],
            )
        return len(chunks)

    def delete_chunks(self, document_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))

    def count_chunks(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]

    # Q&A log

    def log_interaction(
        self,
        question: str,
        answer: SearchAnswer,
        user_id: str | None = None,
        document_ids: list[str] | None = None,
    ) -> None:
        """Record an answered question in ``qna_logs``."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO qna_logs (user_id, question, response, category, sources, tokens_used)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    question,
                    answer.answer,
                    answer.category.value,
                    json.dumps(document_ids or []),
                    answer.tokens_used,
                ),
            )

    def recent_interactions(self, user_id: str | None = None, limit: int = 20) -> list[dict]:
        """Most recent Q&A log entries, newest first."""
        query = "SELECT * FROM qna_logs"
        params: list[object] = []
        if user_id is not None:
            query += " WHERE user_id = ?"
            params.append(user_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            {
                "user_id": row["user_id"],
                "question": row["question"],
                "response": row["response"],
                "category": row["category"],
                "sources": json.loads(row["sources"] or "[]"),
                "tokens_used": row["tokens_used"],
                "created_at": row["created_at"],
            }
            for row in rows
        ]
