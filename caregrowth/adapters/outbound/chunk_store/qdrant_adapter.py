"""Qdrant chunk store for deployments that keep chunks in a vector database.

Chunks are stored as points with a named ``content`` vector and a payload
carrying the chunk fields. Chunks without an embedding are stored without a
vector so they stay available to keyword scoring.
"""

import logging
import uuid
from typing import TYPE_CHECKING, Any

from ....core.domain import Chunk
from ....core.domain.exceptions import ChunkStoreConnectionError, ChunkStoreQueryError
from ....core.ports.chunk_store_port import ChunkStorePort

if TYPE_CHECKING:
    from qdrant_client import QdrantClient

logger = logging.getLogger(__name__)

# Constants
VECTOR_NAME = "content"
SCROLL_PAGE_SIZE = 256
UPSERT_BATCH_SIZE = 64


def point_id(document_id: str, chunk_index: int) -> str:
    """Deterministic point id for a chunk."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{document_id}:{chunk_index}"))


class QdrantChunkStore(ChunkStorePort):
    """Chunk store backed by a Qdrant collection."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        collection_name: str = "document_chunks",
        dimension: int = 512,
        client: "QdrantClient | None" = None,
    ) -> None:
        """Initialize the store.

        Args:
            url: Qdrant cluster URL.
            api_key: Qdrant API key.
            collection_name: Collection holding the chunks.
            dimension: Embedding dimension for a newly created collection.
            client: Pre-built client, mainly for tests.
        """
        self.url = url
        self.api_key = api_key
        self.collection_name = collection_name
        self.dimension = dimension
        self._client = client
        self._collection_ready = False

    def _get_client(self) -> "QdrantClient":
        """Get or create the Qdrant client and make sure the collection exists."""
        if self._client is None:
            try:
                from qdrant_client import QdrantClient

                self._client = QdrantClient(url=self.url, api_key=self.api_key or None)
                logger.info("Connected to Qdrant at: %s", self.url)
            except Exception as e:
                raise ChunkStoreConnectionError(
                    f"Failed to connect to Qdrant at {self.url}",
                    cause=e,
                    context={"url": self.url},
                ) from e

        if not self._collection_ready:
            self._ensure_collection(self._client)
        return self._client

    def _ensure_collection(self, client: "QdrantClient") -> None:
        from qdrant_client.http import models

        try:
            existing = {c.name for c in client.get_collections().collections}
            if self.collection_name not in existing:
                logger.info("Creating collection %s", self.collection_name)
                client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config={
                        VECTOR_NAME: models.VectorParams(
                            size=self.dimension,
                            distance=models.Distance.COSINE,
                        )
                    },
                )
                client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name="document_id",
                    field_schema=models.PayloadSchemaType.KEYWORD,
                )
        except Exception as e:
            raise ChunkStoreConnectionError(
                f"Failed to prepare Qdrant collection {self.collection_name}",
                cause=e,
                context={"url": self.url, "collection": self.collection_name},
            ) from e
        self._collection_ready = True

    @staticmethod
    def _document_filter(document_ids: list[str]) -> Any:
        from qdrant_client.http import models

        return models.Filter(
            must=[
                models.FieldCondition(
                    key="document_id",
                    match=models.MatchAny(any=list(document_ids)),
                )
            ]
        )

    @staticmethod
    def _point_to_chunk(point: Any) -> Chunk:
        payload = point.payload or {}
        vector = point.vector
        if isinstance(vector, dict):
            vector = vector.get(VECTOR_NAME)
        return Chunk(
            document_id=payload["document_id"],
            chunk_index=int(payload["chunk_index"]),
            content=payload.get("content", ""),
            embedding=list(vector) if vector else None,
            page_number=payload.get("page_number"),
            start_offset=payload.get("start_offset"),
        )

    def get_chunks(self, document_ids: list[str]) -> list[Chunk]:
        if not document_ids:
            return []

        client = self._get_client()
        chunks: list[Chunk] = []
        offset = None
        try:
            while True:
                points, offset = client.scroll(
                    collection_name=self.collection_name,
                    scroll_filter=self._document_filter(document_ids),
                    limit=SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=True,
                    with_vectors=True,
                )
                chunks.extend(self._point_to_chunk(point) for point in points)
                if offset is None:
                    break
        except Exception as e:
            raise ChunkStoreQueryError(
                "Failed to read chunks from Qdrant",
                cause=e,
                context={"collection": self.collection_name, "documents": len(document_ids)},
            ) from e

        order = {document_id: position for position, document_id in enumerate(document_ids)}
        chunks.sort(key=lambda chunk: (order.get(chunk.document_id, len(order)), chunk.chunk_index))
        return chunks

    def replace_chunks(self, document_id: str, chunks: list[Chunk]) -> int:
        from qdrant_client.http import models

        self.delete_chunks(document_id)
        client = self._get_client()

        points = [
            models.PointStruct(
                id=point_id(document_id, chunk.chunk_index),
                vector={VECTOR_NAME: chunk.embedding} if chunk.embedding else {},
                payload={
                    "document_id": document_id,
                    "chunk_index": chunk.chunk_index,
                    "content": chunk.content,
                    "page_number": chunk.page_number,
                    "start_offset": chunk.start_offset,
                },
            )
            for chunk in chunks
        ]

        try:
            for start in range(0, len(points), UPSERT_BATCH_SIZE):
                client.upsert(
                    collection_name=self.collection_name,
                    points=points[start : start + UPSERT_BATCH_SIZE],
                )
        except Exception as e:
            raise ChunkStoreQueryError(
                "Failed to store chunks in Qdrant",
                cause=e,
                context={"collection": self.collection_name, "document_id": document_id},
            ) from e

        logger.debug("Stored %d chunks for %s in Qdrant", len(points), document_id)
        return len(points)

    def delete_chunks(self, document_id: str) -> None:
        from qdrant_client.http import models

        client = self._get_client()
        try:
            client.delete(
                collection_name=self.collection_name,
                points_selector=models.FilterSelector(filter=self._document_filter([document_id])),
            )
        except Exception as e:
            raise ChunkStoreQueryError(
                "Failed to delete chunks from Qdrant",
                cause=e,
                context={"collection": self.collection_name, "document_id": document_id},
            ) from e

    def count_chunks(self) -> int:
        client = self._get_client()
        try:
            return client.count(collection_name=self.collection_name, exact=True).count
        except Exception as e:
            raise ChunkStoreQueryError(
                "Failed to count chunks in Qdrant",
                cause=e,
                context={"collection": self.collection_name},
            ) from e
