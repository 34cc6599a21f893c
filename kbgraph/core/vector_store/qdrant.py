"""
Qdrant vector index for chunk embeddings.
"""

from uuid import NAMESPACE_DNS, UUID, uuid5

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    HnswConfigDiff,
    MatchValue,
    PointStruct,
    VectorParams,
)

from kbgraph.core.vector_store.base import VectorIndex
from kbgraph.models.knowledge import KnowledgeEmbedding, SimilarityMatch
from kbgraph.utils.exceptions import ValidationError, VectorStoreError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


class QdrantVectorIndex(VectorIndex):
    """
    Qdrant-backed similarity search.

    Features:
    - HNSW indexing with cosine distance
    - Keyword payload indices on workspace and knowledge item
    - Collection created lazily once the vector size is known
    """

    def __init__(
        self,
        url: str = "http://localhost:6333",
        collection_name: str = "knowledge_embeddings",
        vector_size: int | None = None,
        use_grpc: bool = False,
        hnsw_m: int = 16,
        hnsw_ef_construct: int = 100,
        on_disk: bool = False,
        timeout: int = 30,
        client: AsyncQdrantClient | None = None,
    ):
        """
        Initialize Qdrant index.

        Args:
            url: Qdrant URL
            collection_name: Collection name
            vector_size: Embedding dimension; inferred from the first upsert if None
            use_grpc: Use gRPC connection
            hnsw_m: HNSW M parameter (connections per node)
            hnsw_ef_construct: HNSW ef_construct parameter
            on_disk: Store vectors on disk instead of RAM
            timeout: Request timeout in seconds
            client: Pre-built client (e.g. an in-memory one)
        """
        self.url = url
        self.collection_name = collection_name
        self.vector_size = vector_size
        self.use_grpc = use_grpc
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construct = hnsw_ef_construct
        self.on_disk = on_disk
        self.timeout = timeout
        self.client = client
        self._collection_ready = False

    def _to_uuid(self, id_str: str) -> str:
        """Qdrant point ids must be UUIDs or integers."""
        try:
            UUID(id_str)
            return id_str
        except ValueError:
            return str(uuid5(NAMESPACE_DNS, id_str))

    async def connect(self) -> None:
        """
        Raises:
            VectorStoreError: If connection fails
        """
        if self.client is None:
            try:
                self.client = AsyncQdrantClient(
                    url=self.url, prefer_grpc=self.use_grpc, timeout=self.timeout
                )
            except Exception as e:
                logger.error(
                    "Failed to connect to Qdrant",
                    extra={"url": self.url, "error": str(e)},
                )
                raise VectorStoreError(f"Failed to connect to Qdrant: {e}") from e

    async def initialize(self, vector_size: int | None = None) -> None:
        if vector_size is not None:
            self.vector_size = vector_size

        await self.connect()
        if self._collection_ready or self.vector_size is None:
            return

        try:
            if not await self.client.collection_exists(self.collection_name):
                await self.client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=VectorParams(
                        size=self.vector_size,
                        distance=Distance.COSINE,
                        hnsw_config=HnswConfigDiff(
                            m=self.hnsw_m, ef_construct=self.hnsw_ef_construct
                        ),
                        on_disk=self.on_disk,
                    ),
                )

                for field_name in ("workspace_id", "knowledge_item_id"):
                    await self.client.create_payload_index(
                        collection_name=self.collection_name,
                        field_name=field_name,
                        field_schema="keyword",
                    )

                logger.info(
                    "Created Qdrant collection {}",
                    self.collection_name,
                    extra={"vector_size": self.vector_size},
                )

            self._collection_ready = True
        except Exception as e:
            logger.error(
                "Failed to initialize Qdrant collection",
                extra={"collection": self.collection_name, "error": str(e)},
            )
            raise VectorStoreError(f"Failed to initialize Qdrant collection: {e}") from e

    async def upsert_embeddings(
        self, embeddings: list[KnowledgeEmbedding], batch_size: int = 100
    ) -> None:
        if not embeddings:
            return
        if any(not e.embedding for e in embeddings):
            raise ValidationError("Embedding vector cannot be empty")

        await self.initialize(self.vector_size or len(embeddings[0].embedding))

        try:
            for i in range(0, len(embeddings), batch_size):
                batch = embeddings[i : i + batch_size]
                points = [
                    PointStruct(
                        id=self._to_uuid(e.id),
                        vector=e.embedding,
                        payload={
                            "original_id": e.id,
                            "workspace_id": e.workspace_id,
                            "knowledge_item_id": e.knowledge_item_id,
                            "chunk_index": e.chunk_index,
                        },
                    )
                    for e in batch
                ]
                await self.client.upsert(
                    collection_name=self.collection_name, points=points, wait=True
                )
        except Exception as e:
            logger.error(
                "Qdrant upsert failed",
                extra={"collection": self.collection_name, "count": len(embeddings), "error": str(e)},
            )
            raise VectorStoreError(f"Qdrant upsert failed: {e}") from e

    async def search(
        self,
        workspace_id: str,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[SimilarityMatch]:
        await self.initialize(self.vector_size or len(query_embedding))
        if not self._collection_ready:
            return []

        try:
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=query_embedding,
                limit=match_count,
                score_threshold=match_threshold,
                query_filter=Filter(
                    must=[FieldCondition(key="workspace_id", match=MatchValue(value=workspace_id))]
                ),
                with_payload=True,
            )
        except Exception as e:
            logger.error(
                "Qdrant search failed",
                extra={"collection": self.collection_name, "workspace_id": workspace_id, "error": str(e)},
            )
            raise VectorStoreError(f"Qdrant search failed: {e}") from e

        return [
            SimilarityMatch(id=point.payload["original_id"], similarity=point.score)
            for point in response.points
        ]

    async def delete_for_item(self, knowledge_item_id: str) -> None:
        await self.connect()
        if not self._collection_ready and not await self.client.collection_exists(
            self.collection_name
        ):
            return

        try:
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(
                    filter=Filter(
                        must=[
                            FieldCondition(
                                key="knowledge_item_id",
                                match=MatchValue(value=knowledge_item_id),
                            )
                        ]
                    )
                ),
                wait=True,
            )
        except Exception as e:
            logger.error(
                "Qdrant delete failed",
                extra={"knowledge_item_id": knowledge_item_id, "error": str(e)},
            )
            raise VectorStoreError(f"Qdrant delete failed: {e}") from e

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
            self._collection_ready = False
