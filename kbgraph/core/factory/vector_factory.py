"""
Factory for creating vector index backends.
"""

from kbgraph.config import QdrantConfig
from kbgraph.core.vector_store.base import VectorIndex
from kbgraph.core.vector_store.qdrant import QdrantVectorIndex


class VectorIndexFactory:
    """Factory for creating vector indexes from configuration."""

    @staticmethod
    def create(config: QdrantConfig, vector_size: int | None = None) -> VectorIndex | None:
        """
        Create the vector index, or None when Qdrant is disabled.

        Args:
            config: Qdrant configuration
            vector_size: Embedding dimension; inferred on first write if None
        """
        if not config.enabled:
            return None

        return QdrantVectorIndex(
            url=config.url,
            collection_name=config.collection_name,
            vector_size=vector_size,
            use_grpc=config.use_grpc,
            hnsw_m=config.hnsw_m,
            hnsw_ef_construct=config.hnsw_ef_construct,
            on_disk=config.on_disk,
            timeout=config.timeout,
        )
