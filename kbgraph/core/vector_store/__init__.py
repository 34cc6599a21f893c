"""
Vector index implementations.

Available backends:
- QdrantVectorIndex: Qdrant collection mirroring the stored chunk embeddings
"""

from kbgraph.core.vector_store.base import VectorIndex
from kbgraph.core.vector_store.qdrant import QdrantVectorIndex

__all__ = [
    "VectorIndex",
    "QdrantVectorIndex",
]
