"""
Base interface for vector indexes.

A vector index mirrors the chunk embeddings of a knowledge store and answers
the similarity search that the store would otherwise brute-force.
"""

from abc import ABC, abstractmethod

from kbgraph.models.knowledge import KnowledgeEmbedding, SimilarityMatch


class VectorIndex(ABC):
    """Abstract base class for vector index implementations."""

    @abstractmethod
    async def initialize(self, vector_size: int | None = None) -> None:
        """
        Create the collection if it does not exist.

        Raises:
            VectorStoreError: If initialization fails
        """
        pass

    @abstractmethod
    async def upsert_embeddings(self, embeddings: list[KnowledgeEmbedding]) -> None:
        """
        Store or replace embedding vectors.

        Raises:
            ValidationError: If an embedding has no vector
            VectorStoreError: If the upsert fails
        """
        pass

    @abstractmethod
    async def search(
        self,
        workspace_id: str,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[SimilarityMatch]:
        """Ranked matches within a workspace, best first."""
        pass

    @abstractmethod
    async def delete_for_item(self, knowledge_item_id: str) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
