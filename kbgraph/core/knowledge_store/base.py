"""
Repository interface for knowledge base persistence.

Everything is scoped by workspace id. Knowledge items own their embeddings;
entities and relationships belong to the workspace and point back at the
item they were extracted from, so deleting an item cascades to all three.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from kbgraph.core.embeddings.vector_math import cosine_similarity_matrix
from kbgraph.models.entity import EntityType, StoredEntity
from kbgraph.models.knowledge import (
    STATUS_TRANSITIONS,
    EmbeddingStatus,
    KnowledgeBaseItem,
    KnowledgeEmbedding,
    SimilarityMatch,
)
from kbgraph.models.relationship import (
    RelationshipDirection,
    RelationshipType,
    StoredRelationship,
)
from kbgraph.utils.exceptions import ValidationError


def ensure_transition(current: EmbeddingStatus, new: EmbeddingStatus) -> None:
    """
    Raises:
        ValidationError: If the embedding status cannot move from current to new
    """
    if new not in STATUS_TRANSITIONS[current]:
        raise ValidationError(
            f"Invalid embedding status transition: {current.value} -> {new.value}",
            context={"from": current.value, "to": new.value},
        )


def rank_by_similarity(
    query_embedding: Sequence[float],
    candidates: Iterable[tuple[str, Sequence[float]]],
    match_threshold: float,
    match_count: int,
) -> list[SimilarityMatch]:
    """
    Brute-force cosine ranking used when no vector index is configured.

    Candidates whose dimension differs from the query are skipped.
    """
    dimension = len(query_embedding)
    rows = [(cid, vector) for cid, vector in candidates if len(vector) == dimension]
    if not rows or match_count <= 0:
        return []

    scores = cosine_similarity_matrix(query_embedding, [vector for _, vector in rows])
    matches = [
        SimilarityMatch(id=cid, similarity=score)
        for (cid, _), score in zip(rows, scores)
        if score >= match_threshold
    ]
    matches.sort(key=lambda m: m.similarity, reverse=True)
    return matches[:match_count]


class KnowledgeStore(ABC):
    """Abstract base class for knowledge store backends."""

    async def initialize(self) -> None:
        """Create schema/collections. No-op for backends that need none."""

    async def close(self) -> None:
        """Release connections."""

    # ═══════════════════════════════════════════════════════════
    # KNOWLEDGE ITEMS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def create_knowledge_item(self, item: KnowledgeBaseItem) -> KnowledgeBaseItem:
        pass

    @abstractmethod
    async def get_knowledge_item(self, item_id: str) -> KnowledgeBaseItem | None:
        pass

    @abstractmethod
    async def list_knowledge_items(
        self,
        workspace_id: str,
        status: EmbeddingStatus | None = None,
        limit: int = 100,
    ) -> list[KnowledgeBaseItem]:
        """Items of a workspace, newest first."""
        pass

    @abstractmethod
    async def update_embedding_status(
        self,
        item_id: str,
        status: EmbeddingStatus,
        error: str | None = None,
        embeddings_count: int | None = None,
    ) -> KnowledgeBaseItem:
        """
        Move an item to a new embedding status.

        Entering `generating` clears a previous error; `failed` records the
        error message and `completed` the final embeddings count.

        Raises:
            NotFoundError: If the item does not exist
            ValidationError: If the transition is not allowed
        """
        pass

    @abstractmethod
    async def delete_knowledge_item(self, item_id: str) -> bool:
        """Delete an item with its embeddings, entities and relationships."""
        pass

    # ═══════════════════════════════════════════════════════════
    # EMBEDDINGS
    # ═══════════════════════════════════════════════════════════

    async def store_embedding(self, embedding: KnowledgeEmbedding) -> None:
        await self.store_embeddings([embedding])

    @abstractmethod
    async def store_embeddings(self, embeddings: list[KnowledgeEmbedding]) -> None:
        pass

    @abstractmethod
    async def get_embeddings_for_item(self, item_id: str) -> list[KnowledgeEmbedding]:
        """Embeddings of an item ordered by chunk index."""
        pass

    @abstractmethod
    async def get_embeddings_by_ids(self, embedding_ids: list[str]) -> list[KnowledgeEmbedding]:
        pass

    @abstractmethod
    async def delete_embeddings_for_item(self, item_id: str) -> int:
        pass

    @abstractmethod
    async def count_embeddings(
        self, workspace_id: str, knowledge_item_id: str | None = None
    ) -> int:
        pass

    @abstractmethod
    async def match_embeddings(
        self,
        workspace_id: str,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[SimilarityMatch]:
        """
        Rank workspace embeddings by cosine similarity to the query.

        Returns at most match_count matches with similarity >= match_threshold,
        best first.
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # ENTITIES
    # ═══════════════════════════════════════════════════════════

    async def store_entity(self, entity: StoredEntity) -> None:
        await self.store_entities([entity])

    @abstractmethod
    async def store_entities(self, entities: list[StoredEntity]) -> None:
        pass

    @abstractmethod
    async def get_entity(self, entity_id: str) -> StoredEntity | None:
        pass

    @abstractmethod
    async def get_entities_for_item(self, item_id: str) -> list[StoredEntity]:
        """Entities extracted from an item, highest confidence first."""
        pass

    @abstractmethod
    async def get_entities_for_workspace(
        self,
        workspace_id: str,
        entity_types: list[EntityType] | None = None,
        min_confidence: float | None = None,
        knowledge_item_ids: list[str] | None = None,
        limit: int | None = None,
    ) -> list[StoredEntity]:
        """Workspace entities matching every given filter, highest confidence first."""
        pass

    @abstractmethod
    async def search_entities(
        self, workspace_id: str, query: str, limit: int = 20
    ) -> list[StoredEntity]:
        """Case-insensitive name substring search."""
        pass

    @abstractmethod
    async def delete_entities_for_item(self, item_id: str) -> int:
        pass

    # ═══════════════════════════════════════════════════════════
    # RELATIONSHIPS
    # ═══════════════════════════════════════════════════════════

    async def store_relationship(self, relationship: StoredRelationship) -> None:
        await self.store_relationships([relationship])

    @abstractmethod
    async def store_relationships(self, relationships: list[StoredRelationship]) -> None:
        pass

    @abstractmethod
    async def get_relationships_for_entity(
        self,
        entity_id: str,
        direction: RelationshipDirection = RelationshipDirection.BOTH,
    ) -> list[StoredRelationship]:
        pass

    @abstractmethod
    async def get_relationships_for_workspace(
        self,
        workspace_id: str,
        relationship_types: list[RelationshipType] | None = None,
        min_confidence: float | None = None,
        knowledge_item_ids: list[str] | None = None,
    ) -> list[StoredRelationship]:
        pass

    @abstractmethod
    async def delete_relationships_for_item(self, item_id: str) -> int:
        pass
