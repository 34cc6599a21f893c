"""
In-memory knowledge store for tests and development.

Records are copied on the way in and out so callers never share mutable
state with the store.
"""

from datetime import datetime

from kbgraph.core.knowledge_store.base import (
    KnowledgeStore,
    ensure_transition,
    rank_by_similarity,
)
from kbgraph.models.entity import EntityType, StoredEntity
from kbgraph.models.knowledge import (
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
from kbgraph.utils.exceptions import NotFoundError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryKnowledgeStore(KnowledgeStore):
    """Dictionary-backed KnowledgeStore."""

    def __init__(self):
        self._items: dict[str, KnowledgeBaseItem] = {}
        self._embeddings: dict[str, KnowledgeEmbedding] = {}
        self._entities: dict[str, StoredEntity] = {}
        self._relationships: dict[str, StoredRelationship] = {}

    # Knowledge items

    async def create_knowledge_item(self, item: KnowledgeBaseItem) -> KnowledgeBaseItem:
        self._items[item.id] = item.model_copy(deep=True)
        return item.model_copy(deep=True)

    async def get_knowledge_item(self, item_id: str) -> KnowledgeBaseItem | None:
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item else None

    async def list_knowledge_items(
        self,
        workspace_id: str,
        status: EmbeddingStatus | None = None,
        limit: int = 100,
    ) -> list[KnowledgeBaseItem]:
        items = [
            item
            for item in self._items.values()
            if item.workspace_id == workspace_id and (status is None or item.embedding_status == status)
        ]
        items.sort(key=lambda item: item.created_at, reverse=True)
        return [item.model_copy(deep=True) for item in items[:limit]]

    async def update_embedding_status(
        self,
        item_id: str,
        status: EmbeddingStatus,
        error: str | None = None,
        embeddings_count: int | None = None,
    ) -> KnowledgeBaseItem:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError(f"Knowledge item not found: {item_id}")

        ensure_transition(item.embedding_status, status)

        item.embedding_status = status
        item.embedding_error = error if status == EmbeddingStatus.FAILED else None
        if embeddings_count is not None:
            item.embeddings_count = embeddings_count
        item.updated_at = datetime.now()

        return item.model_copy(deep=True)

    async def delete_knowledge_item(self, item_id: str) -> bool:
        if item_id not in self._items:
            return False

        await self.delete_embeddings_for_item(item_id)
        await self.delete_relationships_for_item(item_id)
        await self.delete_entities_for_item(item_id)
        del self._items[item_id]
        logger.debug("Deleted knowledge item {}", item_id)
        return True

    # Embeddings

    async def store_embeddings(self, embeddings: list[KnowledgeEmbedding]) -> None:
        for embedding in embeddings:
            self._embeddings[embedding.id] = embedding.model_copy(deep=True)

    async def get_embeddings_for_item(self, item_id: str) -> list[KnowledgeEmbedding]:
        rows = [e for e in self._embeddings.values() if e.knowledge_item_id == item_id]
        rows.sort(key=lambda e: e.chunk_index)
        return [e.model_copy(deep=True) for e in rows]

    async def get_embeddings_by_ids(self, embedding_ids: list[str]) -> list[KnowledgeEmbedding]:
        return [
            self._embeddings[eid].model_copy(deep=True)
            for eid in embedding_ids
            if eid in self._embeddings
        ]

    async def delete_embeddings_for_item(self, item_id: str) -> int:
        doomed = [eid for eid, e in self._embeddings.items() if e.knowledge_item_id == item_id]
        for eid in doomed:
            del self._embeddings[eid]
        return len(doomed)

    async def count_embeddings(
        self, workspace_id: str, knowledge_item_id: str | None = None
    ) -> int:
        return sum(
            1
            for e in self._embeddings.values()
            if e.workspace_id == workspace_id
            and (knowledge_item_id is None or e.knowledge_item_id == knowledge_item_id)
        )

    async def match_embeddings(
        self,
        workspace_id: str,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[SimilarityMatch]:
        candidates = (
            (e.id, e.embedding) for e in self._embeddings.values() if e.workspace_id == workspace_id
        )
        return rank_by_similarity(query_embedding, candidates, match_threshold, match_count)

    # Entities

    async def store_entities(self, entities: list[StoredEntity]) -> None:
        for entity in entities:
            self._entities[entity.id] = entity.model_copy(deep=True)

    async def get_entity(self, entity_id: str) -> StoredEntity | None:
        entity = self._entities.get(entity_id)
        return entity.model_copy(deep=True) if entity else None

    async def get_entities_for_item(self, item_id: str) -> list[StoredEntity]:
        rows = [e for e in self._entities.values() if e.knowledge_item_id == item_id]
        rows.sort(key=lambda e: e.confidence, reverse=True)
        return [e.model_copy(deep=True) for e in rows]

    async def get_entities_for_workspace(
        self,
        workspace_id: str,
        entity_types: list[EntityType] | None = None,
        min_confidence: float | None = None,
        knowledge_item_ids: list[str] | None = None,
        limit: int | None = None,
    ) -> list[StoredEntity]:
        rows = [
            e
            for e in self._entities.values()
            if e.workspace_id == workspace_id
            and (not entity_types or e.entity_type in entity_types)
            and (min_confidence is None or e.confidence >= min_confidence)
            and (not knowledge_item_ids or e.knowledge_item_id in knowledge_item_ids)
        ]
        rows.sort(key=lambda e: e.confidence, reverse=True)
        if limit is not None:
            rows = rows[:limit]
        return [e.model_copy(deep=True) for e in rows]

    async def search_entities(
        self, workspace_id: str, query: str, limit: int = 20
    ) -> list[StoredEntity]:
        needle = query.lower()
        rows = [
            e
            for e in self._entities.values()
            if e.workspace_id == workspace_id and needle in e.name.lower()
        ]
        rows.sort(key=lambda e: e.confidence, reverse=True)
        return [e.model_copy(deep=True) for e in rows[:limit]]

    async def delete_entities_for_item(self, item_id: str) -> int:
        doomed = [eid for eid, e in self._entities.items() if e.knowledge_item_id == item_id]
        for eid in doomed:
            del self._entities[eid]
        return len(doomed)

    # Relationships

    async def store_relationships(self, relationships: list[StoredRelationship]) -> None:
        for relationship in relationships:
            self._relationships[relationship.id] = relationship.model_copy(deep=True)

    async def get_relationships_for_entity(
        self,
        entity_id: str,
        direction: RelationshipDirection = RelationshipDirection.BOTH,
    ) -> list[StoredRelationship]:
        def matches(r: StoredRelationship) -> bool:
            if direction == RelationshipDirection.OUTGOING:
                return r.source_entity_id == entity_id
            if direction == RelationshipDirection.INCOMING:
                return r.target_entity_id == entity_id
            return entity_id in (r.source_entity_id, r.target_entity_id)

        return [r.model_copy(deep=True) for r in self._relationships.values() if matches(r)]

    async def get_relationships_for_workspace(
        self,
        workspace_id: str,
        relationship_types: list[RelationshipType] | None = None,
        min_confidence: float | None = None,
        knowledge_item_ids: list[str] | None = None,
    ) -> list[StoredRelationship]:
        rows = [
            r
            for r in self._relationships.values()
            if r.workspace_id == workspace_id
            and (not relationship_types or r.relationship_type in relationship_types)
            and (min_confidence is None or r.confidence >= min_confidence)
            and (not knowledge_item_ids or r.knowledge_item_id in knowledge_item_ids)
        ]
        rows.sort(key=lambda r: r.confidence, reverse=True)
        return [r.model_copy(deep=True) for r in rows]

    async def delete_relationships_for_item(self, item_id: str) -> int:
        doomed = [rid for rid, r in self._relationships.items() if r.knowledge_item_id == item_id]
        for rid in doomed:
            del self._relationships[rid]
        return len(doomed)
