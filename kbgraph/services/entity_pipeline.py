"""
Entity pipeline: extract, link and persist the entities of a knowledge item.
"""

import time

from kbgraph.core.knowledge_store.base import KnowledgeStore
from kbgraph.models.entity import (
    BaseEntity,
    EntityExtractionOptions,
    EntityExtractionResult,
    EntityStats,
    StoredEntity,
)
from kbgraph.models.relationship import (
    EntityPipelineResult,
    EntityRelationship,
    StoredRelationship,
)
from kbgraph.services.entity_extractor import EntityExtractor, get_entity_stats
from kbgraph.services.relationship_extractor import RelationshipExtractor
from kbgraph.utils.exceptions import NotFoundError
from kbgraph.utils.id_generator import generate_entity_id, generate_relationship_id
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


class EntityPipeline:
    """
    Knowledge item -> entities and relationships in the store.

    Flow:
    1. Use the item's stored chunk embeddings as chunks (whole content if none)
    2. Extract and deduplicate entities
    3. Extract relationships when at least two entities exist
    4. Store entities under fresh IDs and remap relationship endpoints
    5. Store relationships whose endpoints were both stored
    """

    def __init__(
        self,
        store: KnowledgeStore,
        entity_extractor: EntityExtractor,
        relationship_extractor: RelationshipExtractor,
    ):
        self.store = store
        self.entity_extractor = entity_extractor
        self.relationship_extractor = relationship_extractor

    async def process_knowledge_item_entities(
        self,
        item_id: str,
        options: EntityExtractionOptions | None = None,
        extract_relationships: bool = True,
    ) -> EntityPipelineResult:
        """
        Extract and store entities (and relationships) for one knowledge item.

        Args:
            item_id: Knowledge item to process
            options: Entity extraction options
            extract_relationships: Also extract relationships between the entities

        Returns:
            EntityPipelineResult with the stored entities and relationships

        Raises:
            NotFoundError: If the item does not exist
        """
        start_time = time.time()

        item = await self.store.get_knowledge_item(item_id)
        if item is None:
            raise NotFoundError(f"Knowledge item not found: {item_id}")

        embeddings = await self.store.get_embeddings_for_item(item_id)
        if embeddings:
            chunks = [(embedding.id, embedding.content) for embedding in embeddings]
            extraction = await self.entity_extractor.extract_entities_from_chunks(chunks, options)
        else:
            extraction = await self.entity_extractor.extract_entities(
                item.content, [item_id], options
            )

        entities = extraction.entities
        tokens_used = extraction.tokens_used

        relationships: list[EntityRelationship] = []
        if extract_relationships and len(entities) >= 2:
            relationship_result = await self.relationship_extractor.extract_relationships(entities)
            relationships = relationship_result.relationships
            tokens_used += relationship_result.tokens_used

        stored_entities, id_map = self._prepare_entities(item.workspace_id, item_id, entities)
        if stored_entities:
            await self.store.store_entities(stored_entities)

        stored_relationships = self._prepare_relationships(
            item.workspace_id, item_id, relationships, id_map
        )
        if stored_relationships:
            await self.store.store_relationships(stored_relationships)

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            "Stored {} entities and {} relationships for {} in {:.0f}ms",
            len(stored_entities),
            len(stored_relationships),
            item_id,
            processing_time,
            extra={"tokens_used": tokens_used},
        )

        return EntityPipelineResult(
            knowledge_item_id=item_id,
            entities=[stored.to_entity() for stored in stored_entities],
            relationships=[_to_relationship(stored) for stored in stored_relationships],
            entity_count=len(stored_entities),
            relationship_count=len(stored_relationships),
            summary=extraction.summary,
            document_type=extraction.document_type,
            primary_topic=extraction.primary_topic,
            tokens_used=tokens_used,
            processing_time=processing_time,
        )

    async def reprocess_knowledge_item_entities(
        self,
        item_id: str,
        options: EntityExtractionOptions | None = None,
        extract_relationships: bool = True,
    ) -> EntityPipelineResult:
        """Delete the item's relationships and entities, then extract again."""
        deleted_relationships = await self.store.delete_relationships_for_item(item_id)
        deleted_entities = await self.store.delete_entities_for_item(item_id)
        logger.debug(
            "Deleted {} entities and {} relationships of {} before reprocessing",
            deleted_entities,
            deleted_relationships,
            item_id,
        )
        return await self.process_knowledge_item_entities(item_id, options, extract_relationships)

    async def get_entities_for_item(self, item_id: str) -> list[BaseEntity]:
        """Stored entities of an item as typed entity variants."""
        return [stored.to_entity() for stored in await self.store.get_entities_for_item(item_id)]

    @staticmethod
    def _prepare_entities(
        workspace_id: str, item_id: str, entities: list[BaseEntity]
    ) -> tuple[list[StoredEntity], dict[str, str]]:
        """Assign store IDs; returns the records and an extraction-id -> store-id map."""
        stored: list[StoredEntity] = []
        id_map: dict[str, str] = {}
        for entity in entities:
            entity_id = generate_entity_id(entity.type.value)
            id_map.setdefault(entity.id, entity_id)
            stored.append(
                StoredEntity.from_entity(
                    entity, workspace_id, knowledge_item_id=item_id, entity_id=entity_id
                )
            )
        return stored, id_map

    @staticmethod
    def _prepare_relationships(
        workspace_id: str,
        item_id: str,
        relationships: list[EntityRelationship],
        id_map: dict[str, str],
    ) -> list[StoredRelationship]:
        stored: list[StoredRelationship] = []
        for relationship in relationships:
            source = id_map.get(relationship.source_entity_id)
            target = id_map.get(relationship.target_entity_id)
            if source is None or target is None:
                continue
            stored.append(
                StoredRelationship(
                    id=generate_relationship_id(),
                    workspace_id=workspace_id,
                    knowledge_item_id=item_id,
                    source_entity_id=source,
                    target_entity_id=target,
                    relationship_type=relationship.relationship_type,
                    confidence=relationship.confidence,
                    metadata=dict(relationship.metadata),
                )
            )
        return stored


def _to_relationship(stored: StoredRelationship) -> EntityRelationship:
    return EntityRelationship(
        id=stored.id,
        source_entity_id=stored.source_entity_id,
        target_entity_id=stored.target_entity_id,
        relationship_type=stored.relationship_type,
        confidence=stored.confidence,
        metadata=dict(stored.metadata),
    )


def calculate_entity_stats(
    entities: list[BaseEntity] | list[StoredEntity] | EntityExtractionResult,
) -> EntityStats:
    """Entity statistics for typed entities, stored records or an extraction result."""
    if isinstance(entities, EntityExtractionResult):
        return get_entity_stats(list(entities.entities))
    typed = [e.to_entity() if isinstance(e, StoredEntity) else e for e in entities]
    return get_entity_stats(typed)
