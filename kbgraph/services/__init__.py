"""
Services for kbgraph.

Async orchestration over the providers and the knowledge store:
- EmbeddingGenerator: Batched embedding generation with retries and cost accounting
- KnowledgeBasePipeline: Document ingestion and similarity search
- EntityExtractor: LLM entity extraction and deduplication
- RelationshipExtractor: LLM relationship extraction between entities
- EntityPipeline: Entity/relationship extraction and storage per knowledge item
- GraphBuilder: Knowledge graph construction from stored entities
"""

from kbgraph.services.embedding_generator import EmbeddingGenerator
from kbgraph.services.entity_extractor import (
    EntityExtractor,
    deduplicate_entities,
    filter_entities_by_type,
    get_entity_stats,
)
from kbgraph.services.entity_pipeline import EntityPipeline, calculate_entity_stats
from kbgraph.services.graph_builder import GraphBuilder
from kbgraph.services.knowledge_pipeline import KnowledgeBasePipeline
from kbgraph.services.relationship_extractor import RelationshipExtractor

__all__ = [
    "EmbeddingGenerator",
    "KnowledgeBasePipeline",
    "EntityExtractor",
    "RelationshipExtractor",
    "EntityPipeline",
    "GraphBuilder",
    "deduplicate_entities",
    "filter_entities_by_type",
    "get_entity_stats",
    "calculate_entity_stats",
]
