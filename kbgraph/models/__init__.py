"""
Data models for kbgraph.

- chunk: chunking strategies, configs and chunk records
- embedding: embedding model registry and batch results
- knowledge: knowledge base items, stored embeddings, search types
- entity: closed entity taxonomy (tagged union) and extraction results
- relationship: relationship types and extraction results
- graph: knowledge graph, traversal and statistics types
"""

from kbgraph.models.chunk import (
    DEFAULT_CHUNKING_CONFIGS,
    ChunkContentType,
    ChunkingConfig,
    ChunkingInput,
    ChunkingResult,
    ChunkingStrategy,
    ChunkMetadata,
    DocumentContentType,
    TextChunk,
)
from kbgraph.models.embedding import (
    EMBEDDING_MODELS,
    BatchEmbeddingResult,
    EmbeddingCacheEntry,
    EmbeddingCacheStats,
    EmbeddingFailure,
    EmbeddingInput,
    EmbeddingModelConfig,
    EmbeddingResult,
)
from kbgraph.models.entity import (
    BaseEntity,
    Entity,
    EntityExtractionOptions,
    EntityExtractionResult,
    EntityStats,
    EntityType,
    RawEntityCandidate,
    StoredEntity,
    build_entity,
)
from kbgraph.models.graph import (
    GraphBuildOptions,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    GraphPath,
    GraphQueryOptions,
    GraphStatistics,
    GraphVisualizationOptions,
    KnowledgeGraph,
    Neighbor,
    NodeNeighborhood,
    RelatedEntity,
    RelationshipMatch,
    Subgraph,
    VisualizationFormat,
)
from kbgraph.models.knowledge import (
    EmbeddingStatus,
    KnowledgeBaseItem,
    KnowledgeEmbedding,
    ProcessingOptions,
    ProcessingResult,
    SimilarityMatch,
    SimilaritySearchOptions,
    SimilaritySearchResult,
)
from kbgraph.models.relationship import (
    EntityPipelineResult,
    EntityRelationship,
    RawRelationshipCandidate,
    RelationshipDirection,
    RelationshipExtractionOptions,
    RelationshipExtractionResult,
    RelationshipType,
    StoredRelationship,
)

__all__ = [
    # Chunking
    "ChunkingStrategy",
    "ChunkContentType",
    "DocumentContentType",
    "ChunkingConfig",
    "DEFAULT_CHUNKING_CONFIGS",
    "ChunkMetadata",
    "TextChunk",
    "ChunkingInput",
    "ChunkingResult",
    # Embeddings
    "EMBEDDING_MODELS",
    "EmbeddingModelConfig",
    "EmbeddingInput",
    "EmbeddingResult",
    "EmbeddingFailure",
    "BatchEmbeddingResult",
    "EmbeddingCacheEntry",
    "EmbeddingCacheStats",
    # Knowledge base
    "EmbeddingStatus",
    "KnowledgeBaseItem",
    "KnowledgeEmbedding",
    "SimilarityMatch",
    "SimilaritySearchOptions",
    "SimilaritySearchResult",
    "ProcessingOptions",
    "ProcessingResult",
    # Entities
    "EntityType",
    "BaseEntity",
    "Entity",
    "RawEntityCandidate",
    "build_entity",
    "EntityExtractionOptions",
    "EntityExtractionResult",
    "EntityStats",
    "StoredEntity",
    # Relationships
    "RelationshipType",
    "RelationshipDirection",
    "EntityPipelineResult",
    "EntityRelationship",
    "RawRelationshipCandidate",
    "RelationshipExtractionOptions",
    "RelationshipExtractionResult",
    "StoredRelationship",
    # Graph
    "GraphNode",
    "GraphEdge",
    "GraphMetadata",
    "KnowledgeGraph",
    "Subgraph",
    "GraphPath",
    "Neighbor",
    "NodeNeighborhood",
    "RelatedEntity",
    "RelationshipMatch",
    "GraphStatistics",
    "GraphQueryOptions",
    "GraphBuildOptions",
    "VisualizationFormat",
    "GraphVisualizationOptions",
]
