"""
Knowledge base item and stored embedding models.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from kbgraph.models.chunk import ChunkingConfig, DocumentContentType


class EmbeddingStatus(str, Enum):
    """
    Ingestion progress of a knowledge base item.

    pending -> generating -> completed | failed
    """

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed status transitions; failed items may be reprocessed
STATUS_TRANSITIONS: dict[EmbeddingStatus, set[EmbeddingStatus]] = {
    EmbeddingStatus.PENDING: {EmbeddingStatus.GENERATING},
    EmbeddingStatus.GENERATING: {EmbeddingStatus.COMPLETED, EmbeddingStatus.FAILED},
    EmbeddingStatus.COMPLETED: {EmbeddingStatus.GENERATING},
    EmbeddingStatus.FAILED: {EmbeddingStatus.GENERATING},
}


class KnowledgeBaseItem(BaseModel):
    """A submitted document and its ingestion state."""

    id: str
    workspace_id: str
    title: str
    content: str
    entity_type: str | None = Field(
        default=None, description="Optional category of the submission (e.g. 'product')"
    )
    embedding_status: EmbeddingStatus = EmbeddingStatus.PENDING
    embedding_error: str | None = None
    embeddings_count: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class KnowledgeEmbedding(BaseModel):
    """A stored chunk embedding owned by a knowledge base item."""

    id: str
    workspace_id: str
    knowledge_item_id: str
    chunk_index: int
    content: str
    embedding: list[float]
    token_count: int = 0
    model: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)


class SimilarityMatch(BaseModel):
    """Raw ranked match returned by the store's vector search."""

    id: str
    similarity: float


class SimilaritySearchOptions(BaseModel):
    """Filters for knowledge base similarity search."""

    threshold: float = Field(0.7, ge=-1.0, le=1.0)
    limit: int = Field(10, gt=0)
    knowledge_item_ids: list[str] | None = None
    entity_types: list[str] | None = None


class SimilaritySearchResult(BaseModel):
    """A match joined back to its chunk content."""

    id: str
    knowledge_item_id: str
    content: str
    similarity: float
    chunk_index: int
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProcessingOptions(BaseModel):
    """Options for ingesting a document."""

    entity_type: str | None = None
    content_type: DocumentContentType | None = None
    chunking: dict[str, Any] | None = Field(
        default=None, description="Field overrides applied on top of the chosen chunking profile"
    )
    use_cache: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProcessingResult(BaseModel):
    """Outcome of ingesting one document."""

    knowledge_item_id: str
    chunk_count: int
    embedding_count: int
    total_tokens: int
    estimated_cost: float
    processing_time: float = Field(..., description="Milliseconds")
    cache_hits: int = 0
    errors: list[str] = Field(default_factory=list)
    chunking_config: ChunkingConfig | None = None
