"""
Embedding models: model registry, generation results and similarity search types.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class EmbeddingModelConfig(BaseModel):
    """Static properties of an embedding model."""

    name: str
    dimensions: int
    max_tokens: int
    cost_per_1k_tokens: float = 0.0


EMBEDDING_MODELS: dict[str, EmbeddingModelConfig] = {
    "text-embedding-3-small": EmbeddingModelConfig(
        name="text-embedding-3-small",
        dimensions=1536,
        max_tokens=8191,
        cost_per_1k_tokens=0.00002,
    ),
    "text-embedding-3-large": EmbeddingModelConfig(
        name="text-embedding-3-large",
        dimensions=3072,
        max_tokens=8191,
        cost_per_1k_tokens=0.00013,
    ),
    "text-embedding-ada-002": EmbeddingModelConfig(
        name="text-embedding-ada-002",
        dimensions=1536,
        max_tokens=8191,
        cost_per_1k_tokens=0.0001,
    ),
}


class EmbeddingInput(BaseModel):
    """One text to embed, identified by a caller-chosen id."""

    id: str
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class EmbeddingResult(BaseModel):
    """A generated embedding vector."""

    id: str = ""
    embedding: list[float]
    token_count: int
    model: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class EmbeddingFailure(BaseModel):
    """An input that could not be embedded."""

    id: str
    error: str


class BatchEmbeddingResult(BaseModel):
    """Outcome of a batched embedding run with per-item failure accounting."""

    results: list[EmbeddingResult] = Field(default_factory=list)
    errors: list[EmbeddingFailure] = Field(default_factory=list)
    total_tokens: int = 0
    processing_time: float = Field(0.0, description="Milliseconds")
    estimated_cost: float = 0.0


class EmbeddingCacheEntry(BaseModel):
    """Cached embedding with its lifetime."""

    key: str
    embedding: list[float]
    created_at: datetime
    expires_at: datetime


class EmbeddingCacheStats(BaseModel):
    """Snapshot of cache occupancy and effectiveness."""

    size: int
    max_size: int
    ttl_seconds: float
    hits: int
    misses: int
    hit_rate: float
