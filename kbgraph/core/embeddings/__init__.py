"""
Embedder abstraction layer for text embeddings.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)

Also home to the embedding cache and the vector helpers used for
similarity scoring.
"""
from kbgraph.core.embeddings.base import Embedder, EmbeddingResponse
from kbgraph.core.embeddings.cache import EmbeddingCache
from kbgraph.core.embeddings.ollama import OllamaEmbedder
from kbgraph.core.embeddings.openai import OpenAIEmbedder
from kbgraph.core.embeddings.vector_math import (
    cosine_similarity,
    cosine_similarity_matrix,
    normalize_vector,
)

__all__ = [
    "Embedder",
    "EmbeddingResponse",
    "EmbeddingCache",
    "OllamaEmbedder",
    "OpenAIEmbedder",
    "cosine_similarity",
    "cosine_similarity_matrix",
    "normalize_vector",
]
