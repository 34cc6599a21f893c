"""
Factory modules for creating kbgraph components.

Provides modular factories for LLM, Embedder, Knowledge Store, and Vector Index.
"""

from kbgraph.core.factory.embedder_factory import EmbedderFactory
from kbgraph.core.factory.llm_factory import LLMFactory
from kbgraph.core.factory.store_factory import StoreFactory
from kbgraph.core.factory.vector_factory import VectorIndexFactory

__all__ = [
    "LLMFactory",
    "EmbedderFactory",
    "StoreFactory",
    "VectorIndexFactory",
]
