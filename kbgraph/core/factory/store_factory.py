"""
Factory for creating knowledge store backends.
"""

from kbgraph.config import Config
from kbgraph.core.factory.vector_factory import VectorIndexFactory
from kbgraph.core.knowledge_store.base import KnowledgeStore
from kbgraph.core.knowledge_store.memory_store import InMemoryKnowledgeStore
from kbgraph.core.knowledge_store.sqlite_store import SQLiteKnowledgeStore
from kbgraph.utils.exceptions import ConfigurationError


class StoreFactory:
    """Factory for creating knowledge stores from configuration."""

    @staticmethod
    def create(config: Config, vector_size: int | None = None) -> KnowledgeStore:
        """
        Create knowledge store from configuration.

        Args:
            config: Root configuration (store_backend, sqlite and qdrant sections)
            vector_size: Embedding dimension for the optional vector index

        Raises:
            ConfigurationError: If the backend is not supported
        """
        if config.store_backend == "memory":
            return InMemoryKnowledgeStore()
        elif config.store_backend == "sqlite":
            return SQLiteKnowledgeStore(
                db_path=config.sqlite.db_path,
                timeout=config.sqlite.timeout,
                vector_index=VectorIndexFactory.create(config.qdrant, vector_size),
            )
        else:
            raise ConfigurationError(f"Unsupported store backend: {config.store_backend}")
