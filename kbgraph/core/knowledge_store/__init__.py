"""
Knowledge store backends.

Available backends:
- InMemoryKnowledgeStore: dictionaries, for tests and development
- SQLiteKnowledgeStore: aiosqlite, optionally paired with a Qdrant index
"""

from kbgraph.core.knowledge_store.base import KnowledgeStore, rank_by_similarity
from kbgraph.core.knowledge_store.memory_store import InMemoryKnowledgeStore
from kbgraph.core.knowledge_store.sqlite_store import SQLiteKnowledgeStore

__all__ = [
    "KnowledgeStore",
    "InMemoryKnowledgeStore",
    "SQLiteKnowledgeStore",
    "rank_by_similarity",
]
