"""
Shared test fixtures for all test modules.

Provider doubles implement the real abstract interfaces so services are
exercised without network access:
- MockEmbedder: deterministic letter-frequency vectors
- MockLLM: replays queued JSON responses (or raises queued exceptions)
"""

import json
import string
from collections.abc import AsyncGenerator
from typing import Any

import pytest

from kbgraph.core.embeddings.base import Embedder, EmbeddingResponse
from kbgraph.core.knowledge_store.memory_store import InMemoryKnowledgeStore
from kbgraph.core.knowledge_store.sqlite_store import SQLiteKnowledgeStore
from kbgraph.core.llm.base import LLMProvider, LLMResponse
from kbgraph.models.entity import EntityType
from kbgraph.models.graph import GraphEdge, GraphMetadata, GraphNode, KnowledgeGraph
from kbgraph.models.relationship import RelationshipType
from kbgraph.utils.exceptions import EmbeddingError


class MockEmbedder(Embedder):
    """Embeds text as a 26-dim letter frequency vector; identical text gives identical vectors."""

    def __init__(self, model: str = "mock-embed", fail_times: int = 0, drop_last: bool = False):
        self.model = model
        self.fail_times = fail_times
        self.drop_last = drop_last
        self.calls: list[list[str]] = []

    @staticmethod
    def vectorize(text: str) -> list[float]:
        lowered = text.lower()
        vector = [float(lowered.count(letter)) for letter in string.ascii_lowercase]
        if not any(vector):
            vector[0] = 1.0
        return vector

    async def embed_texts(self, texts: list[str], **kwargs) -> EmbeddingResponse:
        self.calls.append(list(texts))
        if self.fail_times > 0:
            self.fail_times -= 1
            raise EmbeddingError("provider unavailable")

        embeddings = [self.vectorize(text) for text in texts]
        if self.drop_last:
            embeddings = embeddings[:-1]
        return EmbeddingResponse(
            embeddings=embeddings,
            total_tokens=sum(len(text) // 4 for text in texts),
            model=self.model,
        )

    async def close(self):
        pass


class MockLLM(LLMProvider):
    """Returns queued responses in order; dicts are serialized to JSON, exceptions are raised."""

    def __init__(self, responses: list[Any] | None = None, model: str = "mock-llm"):
        self.model = model
        self.responses = list(responses or [])
        self.prompts: list[str] = []

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        json_mode: bool = False,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        **kwargs,
    ) -> LLMResponse:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if self.responses else {}
        if isinstance(response, Exception):
            raise response

        content = response if isinstance(response, str) else json.dumps(response)
        return LLMResponse(content=content, tokens_used=42, model=self.model, provider="mock")

    async def close(self):
        pass


@pytest.fixture
def mock_embedder() -> MockEmbedder:
    return MockEmbedder()


@pytest.fixture
def make_embedder():
    """Factory for embedders with failure injection."""
    return MockEmbedder


@pytest.fixture
def make_llm():
    """Factory: make_llm(response, ...) queues the given responses."""

    def _make(*responses: Any) -> MockLLM:
        return MockLLM(list(responses))

    return _make


@pytest.fixture
def memory_store() -> InMemoryKnowledgeStore:
    return InMemoryKnowledgeStore()


@pytest.fixture
async def sqlite_store(tmp_path) -> AsyncGenerator[SQLiteKnowledgeStore, None]:
    """SQLite store in a per-test temporary database."""
    store = SQLiteKnowledgeStore(db_path=str(tmp_path / "kb.db"))
    await store.initialize()
    yield store
    await store.close()


def _node(node_id: str, entity_type: EntityType, name: str, confidence: float = 0.9) -> GraphNode:
    return GraphNode(id=node_id, type=entity_type, name=name, confidence=confidence)


def _edge(
    edge_id: str, source: str, target: str, rel_type: RelationshipType, confidence: float
) -> GraphEdge:
    return GraphEdge(id=edge_id, source=source, target=target, type=rel_type, confidence=confidence)


@pytest.fixture
def sample_graph() -> KnowledgeGraph:
    """
    Four connected nodes plus one isolated node:

        product -has_feature-> feature -provides_benefit-> benefit
        product -belongs_to-> company
        nav (isolated)
    """
    nodes = [
        _node("product", EntityType.PRODUCT, "Acme Analytics", 0.95),
        _node("feature", EntityType.FEATURE, "Realtime Dashboards", 0.9),
        _node("benefit", EntityType.BENEFIT, "Faster Decisions", 0.7),
        _node("company", EntityType.COMPANY, "Acme Corp", 0.85),
        _node("nav", EntityType.NAV_CATEGORY, "Pricing", 0.6),
    ]
    edges = [
        _edge("e1", "product", "feature", RelationshipType.HAS_FEATURE, 0.9),
        _edge("e2", "feature", "benefit", RelationshipType.PROVIDES_BENEFIT, 0.8),
        _edge("e3", "product", "company", RelationshipType.BELONGS_TO, 0.7),
    ]
    return KnowledgeGraph(
        nodes=nodes,
        edges=edges,
        metadata=GraphMetadata(workspace_id="ws_test", node_count=5, edge_count=3),
    )
