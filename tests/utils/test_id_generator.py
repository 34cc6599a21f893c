"""
Tests for ID generation utilities.

Tests cover:
1. Knowledge item, embedding, entity and relationship ID formats
2. Chunk ID derivation from the parent document
3. Uniqueness guarantees
"""

from kbgraph.utils import (
    generate_chunk_id,
    generate_embedding_id,
    generate_entity_id,
    generate_knowledge_item_id,
    generate_relationship_id,
)


class TestGenerateKnowledgeItemId:
    """Tests for knowledge item ID generation."""

    def test_format(self):
        """Test ID format: kb_xxx (12 hex chars)."""
        item_id = generate_knowledge_item_id()

        assert item_id.startswith("kb_")
        assert len(item_id) == 15
        int(item_id[3:], 16)

    def test_uniqueness(self):
        """Test that generated IDs are unique."""
        ids = [generate_knowledge_item_id() for _ in range(1000)]
        assert len(ids) == len(set(ids))


class TestGenerateChunkId:
    """Tests for chunk ID generation."""

    def test_format(self):
        """Test chunk IDs are derived from the document and index."""
        assert generate_chunk_id("kb_abc", 0) == "kb_abc_chunk_0"
        assert generate_chunk_id("kb_abc", 12) == "kb_abc_chunk_12"

    def test_deterministic(self):
        """Test the same inputs give the same ID."""
        assert generate_chunk_id("doc", 3) == generate_chunk_id("doc", 3)


class TestGenerateOtherIds:
    """Tests for embedding, entity and relationship IDs."""

    def test_embedding_id(self):
        """Test ID format: emb_xxx (12 hex chars)."""
        embedding_id = generate_embedding_id()
        assert embedding_id.startswith("emb_")
        assert len(embedding_id) == 16

    def test_entity_id_prefixed_with_type(self):
        """Test entity IDs carry their type."""
        entity_id = generate_entity_id("process_step")
        assert entity_id.startswith("process_step_")
        assert len(entity_id) == len("process_step_") + 8

    def test_relationship_id(self):
        """Test ID format: rel_xxxxxxxx."""
        relationship_id = generate_relationship_id()
        assert relationship_id.startswith("rel_")
        assert len(relationship_id) == 12

    def test_uniqueness(self):
        """Test relationship IDs are unique."""
        ids = [generate_relationship_id() for _ in range(1000)]
        assert len(ids) == len(set(ids))
