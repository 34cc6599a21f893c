"""
Tests for EntityPipeline.
"""

import pytest

from kbgraph.models.entity import EntityType, ProductEntity
from kbgraph.models.knowledge import KnowledgeBaseItem, KnowledgeEmbedding
from kbgraph.models.relationship import RelationshipType
from kbgraph.services.entity_extractor import EntityExtractor
from kbgraph.services.entity_pipeline import EntityPipeline, calculate_entity_stats
from kbgraph.services.relationship_extractor import RelationshipExtractor
from kbgraph.utils.exceptions import NotFoundError

ENTITY_RESPONSE = {
    "entities": [
        {"id": "product_1", "type": "product", "name": "Acme Analytics", "confidence": 0.9},
        {"id": "feature_1", "type": "feature", "name": "Realtime Dashboards", "confidence": 0.8},
    ],
    "summary": "Acme product page",
}
RELATIONSHIP_RESPONSE = {
    "relationships": [
        {
            "source_entity_id": "product_1",
            "target_entity_id": "feature_1",
            "relationship_type": "has_feature",
            "confidence": 0.9,
        }
    ]
}


def make_pipeline(store, llm) -> EntityPipeline:
    return EntityPipeline(store, EntityExtractor(llm), RelationshipExtractor(llm))


@pytest.fixture
async def item(memory_store):
    item = KnowledgeBaseItem(
        id="kb_1",
        workspace_id="ws_1",
        title="Acme",
        content="Acme Analytics ships realtime dashboards.",
    )
    await memory_store.create_knowledge_item(item)
    return item


async def add_chunks(store, *contents: str) -> None:
    await store.store_embeddings(
        [
            KnowledgeEmbedding(
                id=f"emb_{i}",
                workspace_id="ws_1",
                knowledge_item_id="kb_1",
                chunk_index=i,
                content=content,
                embedding=[1.0, 0.0],
            )
            for i, content in enumerate(contents)
        ]
    )


@pytest.mark.unit
@pytest.mark.asyncio
class TestEntityPipeline:
    """Test extraction, linking and storage of item entities."""

    async def test_process_stores_entities_and_relationships(self, memory_store, make_llm, item):
        """Test entities get store ids and relationships are remapped onto them."""
        await add_chunks(memory_store, "Acme Analytics overview.", "Realtime dashboards.")
        llm = make_llm(ENTITY_RESPONSE, RELATIONSHIP_RESPONSE)

        result = await make_pipeline(memory_store, llm).process_knowledge_item_entities("kb_1")

        assert result.entity_count == 2
        assert result.relationship_count == 1
        assert result.summary == "Acme product page"
        assert result.tokens_used == 84
        assert "[Chunk emb_0]" in llm.prompts[0]

        stored = await memory_store.get_entities_for_item("kb_1")
        by_name = {e.name: e for e in stored}
        assert by_name["Acme Analytics"].id != "product_1"
        assert by_name["Acme Analytics"].id.startswith("product_")
        assert by_name["Acme Analytics"].source_chunk_ids == ["emb_0", "emb_1"]

        [rel] = await memory_store.get_relationships_for_workspace("ws_1")
        assert rel.source_entity_id == by_name["Acme Analytics"].id
        assert rel.target_entity_id == by_name["Realtime Dashboards"].id
        assert rel.relationship_type == RelationshipType.HAS_FEATURE
        assert rel.knowledge_item_id == "kb_1"

    async def test_without_chunks_uses_item_content(self, memory_store, make_llm, item):
        """Test items without embeddings are extracted from their content."""
        llm = make_llm(
            {"entities": [{"type": "product", "name": "Acme Analytics", "confidence": 0.9}]}
        )

        result = await make_pipeline(memory_store, llm).process_knowledge_item_entities("kb_1")

        assert result.entity_count == 1
        assert "CHUNK IDs: kb_1" in llm.prompts[0]
        assert "Acme Analytics ships realtime dashboards." in llm.prompts[0]
        # a single entity never triggers relationship extraction
        assert len(llm.prompts) == 1

    async def test_skip_relationships(self, memory_store, make_llm, item):
        """Test relationship extraction can be turned off."""
        llm = make_llm(ENTITY_RESPONSE)

        result = await make_pipeline(memory_store, llm).process_knowledge_item_entities(
            "kb_1", extract_relationships=False
        )

        assert result.relationship_count == 0
        assert len(llm.prompts) == 1

    async def test_missing_item(self, memory_store, make_llm):
        """Test an unknown item raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await make_pipeline(memory_store, make_llm()).process_knowledge_item_entities("nope")

    async def test_reprocess_replaces(self, memory_store, make_llm, item):
        """Test reprocessing removes the previous entities and relationships."""
        llm = make_llm(
            ENTITY_RESPONSE,
            RELATIONSHIP_RESPONSE,
            {"entities": [{"type": "company", "name": "Acme Corp", "confidence": 0.9}]},
        )
        pipeline = make_pipeline(memory_store, llm)
        await pipeline.process_knowledge_item_entities("kb_1")

        await pipeline.reprocess_knowledge_item_entities("kb_1")

        stored = await memory_store.get_entities_for_item("kb_1")
        assert [e.name for e in stored] == ["Acme Corp"]
        assert await memory_store.get_relationships_for_workspace("ws_1") == []

    async def test_get_entities_for_item(self, memory_store, make_llm, item):
        """Test stored entities come back as typed variants."""
        pipeline = make_pipeline(memory_store, make_llm(ENTITY_RESPONSE, RELATIONSHIP_RESPONSE))
        await pipeline.process_knowledge_item_entities("kb_1")

        entities = await pipeline.get_entities_for_item("kb_1")

        assert isinstance(entities[0], ProductEntity)
        stats = calculate_entity_stats(await memory_store.get_entities_for_item("kb_1"))
        assert stats.by_type == {EntityType.PRODUCT.value: 1, EntityType.FEATURE.value: 1}
