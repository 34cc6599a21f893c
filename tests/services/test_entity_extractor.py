"""
Tests for EntityExtractor and the entity list helpers.

Tests cover:
1. Candidate filtering (confidence, type, malformed)
2. LLM failures degrade to empty results
3. Batched chunk extraction with deduplication
4. Dedup, filter and stats helpers
"""

import pytest

from kbgraph.models.entity import (
    EntityExtractionOptions,
    EntityType,
    ProductEntity,
    RawEntityCandidate,
    build_entity,
)
from kbgraph.services.entity_extractor import (
    EntityExtractor,
    deduplicate_entities,
    filter_entities_by_type,
    get_entity_stats,
)
from kbgraph.utils.exceptions import LLMError


def candidate(entity_type: str, name: str, confidence: float, **extra) -> dict:
    return {"type": entity_type, "name": name, "confidence": confidence, **extra}


def entity(entity_type: EntityType, entity_id: str, name: str, confidence: float, chunks=None):
    return build_entity(
        entity_type,
        entity_id,
        RawEntityCandidate(type=entity_type.value, name=name, confidence=confidence),
        chunks or [],
    )


@pytest.mark.unit
@pytest.mark.asyncio
class TestExtractEntities:
    """Test single-content extraction."""

    async def test_confidence_filter(self, make_llm):
        """Test candidates below min_confidence are skipped."""
        llm = make_llm(
            {
                "entities": [
                    candidate("product", "Acme Analytics", 0.9, id="product_1"),
                    candidate("feature", "Alerts", 0.3),
                ],
                "summary": "Product page",
            }
        )
        extractor = EntityExtractor(llm)

        result = await extractor.extract_entities(
            "Acme Analytics has alerts.", ["c1"], EntityExtractionOptions(min_confidence=0.5)
        )

        assert len(result.entities) == 1
        assert isinstance(result.entities[0], ProductEntity)
        assert result.entities[0].id == "product_1"
        assert result.entities[0].source_chunk_ids == ["c1"]
        assert result.skipped_low_confidence == 1
        assert result.summary == "Product page"
        assert result.tokens_used == 42

    async def test_invalid_type_skipped(self, make_llm):
        """Test types outside the taxonomy are skipped."""
        llm = make_llm(
            {
                "entities": [
                    candidate("spaceship", "Enterprise", 0.9),
                    candidate("Company", "Acme Corp", 0.8),
                    "not an object",
                    {"type": "product", "confidence": 0.9},
                ]
            }
        )

        result = await EntityExtractor(llm).extract_entities("text", ["c1"])

        assert [e.name for e in result.entities] == ["Acme Corp"]
        assert result.entities[0].type == EntityType.COMPANY
        assert result.entities[0].id.startswith("company_")
        assert result.skipped_invalid == 3

    async def test_max_entities(self, make_llm):
        """Test extraction stops at max_entities."""
        llm = make_llm(
            {"entities": [candidate("feature", f"Feature {i}", 0.9) for i in range(5)]}
        )

        result = await EntityExtractor(llm).extract_entities(
            "text", ["c1"], EntityExtractionOptions(max_entities=2)
        )

        assert [e.name for e in result.entities] == ["Feature 0", "Feature 1"]

    async def test_camel_case_fields(self, make_llm):
        """Test camelCase response fields are accepted."""
        llm = make_llm(
            {
                "entities": [candidate("product", "Acme", 0.9, sourceChunkIds=["c2"])],
                "documentType": "product_page",
                "primaryTopic": "analytics",
            }
        )

        result = await EntityExtractor(llm).extract_entities("text", ["c1", "c2"])

        assert result.entities[0].source_chunk_ids == ["c2"]
        assert result.document_type == "product_page"
        assert result.primary_topic == "analytics"

    async def test_llm_failure_gives_empty_result(self, make_llm):
        """Test a failing LLM call degrades to an empty result."""
        result = await EntityExtractor(make_llm(LLMError("timed out"))).extract_entities(
            "text", ["c1"]
        )

        assert result.entities == []
        assert result.tokens_used == 0

    async def test_unparseable_response_gives_empty_result(self, make_llm):
        """Test non-JSON output degrades to an empty result."""
        result = await EntityExtractor(make_llm("I cannot do that")).extract_entities(
            "text", ["c1"]
        )
        assert result.entities == []

    async def test_missing_entities_key(self, make_llm):
        """Test a response without an entities list yields none."""
        result = await EntityExtractor(make_llm({"entities": "none"})).extract_entities(
            "text", ["c1"]
        )
        assert result.entities == []

    async def test_non_finite_metadata_numbers(self, make_llm):
        """Test NaN or infinite metadata numbers do not abort extraction."""
        llm = make_llm(
            {
                "entities": [
                    candidate("product", "Good", 0.9),
                    candidate("process_step", "Connect", 0.9, metadata={"step_number": "NaN"}),
                    candidate("testimonial", "Quote", 0.9, metadata={"rating": "inf"}),
                ]
            }
        )

        result = await EntityExtractor(llm).extract_entities("text", ["c1"])

        assert [e.name for e in result.entities] == ["Good", "Connect", "Quote"]
        assert result.entities[1].step_number == 1
        assert result.entities[2].rating is None
        assert result.skipped_invalid == 0

    async def test_prompt_includes_focus_and_chunks(self, make_llm):
        """Test focus types and chunk ids reach the prompt."""
        llm = make_llm({"entities": []})

        await EntityExtractor(llm).extract_entities(
            "Pricing starts at $49.",
            ["c7"],
            EntityExtractionOptions(focus_types=[EntityType.PRICING], additional_context="SaaS"),
        )

        assert "CHUNK IDs: c7" in llm.prompts[0]
        assert "Focus primarily on extracting these entity types: pricing" in llm.prompts[0]
        assert "Additional context: SaaS" in llm.prompts[0]


@pytest.mark.unit
@pytest.mark.asyncio
class TestExtractFromChunks:
    """Test batched extraction over document chunks."""

    async def test_batches_and_dedup(self, make_llm):
        """Test chunks are batched and duplicates across batches merge."""
        llm = make_llm(
            {
                "entities": [candidate("product", "Acme", 0.6, description="Analytics suite")],
                "summary": "First batch",
            },
            {
                "entities": [
                    candidate("product", " acme ", 0.9),
                    candidate("feature", "Alerts", 0.8),
                ],
                "summary": "Second batch",
            },
        )
        chunks = [(f"c{i}", f"Chunk text {i}") for i in range(7)]

        result = await EntityExtractor(llm).extract_entities_from_chunks(
            chunks, EntityExtractionOptions(chunk_batch_size=5)
        )

        assert len(llm.prompts) == 2
        assert "[Chunk c0]\nChunk text 0" in llm.prompts[0]
        assert "[Chunk c5]" in llm.prompts[1]
        assert [e.name for e in result.entities] == ["Acme", "Alerts"]
        acme = result.entities[0]
        assert acme.confidence == 0.9
        assert acme.description == "Analytics suite"
        assert acme.source_chunk_ids == ["c0", "c1", "c2", "c3", "c4", "c5", "c6"]
        assert result.summary == "First batch"
        assert result.tokens_used == 84

    async def test_no_chunks(self, make_llm):
        """Test no chunks means no LLM calls."""
        llm = make_llm()

        result = await EntityExtractor(llm).extract_entities_from_chunks([])

        assert result.entities == []
        assert llm.prompts == []


@pytest.mark.unit
class TestEntityHelpers:
    """Test deduplication, filtering and stats."""

    def test_deduplicate_merges(self):
        """Test same type and normalized name merge with max confidence."""
        entities = [
            entity(EntityType.PRODUCT, "p1", "Acme", 0.3, ["c1"]),
            entity(EntityType.PRODUCT, "p2", "ACME", 0.9, ["c2", "c1"]),
            entity(EntityType.COMPANY, "co1", "Acme", 0.7),
        ]

        merged = deduplicate_entities(entities)

        assert [e.id for e in merged] == ["p1", "co1"]
        assert merged[0].confidence == 0.9
        assert merged[0].source_chunk_ids == ["c1", "c2"]

    def test_deduplicate_idempotent(self):
        """Test deduplicating twice changes nothing."""
        entities = [
            entity(EntityType.PRODUCT, "p1", "Acme", 0.3),
            entity(EntityType.PRODUCT, "p2", "acme", 0.9),
        ]

        once = deduplicate_entities(entities)

        assert deduplicate_entities(once) == once

    def test_filter_by_type(self):
        """Test filtering by one or several types."""
        entities = [
            entity(EntityType.PRODUCT, "p1", "Acme", 0.9),
            entity(EntityType.FEATURE, "f1", "Alerts", 0.8),
            entity(EntityType.BENEFIT, "b1", "Speed", 0.7),
        ]

        assert [e.id for e in filter_entities_by_type(entities, EntityType.FEATURE)] == ["f1"]
        assert [
            e.id for e in filter_entities_by_type(entities, [EntityType.PRODUCT, EntityType.BENEFIT])
        ] == ["p1", "b1"]

    def test_stats(self):
        """Test counts and confidence buckets."""
        entities = [
            entity(EntityType.PRODUCT, "p1", "Acme", 0.9),
            entity(EntityType.FEATURE, "f1", "Alerts", 0.7),
            entity(EntityType.FEATURE, "f2", "Exports", 0.5),
        ]

        stats = get_entity_stats(entities)

        assert stats.total == 3
        assert stats.by_type == {"product": 1, "feature": 2}
        assert stats.average_confidence == pytest.approx(0.7)
        assert stats.high_confidence == 1
        assert stats.low_confidence == 1

    def test_stats_empty(self):
        """Test stats of no entities."""
        stats = get_entity_stats([])
        assert stats.total == 0
        assert stats.average_confidence == 0.0
