"""
Tests for entity, relationship and chunking models.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from kbgraph.models import (
    DEFAULT_CHUNKING_CONFIGS,
    ChunkingConfig,
    EntityType,
    RawEntityCandidate,
    RelationshipExtractionResult,
    RelationshipType,
    StoredEntity,
    build_entity,
)
from kbgraph.models.entity import (
    ENTITY_BUILDERS,
    CompanyTaglineEntity,
    FAQEntity,
    ProcessStepEntity,
    ProductEntity,
    SocialLinkEntity,
    StatisticEntity,
    entity_adapter,
)
from kbgraph.models.graph import GraphEdge, GraphNode
from kbgraph.models.relationship import StoredRelationship


class TestEntityTaxonomy:
    """Test the closed entity type set."""

    def test_every_type_has_a_builder(self):
        """Test builders cover the whole taxonomy."""
        assert set(ENTITY_BUILDERS) == set(EntityType)
        assert len(EntityType) == 22

    def test_parse(self):
        """Test lenient parsing of raw type strings."""
        assert EntityType.parse("Product") == EntityType.PRODUCT
        assert EntityType.parse(" process_step ") == EntityType.PROCESS_STEP
        assert EntityType.parse(EntityType.FAQ) == EntityType.FAQ
        assert EntityType.parse("spaceship") is None
        assert EntityType.parse(None) is None

    def test_relationship_parse(self):
        """Test relationship type parsing."""
        assert len(RelationshipType) == 11
        assert RelationshipType.parse("HAS_FEATURE") == RelationshipType.HAS_FEATURE
        assert RelationshipType.parse("hasFeature") is None

    def test_discriminated_union(self):
        """Test the adapter dispatches on type."""
        entity = entity_adapter.validate_python(
            {"id": "f1", "type": "faq", "name": "Refunds", "confidence": 0.8,
             "question": "Can I get a refund?", "answer": "Within 30 days."}
        )
        assert isinstance(entity, FAQEntity)

    def test_confidence_bounds(self):
        """Test confidence must be within [0, 1]."""
        with pytest.raises(PydanticValidationError):
            ProductEntity(id="p1", name="Acme", confidence=1.5)


class TestBuildEntity:
    """Test construction of typed variants from LLM candidates."""

    def test_product_metadata(self):
        """Test variant fields are read from candidate metadata."""
        candidate = RawEntityCandidate(
            type="product",
            name=" Acme Analytics ",
            confidence=0.9,
            metadata={"features": ["dashboards", "alerts"], "pricing": "$49/mo"},
        )

        entity = build_entity(EntityType.PRODUCT, "product_1", candidate, ["c1", "c1", "c2"])

        assert isinstance(entity, ProductEntity)
        assert entity.name == "Acme Analytics"
        assert entity.features == ["dashboards", "alerts"]
        assert entity.pricing == "$49/mo"
        assert entity.source_chunk_ids == ["c1", "c2"]

    def test_required_fields_fall_back(self):
        """Test required variant fields fall back to name or description."""
        faq = build_entity(
            EntityType.FAQ,
            "faq_1",
            RawEntityCandidate(type="faq", name="Is there a trial?", description="Yes, 14 days."),
        )
        statistic = build_entity(
            EntityType.STATISTIC, "stat_1", RawEntityCandidate(type="statistic", name="99.9% uptime")
        )
        tagline = build_entity(
            EntityType.COMPANY_TAGLINE,
            "tag_1",
            RawEntityCandidate(type="company_tagline", name="Data you can trust"),
        )

        assert isinstance(faq, FAQEntity)
        assert faq.question == "Is there a trial?"
        assert faq.answer == "Yes, 14 days."
        assert isinstance(statistic, StatisticEntity)
        assert statistic.value == "99.9% uptime"
        assert isinstance(tagline, CompanyTaglineEntity)
        assert tagline.slogan == "Data you can trust"
        assert tagline.is_primary is False

    def test_coercions(self):
        """Test loose metadata values are coerced."""
        step = build_entity(
            EntityType.PROCESS_STEP,
            "step_1",
            RawEntityCandidate(type="process_step", name="Connect", metadata={"step_number": "2"}),
        )
        social = build_entity(
            EntityType.SOCIAL_LINK,
            "social_1",
            RawEntityCandidate(type="social_link", name="LinkedIn", metadata={"platform": "MySpace"}),
        )

        assert isinstance(step, ProcessStepEntity)
        assert step.step_number == 2
        assert isinstance(social, SocialLinkEntity)
        assert social.platform == "other"

    @pytest.mark.parametrize("raw", ["NaN", "inf", "-Infinity", float("nan"), float("inf"), 10**400])
    def test_non_finite_numbers_fall_back(self, raw):
        """Test non-finite or overflowing numbers are treated as missing."""
        step = build_entity(
            EntityType.PROCESS_STEP,
            "step_1",
            RawEntityCandidate(type="process_step", name="Connect", metadata={"step_number": raw}),
        )

        assert isinstance(step, ProcessStepEntity)
        assert step.step_number == 1

    def test_confidence_clamped(self):
        """Test out-of-range candidate confidence is clamped."""
        entity = build_entity(
            EntityType.PRODUCT, "p1", RawEntityCandidate(type="product", name="A", confidence=3.0)
        )
        assert entity.confidence == 1.0


class TestStoredEntity:
    """Test persistence conversion."""

    def test_round_trip(self):
        """Test a typed entity survives StoredEntity conversion."""
        entity = build_entity(
            EntityType.PRODUCT,
            "product_1",
            RawEntityCandidate(
                type="product", name="Acme", confidence=0.8, metadata={"category": "analytics"}
            ),
        )

        stored = StoredEntity.from_entity(entity, "ws_1", knowledge_item_id="kb_1")
        restored = stored.to_entity()

        assert stored.entity_type == EntityType.PRODUCT
        assert stored.attributes["category"] == "analytics"
        assert "name" not in stored.attributes
        assert restored == entity

    def test_graph_projection(self):
        """Test nodes and edges project stored records."""
        stored = StoredEntity(
            id="p1",
            workspace_id="ws_1",
            entity_type=EntityType.PRODUCT,
            name="Acme",
            confidence=0.9,
            metadata={"source": "web"},
            attributes={"pricing": "$49"},
        )
        relationship = StoredRelationship(
            id="r1",
            workspace_id="ws_1",
            source_entity_id="p1",
            target_entity_id="f1",
            relationship_type=RelationshipType.HAS_FEATURE,
            confidence=0.7,
        )

        node = GraphNode.from_stored(stored)
        edge = GraphEdge.from_stored(relationship)

        assert node.properties == {"source": "web", "pricing": "$49"}
        assert (edge.source, edge.target, edge.type) == ("p1", "f1", RelationshipType.HAS_FEATURE)


class TestRelationshipResult:
    """Test relationship extraction accounting."""

    def test_dropped_count(self):
        """Test the dropped total sums every reason."""
        result = RelationshipExtractionResult(
            dropped_low_confidence=2, dropped_dangling=1, dropped_invalid_type=3
        )
        assert result.dropped_count == 6


class TestChunkingConfig:
    """Test chunking configuration validation."""

    def test_overlap_must_be_smaller(self):
        """Test overlap >= size is rejected."""
        with pytest.raises(PydanticValidationError, match="chunk_overlap"):
            ChunkingConfig(chunk_size=100, chunk_overlap=100)

    def test_merged_rescales(self):
        """Test a smaller chunk size rescales the untouched bounds."""
        merged = DEFAULT_CHUNKING_CONFIGS["default"].merged({"chunk_size": 500})

        assert merged.chunk_overlap == 100
        assert merged.min_chunk_size == 50
        assert merged.max_chunk_size == 1000

    def test_merged_explicit_values(self):
        """Test explicit overrides are kept."""
        merged = DEFAULT_CHUNKING_CONFIGS["default"].merged({"chunk_size": 500, "chunk_overlap": 0})
        assert merged.chunk_overlap == 0
