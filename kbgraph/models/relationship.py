"""
Relationship models for links between extracted entities.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from kbgraph.models.entity import Entity


class RelationshipType(str, Enum):
    """Closed set of directed relationship types between entities."""

    HAS_FEATURE = "has_feature"  # product/service -> feature
    PROVIDES_BENEFIT = "provides_benefit"  # product/feature -> benefit
    INCLUDES_PRICING = "includes_pricing"  # product/service -> pricing
    HAS_TESTIMONIAL = "has_testimonial"  # product/company -> testimonial
    BELONGS_TO = "belongs_to"  # person -> company, feature -> product
    AUTHORED_BY = "authored_by"  # testimonial -> person
    RELATED_TO = "related_to"
    PREREQUISITE_OF = "prerequisite_of"  # process_step -> process_step
    ALTERNATIVE_TO = "alternative_to"
    INTEGRATES_WITH = "integrates_with"  # product -> integration
    ADDRESSES_USE_CASE = "addresses_use_case"  # product/service -> use_case

    @classmethod
    def parse(cls, value: Any) -> "RelationshipType | None":
        """Return the member for a raw value, or None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class EntityRelationship(BaseModel):
    """Directed, typed link between two entities. Endpoints are referenced by ID only."""

    id: str
    source_entity_id: str
    target_entity_id: str
    relationship_type: RelationshipType
    confidence: float = Field(..., ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class RawRelationshipCandidate(BaseModel):
    """Relationship as proposed by the LLM."""

    model_config = {"extra": "ignore"}

    id: str | None = None
    source_entity_id: str = Field(..., description="ID of the source entity")
    target_entity_id: str = Field(..., description="ID of the target entity")
    relationship_type: str = Field(..., description="One of RelationshipType")
    confidence: float = Field(0.5, description="Confidence (0-1)")
    metadata: dict[str, Any] = Field(default_factory=dict)


class RelationshipExtractionOptions(BaseModel):
    """Options for relationship extraction."""

    min_confidence: float = Field(0.6, ge=0.0, le=1.0)
    additional_context: str | None = None


class RelationshipExtractionResult(BaseModel):
    """Validated relationships plus counts of what was discarded."""

    relationships: list[EntityRelationship] = Field(default_factory=list)
    tokens_used: int = 0
    processing_time: float = Field(0.0, description="Milliseconds")
    dropped_low_confidence: int = 0
    dropped_dangling: int = Field(0, description="Endpoints missing from the entity set")
    dropped_invalid_type: int = 0

    @property
    def dropped_count(self) -> int:
        return self.dropped_low_confidence + self.dropped_dangling + self.dropped_invalid_type


class StoredRelationship(BaseModel):
    """Relationship as persisted in a workspace."""

    id: str
    workspace_id: str
    knowledge_item_id: str | None = None
    source_entity_id: str
    target_entity_id: str
    relationship_type: RelationshipType
    confidence: float
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)


class RelationshipDirection(str, Enum):
    """Edge direction relative to a node."""

    INCOMING = "incoming"
    OUTGOING = "outgoing"
    BOTH = "both"


class EntityPipelineResult(BaseModel):
    """Outcome of extracting and storing a knowledge item's entities and relationships."""

    knowledge_item_id: str
    entities: list[Entity] = Field(default_factory=list)
    relationships: list[EntityRelationship] = Field(default_factory=list)
    entity_count: int = 0
    relationship_count: int = 0
    summary: str | None = None
    document_type: str | None = None
    primary_topic: str | None = None
    tokens_used: int = 0
    processing_time: float = Field(0.0, description="Milliseconds")
