"""
Knowledge graph models: nodes, edges, subgraphs, paths and statistics.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from kbgraph.models.entity import EntityType, StoredEntity
from kbgraph.models.relationship import (
    RelationshipDirection,
    RelationshipType,
    StoredRelationship,
)


class GraphNode(BaseModel):
    """Graph projection of an entity."""

    id: str
    type: EntityType
    name: str
    description: str | None = None
    confidence: float = 1.0
    properties: dict[str, Any] = Field(default_factory=dict)
    degree: int = 0
    centrality: float | None = None

    @classmethod
    def from_stored(cls, entity: StoredEntity) -> "GraphNode":
        return cls(
            id=entity.id,
            type=entity.entity_type,
            name=entity.name,
            description=entity.description,
            confidence=entity.confidence,
            properties={**entity.metadata, **entity.attributes},
        )


class GraphEdge(BaseModel):
    """Graph projection of a relationship. Holds endpoint IDs, never node copies."""

    id: str
    source: str
    target: str
    type: RelationshipType
    confidence: float = 1.0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_stored(cls, relationship: StoredRelationship) -> "GraphEdge":
        return cls(
            id=relationship.id,
            source=relationship.source_entity_id,
            target=relationship.target_entity_id,
            type=relationship.relationship_type,
            confidence=relationship.confidence,
            metadata=dict(relationship.metadata),
        )


class GraphMetadata(BaseModel):
    """Scope, counts and the set of types present in a graph."""

    workspace_id: str
    node_count: int = 0
    edge_count: int = 0
    entity_types: list[EntityType] = Field(default_factory=list)
    relationship_types: list[RelationshipType] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class KnowledgeGraph(BaseModel):
    """Nodes, edges and metadata for a workspace (or a slice of one)."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    metadata: GraphMetadata


class Subgraph(BaseModel):
    """Result of a traversal rooted at one node."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    root_node_id: str
    depth: int


class GraphPath(BaseModel):
    """A path between two nodes."""

    nodes: list[GraphNode]
    edges: list[GraphEdge]
    length: int
    total_confidence: float = Field(
        ..., description="Mean edge confidence; 1.0 for a zero-length path"
    )


class Neighbor(BaseModel):
    """A directly connected node and the edge linking it."""

    node: GraphNode
    edge: GraphEdge
    direction: RelationshipDirection


class NodeNeighborhood(BaseModel):
    """A node and its one-hop neighbors."""

    node: GraphNode
    neighbors: list[Neighbor] = Field(default_factory=list)


class RelatedEntity(BaseModel):
    """A node reachable from a start node, with the shortest path to it."""

    node: GraphNode
    path: GraphPath


class RelationshipMatch(BaseModel):
    """Both endpoints of an edge of a given type."""

    source: GraphNode
    target: GraphNode
    edge: GraphEdge


class GraphStatistics(BaseModel):
    """Structural summary of a graph."""

    total_nodes: int
    total_edges: int
    nodes_by_type: dict[str, int] = Field(default_factory=dict)
    edges_by_type: dict[str, int] = Field(default_factory=dict)
    average_degree: float = 0.0
    max_degree: int = 0
    density: float = 0.0
    connected_components: int = 0


class GraphQueryOptions(BaseModel):
    """Filters and bounds for graph queries."""

    max_depth: int | None = None
    limit: int | None = None
    entity_types: list[EntityType] | None = None
    relationship_types: list[RelationshipType] | None = None
    min_confidence: float = 0.0
    direction: RelationshipDirection = RelationshipDirection.BOTH


class GraphBuildOptions(BaseModel):
    """Filters applied when building a graph from the store."""

    entity_types: list[EntityType] | None = None
    relationship_types: list[RelationshipType] | None = None
    min_entity_confidence: float = 0.0
    min_relationship_confidence: float = 0.0
    max_entities: int = Field(1000, gt=0)
    knowledge_item_ids: list[str] | None = None


class VisualizationFormat(str, Enum):
    """Supported export formats."""

    CYTOSCAPE = "cytoscape"
    D3 = "d3"
    VIS = "vis"
    RAW = "raw"


class GraphVisualizationOptions(BaseModel):
    """Options for visualization exporters."""

    format: VisualizationFormat = VisualizationFormat.RAW
    include_properties: bool = True
    color_scheme: dict[str, str] | None = None
