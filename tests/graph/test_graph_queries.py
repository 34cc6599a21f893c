"""
Tests for GraphQueryEngine.

Tests cover:
1. Node and edge lookups with direction filters
2. Breadth-first traversal limits and filters
3. Shortest and all-simple paths
4. Statistics, search and central nodes
"""

import pytest

from kbgraph.config import GraphConfig
from kbgraph.core.graph import GraphQueryEngine
from kbgraph.models.entity import EntityType
from kbgraph.models.graph import GraphEdge, GraphQueryOptions
from kbgraph.models.relationship import RelationshipDirection, RelationshipType


def ids(items) -> list[str]:
    return [item.id for item in items]


@pytest.fixture
def engine(sample_graph) -> GraphQueryEngine:
    return GraphQueryEngine(sample_graph)


@pytest.fixture
def diamond_engine(sample_graph) -> GraphQueryEngine:
    """Sample graph plus a direct product -> benefit edge."""
    shortcut = GraphEdge(
        id="e4",
        source="product",
        target="benefit",
        type=RelationshipType.PROVIDES_BENEFIT,
        confidence=0.6,
    )
    graph = sample_graph.model_copy(update={"edges": [*sample_graph.edges, shortcut]})
    return GraphQueryEngine(graph)


@pytest.mark.unit
class TestLookups:
    """Test node, edge and neighborhood lookups."""

    def test_get_node(self, engine):
        """Test lookups by id."""
        assert engine.get_node("product").name == "Acme Analytics"
        assert engine.get_node("ghost") is None
        assert ids(engine.get_nodes(["feature", "ghost", "product"])) == ["feature", "product"]

    def test_edge_direction(self, engine):
        """Test incoming and outgoing edge filters."""
        assert ids(engine.get_edges_for_node("feature")) == ["e1", "e2"]
        outgoing = GraphQueryOptions(direction=RelationshipDirection.OUTGOING)
        incoming = GraphQueryOptions(direction=RelationshipDirection.INCOMING)
        assert ids(engine.get_edges_for_node("feature", outgoing)) == ["e2"]
        assert ids(engine.get_edges_for_node("feature", incoming)) == ["e1"]

    def test_edge_type_and_confidence(self, engine):
        """Test relationship type and confidence filters."""
        by_type = GraphQueryOptions(relationship_types=[RelationshipType.BELONGS_TO])
        by_confidence = GraphQueryOptions(min_confidence=0.85)

        assert ids(engine.get_edges_for_node("product", by_type)) == ["e3"]
        assert ids(engine.get_edges_for_node("product", by_confidence)) == ["e1"]
        assert engine.get_edges_for_node("ghost") == []

    def test_neighborhood(self, engine):
        """Test neighbors carry the direction of their edge."""
        neighborhood = engine.get_node_neighborhood("feature")

        directions = {n.node.id: n.direction for n in neighborhood.neighbors}
        assert neighborhood.node.id == "feature"
        assert directions == {
            "product": RelationshipDirection.INCOMING,
            "benefit": RelationshipDirection.OUTGOING,
        }

    def test_neighborhood_unknown(self, engine):
        """Test an unknown node has no neighborhood."""
        assert engine.get_node_neighborhood("ghost") is None
        assert engine.get_node_neighborhood("nav").neighbors == []


@pytest.mark.unit
class TestTraversal:
    """Test breadth-first traversal."""

    def test_depth_one(self, engine):
        """Test one hop keeps direct neighbors and edges between kept nodes."""
        subgraph = engine.traverse_graph("product", GraphQueryOptions(max_depth=1))

        assert ids(subgraph.nodes) == ["product", "feature", "company"]
        assert ids(subgraph.edges) == ["e1", "e3"]
        assert subgraph.root_node_id == "product"
        assert subgraph.depth == 1

    def test_default_depth(self, engine):
        """Test the configured depth reaches the whole component."""
        subgraph = engine.traverse_graph("product")

        assert set(ids(subgraph.nodes)) == {"product", "feature", "company", "benefit"}
        assert len(subgraph.edges) == 3
        assert subgraph.depth == 3

    def test_entity_type_filter(self, engine):
        """Test filtered nodes are neither kept nor expanded."""
        subgraph = engine.traverse_graph(
            "product", GraphQueryOptions(entity_types=[EntityType.PRODUCT, EntityType.FEATURE])
        )

        assert ids(subgraph.nodes) == ["product", "feature"]
        assert ids(subgraph.edges) == ["e1"]

    def test_limit(self, engine):
        """Test traversal stops at the node limit."""
        subgraph = engine.traverse_graph("product", GraphQueryOptions(limit=2))

        assert len(subgraph.nodes) == 2

    def test_config_defaults(self, sample_graph):
        """Test defaults come from GraphConfig."""
        engine = GraphQueryEngine(sample_graph, GraphConfig(traversal_max_depth=1))

        assert engine.traverse_graph("benefit").depth == 1
        assert ids(engine.traverse_graph("benefit").nodes) == ["benefit", "feature"]

    def test_unknown_start(self, engine):
        """Test an unknown start node yields an empty subgraph."""
        subgraph = engine.traverse_graph("ghost")

        assert subgraph.nodes == []
        assert subgraph.edges == []


@pytest.mark.unit
class TestPaths:
    """Test shortest and all-simple path search."""

    def test_shortest_path_ignores_direction(self, engine):
        """Test paths follow edges against their direction."""
        path = engine.find_path("benefit", "company")

        assert ids(path.nodes) == ["benefit", "feature", "product", "company"]
        assert ids(path.edges) == ["e2", "e1", "e3"]
        assert path.length == 3
        assert path.total_confidence == pytest.approx(0.8)

    def test_same_node(self, engine):
        """Test a zero-length path has confidence 1."""
        path = engine.find_path("product", "product")

        assert path.length == 0
        assert path.total_confidence == 1.0

    def test_unreachable(self, engine):
        """Test unknown, disconnected or too-distant targets give None."""
        assert engine.find_path("product", "nav") is None
        assert engine.find_path("product", "ghost") is None
        assert engine.find_path("benefit", "company", GraphQueryOptions(max_depth=2)) is None

    def test_relationship_filter(self, diamond_engine):
        """Test edge filters constrain the path."""
        shortest = diamond_engine.find_path("product", "benefit")
        via_feature = diamond_engine.find_path(
            "product", "benefit", GraphQueryOptions(min_confidence=0.7)
        )

        assert ids(shortest.edges) == ["e4"]
        assert ids(via_feature.edges) == ["e1", "e2"]

    def test_all_paths(self, diamond_engine):
        """Test every simple path is found."""
        paths = diamond_engine.find_all_paths("product", "benefit")

        assert sorted(path.length for path in paths) == [1, 2]
        assert all(ids(path.nodes)[0] == "product" for path in paths)
        assert all(ids(path.nodes)[-1] == "benefit" for path in paths)

    def test_all_paths_limits(self, diamond_engine):
        """Test max_depth and max_paths bound the search."""
        short = diamond_engine.find_all_paths("product", "benefit", GraphQueryOptions(max_depth=1))
        capped = diamond_engine.find_all_paths("product", "benefit", max_paths=1)

        assert [ids(path.edges) for path in short] == [["e4"]]
        assert len(capped) == 1
        assert diamond_engine.find_all_paths("product", "nav") == []

    def test_related_entities(self, engine):
        """Test related entities of a type come with their paths."""
        [related] = engine.find_related_entities("product", EntityType.BENEFIT)

        assert related.node.id == "benefit"
        assert related.path.length == 2
        assert engine.find_related_entities("product", EntityType.PERSON) == []


@pytest.mark.unit
class TestAnalysis:
    """Test relationship lookups, statistics, search and centrality."""

    def test_nodes_by_relationship(self, engine):
        """Test matches carry both endpoints."""
        [match] = engine.get_nodes_by_relationship(RelationshipType.HAS_FEATURE)

        assert (match.source.id, match.target.id, match.edge.id) == ("product", "feature", "e1")
        assert engine.get_nodes_by_relationship(RelationshipType.HAS_FEATURE, min_confidence=0.95) == []

    def test_statistics(self, engine):
        """Test counts, degree figures, density and components."""
        stats = engine.get_graph_statistics()

        assert stats.total_nodes == 5
        assert stats.total_edges == 3
        assert stats.nodes_by_type["product"] == 1
        assert stats.edges_by_type == {"has_feature": 1, "provides_benefit": 1, "belongs_to": 1}
        assert stats.average_degree == pytest.approx(1.2)
        assert stats.max_degree == 2
        assert stats.density == pytest.approx(0.3)
        assert stats.connected_components == 2

    def test_search_nodes(self, engine):
        """Test case-insensitive name search with a type filter."""
        assert ids(engine.search_nodes("ACME")) == ["product", "company"]
        assert ids(engine.search_nodes("acme", entity_types=[EntityType.COMPANY])) == ["company"]
        assert ids(engine.search_nodes("acme", limit=1)) == ["product"]
        assert engine.search_nodes("nothing") == []

    def test_central_nodes(self, engine):
        """Test isolated nodes are skipped and centrality is filled in."""
        central = engine.get_central_nodes()

        assert ids(central[:2]) == ["product", "feature"]
        assert "nav" not in ids(central)
        assert central[0].degree == 2
        assert central[0].centrality == 1.0
        assert ids(engine.get_central_nodes(limit=1)) == ["product"]
