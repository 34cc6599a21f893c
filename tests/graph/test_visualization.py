"""
Tests for visualization exporters, styles, legend and layout.
"""

import pytest

from kbgraph.core.graph import (
    DEFAULT_ENTITY_COLORS,
    DEFAULT_RELATIONSHIP_COLORS,
    calculate_hierarchical_layout,
    export_graph,
    generate_cytoscape_styles,
    generate_legend_svg,
    to_cytoscape,
    to_d3,
    to_raw,
    to_vis,
)
from kbgraph.core.graph.visualization import (
    FALLBACK_COLOR,
    darken_color,
    format_entity_type_label,
    truncate_label,
)
from kbgraph.models.entity import EntityType
from kbgraph.models.graph import GraphVisualizationOptions, Subgraph, VisualizationFormat
from kbgraph.models.relationship import RelationshipType


@pytest.mark.unit
class TestHelpers:
    """Test label and color helpers."""

    def test_color_tables_cover_taxonomy(self):
        """Test every entity and relationship type has a color."""
        assert set(DEFAULT_ENTITY_COLORS) == {t.value for t in EntityType}
        assert set(DEFAULT_RELATIONSHIP_COLORS) == {t.value for t in RelationshipType}

    def test_labels(self):
        """Test type labels and truncation."""
        assert format_entity_type_label(EntityType.COMPANY_TAGLINE) == "Company Tagline"
        assert truncate_label("short", 10) == "short"
        assert truncate_label("a" * 30, 10) == "aaaaaaa..."

    def test_darken_color(self):
        """Test darkening clamps each channel at zero."""
        assert darken_color("#ffffff", 20) == "#cccccc"
        assert darken_color("#102030", 20) == "#000000"


@pytest.mark.unit
class TestExporters:
    """Test the four export formats."""

    def test_cytoscape(self, sample_graph):
        """Test Cytoscape elements carry ids, labels and colors."""
        doc = to_cytoscape(sample_graph)

        nodes = doc["elements"]["nodes"]
        edges = doc["elements"]["edges"]
        assert len(nodes) == 5
        assert nodes[0]["data"]["id"] == "product"
        assert nodes[0]["data"]["label"] == "Acme Analytics"
        assert nodes[0]["data"]["color"] == DEFAULT_ENTITY_COLORS["product"]
        assert edges[0]["data"]["label"] == "has feature"
        assert edges[0]["data"]["source"] == "product"

    def test_cytoscape_without_properties(self, sample_graph):
        """Test include_properties=False keeps only identity fields."""
        doc = to_cytoscape(sample_graph, GraphVisualizationOptions(include_properties=False))

        assert doc["elements"]["nodes"][0]["data"] == {
            "id": "product",
            "label": "Acme Analytics",
            "type": "product",
        }

    def test_d3(self, sample_graph):
        """Test D3 nodes and links."""
        doc = to_d3(sample_graph)

        assert doc["nodes"][1]["group"] == "feature"
        assert doc["links"][1] == {
            "source": "feature",
            "target": "benefit",
            "type": "provides_benefit",
            "value": 0.8,
            "label": "provides benefit",
        }

    def test_vis(self, sample_graph):
        """Test vis-network tooltips, arrows and opacity."""
        doc = to_vis(sample_graph)

        node = doc["nodes"][0]
        assert node["label"] == "Acme Analytics"
        assert "<strong>Acme Analytics</strong>" in node["title"]
        assert "Confidence: 95%" in node["title"]
        assert node["color"]["background"] == DEFAULT_ENTITY_COLORS["product"]
        edge = doc["edges"][2]
        assert edge["arrows"] == "to"
        assert edge["title"] == "belongs to (70% confidence)"
        assert edge["color"]["opacity"] == 0.7

    def test_raw(self, sample_graph):
        """Test raw export folds colors into properties and metadata."""
        doc = to_raw(sample_graph)

        assert doc["nodes"][4]["properties"]["color"] == DEFAULT_ENTITY_COLORS["nav_category"]
        assert doc["edges"][0]["metadata"]["color"] == DEFAULT_RELATIONSHIP_COLORS["has_feature"]
        assert doc["metadata"]["workspace_id"] == "ws_test"

    def test_raw_subgraph_has_no_metadata(self, sample_graph):
        """Test subgraphs export without graph metadata."""
        subgraph = Subgraph(nodes=sample_graph.nodes[:1], root_node_id="product", depth=0)

        assert to_raw(subgraph)["metadata"] is None

    def test_custom_color_scheme(self, sample_graph):
        """Test a custom scheme overrides colors and falls back for missing types."""
        options = GraphVisualizationOptions(color_scheme={"product": "#000000"})

        nodes = to_d3(sample_graph, options)["nodes"]

        assert nodes[0]["color"] == "#000000"
        assert nodes[1]["color"] == FALLBACK_COLOR

    def test_export_dispatch(self, sample_graph):
        """Test export_graph picks the exporter from options.format."""
        assert "elements" in export_graph(
            sample_graph, GraphVisualizationOptions(format=VisualizationFormat.CYTOSCAPE)
        )
        assert "links" in export_graph(
            sample_graph, GraphVisualizationOptions(format=VisualizationFormat.D3)
        )
        assert "metadata" in export_graph(sample_graph)


@pytest.mark.unit
class TestStylesAndLayout:
    """Test stylesheet, legend and hierarchical layout."""

    def test_cytoscape_styles(self):
        """Test one selector per type after the two base selectors."""
        styles = generate_cytoscape_styles()

        selectors = [style["selector"] for style in styles]
        assert selectors[:2] == ["node", "edge"]
        assert len(styles) == 2 + len(EntityType) + len(RelationshipType)
        assert 'node[type = "product"]' in selectors

    def test_legend_svg(self):
        """Test the legend has one item per type and grows with them."""
        svg = generate_legend_svg([EntityType.PRODUCT, EntityType.USE_CASE])

        assert svg.startswith("<svg")
        assert svg.count("<circle") == 2
        assert "Use Case" in svg
        assert 'height="80"' in svg

    def test_hierarchical_layout(self, sample_graph):
        """Test roots sit on top and children one level down."""
        positions = calculate_hierarchical_layout(sample_graph.nodes, sample_graph.edges)

        assert set(positions) == {"product", "feature", "benefit", "company", "nav"}
        assert positions["product"]["y"] == positions["nav"]["y"]
        assert positions["feature"]["y"] == positions["company"]["y"]
        assert positions["benefit"]["y"] > positions["feature"]["y"] > positions["product"]["y"]

    def test_layout_empty_and_cycle(self, sample_graph):
        """Test no nodes gives no positions and cycles land on level 0."""
        assert calculate_hierarchical_layout([], []) == {}

        nodes = sample_graph.nodes[:2]
        cycle = [
            sample_graph.edges[0],
            sample_graph.edges[0].model_copy(
                update={"id": "back", "source": "feature", "target": "product"}
            ),
        ]
        positions = calculate_hierarchical_layout(nodes, cycle)
        assert positions["product"]["y"] == positions["feature"]["y"]
