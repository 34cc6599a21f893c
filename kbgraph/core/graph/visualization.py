"""
Export knowledge graphs for visualization libraries.

Supported formats: Cytoscape.js elements, D3 force graphs, vis-network
datasets and a raw JSON dump with colors attached.
"""

from collections import deque
from typing import Any

from kbgraph.models.entity import EntityType
from kbgraph.models.graph import (
    GraphEdge,
    GraphNode,
    GraphVisualizationOptions,
    KnowledgeGraph,
    Subgraph,
    VisualizationFormat,
)
from kbgraph.models.relationship import RelationshipType

FALLBACK_COLOR = "#9CA3AF"

DEFAULT_ENTITY_COLORS: dict[str, str] = {
    EntityType.PRODUCT.value: "#3B82F6",  # blue
    EntityType.SERVICE.value: "#8B5CF6",  # purple
    EntityType.FEATURE.value: "#10B981",  # green
    EntityType.BENEFIT.value: "#F59E0B",  # amber
    EntityType.PRICING.value: "#EF4444",  # red
    EntityType.TESTIMONIAL.value: "#EC4899",  # pink
    EntityType.COMPANY.value: "#6366F1",  # indigo
    EntityType.PERSON.value: "#14B8A6",  # teal
    EntityType.STATISTIC.value: "#F97316",  # orange
    EntityType.FAQ.value: "#06B6D4",  # cyan
    EntityType.CTA.value: "#DC2626",  # red-600
    EntityType.PROCESS_STEP.value: "#7C3AED",  # violet
    EntityType.USE_CASE.value: "#059669",  # emerald
    EntityType.INTEGRATION.value: "#2563EB",  # blue-600
    EntityType.CONTACT.value: "#4B5563",  # gray
    EntityType.COMPANY_NAME.value: "#4338CA",  # indigo-700
    EntityType.COMPANY_TAGLINE.value: "#A855F7",  # purple-500
    EntityType.COMPANY_DESCRIPTION.value: "#0EA5E9",  # sky
    EntityType.MISSION_STATEMENT.value: "#84CC16",  # lime
    EntityType.SOCIAL_LINK.value: "#E11D48",  # rose
    EntityType.NAV_CATEGORY.value: "#78716C",  # stone
    EntityType.BRAND_VOICE.value: "#D946EF",  # fuchsia
}

DEFAULT_RELATIONSHIP_COLORS: dict[str, str] = {
    RelationshipType.HAS_FEATURE.value: "#10B981",
    RelationshipType.PROVIDES_BENEFIT.value: "#F59E0B",
    RelationshipType.INCLUDES_PRICING.value: "#EF4444",
    RelationshipType.HAS_TESTIMONIAL.value: "#EC4899",
    RelationshipType.BELONGS_TO.value: "#6366F1",
    RelationshipType.AUTHORED_BY.value: "#14B8A6",
    RelationshipType.RELATED_TO.value: "#9CA3AF",
    RelationshipType.PREREQUISITE_OF.value: "#7C3AED",
    RelationshipType.ALTERNATIVE_TO.value: "#F97316",
    RelationshipType.INTEGRATES_WITH.value: "#2563EB",
    RelationshipType.ADDRESSES_USE_CASE.value: "#059669",
}

Graph = KnowledgeGraph | Subgraph


# ═══════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════


def format_relationship_label(relationship_type: RelationshipType | str) -> str:
    return str(getattr(relationship_type, "value", relationship_type)).replace("_", " ")


def format_entity_type_label(entity_type: EntityType | str) -> str:
    value = str(getattr(entity_type, "value", entity_type))
    return " ".join(word.capitalize() for word in value.split("_"))


def truncate_label(label: str, max_length: int) -> str:
    if len(label) <= max_length:
        return label
    return label[: max_length - 3] + "..."


def darken_color(hex_color: str, percent: float) -> str:
    """Subtract percent% of full scale from each RGB channel, clamping at 0."""
    value = int(hex_color.lstrip("#"), 16)
    amount = round(2.55 * percent)
    red = max((value >> 16) - amount, 0)
    green = max(((value >> 8) & 0xFF) - amount, 0)
    blue = max((value & 0xFF) - amount, 0)
    return f"#{red:02x}{green:02x}{blue:02x}"


def entity_color(entity_type: EntityType | str, color_scheme: dict[str, str] | None = None) -> str:
    scheme = color_scheme or DEFAULT_ENTITY_COLORS
    return scheme.get(str(getattr(entity_type, "value", entity_type)), FALLBACK_COLOR)


def relationship_color(relationship_type: RelationshipType | str) -> str:
    return DEFAULT_RELATIONSHIP_COLORS.get(
        str(getattr(relationship_type, "value", relationship_type)), FALLBACK_COLOR
    )


def build_node_tooltip(node: GraphNode) -> str:
    lines = [
        f"<strong>{node.name}</strong>",
        f"Type: {format_entity_type_label(node.type)}",
        f"Confidence: {round(node.confidence * 100)}%",
    ]
    if node.description:
        lines.append(f"Description: {truncate_label(node.description, 100)}")
    return "<br>".join(lines)


def _options(options: GraphVisualizationOptions | None) -> GraphVisualizationOptions:
    return options or GraphVisualizationOptions()


# ═══════════════════════════════════════════════════════════
# EXPORTERS
# ═══════════════════════════════════════════════════════════


def to_cytoscape(graph: Graph, options: GraphVisualizationOptions | None = None) -> dict[str, Any]:
    """Cytoscape.js `elements` document."""
    options = _options(options)

    nodes = []
    for node in graph.nodes:
        data: dict[str, Any] = {}
        if options.include_properties:
            data.update(node.properties)
            data.update(
                description=node.description,
                confidence=node.confidence,
                color=entity_color(node.type, options.color_scheme),
            )
        data.update(id=node.id, label=node.name, type=node.type.value)
        nodes.append({"data": data})

    edges = [
        {
            "data": {
                "id": edge.id,
                "source": edge.source,
                "target": edge.target,
                "type": edge.type.value,
                "label": format_relationship_label(edge.type),
                "confidence": edge.confidence,
                "color": relationship_color(edge.type),
            }
        }
        for edge in graph.edges
    ]

    return {"elements": {"nodes": nodes, "edges": edges}}


def to_d3(graph: Graph, options: GraphVisualizationOptions | None = None) -> dict[str, Any]:
    """D3 force-directed `{nodes, links}` document."""
    options = _options(options)

    nodes = []
    for node in graph.nodes:
        item: dict[str, Any] = {}
        if options.include_properties:
            item.update(node.properties)
            item.update(
                description=node.description,
                confidence=node.confidence,
                color=entity_color(node.type, options.color_scheme),
            )
        item.update(id=node.id, name=node.name, group=node.type.value)
        nodes.append(item)

    links = [
        {
            "source": edge.source,
            "target": edge.target,
            "type": edge.type.value,
            "value": edge.confidence,
            "label": format_relationship_label(edge.type),
        }
        for edge in graph.edges
    ]

    return {"nodes": nodes, "links": links}


def to_vis(graph: Graph, options: GraphVisualizationOptions | None = None) -> dict[str, Any]:
    """vis-network `{nodes, edges}` datasets with tooltips and directed arrows."""
    options = _options(options)

    nodes = []
    for node in graph.nodes:
        item: dict[str, Any] = {}
        if options.include_properties:
            item.update(node.properties)
            background = entity_color(node.type, options.color_scheme)
            item["color"] = {"background": background, "border": darken_color(background, 20)}
        item.update(
            id=node.id,
            label=truncate_label(node.name, 25),
            group=node.type.value,
            title=build_node_tooltip(node),
        )
        nodes.append(item)

    edges = []
    for edge in graph.edges:
        label = format_relationship_label(edge.type)
        edges.append(
            {
                "from": edge.source,
                "to": edge.target,
                "label": label,
                "arrows": "to",
                "title": f"{label} ({round(edge.confidence * 100)}% confidence)",
                "color": {
                    "color": relationship_color(edge.type),
                    "opacity": max(0.4, edge.confidence),
                },
            }
        )

    return {"nodes": nodes, "edges": edges}


def to_raw(graph: Graph, options: GraphVisualizationOptions | None = None) -> dict[str, Any]:
    """Plain JSON dump with colors folded into node properties and edge metadata."""
    options = _options(options)

    nodes = []
    for node in graph.nodes:
        item = node.model_dump(mode="json")
        item["properties"] = {
            **node.properties,
            "color": entity_color(node.type, options.color_scheme),
        }
        nodes.append(item)

    edges = []
    for edge in graph.edges:
        item = edge.model_dump(mode="json")
        item["metadata"] = {**edge.metadata, "color": relationship_color(edge.type)}
        edges.append(item)

    metadata = graph.metadata.model_dump(mode="json") if isinstance(graph, KnowledgeGraph) else None
    return {"nodes": nodes, "edges": edges, "metadata": metadata}


EXPORTERS = {
    VisualizationFormat.CYTOSCAPE: to_cytoscape,
    VisualizationFormat.D3: to_d3,
    VisualizationFormat.VIS: to_vis,
    VisualizationFormat.RAW: to_raw,
}


def export_graph(graph: Graph, options: GraphVisualizationOptions | None = None) -> dict[str, Any]:
    """Export in options.format (raw by default)."""
    options = _options(options)
    return EXPORTERS[options.format](graph, options)


# ═══════════════════════════════════════════════════════════
# STYLES, LEGEND AND LAYOUT
# ═══════════════════════════════════════════════════════════


def generate_cytoscape_styles(color_scheme: dict[str, str] | None = None) -> list[dict[str, Any]]:
    """Cytoscape stylesheet with one selector per entity and relationship type."""
    styles: list[dict[str, Any]] = [
        {
            "selector": "node",
            "style": {
                "background-color": FALLBACK_COLOR,
                "label": "data(label)",
                "text-valign": "bottom",
                "text-halign": "center",
                "font-size": "12px",
                "width": 40,
                "height": 40,
            },
        },
        {
            "selector": "edge",
            "style": {
                "width": 2,
                "line-color": FALLBACK_COLOR,
                "target-arrow-color": FALLBACK_COLOR,
                "target-arrow-shape": "triangle",
                "curve-style": "bezier",
                "label": "data(label)",
                "font-size": "10px",
                "text-rotation": "autorotate",
            },
        },
    ]

    for entity_type, color in (color_scheme or DEFAULT_ENTITY_COLORS).items():
        styles.append(
            {"selector": f'node[type = "{entity_type}"]', "style": {"background-color": color}}
        )

    for relationship_type, color in DEFAULT_RELATIONSHIP_COLORS.items():
        styles.append(
            {
                "selector": f'edge[type = "{relationship_type}"]',
                "style": {"line-color": color, "target-arrow-color": color},
            }
        )

    return styles


LEGEND_ITEM_HEIGHT = 24
LEGEND_PADDING = 16
LEGEND_CIRCLE_RADIUS = 8
LEGEND_WIDTH = 180


def generate_legend_svg(
    entity_types: list[EntityType], color_scheme: dict[str, str] | None = None
) -> str:
    """SVG legend with one colored circle and label per entity type."""
    radius = LEGEND_CIRCLE_RADIUS
    items = []
    for index, entity_type in enumerate(entity_types):
        y = LEGEND_PADDING + index * LEGEND_ITEM_HEIGHT
        color = entity_color(entity_type, color_scheme)
        items.append(
            f'<g transform="translate({LEGEND_PADDING}, {y})">'
            f'<circle cx="{radius}" cy="{radius}" r="{radius}" fill="{color}"/>'
            f'<text x="{radius * 2 + 8}" y="{radius + 4}" font-size="12" fill="#374151">'
            f"{format_entity_type_label(entity_type)}</text>"
            "</g>"
        )

    height = LEGEND_PADDING * 2 + len(entity_types) * LEGEND_ITEM_HEIGHT
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{LEGEND_WIDTH}" height="{height}">'
        f'<rect width="{LEGEND_WIDTH}" height="{height}" fill="white" rx="8"/>'
        f"{''.join(items)}"
        "</svg>"
    )


def calculate_hierarchical_layout(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    width: float = 800,
    height: float = 600,
    spacing: float = 100,
) -> dict[str, dict[str, float]]:
    """
    Layered positions for a top-down layout.

    Roots are nodes without incoming edges; levels come from a BFS along
    edge direction. Nodes the BFS never reaches (e.g. pure cycles) sit on
    level 0. Each level is spread evenly across the width.
    """
    if not nodes:
        return {}

    node_ids = {node.id for node in nodes}
    adjacency: dict[str, list[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        if edge.source in adjacency and edge.target in node_ids:
            adjacency[edge.source].append(edge.target)

    has_incoming = {edge.target for edge in edges}
    queue = deque((node.id, 0) for node in nodes if node.id not in has_incoming)
    levels: dict[str, int] = {}

    while queue:
        node_id, level = queue.popleft()
        if node_id in levels:
            continue
        levels[node_id] = level
        for neighbor in adjacency[node_id]:
            if neighbor not in levels:
                queue.append((neighbor, level + 1))

    for node in nodes:
        levels.setdefault(node.id, 0)

    groups: dict[int, list[str]] = {}
    for node_id, level in levels.items():
        groups.setdefault(level, []).append(node_id)

    max_level = max(levels.values())
    level_height = height / (max_level + 1) if max_level > 0 else height / 2

    positions = {}
    for level, ids in groups.items():
        step = width / (len(ids) + 1)
        for index, node_id in enumerate(ids):
            positions[node_id] = {"x": step * (index + 1), "y": level_height * level + spacing / 2}
    return positions
