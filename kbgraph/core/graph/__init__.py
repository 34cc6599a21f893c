"""
Knowledge graph algorithms: merging and filtering, traversal queries and
visualization exports.
"""

from kbgraph.core.graph.operations import (
    build_graph_metadata,
    calculate_centrality,
    count_components,
    filter_graph_by_confidence,
    filter_graph_by_entity_types,
    filter_graph_by_relationship_types,
    find_clusters,
    get_ego_graph,
    merge_graphs,
)
from kbgraph.core.graph.queries import GraphQueryEngine
from kbgraph.core.graph.visualization import (
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

__all__ = [
    # Operations
    "build_graph_metadata",
    "calculate_centrality",
    "count_components",
    "filter_graph_by_confidence",
    "filter_graph_by_entity_types",
    "filter_graph_by_relationship_types",
    "find_clusters",
    "get_ego_graph",
    "merge_graphs",
    # Queries
    "GraphQueryEngine",
    # Visualization
    "DEFAULT_ENTITY_COLORS",
    "DEFAULT_RELATIONSHIP_COLORS",
    "calculate_hierarchical_layout",
    "export_graph",
    "generate_cytoscape_styles",
    "generate_legend_svg",
    "to_cytoscape",
    "to_d3",
    "to_raw",
    "to_vis",
]
