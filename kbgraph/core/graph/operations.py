"""
Pure operations on knowledge graphs: merging, filtering, ego graphs,
centrality and connected components.

Every function returns a new KnowledgeGraph; inputs are never mutated.
"""

from collections import defaultdict, deque
from collections.abc import Iterable
from datetime import datetime

from kbgraph.models.entity import EntityType
from kbgraph.models.graph import GraphEdge, GraphMetadata, GraphNode, KnowledgeGraph
from kbgraph.models.relationship import RelationshipType
from kbgraph.utils.exceptions import GraphError


def _unique(values: Iterable) -> list:
    return list(dict.fromkeys(values))


def compute_degrees(edges: Iterable[GraphEdge]) -> dict[str, int]:
    """Incident edge count per node id. A self-loop counts twice."""
    degrees: dict[str, int] = defaultdict(int)
    for edge in edges:
        degrees[edge.source] += 1
        degrees[edge.target] += 1
    return degrees


def with_degrees(nodes: Iterable[GraphNode], edges: list[GraphEdge]) -> list[GraphNode]:
    """Copies of nodes with degree recomputed from edges."""
    degrees = compute_degrees(edges)
    return [node.model_copy(update={"degree": degrees.get(node.id, 0)}) for node in nodes]


def build_graph_metadata(
    workspace_id: str,
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    created_at: datetime | None = None,
) -> GraphMetadata:
    """Counts and type sets (in first-seen order) for a node/edge collection."""
    now = datetime.now()
    return GraphMetadata(
        workspace_id=workspace_id,
        node_count=len(nodes),
        edge_count=len(edges),
        entity_types=_unique(node.type for node in nodes),
        relationship_types=_unique(edge.type for edge in edges),
        created_at=created_at or now,
        updated_at=now,
    )


def _rebuild(graph: KnowledgeGraph, nodes: list[GraphNode], edges: list[GraphEdge]) -> KnowledgeGraph:
    """New graph over nodes and edges with degrees, counts and type sets recomputed."""
    nodes = with_degrees(nodes, edges)
    metadata = build_graph_metadata(
        graph.metadata.workspace_id, nodes, edges, created_at=graph.metadata.created_at
    )
    return KnowledgeGraph(nodes=nodes, edges=edges, metadata=metadata)


def merge_graphs(graphs: list[KnowledgeGraph]) -> KnowledgeGraph:
    """
    Merge graphs by node and edge id.

    On an id collision the higher-confidence copy wins (the first one on a
    tie). Degrees and type sets are recomputed; workspace and created_at come
    from the first graph.

    Raises:
        GraphError: If graphs is empty
    """
    if not graphs:
        raise GraphError("Cannot merge an empty list of graphs")
    if len(graphs) == 1:
        return graphs[0]

    node_map: dict[str, GraphNode] = {}
    edge_map: dict[str, GraphEdge] = {}

    for graph in graphs:
        for node in graph.nodes:
            existing = node_map.get(node.id)
            if existing is None or node.confidence > existing.confidence:
                node_map[node.id] = node
        for edge in graph.edges:
            existing = edge_map.get(edge.id)
            if existing is None or edge.confidence > existing.confidence:
                edge_map[edge.id] = edge

    edges = list(edge_map.values())
    nodes = with_degrees(node_map.values(), edges)
    first = graphs[0].metadata

    return KnowledgeGraph(
        nodes=nodes,
        edges=edges,
        metadata=build_graph_metadata(first.workspace_id, nodes, edges, created_at=first.created_at),
    )


def filter_graph_by_entity_types(
    graph: KnowledgeGraph, entity_types: list[EntityType]
) -> KnowledgeGraph:
    """Keep nodes of the given types and the edges between them. Isolated nodes stay."""
    type_set = set(entity_types)
    nodes = [node for node in graph.nodes if node.type in type_set]
    node_ids = {node.id for node in nodes}
    edges = [e for e in graph.edges if e.source in node_ids and e.target in node_ids]

    return _rebuild(graph, nodes, edges)


def filter_graph_by_relationship_types(
    graph: KnowledgeGraph, relationship_types: list[RelationshipType]
) -> KnowledgeGraph:
    """Keep edges of the given types and only the nodes they still touch."""
    type_set = set(relationship_types)
    edges = [edge for edge in graph.edges if edge.type in type_set]
    connected = {edge.source for edge in edges} | {edge.target for edge in edges}
    nodes = [node for node in graph.nodes if node.id in connected]

    return _rebuild(graph, nodes, edges)


def filter_graph_by_confidence(
    graph: KnowledgeGraph,
    min_node_confidence: float = 0.0,
    min_edge_confidence: float = 0.0,
) -> KnowledgeGraph:
    """Drop low-confidence nodes, then edges that are weak or lost an endpoint."""
    nodes = [node for node in graph.nodes if node.confidence >= min_node_confidence]
    node_ids = {node.id for node in nodes}
    edges = [
        e
        for e in graph.edges
        if e.confidence >= min_edge_confidence and e.source in node_ids and e.target in node_ids
    ]
    return _rebuild(graph, nodes, edges)


def get_ego_graph(graph: KnowledgeGraph, node_id: str, hops: int = 1) -> KnowledgeGraph:
    """
    Induced subgraph of every node within `hops` edges of node_id.

    Edges are followed in both directions. A node absent from the graph
    yields an empty graph; a negative hop count is treated as 0.
    """
    if not any(node.id == node_id for node in graph.nodes):
        return _rebuild(graph, [], [])

    included = {node_id}
    frontier = {node_id}

    for _ in range(max(hops, 0)):
        next_frontier = set()
        for edge in graph.edges:
            if edge.source in frontier and edge.target not in included:
                next_frontier.add(edge.target)
                included.add(edge.target)
            if edge.target in frontier and edge.source not in included:
                next_frontier.add(edge.source)
                included.add(edge.source)
        frontier = next_frontier
        if not frontier:
            break

    nodes = [node for node in graph.nodes if node.id in included]
    edges = [e for e in graph.edges if e.source in included and e.target in included]
    return _rebuild(graph, nodes, edges)


def calculate_centrality(graph: KnowledgeGraph) -> dict[str, float]:
    """
    Degree centrality normalized by the highest degree, in [0, 1].

    Nodes of an edgeless graph all score 0; an empty graph gives {}.
    """
    if not graph.nodes:
        return {}

    degrees = compute_degrees(graph.edges)
    max_degree = max([*degrees.values(), 1])
    return {node.id: degrees.get(node.id, 0) / max_degree for node in graph.nodes}


def find_clusters(graph: KnowledgeGraph) -> list[list[GraphNode]]:
    """Connected components over undirected adjacency, largest first."""
    adjacency: dict[str, set[str]] = {node.id: set() for node in graph.nodes}
    for edge in graph.edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].add(edge.target)
            adjacency[edge.target].add(edge.source)

    nodes_by_id = {node.id: node for node in graph.nodes}
    visited: set[str] = set()
    clusters: list[list[GraphNode]] = []

    for node in graph.nodes:
        if node.id in visited:
            continue

        cluster: list[GraphNode] = []
        stack = [node.id]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            cluster.append(nodes_by_id[current])
            stack.extend(n for n in adjacency[current] if n not in visited)

        clusters.append(cluster)

    # sort is stable: equal-sized clusters keep discovery order
    clusters.sort(key=len, reverse=True)
    return clusters


def count_components(node_ids: Iterable[str], edges: Iterable[GraphEdge]) -> int:
    """Number of connected components, treating edges as undirected."""
    adjacency: dict[str, set[str]] = {node_id: set() for node_id in node_ids}
    for edge in edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].add(edge.target)
            adjacency[edge.target].add(edge.source)

    seen: set[str] = set()
    components = 0
    for start in adjacency:
        if start in seen:
            continue
        components += 1
        queue = deque([start])
        seen.add(start)
        while queue:
            for neighbor in adjacency[queue.popleft()]:
                if neighbor not in seen:
                    seen.add(neighbor)
                    queue.append(neighbor)
    return components
