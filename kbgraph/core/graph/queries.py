"""
Query engine over an in-memory knowledge graph.

All lookups of unknown node ids return None or an empty result. Depth
bounds below zero are treated as zero.
"""

from collections import Counter, deque

from kbgraph.config import GraphConfig
from kbgraph.core.graph.operations import calculate_centrality, compute_degrees, count_components
from kbgraph.models.entity import EntityType
from kbgraph.models.graph import (
    GraphEdge,
    GraphNode,
    GraphPath,
    GraphQueryOptions,
    GraphStatistics,
    KnowledgeGraph,
    Neighbor,
    NodeNeighborhood,
    RelatedEntity,
    RelationshipMatch,
    Subgraph,
)
from kbgraph.models.relationship import RelationshipDirection, RelationshipType
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


def _other_end(edge: GraphEdge, node_id: str) -> str:
    return edge.target if edge.source == node_id else edge.source


class GraphQueryEngine:
    """
    Traversal, path finding and search over one KnowledgeGraph.

    The engine indexes nodes by id and edges by incident node once, at
    construction. Build a new engine when the graph changes.
    """

    def __init__(self, graph: KnowledgeGraph, config: GraphConfig | None = None):
        self.graph = graph
        self.config = config or GraphConfig()

        self._nodes: dict[str, GraphNode] = {node.id: node for node in graph.nodes}
        self._incident: dict[str, list[GraphEdge]] = {node_id: [] for node_id in self._nodes}
        for edge in graph.edges:
            if edge.source in self._incident:
                self._incident[edge.source].append(edge)
            if edge.target in self._incident and edge.target != edge.source:
                self._incident[edge.target].append(edge)

    # ═══════════════════════════════════════════════════════════
    # LOOKUPS
    # ═══════════════════════════════════════════════════════════

    def get_node(self, node_id: str) -> GraphNode | None:
        return self._nodes.get(node_id)

    def get_nodes(self, node_ids: list[str]) -> list[GraphNode]:
        """Nodes in the order requested; unknown ids are skipped."""
        return [self._nodes[node_id] for node_id in node_ids if node_id in self._nodes]

    def get_edges_for_node(
        self, node_id: str, options: GraphQueryOptions | None = None
    ) -> list[GraphEdge]:
        """Incident edges filtered by direction, relationship type and confidence."""
        options = options or GraphQueryOptions()
        types = set(options.relationship_types or [])

        edges = []
        for edge in self._incident.get(node_id, []):
            if options.direction == RelationshipDirection.OUTGOING and edge.source != node_id:
                continue
            if options.direction == RelationshipDirection.INCOMING and edge.target != node_id:
                continue
            if types and edge.type not in types:
                continue
            if edge.confidence < options.min_confidence:
                continue
            edges.append(edge)
        return edges

    def get_node_neighborhood(
        self, node_id: str, options: GraphQueryOptions | None = None
    ) -> NodeNeighborhood | None:
        """One-hop neighbors, each tagged with the direction of its edge."""
        node = self.get_node(node_id)
        if node is None:
            return None

        neighbors = []
        for edge in self.get_edges_for_node(node_id, options):
            neighbor_id = _other_end(edge, node_id)
            neighbor = self._nodes.get(neighbor_id)
            if neighbor is None or neighbor_id == node_id:
                continue
            direction = (
                RelationshipDirection.OUTGOING
                if edge.source == node_id
                else RelationshipDirection.INCOMING
            )
            neighbors.append(Neighbor(node=neighbor, edge=edge, direction=direction))

        return NodeNeighborhood(node=node, neighbors=neighbors)

    # ═══════════════════════════════════════════════════════════
    # TRAVERSAL
    # ═══════════════════════════════════════════════════════════

    def traverse_graph(
        self, start_node_id: str, options: GraphQueryOptions | None = None
    ) -> Subgraph:
        """
        Breadth-first traversal from start_node_id.

        Visits at most `limit` nodes within `max_depth` hops. A node that fails
        the entity type or confidence filter is neither kept nor expanded.
        Only edges between kept nodes are returned.
        """
        options = options or GraphQueryOptions()
        max_depth = max(
            options.max_depth if options.max_depth is not None else self.config.traversal_max_depth,
            0,
        )
        limit = options.limit if options.limit is not None else self.config.traversal_limit
        entity_types = set(options.entity_types or [])

        visited: dict[str, GraphNode] = {}
        collected: dict[str, GraphEdge] = {}
        queue: deque[tuple[str, int]] = deque([(start_node_id, 0)])

        while queue and len(visited) < limit:
            node_id, depth = queue.popleft()
            if node_id in visited or depth > max_depth:
                continue

            node = self._nodes.get(node_id)
            if node is None:
                continue
            if entity_types and node.type not in entity_types:
                continue
            if node.confidence < options.min_confidence:
                continue

            visited[node_id] = node

            if depth < max_depth:
                for edge in self.get_edges_for_node(node_id, options):
                    collected.setdefault(edge.id, edge)
                    neighbor_id = _other_end(edge, node_id)
                    if neighbor_id not in visited:
                        queue.append((neighbor_id, depth + 1))

        edges = [e for e in collected.values() if e.source in visited and e.target in visited]

        return Subgraph(
            nodes=list(visited.values()),
            edges=edges,
            root_node_id=start_node_id,
            depth=max_depth,
        )

    def find_path(
        self, source_id: str, target_id: str, options: GraphQueryOptions | None = None
    ) -> GraphPath | None:
        """
        Shortest path by edge count, following edges in both directions.

        Returns None when either node is unknown or the target is not
        reachable within max_depth hops.
        """
        options = options or GraphQueryOptions()
        if source_id not in self._nodes or target_id not in self._nodes:
            return None

        max_depth = max(
            options.max_depth if options.max_depth is not None else self.config.path_max_depth, 0
        )
        edge_options = GraphQueryOptions(
            relationship_types=options.relationship_types,
            min_confidence=options.min_confidence,
        )

        parents: dict[str, tuple[str, GraphEdge]] = {}
        visited = {source_id}
        queue: deque[tuple[str, int]] = deque([(source_id, 0)])

        while queue:
            node_id, depth = queue.popleft()
            if node_id == target_id:
                return self._reconstruct_path(source_id, target_id, parents)
            if depth >= max_depth:
                continue

            for edge in self.get_edges_for_node(node_id, edge_options):
                neighbor_id = _other_end(edge, node_id)
                if neighbor_id not in visited:
                    visited.add(neighbor_id)
                    parents[neighbor_id] = (node_id, edge)
                    queue.append((neighbor_id, depth + 1))

        return None

    def find_all_paths(
        self,
        source_id: str,
        target_id: str,
        options: GraphQueryOptions | None = None,
        max_paths: int | None = None,
    ) -> list[GraphPath]:
        """
        Simple paths from source to target, at most max_depth edges long.

        Depth-first with backtracking: a node may appear in several paths but
        never twice in one. Stops after max_paths paths.
        """
        options = options or GraphQueryOptions()
        if source_id not in self._nodes or target_id not in self._nodes:
            return []

        max_depth = max(
            options.max_depth if options.max_depth is not None else self.config.all_paths_max_depth,
            0,
        )
        max_paths = max_paths if max_paths is not None else self.config.max_paths
        edge_options = GraphQueryOptions(
            relationship_types=options.relationship_types,
            min_confidence=options.min_confidence,
        )

        paths: list[GraphPath] = []
        path_ids = [source_id]
        path_edges: list[GraphEdge] = []
        on_path = {source_id}
        stack = [iter(self.get_edges_for_node(source_id, edge_options))]

        while stack and len(paths) < max_paths:
            edge = next(stack[-1], None)
            if edge is None:
                stack.pop()
                on_path.discard(path_ids.pop())
                if path_edges:
                    path_edges.pop()
                continue

            neighbor_id = _other_end(edge, path_ids[-1])
            if neighbor_id in on_path:
                continue

            length = len(path_edges) + 1
            if length > max_depth:
                continue

            if neighbor_id == target_id:
                paths.append(self._build_path([*path_ids, neighbor_id], [*path_edges, edge]))
            elif length < max_depth:
                path_ids.append(neighbor_id)
                path_edges.append(edge)
                on_path.add(neighbor_id)
                stack.append(iter(self.get_edges_for_node(neighbor_id, edge_options)))

        return paths

    def find_related_entities(
        self,
        node_id: str,
        target_type: EntityType,
        options: GraphQueryOptions | None = None,
    ) -> list[RelatedEntity]:
        """Nodes of target_type reached by traversal, each with its shortest path."""
        options = options or GraphQueryOptions()
        max_depth = (
            options.max_depth if options.max_depth is not None else self.config.traversal_max_depth
        )
        limit = options.limit if options.limit is not None else 20

        subgraph = self.traverse_graph(node_id, options.model_copy(update={"max_depth": max_depth}))
        targets = [
            node
            for node in subgraph.nodes
            if node.type == target_type
            and node.id != node_id
            and node.confidence >= options.min_confidence
        ]

        results = []
        path_options = GraphQueryOptions(max_depth=max_depth, min_confidence=options.min_confidence)
        for target in targets[:limit]:
            path = self.find_path(node_id, target.id, path_options)
            if path is not None:
                results.append(RelatedEntity(node=target, path=path))
        return results

    # ═══════════════════════════════════════════════════════════
    # SEARCH AND ANALYSIS
    # ═══════════════════════════════════════════════════════════

    def get_nodes_by_relationship(
        self,
        relationship_type: RelationshipType,
        limit: int = 100,
        min_confidence: float = 0.0,
    ) -> list[RelationshipMatch]:
        matches = []
        for edge in self.graph.edges:
            if len(matches) >= limit:
                break
            if edge.type != relationship_type or edge.confidence < min_confidence:
                continue
            source = self._nodes.get(edge.source)
            target = self._nodes.get(edge.target)
            if source is not None and target is not None:
                matches.append(RelationshipMatch(source=source, target=target, edge=edge))
        return matches

    def get_graph_statistics(self) -> GraphStatistics:
        total_nodes = len(self.graph.nodes)
        total_edges = len(self.graph.edges)
        degrees = compute_degrees(self.graph.edges)

        return GraphStatistics(
            total_nodes=total_nodes,
            total_edges=total_edges,
            nodes_by_type=dict(Counter(node.type.value for node in self.graph.nodes)),
            edges_by_type=dict(Counter(edge.type.value for edge in self.graph.edges)),
            average_degree=(
                sum(degrees.get(node_id, 0) for node_id in self._nodes) / total_nodes
                if total_nodes
                else 0.0
            ),
            max_degree=max(degrees.values(), default=0),
            density=(
                2 * total_edges / (total_nodes * (total_nodes - 1)) if total_nodes > 1 else 0.0
            ),
            connected_components=count_components(self._nodes, self.graph.edges),
        )

    def search_nodes(
        self,
        query: str,
        entity_types: list[EntityType] | None = None,
        limit: int = 50,
    ) -> list[GraphNode]:
        """Case-insensitive substring match on name or description; name hits first."""
        needle = query.lower()
        types = set(entity_types or [])

        by_name, by_description = [], []
        for node in self.graph.nodes:
            if types and node.type not in types:
                continue
            if needle in node.name.lower():
                by_name.append(node)
            elif node.description and needle in node.description.lower():
                by_description.append(node)

        return (by_name + by_description)[:limit]

    def get_central_nodes(
        self, limit: int = 10, entity_types: list[EntityType] | None = None
    ) -> list[GraphNode]:
        """Highest-degree nodes with degree and centrality filled in. Isolated nodes are skipped."""
        degrees = compute_degrees(self.graph.edges)
        centrality = calculate_centrality(self.graph)
        types = set(entity_types or [])

        ranked = [
            node.model_copy(
                update={"degree": degrees[node.id], "centrality": centrality.get(node.id, 0.0)}
            )
            for node in self.graph.nodes
            if degrees.get(node.id, 0) > 0 and (not types or node.type in types)
        ]
        ranked.sort(key=lambda node: node.degree, reverse=True)
        return ranked[:limit]

    # ═══════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════

    def _reconstruct_path(
        self, source_id: str, target_id: str, parents: dict[str, tuple[str, GraphEdge]]
    ) -> GraphPath:
        node_ids = [target_id]
        edges: list[GraphEdge] = []
        current = target_id
        while current != source_id:
            parent_id, edge = parents[current]
            edges.append(edge)
            node_ids.append(parent_id)
            current = parent_id

        node_ids.reverse()
        edges.reverse()
        return self._build_path(node_ids, edges)

    def _build_path(self, node_ids: list[str], edges: list[GraphEdge]) -> GraphPath:
        return GraphPath(
            nodes=self.get_nodes(node_ids),
            edges=list(edges),
            length=len(edges),
            total_confidence=(
                sum(edge.confidence for edge in edges) / len(edges) if edges else 1.0
            ),
        )
