"""
Build knowledge graphs from the entities and relationships in a store.
"""

import time

from kbgraph.config import GraphConfig
from kbgraph.core.graph.operations import build_graph_metadata, with_degrees
from kbgraph.core.knowledge_store.base import KnowledgeStore
from kbgraph.models.graph import GraphBuildOptions, GraphEdge, GraphNode, KnowledgeGraph
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


class GraphBuilder:
    """
    Project stored entities and relationships into a KnowledgeGraph.

    Nodes are fetched first; relationships are then constrained to the
    fetched node set, and degrees are computed from the surviving edges.
    """

    def __init__(self, store: KnowledgeStore, config: GraphConfig | None = None):
        self.store = store
        self.config = config or GraphConfig()

    def default_options(self) -> GraphBuildOptions:
        return GraphBuildOptions(max_entities=self.config.max_entities)

    async def build_knowledge_graph(
        self, workspace_id: str, options: GraphBuildOptions | None = None
    ) -> KnowledgeGraph:
        """
        Build the graph of a workspace.

        Args:
            workspace_id: Workspace to project
            options: Type, confidence and knowledge item filters; entity cap

        Returns:
            KnowledgeGraph whose edges only connect nodes that are present
        """
        start_time = time.time()
        options = options or self.default_options()

        entities = await self.store.get_entities_for_workspace(
            workspace_id,
            entity_types=options.entity_types,
            min_confidence=options.min_entity_confidence or None,
            knowledge_item_ids=options.knowledge_item_ids,
            limit=options.max_entities,
        )
        nodes = [GraphNode.from_stored(entity) for entity in entities]
        node_ids = {node.id for node in nodes}

        relationships = await self.store.get_relationships_for_workspace(
            workspace_id,
            relationship_types=options.relationship_types,
            min_confidence=options.min_relationship_confidence or None,
        )
        edges = [
            GraphEdge.from_stored(relationship)
            for relationship in relationships
            if relationship.source_entity_id in node_ids
            and relationship.target_entity_id in node_ids
        ]

        nodes = with_degrees(nodes, edges)

        logger.info(
            "Built graph for {}: {} nodes, {} edges in {:.0f}ms",
            workspace_id,
            len(nodes),
            len(edges),
            (time.time() - start_time) * 1000,
            extra={"dropped_edges": len(relationships) - len(edges)},
        )

        return KnowledgeGraph(
            nodes=nodes,
            edges=edges,
            metadata=build_graph_metadata(workspace_id, nodes, edges),
        )

    async def build_graph_for_knowledge_item(
        self,
        workspace_id: str,
        item_id: str,
        options: GraphBuildOptions | None = None,
    ) -> KnowledgeGraph:
        """Graph restricted to the entities extracted from one knowledge item."""
        options = options or self.default_options()
        return await self.build_knowledge_graph(
            workspace_id, options.model_copy(update={"knowledge_item_ids": [item_id]})
        )
