"""
Editing operations on the canvas graph.

Each operation returns a new ``JourneyGraph`` and leaves its input untouched.
Referential integrity is kept on every change: deleting a node removes its
incident edges, edges are only created between existing nodes and labels of
edges leaving a reconfigured node are re-derived.
"""

from typing import Optional, Tuple

from journey_builder.core.logging import get_logger
from journey_builder.models.graph import GraphEdge, GraphNode, JourneyGraph
from journey_builder.models.journey import Position
from journey_builder.services.mapping.edge_labels import derive_edge_label, reconcile_node_edges
from journey_builder.utils.constants import LOG_CONTEXT_NODE_ID
from journey_builder.utils.ids import generate_id

logger = get_logger(__name__)

DUPLICATE_OFFSET: Tuple[float, float] = (40, 40)


def _copy(graph: JourneyGraph) -> JourneyGraph:
    return graph.model_copy(deep=True)


def add_node(graph: JourneyGraph, node: GraphNode) -> JourneyGraph:
    """Append a node. An existing node with the same id is replaced in place."""
    result = _copy(graph)
    node = node.model_copy(deep=True)
    for index, existing in enumerate(result.nodes):
        if existing.id == node.id:
            logger.debug("Replacing node with duplicate id", extra={LOG_CONTEXT_NODE_ID: node.id})
            result.nodes[index] = node
            return reconcile_node_edges(result, node.id)
    result.nodes.append(node)
    return result


def update_node(graph: JourneyGraph, node: GraphNode) -> JourneyGraph:
    """
    Replace a node's data and position.

    Edges leaving the node through experiment variants that no longer exist
    are removed and the labels of its outgoing edges are re-derived.
    """
    result = _copy(graph)
    for index, existing in enumerate(result.nodes):
        if existing.id == node.id:
            result.nodes[index] = node.model_copy(deep=True)
            return reconcile_node_edges(result, node.id)
    logger.warning("Update for unknown node ignored", extra={LOG_CONTEXT_NODE_ID: node.id})
    return result


def delete_node(graph: JourneyGraph, node_id: str) -> JourneyGraph:
    """Remove a node and every edge touching it."""
    result = _copy(graph)
    result.nodes = [node for node in result.nodes if node.id != node_id]
    result.edges = [edge for edge in result.edges if edge.source != node_id and edge.target != node_id]
    return result


def connect(
    graph: JourneyGraph,
    source: str,
    target: str,
    source_handle: Optional[str] = None,
    edge_id: Optional[str] = None,
) -> JourneyGraph:
    """
    Connect two existing nodes. The new edge's label is derived from the
    source node. Connecting missing nodes or repeating an existing
    connection returns an unchanged copy.
    """
    result = _copy(graph)
    source_node = result.node_by_id(source)
    if source_node is None or result.node_by_id(target) is None:
        logger.warning("Cannot connect missing nodes", extra={"source": source, "target": target})
        return result
    for edge in result.edges:
        if edge.source == source and edge.target == target and edge.sourceHandle == source_handle:
            return result

    edge = GraphEdge(id=edge_id or generate_id("edge"), source=source, target=target, sourceHandle=source_handle)
    edge.label = derive_edge_label(edge, source_node)
    result.edges.append(edge)
    return result


def delete_edge(graph: JourneyGraph, edge_id: str) -> JourneyGraph:
    result = _copy(graph)
    result.edges = [edge for edge in result.edges if edge.id != edge_id]
    return result


def duplicate_node(graph: JourneyGraph, node_id: str, new_id: Optional[str] = None) -> Tuple[JourneyGraph, Optional[str]]:
    """
    Copy a node next to the original. Edges are not copied.

    Returns:
        ``(graph, new_node_id)``; the id is None when ``node_id`` is unknown.
    """
    result = _copy(graph)
    original = result.node_by_id(node_id)
    if original is None:
        logger.warning("Cannot duplicate unknown node", extra={LOG_CONTEXT_NODE_ID: node_id})
        return result, None

    copy = original.model_copy(deep=True)
    copy.id = new_id or generate_id(original.data.subtype or original.data.variant)
    copy.position = Position(
        x=original.position.x + DUPLICATE_OFFSET[0],
        y=original.position.y + DUPLICATE_OFFSET[1],
    )
    result.nodes.append(copy)
    return result, copy.id
