"""
Edge label derivation.

Labels of edges leaving decision and experiment nodes are derived from the
source node's configuration: decision handles ``yes``/``true`` and
``no``/``false`` take the configured branch labels, experiment handles take
the name of the variant with that id. Derivation is idempotent and never
changes an edge's id, source, target or handle.
"""

from typing import Dict, Iterable, List, Optional

from journey_builder.models.goal_config import ConditionConfiguration
from journey_builder.models.graph import GraphEdge, GraphNode, JourneyGraph, NodeVariant
from journey_builder.services.normalization import condition_config_from_meta
from journey_builder.utils.constants import DEFAULT_FALSE_LABEL, DEFAULT_TRUE_LABEL, FALSE_HANDLES, TRUE_HANDLES


def derive_edge_label(edge: GraphEdge, source: Optional[GraphNode]) -> Optional[str]:
    """Label the edge should carry given its source node; other edges keep theirs."""
    if source is None:
        return edge.label

    handle = (edge.sourceHandle or "").lower()
    if source.data.variant == NodeVariant.DECISION:
        config = (
            source.data.conditionConfig
            or condition_config_from_meta(source.data.meta)
            or ConditionConfiguration()
        )
        if handle in TRUE_HANDLES:
            return config.trueLabel or DEFAULT_TRUE_LABEL
        if handle in FALSE_HANDLES:
            return config.falseLabel or DEFAULT_FALSE_LABEL
        return edge.label

    if source.data.variant == NodeVariant.EXPERIMENT and source.data.experimentConfig is not None:
        variant = source.data.experimentConfig.variant_by_id(edge.sourceHandle)
        if variant is not None:
            return variant.name
    return edge.label


def rederive_edge_labels(edges: Iterable[GraphEdge], nodes: Iterable[GraphNode]) -> List[GraphEdge]:
    """Re-derive every edge label; edges whose label is already right are returned as-is."""
    by_id: Dict[str, GraphNode] = {node.id: node for node in nodes}
    result = []
    for edge in edges:
        label = derive_edge_label(edge, by_id.get(edge.source))
        if label != edge.label:
            edge = edge.model_copy(update={"label": label})
        result.append(edge)
    return result


def prune_stale_variant_edges(edges: Iterable[GraphEdge], node: GraphNode) -> List[GraphEdge]:
    """Drop edges leaving an experiment node through a variant that no longer exists."""
    edges = list(edges)
    if node.data.variant != NodeVariant.EXPERIMENT or node.data.experimentConfig is None:
        return edges
    variant_ids = {variant.id for variant in node.data.experimentConfig.variants}
    return [
        edge for edge in edges
        if edge.source != node.id or edge.sourceHandle is None or edge.sourceHandle in variant_ids
    ]


def reconcile_node_edges(graph: JourneyGraph, node_id: str) -> JourneyGraph:
    """Bring the edges leaving ``node_id`` in line with its current configuration."""
    node = graph.node_by_id(node_id)
    if node is None:
        return graph
    edges = prune_stale_variant_edges(graph.edges, node)
    return JourneyGraph(nodes=list(graph.nodes), edges=rederive_edge_labels(edges, graph.nodes))
