"""
Graph <-> domain mapping, edge labels and canvas editing operations.
"""
from .catalog import NODE_CATALOG, catalog_as_dict, find_catalog_entry
from .edge_labels import derive_edge_label, prune_stale_variant_edges, rederive_edge_labels
from .graph_mapper import (
    apply_graph,
    infer_subtype,
    to_domain,
    to_domain_node,
    to_graph,
    to_graph_node,
    variant_for,
)
from .graph_ops import add_node, connect, delete_edge, delete_node, duplicate_node, update_node
from .hydration import normalize_journey, parse_domain_node, parse_graph, parse_graph_node

__all__ = [
    "NODE_CATALOG",
    "catalog_as_dict",
    "find_catalog_entry",
    "derive_edge_label",
    "prune_stale_variant_edges",
    "rederive_edge_labels",
    "apply_graph",
    "infer_subtype",
    "to_domain",
    "to_domain_node",
    "to_graph",
    "to_graph_node",
    "variant_for",
    "add_node",
    "connect",
    "delete_edge",
    "delete_node",
    "duplicate_node",
    "update_node",
    "normalize_journey",
    "parse_domain_node",
    "parse_graph",
    "parse_graph_node",
]
