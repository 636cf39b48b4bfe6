"""Frontier traversal from seed nodes to the visible subgraph."""

from relgraph.traversal.frontier import compute_visible_subgraph, default_seed_ids, size_weight

__all__ = [
    "compute_visible_subgraph",
    "default_seed_ids",
    "size_weight",
]
