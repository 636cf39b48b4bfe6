"""Bounded breadth-first expansion from a seed set into a visible subgraph."""

import logging
from typing import Iterable, Sequence

from relgraph.domain.entity import DEFAULT_CONFIDENCE, Entity, EntityCategory, Relationship
from relgraph.domain.graph import GraphEdge, GraphNode, Subgraph

logger = logging.getLogger(__name__)

BASE_SIZE_WEIGHT = 10.0
SIZE_WEIGHT_PER_EDGE = 5.0
DEFAULT_SEED_COUNT = 10


def size_weight(degree: int) -> float:
    """Node size from its edge count within the visible subgraph."""
    return BASE_SIZE_WEIGHT + SIZE_WEIGHT_PER_EDGE * degree


def default_seed_ids(entities: Sequence[Entity], count: int = DEFAULT_SEED_COUNT) -> list[str]:
    """Seeds used when none are chosen: the first ``count`` entities in snapshot order."""
    return [entity.id for entity in entities[:count]]


def compute_visible_subgraph(
    entities: Iterable[Entity],
    relationships: Sequence[Relationship],
    seed_ids: Iterable[str],
    depth: int,
) -> Subgraph:
    """Compute the visible subgraph reachable from the seeds within ``depth`` hops.

    Relationships are treated as undirected for reachability, while each output
    edge keeps its source and target. Every relationship is recorded at most once,
    and parallel relationships sharing (source, target, type) collapse into one
    edge with a multiplicity.

    Args:
        entities: Entity snapshot used to label nodes
        relationships: All relationships visible to the tenant
        seed_ids: Starting node IDs
        depth: Number of expansion levels; zero or less returns only the seeds

    Returns:
        Subgraph with nodes in discovery order and edges in relationship order
    """
    entity_by_id = {entity.id: entity for entity in entities}

    visited: dict[str, None] = dict.fromkeys(seed_ids)
    frontier = set(visited)
    recorded: dict[int, Relationship] = {}

    for level in range(max(depth, 0)):
        if not frontier:
            break
        next_frontier: dict[str, None] = {}
        for index, rel in enumerate(relationships):
            if rel.source_id not in frontier and rel.target_id not in frontier:
                continue
            recorded.setdefault(index, rel)
            other = rel.target_id if rel.source_id in frontier else rel.source_id
            if other not in visited:
                next_frontier[other] = None
        visited.update(next_frontier)
        frontier = set(next_frontier)
        logger.debug(f"Level {level + 1}: {len(next_frontier)} new nodes")

    visible = [recorded[index] for index in sorted(recorded)]
    edges = _build_edges(visible)
    degrees = _count_degrees(edges)

    nodes = [
        _build_node(node_id, entity_by_id.get(node_id), degrees.get(node_id, 0))
        for node_id in visited
    ]
    return Subgraph(nodes=nodes, edges=edges)


def _build_node(node_id: str, entity: Entity | None, degree: int) -> GraphNode:
    if entity is None:
        return GraphNode(
            id=node_id,
            label="Unknown",
            category=EntityCategory.FIRM,
            confidence=DEFAULT_CONFIDENCE,
            size_weight=size_weight(degree),
        )
    return GraphNode(
        id=node_id,
        label=entity.display_name,
        category=entity.category,
        confidence=entity.confidence_score,
        size_weight=size_weight(degree),
    )


def _build_edges(relationships: list[Relationship]) -> list[GraphEdge]:
    edges: dict[tuple[str, str, str], GraphEdge] = {}
    for rel in relationships:
        key = (rel.source_id, rel.target_id, rel.relationship_type)
        if key in edges:
            edges[key].multiplicity += 1
            continue
        edges[key] = GraphEdge(
            id=rel.id,
            source=rel.source_id,
            target=rel.target_id,
            type=rel.relationship_type,
        )
    return list(edges.values())


def _count_degrees(edges: list[GraphEdge]) -> dict[str, int]:
    degrees: dict[str, int] = {}
    for edge in edges:
        for endpoint in {edge.source, edge.target}:
            degrees[endpoint] = degrees.get(endpoint, 0) + 1
    return degrees
