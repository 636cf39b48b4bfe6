"""Interaction controller for the relationship graph explorer."""

import asyncio
from typing import Iterable, Literal

from loguru import logger
from pydantic import BaseModel

from relgraph.config import Settings, settings
from relgraph.domain.entity import Entity, EntityCategory, Relationship
from relgraph.domain.graph import LayoutMode, Subgraph, ViewState
from relgraph.layout.force import ForceSimulation
from relgraph.layout.hierarchy import HierarchyLayout, layout_hierarchy
from relgraph.render.geometry import (
    NodeShape,
    ShapeDescriptor,
    Viewport,
    node_geometry,
    outline,
)
from relgraph.stores.base import GraphStore, StoreError
from relgraph.traversal import compute_visible_subgraph, default_seed_ids

MIN_DEPTH = 1
MAX_DEPTH = 3
TREE_NODE_RADIUS = 30.0


class FrameNode(BaseModel):
    id: str
    label: str
    category: EntityCategory
    confidence: float
    size_weight: float
    x: float
    y: float
    pinned: bool = False
    selected: bool = False
    shape: ShapeDescriptor


class FrameEdge(BaseModel):
    id: str
    source: str
    target: str
    type: str
    strength: float = 1.0
    multiplicity: int = 1
    path: str | None = None


class GraphFrame(BaseModel):
    """Everything the presentation surface needs to draw one frame."""

    tenant_id: str
    view: ViewState
    loading: bool
    last_error: str | None = None
    width: float
    height: float
    nodes: list[FrameNode] = []
    edges: list[FrameEdge] = []
    viewport: Viewport
    alpha: float = 0.0
    running: bool = False


class LinkedNode(BaseModel):
    node_id: str
    label: str
    relationship_type: str
    direction: Literal["outbound", "inbound", "self"]


class NodeDetail(BaseModel):
    """Side panel contents for a selected node."""

    id: str
    label: str
    category: EntityCategory
    confidence: float
    degree: int
    linked: list[LinkedNode] = []
    entity: Entity | None = None


class GraphExplorer:
    """Owns one explorer session: view state, snapshot, visible subgraph and layouts.

    Every traversal-affecting transition recomputes the visible subgraph before
    any layout runs, and every layout pass tears down the previous simulation
    before a new one is built.
    """

    def __init__(
        self,
        store: GraphStore,
        tenant_id: str,
        *,
        width: float | None = None,
        height: float | None = None,
        config: Settings = settings,
    ) -> None:
        self.store = store
        self.tenant_id = tenant_id
        self.config = config
        self.width = width if width is not None else config.canvas_width
        self.height = height if height is not None else config.canvas_height

        self.state = ViewState(traversal_depth=config.default_depth)
        self.entities: list[Entity] = []
        self.relationships: list[Relationship] = []
        self.subgraph = Subgraph()
        self.simulation: ForceSimulation | None = None
        self.hierarchy = HierarchyLayout()
        self.viewport = Viewport()

        self.loading = False
        self.last_error: str | None = None
        self._refresh_token = 0
        self._dragging: str | None = None

    @property
    def seed_ids(self) -> list[str]:
        if self.state.seed_node_ids:
            return list(self.state.seed_node_ids)
        return default_seed_ids(self.entities, self.config.default_seed_count)

    async def refresh(self) -> bool:
        """Re-fetch the snapshot, keeping the current view state.

        Only the most recently issued refresh is applied; a refresh that
        resolves after a newer one was issued is discarded.
        """
        self._refresh_token += 1
        token = self._refresh_token
        self.loading = True
        try:
            entities, relationships = await asyncio.gather(
                self.store.fetch_entities(self.tenant_id),
                self.store.fetch_relationships(self.tenant_id),
            )
        except StoreError as e:
            self._fetch_failed(token, str(e))
            return False
        except Exception as e:
            self._fetch_failed(token, f"{type(e).__name__}: {e}")
            return False

        if token != self._refresh_token:
            logger.debug(f"Discarding superseded refresh {token} for tenant {self.tenant_id}")
            return False

        self.entities = list(entities)
        self.relationships = list(relationships)
        self.last_error = None
        self.loading = False
        logger.info(
            f"Loaded {len(self.entities)} entities and {len(self.relationships)} "
            f"relationships for tenant {self.tenant_id}"
        )
        self._retraverse()
        return True

    def _fetch_failed(self, token: int, message: str) -> None:
        # a superseded request leaves the newer one's state alone
        if token != self._refresh_token:
            return
        logger.error(f"Failed to load graph for tenant {self.tenant_id}: {message}")
        self.last_error = message
        self.loading = False

    def select_node(self, node_id: str) -> bool:
        if not self._interactive("select"):
            return False
        if self.subgraph.node(node_id) is None and self._entity(node_id) is None:
            raise ValueError(f"Unknown node: {node_id}")
        self.state.selected_node_id = node_id
        if self.state.layout_mode is LayoutMode.HIERARCHY:
            self._relayout()
        return True

    def deselect(self) -> bool:
        if not self._interactive("deselect"):
            return False
        self.state.selected_node_id = None
        if self.state.layout_mode is LayoutMode.HIERARCHY:
            self._relayout()
        return True

    def set_depth(self, depth: int) -> bool:
        if not MIN_DEPTH <= depth <= MAX_DEPTH:
            raise ValueError(f"Depth must be between {MIN_DEPTH} and {MAX_DEPTH}, got {depth}")
        if not self._interactive("set_depth"):
            return False
        self.state.traversal_depth = depth
        self._retraverse()
        return True

    def set_seeds(self, node_ids: Iterable[str]) -> bool:
        """Replace the seed set; an empty set falls back to the default seeds."""
        if not self._interactive("set_seeds"):
            return False
        self.state.seed_node_ids = list(dict.fromkeys(node_ids))
        self._retraverse()
        return True

    def focus_node(self, node_id: str) -> bool:
        return self.set_seeds([node_id])

    def set_layout_mode(self, mode: LayoutMode | str) -> bool:
        mode = LayoutMode(mode)
        if not self._interactive("set_layout_mode"):
            return False
        if mode is self.state.layout_mode:
            return False
        self.state.layout_mode = mode
        self._relayout()
        return True

    def drag_start(self, node_id: str, x: float, y: float) -> bool:
        simulation = self._draggable(node_id)
        if simulation is None:
            return False
        simulation.reheat(self.config.drag_alpha_target)
        simulation.pin(node_id, x, y)
        self._dragging = node_id
        return True

    def drag_move(self, node_id: str, x: float, y: float) -> bool:
        if self._dragging != node_id or self.simulation is None:
            return False
        self.simulation.pin(node_id, x, y)
        return True

    def drag_end(self, node_id: str) -> bool:
        if self._dragging != node_id or self.simulation is None:
            return False
        self.simulation.reheat(0.0)
        self.simulation.release(node_id)
        self._dragging = None
        return True

    def zoom(self, factor: float, anchor: tuple[float, float] = (0.0, 0.0)) -> None:
        self.viewport.zoom_by(factor, anchor)

    def pan(self, dx: float, dy: float) -> None:
        self.viewport.pan(dx, dy)

    def reset_view(self) -> None:
        self.viewport.reset()

    def tick(self, steps: int = 1) -> int:
        """Advance the force simulation by up to ``steps`` frames."""
        if self.state.layout_mode is not LayoutMode.FORCE or self.simulation is None:
            return 0
        taken = 0
        while taken < steps and self.simulation.running:
            self.simulation.step()
            taken += 1
        return taken

    def settle(self) -> int:
        """Run the force simulation until it cools."""
        if self.state.layout_mode is not LayoutMode.FORCE or self.simulation is None:
            return 0
        return self.simulation.run(self.config.max_layout_steps)

    async def create_relationship(
        self, source_id: str, target_id: str, relationship_type: str
    ) -> Relationship | None:
        """Write a new relationship through the store, then reload everything."""
        if not self._interactive("create_relationship"):
            return None
        try:
            relationship = await self.store.create_relationship(
                self.tenant_id, source_id, target_id, relationship_type
            )
        except StoreError as e:
            logger.error(f"Failed to create relationship {source_id} -> {target_id}: {e}")
            self.last_error = str(e)
            return None
        await self.refresh()
        return relationship

    def node_detail(self, node_id: str) -> NodeDetail | None:
        node = self.subgraph.node(node_id)
        entity = self._entity(node_id)
        if node is None and entity is None:
            return None

        linked = []
        for edge in self.subgraph.incident_edges(node_id):
            if edge.is_self_loop:
                other_id, direction = node_id, "self"
            elif edge.source == node_id:
                other_id, direction = edge.target, "outbound"
            else:
                other_id, direction = edge.source, "inbound"
            other = self.subgraph.node(other_id)
            linked.append(
                LinkedNode(
                    node_id=other_id,
                    label=other.label if other else "Unknown",
                    relationship_type=edge.type,
                    direction=direction,
                )
            )

        return NodeDetail(
            id=node_id,
            label=node.label if node else entity.display_name,
            category=node.category if node else entity.category,
            confidence=node.confidence if node else entity.confidence_score,
            degree=len(linked),
            linked=linked,
            entity=entity,
        )

    def frame(self) -> GraphFrame:
        if self.state.layout_mode is LayoutMode.HIERARCHY:
            nodes, edges = self._hierarchy_frame()
        else:
            nodes, edges = self._force_frame()
        simulation = self.simulation
        return GraphFrame(
            tenant_id=self.tenant_id,
            view=self.state.model_copy(deep=True),
            loading=self.loading,
            last_error=self.last_error,
            width=self.width,
            height=self.height,
            nodes=nodes,
            edges=edges,
            viewport=self.viewport.model_copy(),
            alpha=simulation.alpha if simulation else 0.0,
            running=simulation.running if simulation else False,
        )

    def _force_frame(self) -> tuple[list[FrameNode], list[FrameEdge]]:
        selected = self.state.selected_node_id
        nodes = [
            FrameNode(
                id=node.id,
                label=node.label,
                category=node.category,
                confidence=node.confidence,
                size_weight=node.size_weight,
                x=node.x,
                y=node.y,
                pinned=node.pinned,
                selected=node.id == selected,
                shape=node_geometry(node.category, node.size_weight),
            )
            for node in self.subgraph.nodes
        ]
        edges = [FrameEdge(**edge.model_dump()) for edge in self.subgraph.edges]
        return nodes, edges

    def _hierarchy_frame(self) -> tuple[list[FrameNode], list[FrameEdge]]:
        selected = self.state.selected_node_id
        nodes = []
        for tree_node in self.hierarchy.nodes:
            graph_node = self.subgraph.node(tree_node.id)
            nodes.append(
                FrameNode(
                    id=tree_node.id,
                    label=tree_node.label,
                    category=tree_node.category,
                    confidence=graph_node.confidence,
                    size_weight=graph_node.size_weight,
                    x=tree_node.x,
                    y=tree_node.y,
                    selected=tree_node.id == selected,
                    shape=outline(NodeShape.CIRCLE, TREE_NODE_RADIUS),
                )
            )
        edges = [
            FrameEdge(
                id=f"{link.source}->{link.target}",
                source=link.source,
                target=link.target,
                type=self._edge_type(link.source, link.target),
                path=link.path,
            )
            for link in self.hierarchy.links
        ]
        return nodes, edges

    def _edge_type(self, source: str, target: str) -> str:
        for edge in self.subgraph.edges:
            if edge.source == source and edge.target == target:
                return edge.type
        return "ASSOCIATED"

    def _retraverse(self) -> None:
        self.subgraph = compute_visible_subgraph(
            self.entities,
            self.relationships,
            self.seed_ids,
            self.state.traversal_depth,
        )
        logger.debug(
            f"Visible subgraph for tenant {self.tenant_id}: "
            f"{len(self.subgraph.nodes)} nodes, {len(self.subgraph.edges)} edges"
        )
        self._relayout()

    def _relayout(self) -> None:
        if self._dragging is not None:
            # an interrupted drag releases its node, or the next simulation re-pins it
            dragged = self.subgraph.node(self._dragging)
            if dragged is not None:
                dragged.fx = dragged.fy = None
            self._dragging = None
        if self.simulation is not None:
            self.simulation.stop()
            self.simulation = None
        self.hierarchy = HierarchyLayout()

        if self.state.layout_mode is LayoutMode.FORCE:
            self.simulation = ForceSimulation(
                self.subgraph,
                self.width,
                self.height,
                charge_strength=self.config.charge_strength,
                link_distance=self.config.link_distance,
                center_strength=self.config.center_strength,
                velocity_decay=self.config.velocity_decay,
                alpha_min=self.config.alpha_min,
                seed=self.config.simulation_seed,
            )
        else:
            self.hierarchy = layout_hierarchy(
                self.subgraph, self.state.selected_node_id, self.width, self.height
            )

    def _draggable(self, node_id: str) -> ForceSimulation | None:
        if not self._interactive("drag"):
            return None
        if self.state.layout_mode is not LayoutMode.FORCE or self.simulation is None:
            return None
        if node_id not in self.simulation.table:
            return None
        return self.simulation

    def _interactive(self, action: str) -> bool:
        if self.loading:
            logger.debug(f"Ignoring {action} while tenant {self.tenant_id} is loading")
            return False
        return True

    def _entity(self, node_id: str) -> Entity | None:
        for entity in self.entities:
            if entity.id == node_id:
                return entity
        return None
