"""Derived graph models for a single rendering pass."""

from enum import Enum

from pydantic import BaseModel, Field

from relgraph.domain.entity import EntityCategory


class LayoutMode(str, Enum):
    FORCE = "FORCE"
    HIERARCHY = "HIERARCHY"


class GraphNode(BaseModel):
    """A positioned, sized projection of an entity.

    Attributes:
        id: Entity ID
        label: Display label
        category: Category tag used to pick the node shape
        confidence: Entity confidence score
        size_weight: Base size plus a linear term in the visible degree
        x: Current horizontal position
        y: Current vertical position
        fx: Pinned horizontal position, set while dragging
        fy: Pinned vertical position, set while dragging
    """

    id: str
    label: str
    category: EntityCategory
    confidence: float
    size_weight: float
    x: float = 0.0
    y: float = 0.0
    fx: float | None = None
    fy: float | None = None

    @property
    def pinned(self) -> bool:
        return self.fx is not None and self.fy is not None


class GraphEdge(BaseModel):
    """A directed edge between two visible nodes."""

    id: str
    source: str
    target: str
    type: str
    strength: float = 1.0
    multiplicity: int = 1  # parallel relationships collapsed into this edge

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target


class Subgraph(BaseModel):
    """The visible node and edge set produced by one traversal."""

    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []

    def node(self, node_id: str) -> GraphNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def incident_edges(self, node_id: str) -> list[GraphEdge]:
        return [edge for edge in self.edges if node_id in (edge.source, edge.target)]

    def degree(self, node_id: str) -> int:
        return len(self.incident_edges(node_id))


class ViewState(BaseModel):
    """Session-scoped explorer state."""

    seed_node_ids: list[str] = []
    selected_node_id: str | None = None
    traversal_depth: int = Field(default=2, ge=1, le=3)
    layout_mode: LayoutMode = LayoutMode.FORCE
