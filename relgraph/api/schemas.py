from typing import Literal

from pydantic import BaseModel, Field

from relgraph.domain.graph import LayoutMode


class SelectRequest(BaseModel):
    node_id: str


class DepthRequest(BaseModel):
    depth: int = Field(ge=1, le=3)


class SeedsRequest(BaseModel):
    node_ids: list[str] = []


class ModeRequest(BaseModel):
    mode: LayoutMode


class DragRequest(BaseModel):
    """Drag gesture in graph coordinates; ``x``/``y`` are ignored on ``end``."""

    node_id: str
    phase: Literal["start", "move", "end"]
    x: float = 0.0
    y: float = 0.0


class ViewportRequest(BaseModel):
    zoom: float | None = Field(default=None, gt=0)
    anchor_x: float = 0.0
    anchor_y: float = 0.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    reset: bool = False


class TickRequest(BaseModel):
    steps: int = Field(default=1, ge=1, le=1000)


class CreateRelationshipRequest(BaseModel):
    source_id: str
    target_id: str
    relationship_type: str = "ASSOCIATED"
