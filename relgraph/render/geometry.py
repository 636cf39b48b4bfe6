"""Geometry contracts handed to the presentation surface.

Nothing here picks colours or fonts. It only maps node categories onto a
closed set of shapes, produces outlines and curve paths, and keeps the
viewport transform used for zooming and panning.
"""

import math
from enum import Enum

from pydantic import BaseModel

from relgraph.domain.entity import EntityCategory

MIN_SCALE = 0.1
MAX_SCALE = 4.0


class NodeShape(str, Enum):
    HEXAGON = "HEXAGON"
    DIAMOND = "DIAMOND"
    CIRCLE = "CIRCLE"


class ShapeDescriptor(BaseModel):
    """Shape kind plus its outline for one node size.

    ``points`` is empty for circles, which are described by ``radius`` alone.
    """

    kind: NodeShape
    radius: float
    points: list[tuple[float, float]] = []


def shape_for(category: EntityCategory) -> NodeShape:
    if category.is_firm_like:
        return NodeShape.HEXAGON
    if category is EntityCategory.DEAL:
        return NodeShape.DIAMOND
    return NodeShape.CIRCLE


def outline(shape: NodeShape, size_weight: float) -> ShapeDescriptor:
    """Outline of a node centred on the origin."""
    w = size_weight
    if shape is NodeShape.HEXAGON:
        points = [
            (0.0, -w * 1.5),
            (w * 1.3, -w * 0.75),
            (w * 1.3, w * 0.75),
            (0.0, w * 1.5),
            (-w * 1.3, w * 0.75),
            (-w * 1.3, -w * 0.75),
        ]
        return ShapeDescriptor(kind=shape, radius=w * 1.5, points=points)
    if shape is NodeShape.DIAMOND:
        # square of side 2w rotated 45 degrees
        r = w * math.sqrt(2)
        points = [(0.0, -r), (r, 0.0), (0.0, r), (-r, 0.0)]
        return ShapeDescriptor(kind=shape, radius=r, points=points)
    return ShapeDescriptor(kind=shape, radius=w)


def node_geometry(category: EntityCategory, size_weight: float) -> ShapeDescriptor:
    return outline(shape_for(category), size_weight)


def tree_link_path(source: tuple[float, float], target: tuple[float, float]) -> str:
    """Cubic curve from parent to child with control points at the depth midpoint."""
    sx, sy = source
    tx, ty = target
    mx = (sx + tx) / 2
    return f"M{sx:g},{sy:g}C{mx:g},{sy:g} {mx:g},{ty:g} {tx:g},{ty:g}"


class Viewport(BaseModel):
    """Affine zoom/pan transform applied to the rendering surface.

    Screen coordinates are ``graph * scale + translate``. The transform never
    changes node positions.
    """

    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return x * self.scale + self.translate_x, y * self.scale + self.translate_y

    def invert(self, x: float, y: float) -> tuple[float, float]:
        return (x - self.translate_x) / self.scale, (y - self.translate_y) / self.scale

    def zoom_by(self, factor: float, anchor: tuple[float, float] = (0.0, 0.0)) -> None:
        """Scale around a screen-space anchor, clamped to the allowed extent."""
        if factor <= 0:
            raise ValueError(f"Zoom factor must be positive, got {factor}")
        graph_x, graph_y = self.invert(*anchor)
        self.scale = min(max(self.scale * factor, MIN_SCALE), MAX_SCALE)
        self.translate_x = anchor[0] - graph_x * self.scale
        self.translate_y = anchor[1] - graph_y * self.scale

    def pan(self, dx: float, dy: float) -> None:
        self.translate_x += dx
        self.translate_y += dy

    def reset(self) -> None:
        self.scale = 1.0
        self.translate_x = 0.0
        self.translate_y = 0.0
