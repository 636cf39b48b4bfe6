"""Force-directed layout as an incrementally stepped physical simulation."""

import logging
import math

import numpy as np
from numpy.typing import NDArray

from relgraph.domain.graph import Subgraph

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))
COLLIDE_PADDING = 40.0
DISTANCE_MIN2 = 1.0


def collide_radius(size_weight: float) -> float:
    return size_weight * 2 + COLLIDE_PADDING


class PositionTable:
    """Authoritative node positions keyed by node ID.

    The simulation writes every unpinned row on each step. A pinned row belongs
    to whoever pinned it (a drag gesture) until it is released.
    """

    def __init__(self, node_ids: list[str], x: NDArray[np.float64], y: NDArray[np.float64]):
        self.ids = list(node_ids)
        self.index = {node_id: i for i, node_id in enumerate(self.ids)}
        self.x = np.asarray(x, dtype=np.float64)
        self.y = np.asarray(y, dtype=np.float64)
        self.vx = np.zeros(len(self.ids))
        self.vy = np.zeros(len(self.ids))
        self.fx = np.full(len(self.ids), np.nan)
        self.fy = np.full(len(self.ids), np.nan)

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.index

    @property
    def pinned(self) -> NDArray[np.bool_]:
        return ~np.isnan(self.fx)

    def is_pinned(self, node_id: str) -> bool:
        return bool(self.pinned[self.index[node_id]])

    def pin(self, node_id: str, x: float, y: float) -> None:
        i = self.index[node_id]
        self.fx[i] = self.x[i] = x
        self.fy[i] = self.y[i] = y
        self.vx[i] = self.vy[i] = 0.0

    def release(self, node_id: str) -> None:
        i = self.index[node_id]
        self.fx[i] = self.fy[i] = np.nan

    def position(self, node_id: str) -> tuple[float, float]:
        i = self.index[node_id]
        return float(self.x[i]), float(self.y[i])

    def as_dict(self) -> dict[str, tuple[float, float]]:
        return {node_id: self.position(node_id) for node_id in self.ids}


class ForceSimulation:
    """Repulsion, link springs, centering and collision avoidance over a subgraph.

    Each call to ``step`` advances the simulation by one tick and writes the new
    positions back onto the subgraph's nodes. The simulation cools as ``alpha``
    decays towards ``alpha_target`` and reports itself finished once ``alpha``
    drops below ``alpha_min``. Dragging raises ``alpha_target`` so the
    simulation keeps running for as long as the gesture lasts.
    """

    def __init__(
        self,
        subgraph: Subgraph,
        width: float,
        height: float,
        *,
        charge_strength: float = -1500,
        link_distance: float = 200,
        center_strength: float = 1.0,
        velocity_decay: float = 0.4,
        alpha_min: float = 0.001,
        seed: int = 42,
    ):
        self.subgraph = subgraph
        self.center = (width / 2, height / 2)
        self.charge_strength = charge_strength
        self.link_distance = link_distance
        self.center_strength = center_strength
        self.velocity_decay = velocity_decay
        self.alpha = 1.0
        self.alpha_min = alpha_min
        self.alpha_decay = 1 - alpha_min ** (1 / 300)
        self.alpha_target = 0.0
        self.stopped = False
        self.steps = 0
        self._rng = np.random.default_rng(seed)

        node_ids = subgraph.node_ids()
        x0, y0 = self._initial_positions(len(node_ids))
        self.table = PositionTable(node_ids, x0, y0)
        self.radii = np.array([collide_radius(node.size_weight) for node in subgraph.nodes])
        self._init_links()

        for node in subgraph.nodes:
            if node.pinned:
                self.table.pin(node.id, node.fx, node.fy)
        self._write_back()

    def _initial_positions(self, n: int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        i = np.arange(n, dtype=np.float64)
        radius = INITIAL_RADIUS * np.sqrt(0.5 + i)
        angle = i * INITIAL_ANGLE
        return self.center[0] + radius * np.cos(angle), self.center[1] + radius * np.sin(angle)

    def _init_links(self) -> None:
        index = self.table.index
        pairs = [
            (index[edge.source], index[edge.target])
            for edge in self.subgraph.edges
            if not edge.is_self_loop and edge.source in index and edge.target in index
        ]
        self.link_source = np.array([s for s, _ in pairs], dtype=np.intp)
        self.link_target = np.array([t for _, t in pairs], dtype=np.intp)

        count = np.zeros(len(self.table))
        np.add.at(count, self.link_source, 1)
        np.add.at(count, self.link_target, 1)
        source_count = count[self.link_source]
        target_count = count[self.link_target]
        self.link_strength = 1 / np.minimum(source_count, target_count)
        self.link_bias = source_count / (source_count + target_count)

    @property
    def running(self) -> bool:
        if self.stopped or len(self.table) == 0:
            return False
        return self.alpha >= self.alpha_min or self.alpha_target >= self.alpha_min

    def step(self) -> bool:
        """Advance one tick. Returns whether the simulation is still running."""
        if self.stopped or len(self.table) == 0:
            return False

        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self._apply_links()
        self._apply_charge()
        self._apply_center()
        self._apply_collide()
        self._integrate()
        self.steps += 1
        self._write_back()
        return self.running

    def run(self, max_steps: int = 300) -> int:
        """Step until the simulation cools or ``max_steps`` is reached."""
        taken = 0
        while taken < max_steps and self.running:
            self.step()
            taken += 1
        logger.debug(f"Simulation ran {self.steps} steps, alpha={self.alpha:.4f}")
        return taken

    def reheat(self, alpha_target: float) -> None:
        self.alpha_target = alpha_target
        if alpha_target > 0:
            self.alpha = max(self.alpha, alpha_target)

    def pin(self, node_id: str, x: float, y: float) -> None:
        if self.stopped:
            return
        self.table.pin(node_id, x, y)
        self._write_back()

    def release(self, node_id: str) -> None:
        if self.stopped:
            return
        self.table.release(node_id)
        self._write_back()

    def stop(self) -> None:
        """Tear the simulation down; it never writes positions again."""
        self.stopped = True

    def positions(self) -> dict[str, tuple[float, float]]:
        return self.table.as_dict()

    def _jiggle(self, size: int) -> NDArray[np.float64]:
        return (self._rng.random(size) - 0.5) * 1e-6

    def _apply_links(self) -> None:
        if len(self.link_source) == 0:
            return
        t = self.table
        s, g = self.link_source, self.link_target
        dx = t.x[g] + t.vx[g] - t.x[s] - t.vx[s]
        dy = t.y[g] + t.vy[g] - t.y[s] - t.vy[s]
        dx = np.where(dx == 0, self._jiggle(len(dx)), dx)
        dy = np.where(dy == 0, self._jiggle(len(dy)), dy)
        dist = np.sqrt(dx * dx + dy * dy)
        k = (dist - self.link_distance) / dist * self.alpha * self.link_strength
        dx *= k
        dy *= k
        np.subtract.at(t.vx, g, dx * self.link_bias)
        np.subtract.at(t.vy, g, dy * self.link_bias)
        np.add.at(t.vx, s, dx * (1 - self.link_bias))
        np.add.at(t.vy, s, dy * (1 - self.link_bias))

    def _apply_charge(self) -> None:
        n = len(self.table)
        if n < 2:
            return
        t = self.table
        dx = t.x[np.newaxis, :] - t.x[:, np.newaxis]
        dy = t.y[np.newaxis, :] - t.y[:, np.newaxis]
        coincident = (dx == 0) & (dy == 0)
        np.fill_diagonal(coincident, False)
        if coincident.any():
            dx[coincident] = self._jiggle(int(coincident.sum()))
            dy[coincident] = self._jiggle(int(coincident.sum()))
        dist2 = dx * dx + dy * dy
        dist2 = np.where(dist2 < DISTANCE_MIN2, np.sqrt(DISTANCE_MIN2 * dist2), dist2)
        np.fill_diagonal(dist2, np.inf)
        w = self.charge_strength * self.alpha / dist2
        t.vx += (dx * w).sum(axis=1)
        t.vy += (dy * w).sum(axis=1)

    def _apply_center(self) -> None:
        t = self.table
        shift_x = (t.x.mean() - self.center[0]) * self.center_strength
        shift_y = (t.y.mean() - self.center[1]) * self.center_strength
        t.x -= shift_x
        t.y -= shift_y

    def _apply_collide(self) -> None:
        n = len(self.table)
        if n < 2:
            return
        t = self.table
        px = t.x + t.vx
        py = t.y + t.vy
        dx = px[:, np.newaxis] - px[np.newaxis, :]
        dy = py[:, np.newaxis] - py[np.newaxis, :]
        reach = self.radii[:, np.newaxis] + self.radii[np.newaxis, :]
        upper = np.triu(np.ones((n, n), dtype=bool), k=1)

        coincident = upper & (dx == 0) & (dy == 0)
        if coincident.any():
            dx[coincident] = self._jiggle(int(coincident.sum()))
            dy[coincident] = self._jiggle(int(coincident.sum()))
        dist2 = dx * dx + dy * dy
        overlapping = upper & (dist2 < reach * reach)
        if not overlapping.any():
            return

        dist = np.sqrt(np.where(overlapping, dist2, 1.0))
        k = np.where(overlapping, (reach - dist) / dist, 0.0)
        sx = dx * k
        sy = dy * k
        ri2 = (self.radii**2)[:, np.newaxis]
        rj2 = (self.radii**2)[np.newaxis, :]
        share = rj2 / (ri2 + rj2)
        t.vx += (sx * share).sum(axis=1) - (sx * (1 - share)).sum(axis=0)
        t.vy += (sy * share).sum(axis=1) - (sy * (1 - share)).sum(axis=0)

    def _integrate(self) -> None:
        t = self.table
        pinned = t.pinned
        t.vx *= 1 - self.velocity_decay
        t.vy *= 1 - self.velocity_decay
        t.x += np.where(pinned, 0.0, t.vx)
        t.y += np.where(pinned, 0.0, t.vy)
        t.x[pinned] = t.fx[pinned]
        t.y[pinned] = t.fy[pinned]
        t.vx[pinned] = 0.0
        t.vy[pinned] = 0.0

    def _write_back(self) -> None:
        t = self.table
        for node in self.subgraph.nodes:
            i = t.index[node.id]
            node.x = float(t.x[i])
            node.y = float(t.y[i])
            pinned = bool(t.pinned[i])
            node.fx = float(t.fx[i]) if pinned else None
            node.fy = float(t.fy[i]) if pinned else None


def layout_force(
    subgraph: Subgraph, width: float, height: float, max_steps: int = 300, **kwargs
) -> dict[str, tuple[float, float]]:
    """Run a force simulation to rest and return the settled positions."""
    simulation = ForceSimulation(subgraph, width, height, **kwargs)
    simulation.run(max_steps)
    return simulation.positions()
