"""Incremental force-directed relaxation with tick/end events.

Follows the d3-force cooling schedule so the layout behaves like the browser
renderer it feeds: alpha decays geometrically towards `alpha_target` and the
simulation stops (firing "end") once alpha drops below `alpha_min`.

Forces, applied to velocities in this order each tick:
1. link      - springs pulling linked nodes towards `link_distance`
2. charge    - pairwise repulsion
3. center    - whole-graph translation towards a point (single component only)
4. collide   - keeps node circles from overlapping

Positions are read from and written back to the shared Node objects on every
tick, so callers always see live coordinates.
"""

from __future__ import annotations

import logging
import math
import random
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np

from kglens.layout.config import SimulationConfig
from kglens.models import Edge, Node

logger = logging.getLogger(__name__)


class SimulationEvent(str, Enum):
    """Events fired by the simulation."""

    TICK = "tick"  # After every iteration; re-sync rendered positions
    END = "end"  # Alpha fell below alpha_min; no more ticks will follow


@dataclass
class SimulationStatus:
    """Payload passed to event listeners."""

    type: SimulationEvent
    alpha: float
    tick: int


Listener = Callable[[SimulationStatus], None]


class ForceSimulation:
    """
    Force simulation over a mutable node set.

    Drive it with `step()` once per animation frame, or `run()` to iterate
    until rest. Pinned nodes (fx/fy set) are held in place.
    """

    def __init__(
        self,
        nodes: list[Node],
        edges: list[Edge],
        config: SimulationConfig | None = None,
        radius: Callable[[Node], float] | None = None,
        center: tuple[float, float] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.nodes = nodes
        self.edges = edges
        self.config = config or SimulationConfig()
        self.radius = radius or (lambda node: node.radius())
        self.center = center  # None disables the centering force
        self.rng = rng or random.Random(self.config.seed)

        self.alpha = 1.0
        self.alpha_target = 0.0
        self.running = True
        self.tick_count = 0

        self._listeners: dict[SimulationEvent, list[Listener]] = defaultdict(list)
        self._init_links()

    def _init_links(self) -> None:
        """Precompute d3-style link strength and bias from node degrees."""
        index = {node.id: i for i, node in enumerate(self.nodes)}
        degree: dict[int, int] = defaultdict(int)
        links: list[tuple[int, int]] = []
        for edge in self.edges:
            i, j = index.get(edge.source.id), index.get(edge.target.id)
            if i is None or j is None or i == j:
                continue
            links.append((i, j))
            degree[i] += 1
            degree[j] += 1

        self._links = links
        self._link_strength = [1 / min(degree[i], degree[j]) for i, j in links]
        self._link_bias = [degree[i] / (degree[i] + degree[j]) for i, j in links]

    def set_edges(self, edges: list[Edge]) -> None:
        """Swap the link set (same nodes), recomputing strengths."""
        self.edges = edges
        self._init_links()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: SimulationEvent | str, listener: Listener) -> ForceSimulation:
        """Subscribe a listener; returns self for chaining."""
        self._listeners[SimulationEvent(event)].append(listener)
        return self

    def _emit(self, event: SimulationEvent) -> None:
        status = SimulationStatus(type=event, alpha=self.alpha, tick=self.tick_count)
        for listener in list(self._listeners[event]):
            listener(status)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def restart(self) -> ForceSimulation:
        """Resume ticking from the current alpha."""
        self.running = True
        return self

    def stop(self) -> ForceSimulation:
        """Halt without firing "end"."""
        self.running = False
        return self

    def reheat(self, alpha_target: float) -> ForceSimulation:
        """Set the energy level alpha decays towards, and restart."""
        self.alpha_target = alpha_target
        return self.restart()

    def step(self) -> bool:
        """
        Advance one animation frame.

        Returns True while the simulation is still running.
        """
        if not self.running:
            return False

        self.tick()
        self._emit(SimulationEvent.TICK)

        if self.alpha < self.config.alpha_min:
            self.running = False
            logger.debug(f"Simulation came to rest after {self.tick_count} ticks")
            self._emit(SimulationEvent.END)

        return self.running

    def run(self, max_ticks: int | None = None) -> int:
        """Step until rest or `max_ticks`; returns the number of ticks taken."""
        limit = max_ticks if max_ticks is not None else self.config.max_ticks
        ticks = 0
        while self.running and ticks < limit:
            self.step()
            ticks += 1
        if self.running:
            logger.warning(f"Simulation still running after {ticks} ticks (alpha={self.alpha:.4f})")
        return ticks

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Apply one iteration of every force and integrate positions."""
        cfg = self.config
        self.alpha += (self.alpha_target - self.alpha) * cfg.alpha_decay
        self.tick_count += 1

        if not self.nodes:
            return

        x = np.array([n.x for n in self.nodes], dtype=float)
        y = np.array([n.y for n in self.nodes], dtype=float)
        vx = np.array([n.vx for n in self.nodes], dtype=float)
        vy = np.array([n.vy for n in self.nodes], dtype=float)

        self._apply_links(x, y, vx, vy)
        self._apply_charge(x, y, vx, vy)
        if self.center is not None:
            self._apply_center(x, y)
        self._apply_collide(x, y, vx, vy)

        vx *= 1 - cfg.velocity_decay
        vy *= 1 - cfg.velocity_decay
        x += vx
        y += vy

        for i, node in enumerate(self.nodes):
            if node.fx is not None:
                node.x, node.vx = node.fx, 0.0
            else:
                node.x, node.vx = float(x[i]), float(vx[i])
            if node.fy is not None:
                node.y, node.vy = node.fy, 0.0
            else:
                node.y, node.vy = float(y[i]), float(vy[i])

    def _jiggle(self) -> float:
        return (self.rng.random() - 0.5) * 1e-6

    def _apply_links(self, x: np.ndarray, y: np.ndarray, vx: np.ndarray, vy: np.ndarray) -> None:
        distance = self.config.link_distance
        for k, (i, j) in enumerate(self._links):
            dx = x[j] + vx[j] - x[i] - vx[i] or self._jiggle()
            dy = y[j] + vy[j] - y[i] - vy[i] or self._jiggle()
            length = math.hypot(dx, dy)
            length = (length - distance) / length * self.alpha * self._link_strength[k]
            dx *= length
            dy *= length
            bias = self._link_bias[k]
            vx[j] -= dx * bias
            vy[j] -= dy * bias
            vx[i] += dx * (1 - bias)
            vy[i] += dy * (1 - bias)

    def _apply_charge(self, x: np.ndarray, y: np.ndarray, vx: np.ndarray, vy: np.ndarray) -> None:
        n = len(x)
        if n < 2:
            return
        # dx[i, j] points from node i to node j
        dx = x[None, :] - x[:, None]
        dy = y[None, :] - y[:, None]
        dist2 = dx * dx + dy * dy
        np.fill_diagonal(dist2, np.inf)

        coincident = dist2 == 0
        if coincident.any():
            dx[coincident] = [self._jiggle() for _ in range(int(coincident.sum()))]
            dy[coincident] = [self._jiggle() for _ in range(int(coincident.sum()))]
            dist2 = np.where(coincident, dx * dx + dy * dy, dist2)

        # Soften very close pairs (d3 distanceMin = 1)
        dist2 = np.where(dist2 < 1.0, np.sqrt(dist2), dist2)
        w = self.config.charge_strength * self.alpha / dist2
        vx += (dx * w).sum(axis=1)
        vy += (dy * w).sum(axis=1)

    def _apply_center(self, x: np.ndarray, y: np.ndarray) -> None:
        cx, cy = self.center
        x -= x.mean() - cx
        y -= y.mean() - cy

    def _apply_collide(self, x: np.ndarray, y: np.ndarray, vx: np.ndarray, vy: np.ndarray) -> None:
        n = len(x)
        if n < 2:
            return
        r = np.array([self.radius(node) for node in self.nodes], dtype=float)
        px = x + vx
        py = y + vy
        # dx[i, j] points from node j to node i
        dx = px[:, None] - px[None, :]
        dy = py[:, None] - py[None, :]
        dist2 = dx * dx + dy * dy
        rsum = r[:, None] + r[None, :]

        overlapping = dist2 < rsum * rsum
        np.fill_diagonal(overlapping, False)
        if not overlapping.any():
            return

        coincident = overlapping & (dist2 == 0)
        if coincident.any():
            for i, j in zip(*np.nonzero(np.triu(coincident))):
                jx, jy = self._jiggle(), self._jiggle()
                dx[i, j], dy[i, j] = jx, jy
                dx[j, i], dy[j, i] = -jx, -jy
            dist2 = dx * dx + dy * dy

        dist = np.sqrt(np.where(overlapping, dist2, 1.0))
        push = np.where(overlapping, (rsum - dist) / dist * self.config.collide_strength, 0.0)
        r2 = r * r
        # Smaller circles move more
        share = r2[None, :] / (r2[:, None] + r2[None, :])
        vx += (dx * push * share).sum(axis=1)
        vy += (dy * push * share).sum(axis=1)
