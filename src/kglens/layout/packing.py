"""Compact packing of disjoint graph components.

After the force simulation comes to rest without a centering force, the
connected components of a multi-component graph are scattered arbitrarily.
The packer places their centres evenly on a circle around the viewport centre:

    radius = max((max_dim + spacing) / (2 sin(pi / n)), 0.35 * min(w, h))

The first term keeps adjacent chord distances at least `spacing` wider than
the largest component; the second keeps the ring inside the viewport. When any
two padded component boxes still overlap, spacing grows by 1.3x and placement
is retried, up to a fixed number of attempts. The last attempt is accepted
either way.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Callable

from kglens.layout.config import PackingConfig
from kglens.models import Component, Edge, Node, Viewport

logger = logging.getLogger(__name__)


@dataclass
class BoundingBox:
    """Axis-aligned box in model space."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> tuple[float, float]:
        return (self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2

    def expand(self, amount: float) -> BoundingBox:
        return BoundingBox(
            self.min_x - amount, self.min_y - amount, self.max_x + amount, self.max_y + amount
        )

    def include(self, x: float, y: float) -> None:
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x)
        self.max_y = max(self.max_y, y)

    def overlaps(self, other: BoundingBox, margin: float = 0.0) -> bool:
        """True if the boxes intersect or come closer than `margin`."""
        return (
            self.min_x < other.max_x + margin
            and other.min_x < self.max_x + margin
            and self.min_y < other.max_y + margin
            and other.min_y < self.max_y + margin
        )

    @classmethod
    def around(cls, nodes: Iterable[Node], radius: Callable[[Node], float]) -> BoundingBox | None:
        """Tight box around node circles; None for no nodes."""
        box: BoundingBox | None = None
        for node in nodes:
            r = radius(node)
            if box is None:
                box = cls(node.x - r, node.y - r, node.x + r, node.y + r)
            else:
                box.include(node.x - r, node.y - r)
                box.include(node.x + r, node.y + r)
        return box

    def to_dict(self) -> dict:
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
        }


def component_bounds(
    component: Component,
    edges: Iterable[Edge],
    radius: Callable[[Node], float],
    padding: float,
) -> BoundingBox:
    """Padded bounding box of one component, including its edge endpoints."""
    box = BoundingBox.around(component, radius)
    if box is None:
        raise ValueError("Component must contain at least one node")

    members = {id(node) for node in component}
    for edge in edges:
        if id(edge.source) in members and id(edge.target) in members:
            box.include(edge.source.x, edge.source.y)
            box.include(edge.target.x, edge.target.y)

    return box.expand(padding)


def find_overlaps(boxes: list[BoundingBox], margin: float) -> list[tuple[int, int]]:
    """Index pairs of boxes closer than `margin`."""
    return [
        (i, j)
        for i in range(len(boxes))
        for j in range(i + 1, len(boxes))
        if boxes[i].overlaps(boxes[j], margin)
    ]


def translate(component: Component, dx: float, dy: float) -> None:
    """Shift every node of a component in place."""
    for node in component:
        node.x += dx
        node.y += dy
        if node.fx is not None:
            node.fx += dx
        if node.fy is not None:
            node.fy += dy


@dataclass
class PackResult:
    """Outcome of a packing pass."""

    attempts: int = 0
    spacing: float = 0.0
    ring_radius: float = 0.0
    boxes: list[BoundingBox] = field(default_factory=list)
    overlapping: list[tuple[int, int]] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return not self.overlapping

    def to_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "spacing": self.spacing,
            "ring_radius": self.ring_radius,
            "converged": self.converged,
            "overlapping_pairs": [list(pair) for pair in self.overlapping],
        }


class CompactPacker:
    """Arranges disjoint components on a ring without overlap."""

    def __init__(self, config: PackingConfig | None = None) -> None:
        self.config = config or PackingConfig()

    def pack(
        self,
        components: list[Component],
        edges: list[Edge],
        viewport: Viewport,
        radius: Callable[[Node], float],
        padding: float | None = None,
        pin: bool = True,
    ) -> PackResult:
        """
        Move components into a compact, non-overlapping arrangement.

        Every node is pinned at its final position unless `pin` is False.
        """
        cfg = self.config
        padding = cfg.padding if padding is None else padding
        margin = cfg.margin_ratio * padding
        n = len(components)
        result = PackResult(spacing=cfg.spacing)

        if n == 0:
            return result

        cx, cy = viewport.center

        def bounds() -> list[BoundingBox]:
            return [component_bounds(c, edges, radius, padding) for c in components]

        if n == 1:
            box = bounds()[0]
            bx, by = box.center
            translate(components[0], cx - bx, cy - by)
            result.attempts = 1
            result.boxes = bounds()
        else:
            spacing = cfg.spacing
            available = cfg.available_radius_ratio * viewport.min_side
            for attempt in range(1, cfg.max_attempts + 1):
                boxes = bounds()
                max_dim = max(max(b.width, b.height) for b in boxes)
                min_radius = (max_dim + spacing) / (2 * math.sin(math.pi / n))
                ring = max(min_radius, available)

                for i, (component, box) in enumerate(zip(components, boxes)):
                    angle = i / n * 2 * math.pi - math.pi / 2
                    tx = cx + ring * math.cos(angle)
                    ty = cy + ring * math.sin(angle)
                    bx, by = box.center
                    translate(component, tx - bx, ty - by)

                result.attempts = attempt
                result.spacing = spacing
                result.ring_radius = ring
                result.boxes = bounds()
                result.overlapping = find_overlaps(result.boxes, margin)
                if not result.overlapping:
                    break

                logger.debug(
                    f"Packing attempt {attempt}: {len(result.overlapping)} overlapping pairs "
                    f"at spacing {spacing:.1f}"
                )
                spacing *= cfg.spacing_growth

            if result.overlapping:
                logger.warning(
                    f"Packing {n} components left {len(result.overlapping)} overlapping pairs "
                    f"after {result.attempts} attempts; accepting best-effort layout"
                )

        if pin:
            for component in components:
                for node in component:
                    node.pin()

        logger.info(
            f"Packed {n} components in {result.attempts} attempt(s), ring radius {result.ring_radius:.1f}"
        )
        return result
