"""Graph, camera and view-state models shared by every layout stage."""

import math
from dataclasses import dataclass, field
from enum import Enum


class LifecyclePhase(str, Enum):
    """Stage of the layout pipeline."""

    IDLE = "idle"  # No data loaded
    SIMULATING = "simulating"  # Force relaxation running
    PACKING = "packing"  # Separating disjoint components
    FITTING = "fitting"  # Computing the best-fit camera
    SETTLED = "settled"  # Terminal until the next data reset


@dataclass(eq=False)
class Node:
    """
    An entity in the graph.

    Instances are never copied: every stage holds a reference to the same
    object so in-place position updates are visible everywhere. Equality is
    identity.
    """

    id: str
    label: str
    weight: float = 0.0  # Rank in [0, 1]

    # Current position and velocity
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0

    # Pinned position, exempt from relaxation when set
    fx: float | None = None
    fy: float | None = None

    @property
    def is_pinned(self) -> bool:
        return self.fx is not None and self.fy is not None

    def radius(self, density: float = 1.0, base: float = 5.0, scale: float = 15.0) -> float:
        """Circle radius, growing with weight."""
        return (base + self.weight * scale) * density

    def pin(self, x: float | None = None, y: float | None = None) -> None:
        """Pin the node at (x, y), or where it currently is."""
        self.x = self.x if x is None else x
        self.y = self.y if y is None else y
        self.fx = self.x
        self.fy = self.y
        self.vx = 0.0
        self.vy = 0.0

    def unpin(self) -> None:
        """Release the node back to the simulation."""
        self.fx = None
        self.fy = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "label": self.label,
            "weight": self.weight,
            "x": self.x,
            "y": self.y,
            "pinned": self.is_pinned,
        }


@dataclass(eq=False)
class Edge:
    """A relation between two nodes, supported by evidence chunks."""

    source: Node
    target: Node
    evidence: list[str] = field(default_factory=list)
    summary: str | None = None

    @property
    def key(self) -> str:
        return f"{self.source.id}->{self.target.id}"

    @property
    def weight(self) -> int:
        """Number of supporting evidence items."""
        return len(self.evidence)

    @property
    def stroke_width(self) -> float:
        return math.sqrt(max(self.weight, 1))

    def describe(self) -> str:
        """Popup text for the edge."""
        return self.summary or f"Relation between {self.source.id} and {self.target.id}"

    def touches(self, node_id: str) -> bool:
        return self.source.id == node_id or self.target.id == node_id

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "source": self.source.id,
            "target": self.target.id,
            "weight": self.weight,
            "summary": self.describe(),
        }


Component = list[Node]


@dataclass(frozen=True)
class Viewport:
    """Size of the drawing area in screen pixels."""

    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Viewport must have positive size, got {self.width}x{self.height}")

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2

    @property
    def min_side(self) -> float:
        return min(self.width, self.height)


@dataclass(frozen=True)
class Transform:
    """Affine map from model space to viewport space: p' = p * scale + translate."""

    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0

    @classmethod
    def identity(cls) -> "Transform":
        return cls()

    def apply(self, x: float, y: float) -> tuple[float, float]:
        """Model coordinates to screen coordinates."""
        return x * self.scale + self.translate_x, y * self.scale + self.translate_y

    def invert(self, x: float, y: float) -> tuple[float, float]:
        """Screen coordinates to model coordinates."""
        return (x - self.translate_x) / self.scale, (y - self.translate_y) / self.scale

    def interpolate(self, other: "Transform", t: float) -> "Transform":
        """Linear blend towards `other`, t in [0, 1]."""
        return Transform(
            scale=self.scale + (other.scale - self.scale) * t,
            translate_x=self.translate_x + (other.translate_x - self.translate_x) * t,
            translate_y=self.translate_y + (other.translate_y - self.translate_y) * t,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "scale": self.scale,
            "translate_x": self.translate_x,
            "translate_y": self.translate_y,
        }


@dataclass(frozen=True)
class SelectionState:
    """Active node plus its one-hop neighbourhood."""

    active_node_id: str | None = None
    connected_node_ids: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return self.active_node_id is None


@dataclass(frozen=True)
class EdgePopup:
    """Transient annotation anchored at the pointer position."""

    x: float
    y: float
    content: str
    edge_key: str

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "content": self.content, "edge": self.edge_key}
