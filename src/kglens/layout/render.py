"""Frame emission for a rendering surface.

The layout engine never draws. After every position change it builds a
`Frame` (circles, lines, labels, camera, popup) and hands it to a
`RenderSurface`. Styling follows selection priority: active > connected >
default, for nodes and edges alike.
"""

from dataclasses import dataclass, field
from typing import Callable, Protocol

from kglens.models import (
    Edge,
    EdgePopup,
    LifecyclePhase,
    Node,
    SelectionState,
    Transform,
)

# Palette
ACTIVE_FILL = "#3b82f6"
ACTIVE_STROKE = "#1d4ed8"
CONNECTED_FILL = "#60a5fa"
HEAVY_FILL = "#64748b"
DEFAULT_FILL = "#94a3b8"
NODE_STROKE = "#ffffff"
EDGE_STROKE = "#94a3b8"
DIMMED_EDGE_STROKE = "#cbd5e1"

LABEL_DX = 12.0
LABEL_DY = 4.0


@dataclass
class NodeSprite:
    """Drawing instructions for one node."""

    id: str
    label: str
    x: float
    y: float
    radius: float
    fill: str
    stroke: str
    stroke_width: float
    label_x: float
    label_y: float
    state: str  # active, connected, default

    def to_dict(self) -> dict:
        return dict(self.__dict__)


@dataclass
class EdgeSprite:
    """Drawing instructions for one edge; hit_width is the invisible pick stroke."""

    key: str
    source: str
    target: str
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    stroke_width: float
    opacity: float
    hit_width: float
    state: str

    def to_dict(self) -> dict:
        return dict(self.__dict__)


@dataclass
class Frame:
    """Everything a surface needs to draw one frame."""

    phase: LifecyclePhase
    transform: Transform
    nodes: list[NodeSprite] = field(default_factory=list)
    edges: list[EdgeSprite] = field(default_factory=list)
    selection: SelectionState = field(default_factory=SelectionState)
    popup: EdgePopup | None = None

    def node(self, node_id: str) -> NodeSprite | None:
        return next((sprite for sprite in self.nodes if sprite.id == node_id), None)

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "transform": self.transform.to_dict(),
            "nodes": [sprite.to_dict() for sprite in self.nodes],
            "edges": [sprite.to_dict() for sprite in self.edges],
            "active_node_id": self.selection.active_node_id,
            "connected_node_ids": sorted(self.selection.connected_node_ids),
            "popup": self.popup.to_dict() if self.popup else None,
        }


class RenderSurface(Protocol):
    """Anything that can display a frame."""

    def render(self, frame: Frame) -> None: ...


class FrameBuffer:
    """Surface that keeps the latest frame in memory."""

    def __init__(self) -> None:
        self.frame: Frame | None = None
        self.syncs = 0

    def render(self, frame: Frame) -> None:
        self.frame = frame
        self.syncs += 1


def node_state(node: Node, selection: SelectionState) -> str:
    if node.id == selection.active_node_id:
        return "active"
    if node.id in selection.connected_node_ids:
        return "connected"
    return "default"


def edge_state(edge: Edge, selection: SelectionState) -> str:
    if selection.is_empty:
        return "default"
    if edge.touches(selection.active_node_id):
        return "active"
    connected = selection.connected_node_ids
    if edge.source.id in connected and edge.target.id in connected:
        return "connected"
    return "dimmed"


class FrameBuilder:
    """Turns the live model into a Frame."""

    def __init__(self, edge_hit_width: float = 10.0) -> None:
        self.edge_hit_width = edge_hit_width

    def node_sprite(
        self, node: Node, selection: SelectionState, radius: Callable[[Node], float]
    ) -> NodeSprite:
        state = node_state(node, selection)
        if state == "active":
            fill, stroke, stroke_width = ACTIVE_FILL, ACTIVE_STROKE, 3.0
        elif state == "connected":
            fill, stroke, stroke_width = CONNECTED_FILL, NODE_STROKE, 2.0
        else:
            fill = HEAVY_FILL if node.weight >= 0.5 else DEFAULT_FILL
            stroke, stroke_width = NODE_STROKE, 2.0
        return NodeSprite(
            id=node.id,
            label=node.label,
            x=node.x,
            y=node.y,
            radius=radius(node),
            fill=fill,
            stroke=stroke,
            stroke_width=stroke_width,
            label_x=node.x + LABEL_DX,
            label_y=node.y + LABEL_DY,
            state=state,
        )

    def edge_sprite(self, edge: Edge, selection: SelectionState) -> EdgeSprite:
        state = edge_state(edge, selection)
        base = edge.stroke_width
        if state == "active":
            stroke, width, opacity = ACTIVE_FILL, base * 1.5 + 1, 1.0
        elif state == "connected":
            stroke, width, opacity = CONNECTED_FILL, base + 0.5, 1.0
        elif state == "dimmed":
            stroke, width, opacity = DIMMED_EDGE_STROKE, base * 0.5, 0.15
        else:
            stroke, width, opacity = EDGE_STROKE, base, 0.6
        return EdgeSprite(
            key=edge.key,
            source=edge.source.id,
            target=edge.target.id,
            x1=edge.source.x,
            y1=edge.source.y,
            x2=edge.target.x,
            y2=edge.target.y,
            stroke=stroke,
            stroke_width=width,
            opacity=opacity,
            hit_width=self.edge_hit_width,
            state=state,
        )

    def build(
        self,
        nodes: list[Node],
        edges: list[Edge],
        *,
        phase: LifecyclePhase,
        transform: Transform,
        selection: SelectionState,
        popup: EdgePopup | None,
        radius: Callable[[Node], float],
    ) -> Frame:
        return Frame(
            phase=phase,
            transform=transform,
            nodes=[self.node_sprite(node, selection, radius) for node in nodes],
            edges=[self.edge_sprite(edge, selection) for edge in edges],
            selection=selection,
            popup=popup,
        )
