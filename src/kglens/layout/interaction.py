"""Pointer interaction on a laid-out graph.

Selection and camera are independent: selecting or clearing never moves the
camera, and pan/zoom never changes the selection. Pointer coordinates are
screen coordinates; they are mapped into model space through the live camera.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Callable

from kglens.layout.camera import Camera
from kglens.layout.config import InteractionConfig
from kglens.models import Edge, EdgePopup, Node, SelectionState, Transform, Viewport

if TYPE_CHECKING:
    from kglens.layout.model import FilteredGraph
    from kglens.layout.simulation import ForceSimulation

logger = logging.getLogger(__name__)


def _segment_distance(px: float, py: float, ax: float, ay: float, bx: float, by: float) -> float:
    """Distance from point P to segment AB."""
    dx, dy = bx - ax, by - ay
    length2 = dx * dx + dy * dy
    if length2 == 0:
        return math.hypot(px - ax, py - ay)
    t = max(0.0, min(1.0, ((px - ax) * dx + (py - ay) * dy) / length2))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


class InteractionController:
    """Selection, edge popups, drag-to-pin, focus and pan/zoom."""

    def __init__(
        self,
        camera: Camera,
        viewport: Viewport,
        config: InteractionConfig | None = None,
        on_node_click: Callable[[str], None] | None = None,
        on_change: Callable[[], None] | None = None,
        on_drag_end: Callable[[], None] | None = None,
        drag_alpha_target: float = 0.3,
    ) -> None:
        self.camera = camera
        self.viewport = viewport
        self.config = config or InteractionConfig()
        self.on_node_click = on_node_click
        self.on_change = on_change or (lambda: None)
        self.on_drag_end = on_drag_end
        self.drag_alpha_target = drag_alpha_target

        self.graph: FilteredGraph | None = None
        self.simulation: ForceSimulation | None = None
        self.radius: Callable[[Node], float] = lambda node: node.radius()

        self.selection = SelectionState()
        self.popup: EdgePopup | None = None
        self.dragged: Node | None = None

    @property
    def dragging(self) -> bool:
        return self.dragged is not None

    def bind(
        self,
        graph: FilteredGraph | None,
        simulation: ForceSimulation | None,
        radius: Callable[[Node], float] | None = None,
    ) -> None:
        """Attach to a (new) graph; keeps the selection if its node survived."""
        self.graph = graph
        self.simulation = simulation
        if radius is not None:
            self.radius = radius
        self.popup = None
        self.dragged = None

        active = self.selection.active_node_id
        if active is not None and graph is not None and active in graph:
            self.selection = self._selection_for(active)
        else:
            self.selection = SelectionState()

    def _require_graph(self) -> FilteredGraph:
        if self.graph is None:
            raise RuntimeError("No graph loaded")
        return self.graph

    def _selection_for(self, node_id: str) -> SelectionState:
        graph = self._require_graph()
        return SelectionState(
            active_node_id=node_id,
            connected_node_ids=frozenset(graph.neighbors(node_id)),
        )

    # ------------------------------------------------------------------
    # Selection and popups
    # ------------------------------------------------------------------

    def select(self, node_id: str, notify: bool = True) -> SelectionState:
        """Make a node active and highlight its one-hop neighbours."""
        self._require_graph().get(node_id)
        self.selection = self._selection_for(node_id)
        self.popup = None
        self.on_change()
        if notify and self.on_node_click is not None:
            self.on_node_click(node_id)
        return self.selection

    def click_background(self) -> None:
        """Clear selection and popup; the camera is left untouched."""
        self.selection = SelectionState()
        self.popup = None
        self.on_change()

    def click_edge(self, edge: Edge, x: float, y: float) -> EdgePopup:
        """Open the edge's annotation popup at the pointer and clear the selection."""
        self.popup = EdgePopup(x=x, y=y, content=edge.describe(), edge_key=edge.key)
        self.selection = SelectionState()
        self.on_change()
        return self.popup

    def dismiss_popup(self) -> None:
        if self.popup is not None:
            self.popup = None
            self.on_change()

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------

    def node_at(self, x: float, y: float) -> Node | None:
        """Topmost node whose circle contains the screen point."""
        if self.graph is None:
            return None
        mx, my = self.camera.transform.invert(x, y)
        for node in reversed(self.graph.nodes):
            if math.hypot(mx - node.x, my - node.y) <= self.radius(node):
                return node
        return None

    def edge_at(self, x: float, y: float) -> Edge | None:
        """Nearest edge whose wide hit stroke covers the screen point."""
        if self.graph is None:
            return None
        mx, my = self.camera.transform.invert(x, y)
        half_width = self.config.edge_hit_width / 2
        best: Edge | None = None
        best_distance = half_width
        for edge in self.graph.edges:
            s, t = edge.source, edge.target
            distance = _segment_distance(mx, my, s.x, s.y, t.x, t.y)
            if distance <= best_distance:
                best, best_distance = edge, distance
        return best

    def pointer_click(self, x: float, y: float) -> str:
        """Dispatch a click: node first, then edge, else background."""
        node = self.node_at(x, y)
        if node is not None:
            self.select(node.id)
            return "node"
        edge = self.edge_at(x, y)
        if edge is not None:
            self.click_edge(edge, x, y)
            return "edge"
        self.click_background()
        return "background"

    # ------------------------------------------------------------------
    # Dragging
    # ------------------------------------------------------------------

    def drag_start(self, node_id: str) -> Node:
        """Grab a node: pin it where it is and reheat the simulation."""
        node = self._require_graph().get(node_id)
        self.dragged = node
        node.pin()
        if self.simulation is not None:
            self.simulation.reheat(self.drag_alpha_target)
        logger.debug(f"Drag started on {node_id}")
        self.on_change()
        return node

    def drag_move(self, x: float, y: float) -> None:
        """Move the grabbed node's pin to the pointer."""
        if self.dragged is None:
            return
        mx, my = self.camera.transform.invert(x, y)
        self.dragged.pin(mx, my)
        self.on_change()

    def drag_end(self, x: float | None = None, y: float | None = None) -> None:
        """Release the node; it stays pinned at the release point."""
        if self.dragged is None:
            return
        if x is not None and y is not None:
            self.drag_move(x, y)
        node = self.dragged
        self.dragged = None
        if self.simulation is not None:
            self.simulation.alpha_target = 0.0
        logger.debug(f"Drag ended on {node.id} at ({node.x:.1f}, {node.y:.1f})")
        self.on_change()
        if self.on_drag_end is not None:
            self.on_drag_end()

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def is_visible(self, node: Node, transform: Transform | None = None) -> bool:
        """Whether the node sits inside the viewport inset by its radius plus the focus margin."""
        transform = transform or self.camera.transform
        sx, sy = transform.apply(node.x, node.y)
        inset = self.radius(node) * transform.scale + self.config.focus_margin
        return (
            inset <= sx <= self.viewport.width - inset
            and inset <= sy <= self.viewport.height - inset
        )

    def focus_scale(self, current: float) -> float:
        """Scale to use when the focused node is off screen."""
        cfg = self.config
        if cfg.reasonable_min_scale <= current <= cfg.reasonable_max_scale:
            return min(max(current, cfg.focus_min_scale), cfg.focus_max_scale)
        default = self.viewport.min_side / 600
        return min(max(default, cfg.focus_min_scale), cfg.focus_default_max_scale)

    def focus_on_node(self, node_id: str) -> Transform:
        """
        Animate the camera to centre a node.

        A node already on screen is recentred at the unchanged scale; an
        off-screen node also gets a comfortable scale.
        """
        node = self._require_graph().get(node_id)
        current = self.camera.transform
        if self.is_visible(node, current):
            scale = current.scale
        else:
            scale = self.focus_scale(current.scale)

        cx, cy = self.viewport.center
        target = Transform(scale=scale, translate_x=cx - node.x * scale, translate_y=cy - node.y * scale)
        self.camera.animate_to(target)
        logger.debug(f"Focusing {node_id} at scale {scale:.2f}")
        return target

    def zoom(self, factor: float, x: float, y: float) -> Transform:
        """Wheel/pinch zoom around a screen point; dismisses the popup."""
        transform = self.camera.zoom(factor, x, y)
        self.dismiss_popup()
        return transform

    def pan(self, dx: float, dy: float) -> Transform:
        """Drag-pan the canvas; dismisses the popup."""
        transform = self.camera.pan(dx, dy)
        self.dismiss_popup()
        return transform
