"""Layout lifecycle: simulate, pack, fit, settle.

    IDLE -> SIMULATING -> (PACKING ->) FITTING -> SETTLED
              ^                                      |
              +------------ id-set changes ----------+

A cycle restarts only when the sorted set of node ids changes (new data or a
threshold change that adds/removes nodes). The "end" handler is latched by the
phase itself: it acts only while SIMULATING, so repeated terminal signals from
the simulation (e.g. after a drag reheats it) are ignored.

Mutating positions and redrawing are separate steps. Ticks redraw through the
tick listener; everything that moves nodes after the simulation has stopped
(packing, pinning, drags) calls `sync_visuals()` explicitly.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from typing import Any, Callable

from kglens.layout.camera import Camera
from kglens.layout.components import find_components
from kglens.layout.config import LayoutConfig
from kglens.layout.interaction import InteractionController
from kglens.layout.model import FilteredGraph, GraphModel
from kglens.layout.packing import CompactPacker, PackResult
from kglens.layout.render import FrameBuffer, FrameBuilder, RenderSurface
from kglens.layout.simulation import ForceSimulation, SimulationEvent, SimulationStatus
from kglens.layout.viewport import ViewportFitter
from kglens.models import Component, LifecyclePhase, Node, Transform, Viewport

logger = logging.getLogger(__name__)


class LifecycleOrchestrator:
    """
    Owns the node arena of one graph view and sequences the layout stages.

    All mutation happens through this object on a single thread: simulation
    ticks, packing and drags never interleave.
    """

    def __init__(
        self,
        viewport: Viewport,
        config: LayoutConfig | None = None,
        surface: RenderSurface | None = None,
        on_node_click: Callable[[str], None] | None = None,
        clock: Callable[[], float] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or LayoutConfig()
        self.viewport = viewport
        self.surface = surface if surface is not None else FrameBuffer()
        self.rng = rng or random.Random(self.config.simulation.seed)

        self.phase = LifecyclePhase.IDLE
        self.cycle = 0
        self.threshold = 0.0
        self.model: GraphModel | None = None
        self.graph: FilteredGraph | None = None
        self.components: list[Component] = []
        self.simulation: ForceSimulation | None = None
        self.best_fit: Transform | None = None
        self.last_pack: PackResult | None = None
        self._pending: tuple[GraphModel, float] | None = None

        self.packer = CompactPacker(self.config.packing)
        self.fitter = ViewportFitter(self.config.fit)
        self.frames = FrameBuilder(self.config.interaction.edge_hit_width)
        self.camera = Camera(self.config.interaction, clock)
        self.interaction = InteractionController(
            camera=self.camera,
            viewport=viewport,
            config=self.config.interaction,
            on_node_click=on_node_click,
            on_change=self.sync_visuals,
            on_drag_end=self._apply_pending,
            drag_alpha_target=self.config.simulation.drag_alpha_target,
        )
        self.interaction.radius = self.node_radius
        self.camera.on_change(lambda _transform: self.sync_visuals())

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> list[Node]:
        return self.graph.nodes if self.graph is not None else []

    @property
    def settled(self) -> bool:
        return self.phase is LifecyclePhase.SETTLED

    def node_radius(self, node: Node) -> float:
        """Radius of a node in the current viewport."""
        cfg = self.config
        return node.radius(cfg.density(self.viewport), cfg.radius_base, cfg.radius_scale)

    # ------------------------------------------------------------------
    # Data changes
    # ------------------------------------------------------------------

    def load(self, payload: Mapping[str, Any], threshold: float | None = None) -> bool:
        """Replace the graph payload. Returns True if a new layout cycle started."""
        return self._apply(GraphModel(payload), self.threshold if threshold is None else threshold)

    def set_threshold(self, threshold: float) -> bool:
        """Re-filter the current payload. Returns True if a new layout cycle started."""
        if self.model is None:
            self.threshold = threshold
            return False
        return self._apply(self.model, threshold)

    def _apply(self, model: GraphModel, threshold: float) -> bool:
        if self.interaction.dragging:
            # Single writer: the drag owns the arena until release
            self._pending = (model, threshold)
            logger.info("Deferring data change until the active drag ends")
            return False

        self.model = model
        self.threshold = threshold
        graph = model.filter(threshold)

        if self.graph is not None and graph.identity_key == self.graph.identity_key:
            model.rebind(self.graph)
            self.components = find_components(self.graph.nodes, self.graph.edges)
            if self.simulation is not None:
                self.simulation.set_edges(self.graph.edges)
            self.interaction.bind(self.graph, self.simulation, self.node_radius)
            logger.debug("Node id-set unchanged; keeping positions, pins and camera")
            self.sync_visuals()
            return False

        self._reset(graph)
        return True

    def _apply_pending(self) -> None:
        if self._pending is not None:
            model, threshold = self._pending
            self._pending = None
            self._apply(model, threshold)

    def _reset(self, graph: FilteredGraph) -> None:
        """Start a fresh cycle: clear pins and fits, scatter nodes, start simulating."""
        self.cycle += 1
        if self.simulation is not None:
            self.simulation.stop()

        self.graph = graph
        self.best_fit = None
        self.last_pack = None

        cx, cy = self.viewport.center
        spread = self.config.simulation.initial_spread_ratio * self.viewport.min_side
        for node in graph.nodes:
            node.unpin()
            node.x = cx + (self.rng.random() - 0.5) * spread
            node.y = cy + (self.rng.random() - 0.5) * spread
            node.vx = node.vy = 0.0

        self.components = find_components(graph.nodes, graph.edges)
        # A global centering pull would collapse separate components together
        center = self.viewport.center if len(self.components) <= 1 else None

        self.simulation = ForceSimulation(
            graph.nodes,
            graph.edges,
            config=self.config.simulation,
            radius=self.node_radius,
            center=center,
            rng=self.rng,
        )
        self.simulation.on(SimulationEvent.TICK, self._on_tick)
        self.simulation.on(SimulationEvent.END, self._on_simulation_end)

        self.interaction.bind(graph, self.simulation, self.node_radius)
        self.camera.reset()

        logger.info(
            f"Layout cycle {self.cycle}: {len(graph.nodes)} nodes, {len(graph.edges)} edges, "
            f"{len(self.components)} components"
        )
        self._enter(LifecyclePhase.SIMULATING)
        self.sync_visuals()

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    def _enter(self, phase: LifecyclePhase) -> None:
        logger.debug(f"Layout cycle {self.cycle}: {self.phase.value} -> {phase.value}")
        self.phase = phase

    def _on_tick(self, status: SimulationStatus) -> None:
        self.sync_visuals()

    def _on_simulation_end(self, status: SimulationStatus | None) -> None:
        if self.phase is not LifecyclePhase.SIMULATING or self.graph is None:
            logger.debug(f"Ignoring simulation end in phase {self.phase.value}")
            return

        if len(self.components) > 1:
            self._enter(LifecyclePhase.PACKING)
            self.last_pack = self.packer.pack(
                self.components,
                self.graph.edges,
                self.viewport,
                radius=self.node_radius,
                padding=self.config.padding(self.viewport),
            )
        else:
            for node in self.graph.nodes:
                node.pin()
        # The simulation has stopped, so no tick will redraw the moved nodes
        self.sync_visuals()

        self._enter(LifecyclePhase.FITTING)
        self._fit()
        self._enter(LifecyclePhase.SETTLED)
        self.sync_visuals()
        logger.info(f"Layout cycle {self.cycle} settled")

    def _fit(self) -> None:
        transform = self.fitter.fit(self.nodes, self.viewport, self.node_radius)
        self.best_fit = transform
        self.camera.animate_to(transform)

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    def resize(self, viewport: Viewport) -> bool:
        """React to a new viewport size. Returns False if nothing changed."""
        if viewport == self.viewport:
            return False

        self.viewport = viewport
        self.interaction.viewport = viewport
        if self.simulation is not None and self.simulation.center is not None:
            self.simulation.center = viewport.center

        if self.phase is LifecyclePhase.SETTLED:
            transform = self.fitter.refit(
                self.camera.transform, self.best_fit, self.nodes, viewport, self.node_radius
            )
            if transform is not None:
                self.best_fit = transform
                self.camera.animate_to(transform)

        self.sync_visuals()
        return True

    # ------------------------------------------------------------------
    # Frame loop
    # ------------------------------------------------------------------

    def step(self, now: float | None = None) -> bool:
        """
        Advance one animation frame: a simulation tick and camera interpolation.

        Returns True while anything is still moving.
        """
        if self.simulation is not None and self.simulation.running:
            self.simulation.step()
        camera_moving = self.camera.advance(now)
        simulating = self.simulation is not None and self.simulation.running
        return simulating or camera_moving

    def run_until_settled(self, max_ticks: int | None = None, finish_camera: bool = True) -> LifecyclePhase:
        """Drive frames until the cycle settles (or the tick budget runs out)."""
        limit = max_ticks if max_ticks is not None else self.config.simulation.max_ticks
        ticks = 0
        while self.phase is LifecyclePhase.SIMULATING and self.simulation is not None and ticks < limit:
            if not self.simulation.step():
                break
            ticks += 1

        if self.phase is LifecyclePhase.SIMULATING and self.simulation is not None:
            logger.warning(
                f"Simulation did not come to rest within {limit} ticks "
                f"(alpha={self.simulation.alpha:.4f}); settling early"
            )
            self.simulation.stop()
            self._on_simulation_end(None)

        if finish_camera:
            self.camera.finish()
        return self.phase

    def sync_visuals(self) -> None:
        """Push the current model state to the rendering surface."""
        frame = self.frames.build(
            self.nodes,
            self.graph.edges if self.graph is not None else [],
            phase=self.phase,
            transform=self.camera.transform,
            selection=self.interaction.selection,
            popup=self.interaction.popup,
            radius=self.node_radius,
        )
        self.surface.render(frame)

    def teardown(self) -> None:
        """Release the graph and return to IDLE."""
        if self.simulation is not None:
            self.simulation.stop()
        self.simulation = None
        self.graph = None
        self.model = None
        self.components = []
        self.best_fit = None
        self.last_pack = None
        self._pending = None
        self.interaction.bind(None, None)
        self.camera.reset()
        self._enter(LifecyclePhase.IDLE)
        self.sync_visuals()


def layout_graph(
    payload: Mapping[str, Any],
    viewport: Viewport,
    threshold: float = 0.0,
    config: LayoutConfig | None = None,
    seed: int | None = None,
) -> LifecycleOrchestrator:
    """Run the whole pipeline once and return the settled orchestrator."""
    rng = random.Random(seed) if seed is not None else None
    orchestrator = LifecycleOrchestrator(viewport, config=config, rng=rng)
    orchestrator.load(payload, threshold)
    orchestrator.run_until_settled()
    return orchestrator
