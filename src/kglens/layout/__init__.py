"""Graph layout and viewport-fitting engine.

Provides:
- Payload filtering by weight threshold (GraphModel)
- Connected-component analysis
- Force simulation with tick/end events
- Compact packing of disjoint components
- Best-fit camera computation and eased camera transitions
- Selection, edge popups, drag-to-pin and focus interaction
- Lifecycle orchestration of the whole pipeline
"""

from kglens.layout.camera import Camera
from kglens.layout.components import find_components
from kglens.layout.config import (
    FitConfig,
    InteractionConfig,
    LayoutConfig,
    PackingConfig,
    SimulationConfig,
)
from kglens.layout.interaction import InteractionController
from kglens.layout.lifecycle import LifecycleOrchestrator, layout_graph
from kglens.layout.model import FilteredGraph, GraphModel, RankedEntity, filter_graph
from kglens.layout.packing import BoundingBox, CompactPacker, PackResult
from kglens.layout.render import Frame, FrameBuffer, FrameBuilder, RenderSurface
from kglens.layout.simulation import ForceSimulation, SimulationEvent
from kglens.layout.viewport import ViewportFitter

__all__ = [
    # Config
    "FitConfig",
    "InteractionConfig",
    "LayoutConfig",
    "PackingConfig",
    "SimulationConfig",
    # Stages
    "GraphModel",
    "FilteredGraph",
    "RankedEntity",
    "filter_graph",
    "find_components",
    "ForceSimulation",
    "SimulationEvent",
    "BoundingBox",
    "CompactPacker",
    "PackResult",
    "ViewportFitter",
    "Camera",
    "InteractionController",
    "LifecycleOrchestrator",
    "layout_graph",
    # Rendering
    "Frame",
    "FrameBuffer",
    "FrameBuilder",
    "RenderSurface",
]
