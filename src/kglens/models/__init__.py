"""kglens data models."""

from kglens.models.graph import (
    Component,
    Edge,
    EdgePopup,
    LifecyclePhase,
    Node,
    SelectionState,
    Transform,
    Viewport,
)

__all__ = [
    "Component",
    "Edge",
    "EdgePopup",
    "LifecyclePhase",
    "Node",
    "SelectionState",
    "Transform",
    "Viewport",
]
