"""Interactive graph view endpoints.

Each view is a live LifecycleOrchestrator kept in memory. The client forwards
pointer events and polls frames; camera animations advance on the server
clock between polls. Requests against one view are serialized by a lock so the
node arena has a single writer.
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from kglens.api.routes import GraphPayload, ViewportModel
from kglens.layout import FrameBuffer, LayoutConfig, LifecycleOrchestrator
from kglens.models import Viewport

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/views")


# ============================================================================
# View Registry
# ============================================================================


@dataclass
class ViewSession:
    """One live graph view."""

    view_id: str
    orchestrator: LifecycleOrchestrator
    surface: FrameBuffer
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    clicked_node_ids: list[str] = field(default_factory=list)

    def frame(self) -> dict:
        self.orchestrator.step()
        frame = self.surface.frame
        return frame.to_dict() if frame is not None else {}


class ViewRegistry:
    """In-memory views, evicting the least recently used beyond `max_views`."""

    def __init__(self, config: LayoutConfig, max_views: int = 64) -> None:
        self.config = config
        self.max_views = max_views
        self._views: OrderedDict[str, ViewSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._views)

    def create(self, viewport: Viewport) -> ViewSession:
        surface = FrameBuffer()
        view_id = uuid.uuid4().hex[:12]
        clicked: list[str] = []
        orchestrator = LifecycleOrchestrator(
            viewport,
            config=self.config,
            surface=surface,
            on_node_click=clicked.append,
        )
        session = ViewSession(
            view_id=view_id,
            orchestrator=orchestrator,
            surface=surface,
            clicked_node_ids=clicked,
        )
        self._views[view_id] = session
        while len(self._views) > self.max_views:
            evicted_id, evicted = self._views.popitem(last=False)
            evicted.orchestrator.teardown()
            logger.info(f"Evicted view {evicted_id}")
        return session

    def get(self, view_id: str) -> ViewSession | None:
        session = self._views.get(view_id)
        if session is not None:
            self._views.move_to_end(view_id)
        return session

    def remove(self, view_id: str) -> bool:
        session = self._views.pop(view_id, None)
        if session is None:
            return False
        session.orchestrator.teardown()
        return True

    def clear(self) -> None:
        for session in self._views.values():
            session.orchestrator.teardown()
        self._views.clear()


# ============================================================================
# Request/Response Models
# ============================================================================


class CreateViewRequest(BaseModel):
    """Create a view, optionally loading a graph right away."""

    graph: GraphPayload | None = None
    weight_threshold: float = Field(default=0.0, ge=0.0, le=1.0)
    viewport: ViewportModel = ViewportModel()


class LoadGraphRequest(BaseModel):
    """Replace the view's graph payload."""

    graph: GraphPayload
    weight_threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class ThresholdRequest(BaseModel):
    """Re-filter the current graph."""

    weight_threshold: float = Field(ge=0.0, le=1.0)


class PointerEvent(BaseModel):
    """Pointer event forwarded from the rendering surface (screen coordinates)."""

    kind: Literal["click", "drag_start", "drag_move", "drag_end", "zoom", "pan"]
    x: float = 0.0
    y: float = 0.0
    node_id: str | None = None  # Required for drag_start
    factor: float = Field(default=1.0, gt=0)  # zoom
    dx: float = 0.0  # pan
    dy: float = 0.0


class ViewResponse(BaseModel):
    """Current state of a view."""

    view_id: str
    cycle: int
    phase: str
    restarted: bool = False
    result: str | None = None
    clicked_node_id: str | None = None
    frame: dict


class RankedEntityModel(BaseModel):
    """Entry of the top-entities list."""

    id: str
    label: str
    weight: float
    score: float


class EntitiesResponse(BaseModel):
    """Entities of the view ranked by weight."""

    view_id: str
    entities: list[RankedEntityModel]


# ============================================================================
# Helper Functions
# ============================================================================


def get_views(request: Request) -> ViewRegistry:
    """Get view registry from app state."""
    return request.app.state.views


def get_session(request: Request, view_id: str) -> ViewSession:
    session = get_views(request).get(view_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"View not found: {view_id}")
    return session


def view_response(session: ViewSession, **extra) -> ViewResponse:
    orchestrator = session.orchestrator
    clicked = session.clicked_node_ids[-1] if session.clicked_node_ids else None
    session.clicked_node_ids.clear()
    return ViewResponse(
        view_id=session.view_id,
        cycle=orchestrator.cycle,
        phase=orchestrator.phase.value,
        clicked_node_id=clicked,
        frame=session.frame(),
        **extra,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=ViewResponse)
async def create_view(request: Request, body: CreateViewRequest) -> ViewResponse:
    """Create an interactive view."""
    session = get_views(request).create(body.viewport.to_viewport())
    restarted = False
    async with session.lock:
        if body.graph is not None:
            restarted = session.orchestrator.load(body.graph.to_payload(), body.weight_threshold)
            session.orchestrator.run_until_settled(finish_camera=False)
        else:
            session.orchestrator.set_threshold(body.weight_threshold)
        logger.info(f"Created view {session.view_id}")
        return view_response(session, restarted=restarted)


@router.get("/{view_id}/frame", response_model=ViewResponse)
async def get_frame(request: Request, view_id: str) -> ViewResponse:
    """Advance animations to now and return the latest frame."""
    session = get_session(request, view_id)
    async with session.lock:
        return view_response(session)


@router.put("/{view_id}/graph", response_model=ViewResponse)
async def load_graph(request: Request, view_id: str, body: LoadGraphRequest) -> ViewResponse:
    """Replace the graph; restarts the layout if the node set changed."""
    session = get_session(request, view_id)
    async with session.lock:
        restarted = session.orchestrator.load(body.graph.to_payload(), body.weight_threshold)
        session.orchestrator.run_until_settled(finish_camera=False)
        return view_response(session, restarted=restarted)


@router.put("/{view_id}/threshold", response_model=ViewResponse)
async def set_threshold(request: Request, view_id: str, body: ThresholdRequest) -> ViewResponse:
    """Re-filter by weight; restarts the layout if the node set changed."""
    session = get_session(request, view_id)
    async with session.lock:
        restarted = session.orchestrator.set_threshold(body.weight_threshold)
        session.orchestrator.run_until_settled(finish_camera=False)
        return view_response(session, restarted=restarted)


@router.post("/{view_id}/resize", response_model=ViewResponse)
async def resize_view(request: Request, view_id: str, body: ViewportModel) -> ViewResponse:
    """Resize the view; re-fits unless the user zoomed away from the best fit."""
    session = get_session(request, view_id)
    async with session.lock:
        session.orchestrator.resize(body.to_viewport())
        return view_response(session)


@router.post("/{view_id}/pointer", response_model=ViewResponse)
async def pointer_event(request: Request, view_id: str, body: PointerEvent) -> ViewResponse:
    """Forward a pointer event to the interaction controller."""
    session = get_session(request, view_id)
    async with session.lock:
        interaction = session.orchestrator.interaction
        result: str | None = None
        try:
            if body.kind == "click":
                result = interaction.pointer_click(body.x, body.y)
            elif body.kind == "drag_start":
                if body.node_id is None:
                    node = interaction.node_at(body.x, body.y)
                    if node is None:
                        raise HTTPException(status_code=422, detail="No node under pointer")
                    node_id = node.id
                else:
                    node_id = body.node_id
                interaction.drag_start(node_id)
                result = node_id
            elif body.kind == "drag_move":
                interaction.drag_move(body.x, body.y)
            elif body.kind == "drag_end":
                interaction.drag_end(body.x, body.y)
                session.orchestrator.run_until_settled(finish_camera=False)
            elif body.kind == "zoom":
                interaction.zoom(body.factor, body.x, body.y)
            elif body.kind == "pan":
                interaction.pan(body.dx, body.dy)
        except KeyError as e:
            raise HTTPException(status_code=404, detail=str(e.args[0]) if e.args else "Node not found")
        except RuntimeError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return view_response(session, result=result)


@router.post("/{view_id}/focus/{node_id}", response_model=ViewResponse)
async def focus_node(request: Request, view_id: str, node_id: str) -> ViewResponse:
    """Animate the camera onto a node."""
    session = get_session(request, view_id)
    async with session.lock:
        try:
            session.orchestrator.interaction.focus_on_node(node_id)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
        except RuntimeError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return view_response(session)


@router.get("/{view_id}/entities", response_model=EntitiesResponse)
async def list_entities(request: Request, view_id: str, limit: int | None = None) -> EntitiesResponse:
    """Top entities of the view, by weight."""
    session = get_session(request, view_id)
    async with session.lock:
        graph = session.orchestrator.graph
        entities = graph.ranked_entities(limit) if graph is not None else []
    return EntitiesResponse(
        view_id=view_id,
        entities=[RankedEntityModel(**entity.__dict__) for entity in entities],
    )


@router.delete("/{view_id}")
async def delete_view(request: Request, view_id: str) -> dict:
    """Tear down a view."""
    if not get_views(request).remove(view_id):
        raise HTTPException(status_code=404, detail=f"View not found: {view_id}")
    return {"status": "deleted", "view_id": view_id}
