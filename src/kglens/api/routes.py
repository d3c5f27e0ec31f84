"""API routes for kglens.

Provides:
- /health
- /graph/layout - one-shot layout of a graph payload
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from kglens import __version__
from kglens.layout import LayoutConfig, LifecycleOrchestrator, layout_graph
from kglens.models import Viewport

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Graph Payload Models
# ============================================================================


class NodePayload(BaseModel):
    """Entity node as produced by the extraction backend."""

    model_config = ConfigDict(extra="ignore")

    id: str
    label: str | None = None
    weight: float = Field(default=0.0, validation_alias=AliasChoices("weight", "value"))


class EdgePayload(BaseModel):
    """Relation between two entities, with its supporting evidence chunks."""

    model_config = ConfigDict(extra="ignore")

    source: str = Field(validation_alias=AliasChoices("from", "from_node", "source"))
    target: str = Field(validation_alias=AliasChoices("to", "to_node", "target"))
    evidence: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("evidence", "chunks")
    )
    summary: str | None = None


class GraphPayload(BaseModel):
    """Weighted entity-relation graph."""

    nodes: list[NodePayload] = []
    edges: list[EdgePayload] = []

    def to_payload(self) -> dict:
        """Convert to the plain payload shape consumed by GraphModel."""
        return {
            "nodes": [
                {"id": n.id, "label": n.label or n.id, "weight": n.weight} for n in self.nodes
            ],
            "edges": [
                {"from": e.source, "to": e.target, "evidence": e.evidence, "summary": e.summary}
                for e in self.edges
            ],
        }


class ViewportModel(BaseModel):
    """Drawing area size in pixels."""

    width: float = Field(default=600.0, gt=0)
    height: float = Field(default=400.0, gt=0)

    def to_viewport(self) -> Viewport:
        return Viewport(self.width, self.height)


class TransformModel(BaseModel):
    """Camera transform."""

    scale: float
    translate_x: float
    translate_y: float


# ============================================================================
# Layout Models
# ============================================================================


class LayoutRequest(BaseModel):
    """One-shot layout request."""

    graph: GraphPayload
    weight_threshold: float = Field(default=0.0, ge=0.0, le=1.0)
    viewport: ViewportModel = ViewportModel()
    seed: int | None = None


class PositionedNode(BaseModel):
    """Node with its settled position."""

    id: str
    label: str
    weight: float
    x: float
    y: float
    radius: float
    pinned: bool


class LaidOutEdge(BaseModel):
    """Edge between two positioned nodes."""

    source: str
    target: str
    weight: int
    summary: str


class PackingReport(BaseModel):
    """Outcome of component packing."""

    attempts: int
    spacing: float
    ring_radius: float
    converged: bool
    overlapping_pairs: list[list[int]] = []


class LayoutResponse(BaseModel):
    """Settled layout."""

    phase: str
    nodes: list[PositionedNode]
    edges: list[LaidOutEdge]
    components: int
    best_fit: TransformModel
    packing: PackingReport | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    live_views: int
    version: str = __version__


# ============================================================================
# Helper Functions
# ============================================================================


def get_layout_config(request: Request) -> LayoutConfig:
    """Get layout configuration from app state."""
    return request.app.state.layout_config


def build_layout_response(orchestrator: LifecycleOrchestrator) -> LayoutResponse:
    """Serialize a settled orchestrator."""
    graph = orchestrator.graph
    best_fit = orchestrator.best_fit or orchestrator.camera.transform
    pack = orchestrator.last_pack
    return LayoutResponse(
        phase=orchestrator.phase.value,
        nodes=[
            PositionedNode(
                id=n.id,
                label=n.label,
                weight=n.weight,
                x=n.x,
                y=n.y,
                radius=orchestrator.node_radius(n),
                pinned=n.is_pinned,
            )
            for n in orchestrator.nodes
        ],
        edges=[LaidOutEdge(**e.to_dict()) for e in (graph.edges if graph else [])],
        components=len(orchestrator.components),
        best_fit=TransformModel(**best_fit.to_dict()),
        packing=PackingReport(**pack.to_dict()) if pack else None,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Health check."""
    views = getattr(request.app.state, "views", None)
    return HealthResponse(status="healthy", live_views=len(views) if views is not None else 0)


@router.post("/graph/layout", response_model=LayoutResponse)
async def compute_layout(request: Request, body: LayoutRequest) -> LayoutResponse:
    """
    Lay out a graph in one call.

    Runs filtering, simulation, packing and fitting to completion and returns
    the settled positions with the best-fit camera.
    """
    config = get_layout_config(request)
    try:
        orchestrator = layout_graph(
            body.graph.to_payload(),
            body.viewport.to_viewport(),
            threshold=body.weight_threshold,
            config=config,
            seed=body.seed,
        )
    except Exception as e:
        logger.exception(f"Error computing layout: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Layout failed: {str(e)}",
        )

    return build_layout_response(orchestrator)
