"""Graph payload normalization and weight-threshold filtering.

Accepts the graph payload produced by the extraction backend in either of its
two shapes:

    {"nodes": [{"id", "label", "weight"}], "edges": [{"from", "to", "evidence"}]}
    {"nodes": [{"id", "label", "value"}],  "edges": [{"from_node", "to_node", "chunks"}]}
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from kglens.models import Edge, Node

logger = logging.getLogger(__name__)


def _node_weight(raw: Mapping[str, Any]) -> float:
    value = raw.get("weight", raw.get("value"))
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _edge_endpoints(raw: Mapping[str, Any]) -> tuple[Any, Any]:
    source = raw.get("from", raw.get("from_node", raw.get("source")))
    target = raw.get("to", raw.get("to_node", raw.get("target")))
    return source, target


def _edge_evidence(raw: Mapping[str, Any]) -> list[str]:
    evidence = raw.get("evidence", raw.get("chunks"))
    if not evidence:
        return []
    return [str(item) for item in evidence]


@dataclass
class RankedEntity:
    """Entry of the "top entities" list."""

    id: str
    label: str
    weight: float
    score: float  # weight on a 0-10 display scale


@dataclass
class FilteredGraph:
    """
    Nodes and edges surviving a weight threshold.

    `arena` maps id -> the single shared Node instance; `nodes` and `edges`
    hold references into it.
    """

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    threshold: float = 0.0

    def __post_init__(self) -> None:
        self.arena: dict[str, Node] = {node.id: node for node in self.nodes}

    @property
    def identity_key(self) -> str:
        """Sorted concatenation of node ids; changes iff the id-set changes."""
        return "\x1f".join(sorted(self.arena))

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.arena

    def get(self, node_id: str) -> Node:
        """Return the node with this id, raising KeyError if absent."""
        try:
            return self.arena[node_id]
        except KeyError:
            raise KeyError(f"Node not found: {node_id}") from None

    def neighbors(self, node_id: str) -> set[str]:
        """One-hop neighbour ids of a node."""
        result: set[str] = set()
        for edge in self.edges:
            if edge.source.id == node_id:
                result.add(edge.target.id)
            elif edge.target.id == node_id:
                result.add(edge.source.id)
        result.discard(node_id)
        return result

    def ranked_entities(self, limit: int | None = None) -> list[RankedEntity]:
        """Nodes by descending weight (ties broken by id)."""
        ordered = sorted(self.nodes, key=lambda n: (-n.weight, n.id))
        if limit is not None:
            ordered = ordered[:limit]
        return [
            RankedEntity(id=n.id, label=n.label, weight=n.weight, score=round(n.weight * 10, 1))
            for n in ordered
        ]


class GraphModel:
    """
    Holds a raw graph payload and produces filtered views of it.

    Filtering is monotonic: raising the threshold never brings back a node or
    an edge.
    """

    def __init__(self, payload: Mapping[str, Any] | None = None) -> None:
        payload = payload or {}
        self.raw_nodes: list[Mapping[str, Any]] = list(payload.get("nodes") or [])
        self.raw_edges: list[Mapping[str, Any]] = list(payload.get("edges") or [])

    def filter(self, threshold: float = 0.0) -> FilteredGraph:
        """Build fresh Node/Edge objects for everything at or above `threshold`."""
        nodes: list[Node] = []
        arena: dict[str, Node] = {}

        for raw in self.raw_nodes:
            node_id = raw.get("id")
            if node_id is None:
                continue
            node_id = str(node_id)
            if node_id in arena:
                continue
            weight = _node_weight(raw)
            if weight < threshold:
                continue
            node = Node(id=node_id, label=str(raw.get("label") or node_id), weight=weight)
            arena[node_id] = node
            nodes.append(node)

        edges = list(self._resolve_edges(arena))

        logger.debug(
            f"Threshold {threshold:.2f}: kept {len(nodes)}/{len(self.raw_nodes)} nodes, "
            f"{len(edges)}/{len(self.raw_edges)} edges"
        )
        return FilteredGraph(nodes=nodes, edges=edges, threshold=threshold)

    def rebind(self, graph: FilteredGraph) -> None:
        """
        Refresh `graph` in place from this payload without replacing nodes.

        Only valid when the payload filters to the same id-set; labels and
        weights are updated on the existing Node objects and the edge list is
        rebuilt against them, so positions and pins survive.
        """
        seen: set[str] = set()
        for raw in self.raw_nodes:
            node_id = raw.get("id")
            if node_id is None:
                continue
            node_id = str(node_id)
            # Duplicate ids keep the first occurrence, as in filter()
            if node_id in seen:
                continue
            seen.add(node_id)
            node = graph.arena.get(node_id)
            if node is None:
                continue
            node.label = str(raw.get("label") or node.id)
            node.weight = _node_weight(raw)
        graph.edges = list(self._resolve_edges(graph.arena))

    def _resolve_edges(self, arena: Mapping[str, Node]) -> Iterable[Edge]:
        for raw in self.raw_edges:
            source_id, target_id = _edge_endpoints(raw)
            source = arena.get(str(source_id)) if source_id is not None else None
            target = arena.get(str(target_id)) if target_id is not None else None
            if source is None or target is None:
                continue
            yield Edge(
                source=source,
                target=target,
                evidence=_edge_evidence(raw),
                summary=raw.get("summary") or None,
            )


def filter_graph(payload: Mapping[str, Any], threshold: float = 0.0) -> FilteredGraph:
    """Convenience function: filter a raw payload in one call."""
    return GraphModel(payload).filter(threshold)
