"""Connected-component analysis over the filtered graph."""

import logging
from collections import defaultdict
from collections.abc import Iterable

from kglens.models import Component, Edge, Node

logger = logging.getLogger(__name__)


def build_adjacency(edges: Iterable[Edge]) -> dict[str, list[str]]:
    """Undirected adjacency list keyed by node id."""
    adj: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        s, t = edge.source.id, edge.target.id
        adj[s].append(t)
        adj[t].append(s)
    return adj


def find_components(nodes: list[Node], edges: Iterable[Edge]) -> list[Component]:
    """
    Partition nodes into connected components.

    Iterative depth-first traversal from every unvisited node, in input order.
    Components hold the original Node objects, never copies. Isolated nodes
    become singleton components; the empty graph yields an empty list.
    """
    by_id = {node.id: node for node in nodes}
    adj = build_adjacency(edges)
    visited: set[str] = set()
    components: list[Component] = []

    for start in nodes:
        if start.id in visited:
            continue

        component: Component = []
        stack = [start.id]
        visited.add(start.id)
        while stack:
            node_id = stack.pop()
            component.append(by_id[node_id])
            for neighbor_id in adj.get(node_id, ()):
                if neighbor_id not in visited and neighbor_id in by_id:
                    visited.add(neighbor_id)
                    stack.append(neighbor_id)

        components.append(component)

    logger.debug(
        f"Found {len(components)} components in {len(nodes)} nodes "
        f"(sizes: {[len(c) for c in components][:10]})"
    )
    return components
