"""Unit tests for frame emission."""

from kglens.layout import FrameBuilder, filter_graph
from kglens.layout.render import ACTIVE_FILL, DEFAULT_FILL, HEAVY_FILL, LABEL_DX, LABEL_DY
from kglens.models import LifecyclePhase, SelectionState, Transform


def _build(graph, selection: SelectionState = SelectionState()):
    return FrameBuilder().build(
        graph.nodes,
        graph.edges,
        phase=LifecyclePhase.SETTLED,
        transform=Transform.identity(),
        selection=selection,
        popup=None,
        radius=lambda n: n.radius(),
    )


class TestFrameBuilder:
    """Tests for FrameBuilder."""

    def test_default_styles(self, abc_payload: dict) -> None:
        graph = filter_graph(abc_payload)
        frame = _build(graph)
        assert frame.node("A").fill == HEAVY_FILL
        assert frame.node("C").fill == DEFAULT_FILL
        assert all(edge.state == "default" for edge in frame.edges)

    def test_label_offset(self, abc_payload: dict) -> None:
        graph = filter_graph(abc_payload)
        graph.get("A").x, graph.get("A").y = 10.0, 20.0
        sprite = _build(graph).node("A")
        assert (sprite.label_x, sprite.label_y) == (10.0 + LABEL_DX, 20.0 + LABEL_DY)

    def test_selection_priority(self, abc_payload: dict) -> None:
        graph = filter_graph(abc_payload)
        selection = SelectionState("A", frozenset({"B"}))
        frame = _build(graph, selection)

        assert frame.node("A").state == "active"
        assert frame.node("A").fill == ACTIVE_FILL
        assert frame.node("B").state == "connected"
        assert frame.node("C").state == "default"

        states = {edge.key: edge.state for edge in frame.edges}
        assert states == {"A->B": "active", "B->C": "dimmed"}

    def test_edge_hit_width_and_stroke(self, abc_payload: dict) -> None:
        graph = filter_graph(abc_payload)
        frame = FrameBuilder(edge_hit_width=14.0).build(
            graph.nodes,
            graph.edges,
            phase=LifecyclePhase.SETTLED,
            transform=Transform.identity(),
            selection=SelectionState(),
            popup=None,
            radius=lambda n: n.radius(),
        )
        assert all(edge.hit_width == 14.0 for edge in frame.edges)
        # Two evidence chunks: sqrt(2)
        assert abs(frame.edges[0].stroke_width - 2**0.5) < 1e-9

    def test_to_dict(self, abc_payload: dict) -> None:
        graph = filter_graph(abc_payload)
        data = _build(graph, SelectionState("A", frozenset({"B"}))).to_dict()
        assert data["phase"] == "settled"
        assert data["active_node_id"] == "A"
        assert data["connected_node_ids"] == ["B"]
        assert data["popup"] is None
        assert len(data["nodes"]) == 3
        assert data["transform"] == {"scale": 1.0, "translate_x": 0.0, "translate_y": 0.0}
