"""Unit tests for the layout lifecycle."""

import random

import pytest

from kglens.layout import Frame, LayoutConfig, LifecycleOrchestrator, layout_graph
from kglens.models import LifecyclePhase, Transform, Viewport


class RecordingSurface:
    """Surface remembering the phase of every frame."""

    def __init__(self) -> None:
        self.phases: list[str] = []
        self.frame: Frame | None = None

    def render(self, frame: Frame) -> None:
        self.frame = frame
        if not self.phases or self.phases[-1] != frame.phase.value:
            self.phases.append(frame.phase.value)


def _without_c(payload: dict) -> dict:
    return {
        "nodes": [n for n in payload["nodes"] if n["id"] != "C"],
        "edges": [e for e in payload["edges"] if "C" not in (e["from"], e["to"])],
    }


class TestCycle:
    """Tests for a full layout cycle."""

    def test_starts_idle(self, orchestrator: LifecycleOrchestrator) -> None:
        assert orchestrator.phase is LifecyclePhase.IDLE
        assert orchestrator.nodes == []

    def test_single_component_settles(self, orchestrator: LifecycleOrchestrator, abc_payload: dict) -> None:
        assert orchestrator.load(abc_payload) is True
        assert orchestrator.phase is LifecyclePhase.SIMULATING
        assert orchestrator.simulation.center == (400.0, 300.0)

        assert orchestrator.run_until_settled() is LifecyclePhase.SETTLED
        assert orchestrator.last_pack is None
        assert all(node.is_pinned for node in orchestrator.nodes)
        assert orchestrator.best_fit is not None
        assert orchestrator.camera.transform == orchestrator.best_fit

    def test_multi_component_phases(self, viewport: Viewport, layout_config: LayoutConfig, fake_clock, two_triangles_payload: dict) -> None:
        surface = RecordingSurface()
        orchestrator = LifecycleOrchestrator(
            viewport, config=layout_config, surface=surface, clock=fake_clock, rng=random.Random(3)
        )
        orchestrator.load(two_triangles_payload)
        assert orchestrator.simulation.center is None

        orchestrator.run_until_settled()

        assert surface.phases == ["simulating", "packing", "fitting", "settled"]
        assert surface.frame.phase is LifecyclePhase.SETTLED
        assert len(orchestrator.components) == 2
        assert orchestrator.last_pack is not None and orchestrator.last_pack.converged
        assert all(node.is_pinned for node in orchestrator.nodes)

    def test_settled_content_is_on_screen(self, orchestrator: LifecycleOrchestrator, two_triangles_payload: dict) -> None:
        orchestrator.load(two_triangles_payload)
        orchestrator.run_until_settled()
        transform = orchestrator.camera.transform
        for node in orchestrator.nodes:
            sx, sy = transform.apply(node.x, node.y)
            assert 0 <= sx <= 800 and 0 <= sy <= 600

    def test_end_is_latched(self, orchestrator: LifecycleOrchestrator, two_triangles_payload: dict) -> None:
        """Test a reheated simulation ending again does not re-pack or re-fit."""
        orchestrator.load(two_triangles_payload)
        orchestrator.run_until_settled()
        pack, best_fit = orchestrator.last_pack, orchestrator.best_fit

        orchestrator.camera.zoom(1.5, 100.0, 100.0)
        orchestrator.interaction.drag_start("a")
        orchestrator.interaction.drag_end()
        orchestrator.simulation.run()

        assert orchestrator.phase is LifecyclePhase.SETTLED
        assert orchestrator.last_pack is pack
        assert orchestrator.best_fit is best_fit
        assert orchestrator.camera.transform != best_fit
        assert orchestrator.cycle == 1

    def test_tick_budget_forces_settle(self, orchestrator: LifecycleOrchestrator, abc_payload: dict, caplog) -> None:
        orchestrator.load(abc_payload)
        with caplog.at_level("WARNING", logger="kglens.layout.lifecycle"):
            phase = orchestrator.run_until_settled(max_ticks=5)
        assert phase is LifecyclePhase.SETTLED
        assert not orchestrator.simulation.running
        assert "settling early" in caplog.text

    def test_empty_graph(self, orchestrator: LifecycleOrchestrator) -> None:
        orchestrator.load({"nodes": [], "edges": []})
        assert orchestrator.run_until_settled() is LifecyclePhase.SETTLED
        assert orchestrator.best_fit == Transform.identity()

    def test_single_node(self, orchestrator: LifecycleOrchestrator) -> None:
        orchestrator.load({"nodes": [{"id": "solo", "weight": 0.4}]})
        orchestrator.run_until_settled()
        node = orchestrator.nodes[0]
        assert orchestrator.best_fit.scale == 1.0
        assert orchestrator.best_fit.apply(node.x, node.y) == pytest.approx((400.0, 300.0))


class TestDataChanges:
    """Tests for reset-on-identity-change."""

    def test_threshold_keeping_ids_does_not_reset(self, orchestrator: LifecycleOrchestrator, abc_payload: dict) -> None:
        orchestrator.load(abc_payload)
        orchestrator.run_until_settled()
        positions = [(n.x, n.y) for n in orchestrator.nodes]

        assert orchestrator.set_threshold(0.05) is False
        assert orchestrator.cycle == 1
        assert orchestrator.phase is LifecyclePhase.SETTLED
        assert [(n.x, n.y) for n in orchestrator.nodes] == positions

    def test_threshold_removing_ids_resets(self, orchestrator: LifecycleOrchestrator, abc_payload: dict) -> None:
        orchestrator.load(abc_payload)
        orchestrator.run_until_settled()

        assert orchestrator.set_threshold(0.3) is True
        assert orchestrator.cycle == 2
        assert orchestrator.phase is LifecyclePhase.SIMULATING
        assert orchestrator.best_fit is None
        assert not any(node.is_pinned for node in orchestrator.nodes)
        assert [n.id for n in orchestrator.nodes] == ["A", "B"]

    def test_reload_with_duplicate_ids_keeps_first(self, orchestrator: LifecycleOrchestrator) -> None:
        payload = {
            "nodes": [
                {"id": "A", "label": "first", "weight": 0.9},
                {"id": "A", "label": "second", "weight": 0.1},
            ],
        }
        orchestrator.load(payload, threshold=0.5)
        orchestrator.run_until_settled()

        assert orchestrator.load(payload) is False
        node = orchestrator.graph.get("A")
        assert node.label == "first"
        assert node.weight == 0.9
        assert orchestrator.surface.frame.node("A").label == "first"

    def test_same_ids_new_labels_rebinds(self, orchestrator: LifecycleOrchestrator, abc_payload: dict) -> None:
        orchestrator.load(abc_payload)
        orchestrator.run_until_settled()
        node_a = orchestrator.graph.get("A")

        relabelled = dict(abc_payload, nodes=[dict(n, label=n["label"].upper()) for n in abc_payload["nodes"]])
        assert orchestrator.load(relabelled) is False
        assert orchestrator.graph.get("A") is node_a
        assert node_a.label == "ALPHA"
        assert orchestrator.surface.frame.node("A").label == "ALPHA"

    def test_change_during_drag_is_deferred(self, orchestrator: LifecycleOrchestrator, abc_payload: dict) -> None:
        orchestrator.load(abc_payload)
        orchestrator.run_until_settled()

        orchestrator.interaction.drag_start("A")
        assert orchestrator.load(_without_c(abc_payload)) is False
        assert orchestrator.cycle == 1
        assert "C" in orchestrator.graph

        orchestrator.interaction.drag_end()
        assert orchestrator.cycle == 2
        assert "C" not in orchestrator.graph

    def test_selection_survives_threshold_change(self, orchestrator: LifecycleOrchestrator, abc_payload: dict) -> None:
        orchestrator.load(abc_payload)
        orchestrator.run_until_settled()
        orchestrator.interaction.select("A")

        orchestrator.set_threshold(0.3)
        assert orchestrator.interaction.selection.active_node_id == "A"
        assert orchestrator.interaction.selection.connected_node_ids == frozenset({"B"})

    def test_threshold_before_load(self, orchestrator: LifecycleOrchestrator, abc_payload: dict) -> None:
        assert orchestrator.set_threshold(0.3) is False
        orchestrator.load(abc_payload)
        assert [n.id for n in orchestrator.nodes] == ["A", "B"]


class TestResize:
    """Tests for viewport changes."""

    def test_refits_when_untouched(self, orchestrator: LifecycleOrchestrator, two_triangles_payload: dict) -> None:
        orchestrator.load(two_triangles_payload)
        orchestrator.run_until_settled()
        before = orchestrator.best_fit

        assert orchestrator.resize(Viewport(400, 300)) is True
        assert orchestrator.best_fit != before
        assert orchestrator.best_fit.scale < before.scale
        assert orchestrator.camera.transform == orchestrator.best_fit

    def test_keeps_user_zoom(self, orchestrator: LifecycleOrchestrator, two_triangles_payload: dict) -> None:
        orchestrator.load(two_triangles_payload)
        orchestrator.run_until_settled()
        before = orchestrator.best_fit
        orchestrator.interaction.zoom(2.0, 400.0, 300.0)
        zoomed = orchestrator.camera.transform

        orchestrator.resize(Viewport(400, 300))
        assert orchestrator.best_fit is before
        assert orchestrator.camera.transform == zoomed

    def test_same_size_is_noop(self, orchestrator: LifecycleOrchestrator) -> None:
        assert orchestrator.resize(Viewport(800, 600)) is False

    def test_small_viewport_shrinks_nodes(self, layout_config: LayoutConfig, abc_payload: dict) -> None:
        large = layout_graph(abc_payload, Viewport(800, 600), config=layout_config, seed=1)
        small = layout_graph(abc_payload, Viewport(500, 350), config=layout_config, seed=1)
        node = large.graph.get("A")
        assert small.node_radius(small.graph.get("A")) == pytest.approx(large.node_radius(node) * 0.75)


class TestTeardown:
    """Tests for teardown."""

    def test_teardown_returns_to_idle(self, orchestrator: LifecycleOrchestrator, abc_payload: dict) -> None:
        orchestrator.load(abc_payload)
        orchestrator.run_until_settled()
        orchestrator.teardown()
        assert orchestrator.phase is LifecyclePhase.IDLE
        assert orchestrator.nodes == []
        assert orchestrator.surface.frame.nodes == []
        assert orchestrator.camera.transform == Transform.identity()


class TestLayoutGraph:
    """Tests for the one-shot helper."""

    def test_deterministic_with_seed(self, layout_config: LayoutConfig, abc_payload: dict) -> None:
        first = layout_graph(abc_payload, Viewport(800, 600), config=layout_config, seed=42)
        second = layout_graph(abc_payload, Viewport(800, 600), config=layout_config, seed=42)
        assert [(n.x, n.y) for n in first.nodes] == [(n.x, n.y) for n in second.nodes]
        assert first.settled
