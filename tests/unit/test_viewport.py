"""Unit tests for best-fit camera computation."""

import math

from kglens.layout import FitConfig, ViewportFitter
from kglens.models import Node, Transform, Viewport


def _radius(node: Node) -> float:
    return 10.0


class TestFit:
    """Tests for ViewportFitter.fit."""

    def test_no_nodes_gives_identity(self) -> None:
        assert ViewportFitter().fit([], Viewport(800, 600), _radius) == Transform.identity()

    def test_single_node_at_centre(self) -> None:
        """Test a lone node at the viewport centre keeps the identity transform."""
        node = Node("a", "a", x=400.0, y=300.0)
        assert ViewportFitter().fit([node], Viewport(800, 600), _radius) == Transform.identity()

    def test_single_node_off_centre_is_recentred(self) -> None:
        node = Node("a", "a", x=100.0, y=50.0)
        transform = ViewportFitter().fit([node], Viewport(800, 600), _radius)
        assert transform.scale == 1.0
        assert transform.apply(node.x, node.y) == (400.0, 300.0)

    def test_formula(self) -> None:
        """Test scale = min(vw/bw, vh/bh, 1.2) * 0.95 and content is centred."""
        nodes = [Node("a", "a", x=0.0, y=0.0), Node("b", "b", x=1000.0, y=200.0)]
        viewport = Viewport(800, 600)
        transform = ViewportFitter().fit(nodes, viewport, _radius)

        # Box with radius 10 and margin 50: 1120 x 320
        expected = min(800 / 1120, 600 / 320, 1.2) * 0.95
        assert math.isclose(transform.scale, expected)
        sx, sy = transform.apply(500.0, 100.0)
        assert math.isclose(sx, 400.0) and math.isclose(sy, 300.0)

    def test_content_fits_inside_viewport(self) -> None:
        nodes = [Node(str(i), str(i), x=i * 97.0, y=(i % 3) * 140.0) for i in range(10)]
        viewport = Viewport(640, 480)
        transform = ViewportFitter().fit(nodes, viewport, _radius)
        for node in nodes:
            sx, sy = transform.apply(node.x, node.y)
            assert 0 <= sx <= viewport.width
            assert 0 <= sy <= viewport.height

    def test_small_content_capped_at_max_scale(self) -> None:
        nodes = [Node("a", "a", x=0.0, y=0.0), Node("b", "b", x=10.0, y=0.0)]
        transform = ViewportFitter().fit(nodes, Viewport(800, 600), _radius)
        assert math.isclose(transform.scale, 1.2 * 0.95)


class TestRefit:
    """Tests for ViewportFitter.refit."""

    def _nodes(self) -> list[Node]:
        return [Node("a", "a", x=0.0, y=0.0), Node("b", "b", x=600.0, y=400.0)]

    def test_refit_when_camera_near_best_fit(self) -> None:
        fitter = ViewportFitter()
        best = fitter.fit(self._nodes(), Viewport(800, 600), _radius)
        current = Transform(best.scale + 0.05, best.translate_x, best.translate_y)

        transform = fitter.refit(current, best, self._nodes(), Viewport(400, 300), _radius)

        assert transform is not None
        assert transform.scale < best.scale

    def test_no_refit_after_user_zoom(self) -> None:
        fitter = ViewportFitter()
        best = fitter.fit(self._nodes(), Viewport(800, 600), _radius)
        current = Transform(best.scale + 0.5, 0.0, 0.0)

        assert fitter.refit(current, best, self._nodes(), Viewport(400, 300), _radius) is None

    def test_tolerance_is_configurable(self) -> None:
        fitter = ViewportFitter(FitConfig(refit_scale_tolerance=1.0))
        best = fitter.fit(self._nodes(), Viewport(800, 600), _radius)
        current = Transform(best.scale + 0.5, 0.0, 0.0)

        assert fitter.refit(current, best, self._nodes(), Viewport(400, 300), _radius) is not None

    def test_refit_without_previous_fit(self) -> None:
        fitter = ViewportFitter()
        transform = fitter.refit(Transform.identity(), None, self._nodes(), Viewport(800, 600), _radius)
        assert transform == fitter.fit(self._nodes(), Viewport(800, 600), _radius)
