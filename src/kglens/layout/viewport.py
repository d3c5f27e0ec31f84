"""Best-fit camera computation."""

import logging
from collections.abc import Sequence
from typing import Callable

from kglens.layout.config import FitConfig
from kglens.layout.packing import BoundingBox
from kglens.models import Node, Transform, Viewport

logger = logging.getLogger(__name__)


class ViewportFitter:
    """Computes the scale/translate transform that frames all nodes."""

    def __init__(self, config: FitConfig | None = None) -> None:
        self.config = config or FitConfig()

    def content_bounds(
        self, nodes: Sequence[Node], radius: Callable[[Node], float]
    ) -> BoundingBox | None:
        """Bounds of all node circles plus the fixed margin; None when empty."""
        box = BoundingBox.around(nodes, radius)
        return box.expand(self.config.margin) if box is not None else None

    def fit(
        self, nodes: Sequence[Node], viewport: Viewport, radius: Callable[[Node], float]
    ) -> Transform:
        """
        Transform that centres all content in the viewport.

        scale = min(vw / bw, vh / bh, max_scale) * padding_factor

        Degenerate content (no nodes, or every centre at one point) keeps
        scale 1 and only recentres that point.
        """
        if not nodes:
            return Transform.identity()

        first = nodes[0]
        if all(n.x == first.x and n.y == first.y for n in nodes):
            cx, cy = viewport.center
            return Transform(scale=1.0, translate_x=cx - first.x, translate_y=cy - first.y)

        return self._fit_box(self.content_bounds(nodes, radius), viewport)

    def _fit_box(self, box: BoundingBox, viewport: Viewport) -> Transform:
        cfg = self.config
        scale = min(viewport.width / box.width, viewport.height / box.height, cfg.max_scale)
        scale *= cfg.padding_factor
        bx, by = box.center
        cx, cy = viewport.center
        transform = Transform(
            scale=scale,
            translate_x=cx - bx * scale,
            translate_y=cy - by * scale,
        )
        logger.debug(f"Best fit for {box.width:.0f}x{box.height:.0f} content: scale {scale:.3f}")
        return transform

    def refit(
        self,
        current: Transform,
        previous_best: Transform | None,
        nodes: Sequence[Node],
        viewport: Viewport,
        radius: Callable[[Node], float],
    ) -> Transform | None:
        """
        New best fit after a resize, or None to leave the user's view alone.

        The fit is re-applied only while the camera scale is still within
        `refit_scale_tolerance` of the previous best fit.
        """
        if previous_best is not None:
            drift = abs(current.scale - previous_best.scale)
            if drift >= self.config.refit_scale_tolerance:
                logger.debug(f"Skipping re-fit: camera scale drifted {drift:.2f} from best fit")
                return None
        return self.fit(nodes, viewport, radius)
