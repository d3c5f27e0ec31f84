"""Pan/zoom camera with preemptible eased transitions."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from kglens.layout.config import InteractionConfig
from kglens.models import Transform

logger = logging.getLogger(__name__)


def ease_cubic_in_out(t: float) -> float:
    """Cubic ease-in-out on [0, 1]."""
    t = min(max(t, 0.0), 1.0) * 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


@dataclass
class Transition:
    """An in-flight camera animation."""

    start: Transform
    target: Transform
    started_at: float
    duration: float

    def at(self, now: float) -> tuple[Transform, bool]:
        """Interpolated transform at `now` and whether the animation is done."""
        if self.duration <= 0:
            return self.target, True
        progress = (now - self.started_at) / self.duration
        if progress >= 1:
            return self.target, True
        return self.start.interpolate(self.target, ease_cubic_in_out(progress)), False


class Camera:
    """
    Live camera transform with a bounded scale extent.

    `animate_to` retargets from wherever the camera currently is, so a new
    request always supersedes the one in flight. Gestures (`zoom`, `pan`,
    `set_transform`) interrupt any animation.
    """

    def __init__(
        self,
        config: InteractionConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config or InteractionConfig()
        self.clock = clock or time.monotonic
        self.transform = Transform.identity()
        self._transition: Transition | None = None
        self._listeners: list[Callable[[Transform], None]] = []

    @property
    def animating(self) -> bool:
        return self._transition is not None

    @property
    def target(self) -> Transform:
        """Where the camera will end up once the current animation completes."""
        return self._transition.target if self._transition else self.transform

    def on_change(self, listener: Callable[[Transform], None]) -> None:
        self._listeners.append(listener)

    def _set(self, transform: Transform) -> None:
        if transform != self.transform:
            self.transform = transform
            for listener in self._listeners:
                listener(transform)

    def constrain(self, transform: Transform) -> Transform:
        """Clamp the scale into [min_zoom, max_zoom]."""
        scale = min(max(transform.scale, self.config.min_zoom), self.config.max_zoom)
        if scale == transform.scale:
            return transform
        return Transform(scale, transform.translate_x, transform.translate_y)

    def reset(self) -> None:
        """Discard the camera state entirely."""
        self._transition = None
        self._set(Transform.identity())

    def set_transform(self, transform: Transform) -> None:
        """Jump to a transform immediately, interrupting any animation."""
        self._transition = None
        self._set(self.constrain(transform))

    def animate_to(self, transform: Transform, duration: float | None = None) -> None:
        """Start an eased animation towards `transform`, superseding any in flight."""
        now = self.clock()
        self.advance(now)
        duration = self.config.transition_duration if duration is None else duration
        self._transition = Transition(
            start=self.transform,
            target=self.constrain(transform),
            started_at=now,
            duration=duration,
        )
        if duration <= 0:
            self.finish()

    def advance(self, now: float | None = None) -> bool:
        """Update the live transform from the running animation; True while animating."""
        if self._transition is None:
            return False
        transform, done = self._transition.at(self.clock() if now is None else now)
        if done:
            self._transition = None
        self._set(transform)
        return self._transition is not None

    def finish(self) -> None:
        """Complete the running animation instantly."""
        if self._transition is not None:
            target = self._transition.target
            self._transition = None
            self._set(target)

    def zoom(self, factor: float, anchor_x: float, anchor_y: float) -> Transform:
        """Scale by `factor` keeping the screen point (anchor_x, anchor_y) fixed."""
        current = self.transform
        mx, my = current.invert(anchor_x, anchor_y)
        scale = min(max(current.scale * factor, self.config.min_zoom), self.config.max_zoom)
        self.set_transform(
            Transform(scale=scale, translate_x=anchor_x - mx * scale, translate_y=anchor_y - my * scale)
        )
        return self.transform

    def pan(self, dx: float, dy: float) -> Transform:
        """Translate by a screen-space delta."""
        current = self.transform
        self.set_transform(
            Transform(current.scale, current.translate_x + dx, current.translate_y + dy)
        )
        return self.transform
