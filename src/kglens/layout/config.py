"""Configuration for the layout engine."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from kglens.config import Settings
    from kglens.models import Node, Viewport


@dataclass
class SimulationConfig:
    """Configuration for the force simulation."""

    link_distance: float = 100.0
    charge_strength: float = -300.0
    collide_strength: float = 1.0

    # Cooling schedule
    alpha_min: float = 0.001
    alpha_decay: float = 1 - math.pow(0.001, 1 / 300)  # ~300 ticks to rest
    velocity_decay: float = 0.4

    drag_alpha_target: float = 0.3
    initial_spread_ratio: float = 0.4
    seed: int | None = None
    max_ticks: int = 2000


@dataclass
class PackingConfig:
    """Configuration for compact component packing."""

    padding: float = 30.0
    padding_small: float = 18.0  # Viewports smaller than 600x400
    spacing: float = 40.0
    max_attempts: int = 5
    spacing_growth: float = 1.3
    margin_ratio: float = 0.3  # Overlap margin = ratio * padding
    available_radius_ratio: float = 0.35


@dataclass
class FitConfig:
    """Configuration for viewport fitting."""

    margin: float = 50.0
    max_scale: float = 1.2
    padding_factor: float = 0.95
    refit_scale_tolerance: float = 0.1


@dataclass
class InteractionConfig:
    """Configuration for camera and pointer interaction."""

    min_zoom: float = 0.1
    max_zoom: float = 4.0
    transition_duration: float = 0.75  # seconds
    focus_margin: float = 50.0
    focus_min_scale: float = 0.5
    focus_max_scale: float = 1.5
    focus_default_max_scale: float = 1.2
    # Scales outside this band are not "reasonable" to keep when focusing
    reasonable_min_scale: float = 0.25
    reasonable_max_scale: float = 3.0
    edge_hit_width: float = 10.0


@dataclass
class LayoutConfig:
    """Combined configuration for the layout pipeline."""

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    packing: PackingConfig = field(default_factory=PackingConfig)
    fit: FitConfig = field(default_factory=FitConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)

    # Node sizing
    radius_base: float = 5.0
    radius_scale: float = 15.0
    small_width: float = 600.0
    small_height: float = 400.0
    small_density: float = 0.75

    def is_small(self, viewport: Viewport) -> bool:
        """Whether the viewport counts as small (denser layout, tighter padding)."""
        return viewport.width < self.small_width or viewport.height < self.small_height

    def density(self, viewport: Viewport) -> float:
        """Radius multiplier for the given viewport."""
        return self.small_density if self.is_small(viewport) else 1.0

    def radius_fn(self, viewport: Viewport) -> Callable[[Node], float]:
        """Radius accessor for nodes drawn in the given viewport."""
        density = self.density(viewport)
        return lambda node: node.radius(density, self.radius_base, self.radius_scale)

    def padding(self, viewport: Viewport) -> float:
        """Component box padding for the given viewport."""
        return self.packing.padding_small if self.is_small(viewport) else self.packing.padding

    @classmethod
    def from_settings(cls, settings: Settings) -> LayoutConfig:
        """Build the layout configuration from application settings."""
        return cls(
            simulation=SimulationConfig(
                link_distance=settings.link_distance,
                charge_strength=settings.charge_strength,
                collide_strength=settings.collide_strength,
                alpha_min=settings.alpha_min,
                alpha_decay=1 - math.pow(settings.alpha_min, 1 / 300),
                velocity_decay=settings.velocity_decay,
                drag_alpha_target=settings.drag_alpha_target,
                initial_spread_ratio=settings.initial_spread_ratio,
                seed=settings.layout_seed,
                max_ticks=settings.max_ticks,
            ),
            packing=PackingConfig(
                padding=settings.packing_padding,
                padding_small=settings.packing_padding_small,
                spacing=settings.packing_spacing,
                max_attempts=settings.packing_max_attempts,
                spacing_growth=settings.packing_spacing_growth,
                margin_ratio=settings.packing_margin_ratio,
                available_radius_ratio=settings.packing_available_radius_ratio,
            ),
            fit=FitConfig(
                margin=settings.fit_margin,
                max_scale=settings.fit_max_scale,
                padding_factor=settings.fit_padding_factor,
                refit_scale_tolerance=settings.refit_scale_tolerance,
            ),
            interaction=InteractionConfig(
                min_zoom=settings.min_zoom,
                max_zoom=settings.max_zoom,
                transition_duration=settings.transition_duration,
                focus_margin=settings.focus_margin,
                focus_min_scale=settings.focus_min_scale,
                focus_max_scale=settings.focus_max_scale,
                focus_default_max_scale=settings.focus_default_max_scale,
                reasonable_min_scale=settings.focus_reasonable_min_scale,
                reasonable_max_scale=settings.focus_reasonable_max_scale,
                edge_hit_width=settings.edge_hit_width,
            ),
            radius_base=settings.node_radius_base,
            radius_scale=settings.node_radius_scale,
            small_width=settings.small_viewport_width,
            small_height=settings.small_viewport_height,
            small_density=settings.small_viewport_density,
        )
