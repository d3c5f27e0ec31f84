"""Configuration management using Pydantic Settings."""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment presets."""

    DEV = "dev"
    PROD = "prod"
    TEST = "test"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Environment = Environment.DEV
    log_level: str = "INFO"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    max_views: int = Field(
        default=64,
        description="Maximum number of live interactive views kept in memory"
    )

    # Node sizing
    node_radius_base: float = 5.0
    node_radius_scale: float = 15.0
    small_viewport_width: float = 600.0
    small_viewport_height: float = 400.0
    small_viewport_density: float = Field(
        default=0.75,
        description="Radius multiplier applied on viewports smaller than 600x400"
    )

    # Force simulation (d3-force schedule)
    link_distance: float = 100.0
    charge_strength: float = -300.0
    collide_strength: float = 1.0
    alpha_min: float = 0.001
    velocity_decay: float = 0.4
    drag_alpha_target: float = Field(
        default=0.3,
        description="Target energy while a node is being dragged"
    )
    initial_spread_ratio: float = Field(
        default=0.4,
        description="Initial cluster spread as a fraction of the smaller viewport side"
    )
    layout_seed: int | None = Field(
        default=None,
        description="Seed for initial positions (None = nondeterministic)"
    )
    max_ticks: int = 2000

    # Compact packing
    packing_padding: float = 30.0
    packing_padding_small: float = 18.0
    packing_spacing: float = 40.0
    packing_max_attempts: int = 5
    packing_spacing_growth: float = 1.3
    packing_margin_ratio: float = 0.3
    packing_available_radius_ratio: float = 0.35

    # Viewport fitting
    fit_margin: float = 50.0
    fit_max_scale: float = 1.2
    fit_padding_factor: float = 0.95
    refit_scale_tolerance: float = Field(
        default=0.1,
        description="Re-fit on resize only while the camera is this close to the last best fit"
    )

    # Camera / interaction
    min_zoom: float = 0.1
    max_zoom: float = 4.0
    transition_duration: float = Field(
        default=0.75,
        description="Camera animation duration in seconds"
    )
    focus_margin: float = 50.0
    focus_min_scale: float = 0.5
    focus_max_scale: float = 1.5
    focus_default_max_scale: float = 1.2
    focus_reasonable_min_scale: float = Field(
        default=0.25,
        description="Lowest current scale kept (clamped) when focusing an off-screen node"
    )
    focus_reasonable_max_scale: float = Field(
        default=3.0,
        description="Highest current scale kept (clamped) when focusing an off-screen node"
    )
    edge_hit_width: float = 10.0


def get_dev_settings() -> Settings:
    """Get development environment settings."""
    return Settings(
        environment=Environment.DEV,
        log_level="DEBUG",
        api_debug=True,
    )


def get_prod_settings() -> Settings:
    """Get production environment settings."""
    return Settings(
        environment=Environment.PROD,
        log_level="WARNING",
        max_views=256,
    )


def get_test_settings() -> Settings:
    """Get test environment settings.

    Deterministic seed and instant camera animations.
    """
    return Settings(
        environment=Environment.TEST,
        layout_seed=7,
        transition_duration=0.0,
    )


# Global settings instance
settings = Settings()
