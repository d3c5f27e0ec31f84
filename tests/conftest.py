"""Pytest configuration and fixtures."""

import random

import pytest

from kglens.config import Settings, get_test_settings
from kglens.layout import LayoutConfig, LifecycleOrchestrator
from kglens.models import Viewport


class FakeClock:
    """Manually advanced clock for camera animations."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def test_settings() -> Settings:
    """Test settings: fixed seed, instant camera."""
    return get_test_settings()


@pytest.fixture
def layout_config(test_settings: Settings) -> LayoutConfig:
    """Layout configuration built from test settings."""
    return LayoutConfig.from_settings(test_settings)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def viewport() -> Viewport:
    """Standard 800x600 viewport."""
    return Viewport(800, 600)


@pytest.fixture
def abc_payload() -> dict:
    """Three entities of differing weight: A-B linked, C isolated."""
    return {
        "nodes": [
            {"id": "A", "label": "Alpha", "weight": 0.9},
            {"id": "B", "label": "Beta", "weight": 0.5},
            {"id": "C", "label": "Gamma", "weight": 0.1},
        ],
        "edges": [
            {"from": "A", "to": "B", "evidence": ["chunk-1", "chunk-2"]},
            {"from": "B", "to": "C", "evidence": ["chunk-3"]},
        ],
    }


@pytest.fixture
def two_triangles_payload() -> dict:
    """Two disjoint triangles."""
    return {
        "nodes": [{"id": n, "label": n.upper(), "weight": 0.5} for n in "abcdef"],
        "edges": [
            {"from": "a", "to": "b", "evidence": ["x"]},
            {"from": "b", "to": "c", "evidence": ["x"]},
            {"from": "c", "to": "a", "evidence": ["x"]},
            {"from": "d", "to": "e", "evidence": ["y"]},
            {"from": "e", "to": "f", "evidence": ["y"]},
            {"from": "f", "to": "d", "evidence": ["y"]},
        ],
    }


@pytest.fixture
def legacy_payload() -> dict:
    """Payload in the value/from_node/to_node/chunks shape."""
    return {
        "nodes": [
            {"id": "docker", "label": "Docker", "value": 0.8},
            {"id": "container", "label": "Container", "value": 0.6},
        ],
        "edges": [
            {"from_node": "docker", "to_node": "container", "chunks": ["c1", "c2", "c3", "c4"]},
        ],
    }


@pytest.fixture
def orchestrator(viewport: Viewport, layout_config: LayoutConfig, fake_clock: FakeClock) -> LifecycleOrchestrator:
    """Orchestrator with deterministic seed and a fake clock."""
    return LifecycleOrchestrator(
        viewport,
        config=layout_config,
        clock=fake_clock,
        rng=random.Random(7),
    )
