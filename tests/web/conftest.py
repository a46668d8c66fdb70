"""Shared fixtures for web tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from f1_led_circuit.simulation.engine import SimulationEngine
from f1_led_circuit.simulation.interpolator import fraction_of
from f1_led_circuit.telemetry.models import TelemetrySample
from f1_led_circuit.track.geometry import TrackGeometry
from f1_led_circuit.web.app import create_app
from f1_led_circuit.web.service import ReplayService


class FakeClock:
    """Manually advanced stand-in for ``time.monotonic``."""

    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_samples(car_id: str, *pairs: tuple[float, float]) -> list[TelemetrySample]:
    """Build samples from ``(timestamp, cumulative distance)`` pairs."""
    return [
        TelemetrySample(car_id=car_id, timestamp=t, fraction=fraction_of(d), distance=d)
        for t, d in pairs
    ]


@pytest.fixture
def wall_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine() -> SimulationEngine:
    """A finishes two laps at t=20; B stops after 1.3 laps at t=15."""
    samples = {
        "A": make_samples("A", (0, 0.0), (10, 1.0), (20, 2.0)),
        "B": make_samples("B", (0, 0.0), (15, 1.3)),
    }
    return SimulationEngine(samples, TrackGeometry(led_count=10))


@pytest.fixture
def service(engine, wall_clock) -> ReplayService:
    return ReplayService(engine, clock=wall_clock)


@pytest.fixture
def client(service):
    """FastAPI test client bound to the fake-clock service."""
    with TestClient(create_app(service)) as c:
        yield c
