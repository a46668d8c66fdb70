"""Race clock, car interpolation and the simulation engine."""

from f1_led_circuit.simulation.clock import RaceClock
from f1_led_circuit.simulation.engine import SimulationEngine
from f1_led_circuit.simulation.interpolator import CarInterpolator, CarPosition
from f1_led_circuit.simulation.models import (
    Car,
    CarFrame,
    CarStatus,
    Frame,
    Overtake,
    RaceState,
)

__all__ = [
    "Car",
    "CarFrame",
    "CarInterpolator",
    "CarPosition",
    "CarStatus",
    "Frame",
    "Overtake",
    "RaceClock",
    "RaceState",
    "SimulationEngine",
]
