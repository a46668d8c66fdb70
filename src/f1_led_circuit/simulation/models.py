"""Simulation data models — cars owned by the engine and the frames it emits."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from f1_led_circuit.simulation.interpolator import CarInterpolator


class CarStatus(str, Enum):
    WAITING = "waiting"
    RUNNING = "running"
    FINISHED = "finished"
    DNF = "dnf"


class RaceState(str, Enum):
    """Race lifecycle.

    ::

        NOT_STARTED ──play──▶ RUNNING ◀──play/pause──▶ PAUSED
                                 │
                                 ▼  every car held at its last sample
                              FINISHED

    ``NO_CARS_ACTIVE`` is terminal: no car had usable telemetry.
    """

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"
    NO_CARS_ACTIVE = "no_cars_active"


@dataclass
class Car:
    """Mutable per-car race state.  Only the engine touches it, inside a tick."""

    car_id: str
    interpolator: CarInterpolator
    lap: int = 0
    fraction: float = 0.0
    distance: float = 0.0
    led_index: int = 0
    status: CarStatus = CarStatus.WAITING


@dataclass(frozen=True)
class CarFrame:
    """Render-relevant state of one car in one frame."""

    car_id: str
    led_index: int
    lap: int
    fraction: float
    status: CarStatus
    position: int
    """1-based running order."""


@dataclass(frozen=True)
class Overtake:
    """``car_id`` moved ahead of ``passed_car_id`` since the previous tick."""

    car_id: str
    passed_car_id: str
    lap: int


@dataclass(frozen=True)
class Frame:
    """Immutable snapshot of every active car for a single tick.

    ``cars`` is in running order (leader first).
    """

    simulated_time: float
    state: RaceState
    cars: tuple[CarFrame, ...] = ()
    overtakes: tuple[Overtake, ...] = ()

    @property
    def no_cars_active(self) -> bool:
        return self.state is RaceState.NO_CARS_ACTIVE

    @property
    def leader(self) -> CarFrame | None:
        return self.cars[0] if self.cars else None

    def car(self, car_id: str) -> CarFrame | None:
        """Return the frame entry for *car_id*, or None if it is not racing."""
        for car in self.cars:
            if car.car_id == car_id:
                return car
        return None
