"""Telemetry data models."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class TelemetrySample:
    """One validated timing sample for one car.

    Produced only by :class:`~f1_led_circuit.telemetry.loader.TelemetryStore`
    (or read back from storage), so the invariants below always hold.
    """

    car_id: str
    """Driver name or car number."""

    timestamp: float
    """Simulated-time offset in seconds. >= 0."""

    fraction: float
    """Position along the current lap [0.0, 1.0]."""

    distance: float
    """Cumulative distance in laps (laps completed + fraction).

    Non-decreasing across a car's samples."""

    @property
    def lap(self) -> int:
        """Whole laps completed at this sample."""
        return math.floor(self.distance)


@dataclass
class ParsedRecord:
    """A single input row after parsing, before per-car validation.

    Exactly one of ``timestamp`` / ``epoch`` / ``time_delta_ms`` carries the
    row's timing, depending on which column the source provides.
    """

    car_id: str
    fraction: float
    line: int | None = None
    timestamp: float | None = None
    epoch: float | None = None
    time_delta_ms: float | None = None
    lap: int | None = None
