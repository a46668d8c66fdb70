"""CarInterpolator — simulated time → track position for one car.

Positions are interpolated on *cumulative distance* (laps + fraction), not on
the per-lap fraction, so a bracket that spans the start/finish line and a
tick that jumps several laps at high playback speed are both handled
exactly.
"""

from __future__ import annotations

import bisect
import math
from collections.abc import Sequence
from dataclasses import dataclass

from f1_led_circuit.errors import EmptySourceError
from f1_led_circuit.telemetry.models import TelemetrySample

_EPS = 1e-9  # distances within this of a whole lap count as on the line


def laps_in(distance: float) -> int:
    """Whole laps contained in *distance*."""
    return math.floor(distance + _EPS)


def fraction_of(distance: float) -> float:
    """Position within the current lap, in [0, 1)."""
    return max(0.0, distance - laps_in(distance))


@dataclass(frozen=True)
class CarPosition:
    """Result of one :meth:`CarInterpolator.position_at` query."""

    fraction: float
    """Position along the current lap [0.0, 1.0)."""

    distance: float
    """Cumulative distance in laps."""

    lap_delta: int
    """Lap boundaries crossed since the previous query (negative after a rewind)."""

    started: bool
    """False while the query time precedes the car's first sample."""

    finished: bool
    """True once the query time reaches the car's last sample."""


class CarInterpolator:
    """Linear interpolation over one car's sorted telemetry samples.

    Args:
        samples: Samples sorted by timestamp with non-decreasing distance, as
            produced by :class:`~f1_led_circuit.telemetry.loader.TelemetryStore`.

    Raises:
        EmptySourceError: If *samples* is empty.
    """

    def __init__(self, samples: Sequence[TelemetrySample]) -> None:
        if not samples:
            raise EmptySourceError("no samples to interpolate")
        self.car_id = samples[0].car_id
        self._times = [s.timestamp for s in samples]
        self._dists = [s.distance for s in samples]
        self._last_distance = self._dists[0]

    @property
    def start_time(self) -> float:
        return self._times[0]

    @property
    def end_time(self) -> float:
        return self._times[-1]

    @property
    def start_distance(self) -> float:
        return self._dists[0]

    @property
    def final_distance(self) -> float:
        return self._dists[-1]

    def __len__(self) -> int:
        return len(self._times)

    # ------------------------------------------------------------------
    # Stateless queries
    # ------------------------------------------------------------------

    def distance_at(self, t: float) -> float:
        """Cumulative distance at simulated time *t*, clamped to the sample range."""
        times = self._times
        if t <= times[0]:
            return self._dists[0]
        if t >= times[-1]:
            return self._dists[-1]
        i = bisect.bisect_right(times, t)
        t0, t1 = times[i - 1], times[i]
        d0, d1 = self._dists[i - 1], self._dists[i]
        return d0 + (d1 - d0) * (t - t0) / (t1 - t0)

    def laps_completed_at(self, t: float) -> int:
        """Lap boundaries crossed between the first sample and time *t*."""
        return laps_in(self.distance_at(t)) - laps_in(self._dists[0])

    def final_laps(self) -> int:
        """Lap boundaries crossed over the whole recording."""
        return laps_in(self._dists[-1]) - laps_in(self._dists[0])

    def time_at_distance(self, distance: float) -> float:
        """Earliest simulated time at which the car reaches *distance*.

        Clamped to the first/last sample time when *distance* is out of range.
        """
        dists = self._dists
        if distance <= dists[0]:
            return self._times[0]
        if distance > dists[-1]:
            return self._times[-1]
        i = bisect.bisect_left(dists, distance)
        d0, d1 = dists[i - 1], dists[i]
        t0, t1 = self._times[i - 1], self._times[i]
        return t0 + (t1 - t0) * (distance - d0) / (d1 - d0)

    # ------------------------------------------------------------------
    # Stateful queries
    # ------------------------------------------------------------------

    def position_at(self, t: float) -> CarPosition:
        """Return the car's position at *t* and the laps crossed since the last query."""
        distance = self.distance_at(t)
        lap_delta = laps_in(distance) - laps_in(self._last_distance)
        self._last_distance = distance
        return CarPosition(
            fraction=fraction_of(distance),
            distance=distance,
            lap_delta=lap_delta,
            started=t >= self._times[0],
            finished=t >= self._times[-1],
        )

    def sync(self, t: float) -> None:
        """Make *t* the reference point for the next :meth:`position_at` lap delta."""
        self._last_distance = self.distance_at(t)
