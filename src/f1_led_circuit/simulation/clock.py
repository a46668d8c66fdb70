"""RaceClock — simulated time cursor driven by wall-clock deltas."""

from __future__ import annotations

import math
from datetime import timedelta

from f1_led_circuit.errors import ClockRewindDiscontinuity, InvalidSeekError, InvalidSpeedError


def _validate_speed(multiplier: float) -> float:
    try:
        value = float(multiplier)
    except (TypeError, ValueError):
        raise InvalidSpeedError(f"speed multiplier {multiplier!r} is not a number") from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidSpeedError(f"speed multiplier must be > 0, got {multiplier!r}")
    return value


class RaceClock:
    """Playback clock: ``simulated_time += wall_delta * speed`` while running.

    The clock never reads real time itself; the host loop measures elapsed
    wall time and passes it to :meth:`tick`.  While paused, :meth:`tick` is a
    no-op.

    Parameters
    ----------
    speed:
        Initial speed multiplier (> 0).

    Raises
    ------
    InvalidSpeedError
        If *speed* is not a positive finite number.
    """

    def __init__(self, speed: float = 1.0) -> None:
        self._speed = _validate_speed(speed)
        self._time = 0.0
        self._running = False

    @property
    def simulated_time(self) -> float:
        return self._time

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def running(self) -> bool:
        return self._running

    def tick(self, wall_delta: float | timedelta) -> float:
        """Advance by *wall_delta* (seconds or timedelta); return the new time.

        Raises
        ------
        ValueError
            If *wall_delta* is negative or not finite.
        """
        if isinstance(wall_delta, timedelta):
            wall_delta = wall_delta.total_seconds()
        if not math.isfinite(wall_delta) or wall_delta < 0:
            raise ValueError(f"wall_delta must be a finite value >= 0, got {wall_delta!r}")
        if self._running:
            self._time += wall_delta * self._speed
        return self._time

    def play(self) -> None:
        self._running = True

    def pause(self) -> None:
        self._running = False

    def set_speed(self, multiplier: float) -> None:
        """Change the speed multiplier; invalid values leave the clock untouched."""
        self._speed = _validate_speed(multiplier)

    def seek(self, to: float) -> ClockRewindDiscontinuity | None:
        """Jump to simulated time *to*.

        Returns a :class:`ClockRewindDiscontinuity` when the jump goes
        backward, otherwise ``None``.

        Raises
        ------
        InvalidSeekError
            If *to* is negative or not finite.
        """
        try:
            target = float(to)
        except (TypeError, ValueError):
            raise InvalidSeekError(f"seek target {to!r} is not a number") from None
        if not math.isfinite(target) or target < 0:
            raise InvalidSeekError(f"seek target must be >= 0, got {to!r}")
        previous = self._time
        self._time = target
        if target < previous:
            return ClockRewindDiscontinuity(previous, target)
        return None

    def reset(self) -> None:
        """Rewind to 0 and pause; the speed multiplier is kept."""
        self._time = 0.0
        self._running = False
