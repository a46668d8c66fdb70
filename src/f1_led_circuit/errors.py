"""Exceptions and structured warnings raised by the simulation core.

Exceptions are raised for requests the core refuses (bad rows, bad speed,
bad seek).  Warnings are *values*: they are collected on the object that
produced them, logged, and handed to the caller so a UI can display them.
None of them stops a race that still has at least one usable car.
"""

from __future__ import annotations


class SimulationError(Exception):
    """Base class for every error raised by the simulation core."""


class MalformedRecordError(SimulationError, ValueError):
    """Raised when a telemetry row cannot be parsed into the required fields."""

    def __init__(self, reason: str, line: int | None = None) -> None:
        self.reason = reason
        self.line = line
        where = f"row {line}: " if line is not None else ""
        super().__init__(f"{where}{reason}")


class EmptySourceError(SimulationError, ValueError):
    """Raised when a car (or a whole source) yields no usable samples."""

    def __init__(self, message: str, car_id: str | None = None) -> None:
        self.car_id = car_id
        super().__init__(message)


class InvalidSpeedError(SimulationError, ValueError):
    """Raised when a non-positive or non-finite speed multiplier is requested."""


class InvalidSeekError(SimulationError, ValueError):
    """Raised when a seek targets a negative simulated time."""


class EngineBusyError(SimulationError, RuntimeError):
    """Raised when a playback control is invoked while a tick is in progress."""


class ConfigError(SimulationError, ValueError):
    """Raised when a configuration value is missing or out of range."""


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------


class SimulationWarning(UserWarning):
    """Base class for recoverable conditions reported to the caller."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class RecordSkippedWarning(SimulationWarning):
    """A telemetry row was skipped because it was malformed."""

    def __init__(self, reason: str, line: int | None = None, car_id: str | None = None) -> None:
        self.reason = reason
        self.line = line
        self.car_id = car_id
        where = f" (row {line})" if line is not None else ""
        super().__init__(f"skipped telemetry row{where}: {reason}")


class DuplicateSampleWarning(SimulationWarning):
    """Several rows for one car shared a timestamp; the last one was kept."""

    def __init__(self, car_id: str, timestamp: float, dropped: int) -> None:
        self.car_id = car_id
        self.timestamp = timestamp
        self.dropped = dropped
        super().__init__(
            f"car {car_id}: {dropped} duplicate sample(s) at t={timestamp:.3f}s replaced"
        )


class CarExcludedWarning(SimulationWarning):
    """A car had no usable samples and was removed from the race."""

    def __init__(self, car_id: str, reason: str = "no usable samples") -> None:
        self.car_id = car_id
        self.reason = reason
        super().__init__(f"car {car_id} excluded: {reason}")


class ClockRewindDiscontinuity(SimulationWarning):
    """The race clock was moved backward; lap counts must be recomputed."""

    def __init__(self, from_time: float, to_time: float) -> None:
        self.from_time = from_time
        self.to_time = to_time
        super().__init__(f"clock rewound from {from_time:.3f}s to {to_time:.3f}s")
