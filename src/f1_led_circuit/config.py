"""Runtime configuration for the simulation and its host loop.

Values come from keyword arguments, or from ``F1LED_*`` environment
variables (a ``.env`` file in the working directory is honoured).
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from f1_led_circuit.errors import ConfigError

ENV_PREFIX = "F1LED_"


@dataclass
class SimulationConfig:
    """Options recognised by the engine and the reference collaborators."""

    led_count: int = 120
    """Number of LED slots along the circuit (animation resolution)."""

    initial_speed_multiplier: float = 1.0
    """Playback rate the race clock starts with."""

    track_layout_id: str = "oval"
    """Built-in layout name; ignored when ``layout_path`` is set."""

    layout_path: str | None = None
    """CSV of LED coordinates (``x_led``, ``y_led``)."""

    total_laps: int | None = None
    """Race distance in laps.  ``None`` = the most laps any car completes."""

    telemetry_path: str | None = None
    """Telemetry CSV file or directory of per-driver CSV files."""

    session_id: str | None = None
    """Name the loaded samples are stored under in the session database.
    Without ``telemetry_path`` the race is replayed from that stored session."""

    db_path: str = "race.db"
    """SQLite file holding stored sessions."""

    target_hz: float = 30.0
    """Host loop tick rate."""

    def __post_init__(self) -> None:
        if self.led_count < 1:
            raise ConfigError("led_count must be >= 1")
        if not math.isfinite(self.initial_speed_multiplier) or self.initial_speed_multiplier <= 0:
            raise ConfigError("initial_speed_multiplier must be > 0")
        if not self.track_layout_id and not self.layout_path:
            raise ConfigError("track_layout_id or layout_path is required")
        if self.total_laps is not None and self.total_laps < 0:
            raise ConfigError("total_laps must be >= 0")
        if not math.isfinite(self.target_hz) or self.target_hz <= 0:
            raise ConfigError("target_hz must be > 0")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> SimulationConfig:
        """Build a config from ``F1LED_*`` variables, then apply *overrides*.

        When *environ* is omitted ``.env`` is loaded into ``os.environ`` first.
        ``None`` overrides are ignored so argparse defaults can be passed as-is.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        kwargs: dict = {}
        for name, convert in _ENV_FIELDS:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                kwargs[name] = convert(raw.strip())
            except ValueError as exc:
                raise ConfigError(f"{ENV_PREFIX}{name.upper()}={raw!r}: {exc}") from exc

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)


_ENV_FIELDS: tuple[tuple[str, type], ...] = (
    ("led_count", int),
    ("initial_speed_multiplier", float),
    ("track_layout_id", str),
    ("layout_path", str),
    ("total_laps", int),
    ("telemetry_path", str),
    ("session_id", str),
    ("db_path", str),
    ("target_hz", float),
)
