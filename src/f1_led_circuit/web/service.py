"""ReplayService — drives one SimulationEngine from HTTP requests.

There is no background tick loop: every request first advances the engine
by the real time elapsed since the previous request.  All engine access is
serialised with a lock because FastAPI runs sync endpoints in a thread pool.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from f1_led_circuit.config import SimulationConfig
from f1_led_circuit.errors import SimulationWarning
from f1_led_circuit.overlay.renderer import format_clock
from f1_led_circuit.simulation.engine import SimulationEngine
from f1_led_circuit.simulation.models import Frame
from f1_led_circuit.telemetry.loader import load_race
from f1_led_circuit.track.layouts import build_layout
from f1_led_circuit.web.schemas import (
    CarState,
    FrameResponse,
    OvertakeRecord,
    PlaybackResponse,
    WarningRecord,
)

_logger = logging.getLogger(__name__)


class ReplayService:
    """Owns an engine and exposes its frame and playback controls.

    Parameters
    ----------
    engine:
        The engine to drive.
    clock:
        Monotonic wall-clock source in seconds.  Injected for testability;
        defaults to :func:`time.monotonic`.
    """

    def __init__(
        self,
        engine: SimulationEngine,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._engine = engine
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._last_wall = self._clock()
        self._warnings: list[SimulationWarning] = []

    @classmethod
    def from_config(cls, config: SimulationConfig) -> ReplayService:
        """Load the race named by *config* and build an engine around it.

        The samples come from ``config.telemetry_path`` or from the stored
        session ``config.session_id``; see :func:`load_race`.

        Raises
        ------
        ConfigError
            If neither a telemetry path nor a session id is configured.
        EmptySourceError
            If the telemetry has no usable car.
        """
        layout = build_layout(config.track_layout_id, config.layout_path)
        samples, load_warnings = load_race(config, layout=layout)
        service = cls(SimulationEngine.from_config(samples, config, layout=layout))
        service._warnings.extend(load_warnings)
        _logger.info(
            "Replay service ready: %d car(s) on %s, %d LEDs",
            len(samples), layout.layout_id, config.led_count,
        )
        return service

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def frame(self) -> FrameResponse:
        """Advance by the elapsed wall time and return the new frame."""
        with self._lock:
            return self._to_response(self._advance())

    def play(self) -> PlaybackResponse:
        return self._control(lambda e: e.play())

    def pause(self) -> PlaybackResponse:
        return self._control(lambda e: e.pause())

    def reset(self) -> PlaybackResponse:
        return self._control(lambda e: e.reset())

    def reset_lap(self) -> PlaybackResponse:
        return self._control(lambda e: e.reset_lap())

    def set_speed(self, multiplier: float) -> PlaybackResponse:
        """Raises :class:`InvalidSpeedError` for non-positive *multiplier*."""
        return self._control(lambda e: e.set_speed(multiplier))

    def seek(self, to: float) -> PlaybackResponse:
        """Raises :class:`InvalidSeekError` for negative *to*."""
        return self._control(lambda e: e.seek(to))

    def drain_warnings(self) -> list[WarningRecord]:
        """Return the load and engine warnings raised since the previous call."""
        with self._lock:
            pending = self._warnings + self._engine.drain_warnings()
            self._warnings = []
            return [WarningRecord(kind=type(w).__name__, message=w.message) for w in pending]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _advance(self) -> Frame:
        now = self._clock()
        delta = max(now - self._last_wall, 0.0)
        self._last_wall = now
        return self._engine.tick(delta)

    def _control(self, action: Callable[[SimulationEngine], None]) -> PlaybackResponse:
        with self._lock:
            # time elapsed before the control still counts at the old rate
            self._advance()
            action(self._engine)
            frame = self._engine.tick(0.0)
            return PlaybackResponse(
                state=frame.state.value,
                simulated_time=frame.simulated_time,
                speed=self._engine.speed,
            )

    def _to_response(self, frame: Frame) -> FrameResponse:
        return FrameResponse(
            simulated_time=frame.simulated_time,
            clock=format_clock(frame.simulated_time),
            state=frame.state.value,
            speed=self._engine.speed,
            led_count=self._engine.geometry.slot_count(),
            cars=[
                CarState(
                    car_id=c.car_id,
                    position=c.position,
                    led_index=c.led_index,
                    lap=c.lap,
                    fraction=c.fraction,
                    status=c.status.value,
                )
                for c in frame.cars
            ],
            overtakes=[
                OvertakeRecord(car_id=o.car_id, passed_car_id=o.passed_car_id, lap=o.lap)
                for o in frame.overtakes
            ],
        )
