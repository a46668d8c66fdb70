"""SimulationEngine — advances the race clock and assembles render frames.

The engine owns the clock, the cars and the track geometry.  The host loop
calls :meth:`SimulationEngine.tick` with the real time elapsed since the
previous call and hands the returned :class:`Frame` to the renderer.
Playback controls are plain method calls made between ticks.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator, Mapping, Sequence
from datetime import timedelta

from f1_led_circuit.config import SimulationConfig
from f1_led_circuit.errors import (
    CarExcludedWarning,
    EmptySourceError,
    EngineBusyError,
    SimulationWarning,
)
from f1_led_circuit.simulation.clock import RaceClock
from f1_led_circuit.simulation.interpolator import CarInterpolator, fraction_of, laps_in
from f1_led_circuit.simulation.models import (
    Car,
    CarFrame,
    CarStatus,
    Frame,
    Overtake,
    RaceState,
)
from f1_led_circuit.telemetry.models import TelemetrySample
from f1_led_circuit.track.geometry import TrackGeometry
from f1_led_circuit.track.layouts import TrackLayout, build_layout

_logger = logging.getLogger(__name__)

_HELD = (CarStatus.FINISHED, CarStatus.DNF)


class SimulationEngine:
    """Race orchestrator.

    Parameters
    ----------
    samples:
        ``car_id`` → samples sorted by timestamp.  Cars with no samples are
        excluded with a :class:`CarExcludedWarning`.
    geometry:
        LED slot ring used to map track fractions to LED indices.
    clock:
        Race clock; a fresh 1x clock when omitted.
    total_laps:
        Race distance.  Cars held at their last sample with fewer laps are
        reported as DNF.  Defaults to the most laps any car completes.
    """

    def __init__(
        self,
        samples: Mapping[str, Sequence[TelemetrySample]],
        geometry: TrackGeometry,
        clock: RaceClock | None = None,
        total_laps: int | None = None,
    ) -> None:
        self._geometry = geometry
        self._clock = clock or RaceClock()
        self._warnings: list[SimulationWarning] = []

        self._cars: dict[str, Car] = {}
        for car_id in sorted(samples):
            try:
                interpolator = CarInterpolator(samples[car_id])
            except EmptySourceError:
                self._warn(CarExcludedWarning(car_id))
                continue
            self._cars[car_id] = Car(car_id=car_id, interpolator=interpolator)

        if total_laps is None:
            total_laps = max((c.interpolator.final_laps() for c in self._cars.values()), default=0)
        self._race_laps = total_laps

        self._state = RaceState.NOT_STARTED if self._cars else RaceState.NO_CARS_ACTIVE
        if not self._cars:
            _logger.warning("No car has usable telemetry; race cannot start")

        self._ticking = False
        self._recount = True
        self._previous_order: list[str] | None = None
        self._frame = self._refresh()

    @classmethod
    def from_config(
        cls,
        samples: Mapping[str, Sequence[TelemetrySample]],
        config: SimulationConfig,
        layout: TrackLayout | None = None,
    ) -> SimulationEngine:
        """Build geometry and clock from *config* and return a ready engine."""
        if layout is None:
            layout = build_layout(config.track_layout_id, config.layout_path)
        geometry = TrackGeometry(config.led_count, layout)
        clock = RaceClock(speed=config.initial_speed_multiplier)
        return cls(samples, geometry, clock=clock, total_laps=config.total_laps)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> RaceState:
        return self._state

    @property
    def geometry(self) -> TrackGeometry:
        return self._geometry

    @property
    def simulated_time(self) -> float:
        return self._clock.simulated_time

    @property
    def speed(self) -> float:
        return self._clock.speed

    @property
    def race_laps(self) -> int:
        return self._race_laps

    def car_ids(self) -> list[str]:
        return list(self._cars)

    def current_frame(self) -> Frame:
        """Return the last frame; valid until the next :meth:`tick`."""
        return self._frame

    def drain_warnings(self) -> list[SimulationWarning]:
        """Return warnings raised since the last call and forget them."""
        drained, self._warnings = self._warnings, []
        return drained

    # ------------------------------------------------------------------
    # Host loop entry point
    # ------------------------------------------------------------------

    def tick(self, wall_delta: float | timedelta = 0.0) -> Frame:
        """Advance the clock by *wall_delta* of real time and return the new frame.

        ``tick(0)`` is a valid way to refresh the frame after a seek while
        paused.

        Raises
        ------
        EngineBusyError
            If called re-entrantly from inside another tick.
        ValueError
            If *wall_delta* is negative.
        """
        with self._tick_guard():
            self._clock.tick(wall_delta)
            self._frame = self._refresh()
        return self._frame

    # ------------------------------------------------------------------
    # Playback controls
    # ------------------------------------------------------------------

    def play(self) -> None:
        """Start or resume the race.  Ignored once finished or with no cars."""
        self._ensure_idle()
        if self._state in (RaceState.NO_CARS_ACTIVE, RaceState.FINISHED):
            _logger.info("play() ignored in state %s", self._state.value)
            return
        self._clock.play()
        self._set_state(RaceState.RUNNING)

    def pause(self) -> None:
        self._ensure_idle()
        if self._state is RaceState.RUNNING:
            self._clock.pause()
            self._set_state(RaceState.PAUSED)

    def set_speed(self, multiplier: float) -> None:
        """Change the playback rate.

        Raises
        ------
        InvalidSpeedError
            If *multiplier* is not > 0; speed and time are left unchanged.
        """
        self._ensure_idle()
        self._clock.set_speed(multiplier)

    def seek(self, to: float) -> None:
        """Jump to simulated time *to*; lap counts are rebuilt on the next tick.

        Raises
        ------
        InvalidSeekError
            If *to* is negative.
        """
        self._ensure_idle()
        discontinuity = self._clock.seek(to)
        if discontinuity is not None:
            self._warn(discontinuity)
        # overtakes are only meaningful between consecutive ticks
        self._recount = True
        self._previous_order = None
        if self._state is RaceState.FINISHED:
            self._set_state(RaceState.PAUSED)

    def reset(self) -> None:
        """Rewind the race to time 0 and the not-started state."""
        self._ensure_idle()
        self._clock.reset()
        self._recount = True
        self._previous_order = None
        if self._state is not RaceState.NO_CARS_ACTIVE:
            self._set_state(RaceState.NOT_STARTED)

    def reset_lap(self) -> None:
        """Seek back to the moment the current leader started its lap.

        The leader is worked out at the current simulated time, so a seek that
        has not been followed by a tick still picks the right car.
        """
        self._ensure_idle()
        t = self._clock.simulated_time
        leader = self._leader_at(t)
        if leader is None:
            return
        interpolator = leader.interpolator
        distance = interpolator.distance_at(t)
        self.seek(interpolator.time_at_distance(laps_in(distance)))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _tick_guard(self) -> Iterator[None]:
        if self._ticking:
            raise EngineBusyError("tick() called while a tick is in progress")
        self._ticking = True
        try:
            yield
        finally:
            self._ticking = False

    def _ensure_idle(self) -> None:
        if self._ticking:
            raise EngineBusyError("playback controls cannot be used during a tick")

    def _leader_at(self, t: float) -> Car | None:
        if not self._cars:
            return None

        def standing(car):
            interpolator = car.interpolator
            distance = interpolator.distance_at(t)
            return (-interpolator.laps_completed_at(t), -fraction_of(distance), car.car_id)

        return min(self._cars.values(), key=standing)

    def _refresh(self) -> Frame:
        t = self._clock.simulated_time
        if self._state is RaceState.NO_CARS_ACTIVE:
            return Frame(simulated_time=t, state=self._state)

        recount, self._recount = self._recount, False
        for car in self._cars.values():
            interpolator = car.interpolator
            if recount:
                interpolator.sync(t)
            pos = interpolator.position_at(t)
            if recount:
                car.lap = interpolator.laps_completed_at(t)
            else:
                car.lap += pos.lap_delta
            car.fraction = pos.fraction
            car.distance = pos.distance
            car.led_index = self._geometry.index_for_fraction(pos.fraction)
            if not pos.started:
                car.status = CarStatus.WAITING
            elif not pos.finished:
                car.status = CarStatus.RUNNING
            elif car.lap >= self._race_laps:
                car.status = CarStatus.FINISHED
            else:
                car.status = CarStatus.DNF

        ordered = sorted(self._cars.values(), key=lambda c: (-c.lap, -c.fraction, c.car_id))
        order = [c.car_id for c in ordered]
        overtakes = self._detect_overtakes(order) if self._previous_order is not None else ()
        self._previous_order = order

        if self._state in (RaceState.RUNNING, RaceState.PAUSED) and all(
            c.status in _HELD for c in ordered
        ):
            self._clock.pause()
            self._set_state(RaceState.FINISHED)

        return Frame(
            simulated_time=t,
            state=self._state,
            cars=tuple(
                CarFrame(
                    car_id=c.car_id,
                    led_index=c.led_index,
                    lap=c.lap,
                    fraction=c.fraction,
                    status=c.status,
                    position=i + 1,
                )
                for i, c in enumerate(ordered)
            ),
            overtakes=overtakes,
        )

    def _detect_overtakes(self, order: list[str]) -> tuple[Overtake, ...]:
        """Return every pair whose relative order flipped since the last tick."""
        previous = {car_id: i for i, car_id in enumerate(self._previous_order or [])}
        found: list[Overtake] = []
        for i, car_id in enumerate(order):
            for behind in order[i + 1:]:
                if previous[car_id] > previous[behind]:
                    found.append(Overtake(
                        car_id=car_id,
                        passed_car_id=behind,
                        lap=self._cars[car_id].lap,
                    ))
        for overtake in found:
            _logger.debug("%s passed %s on lap %d", overtake.car_id, overtake.passed_car_id, overtake.lap)
        return tuple(found)

    def _set_state(self, state: RaceState) -> None:
        if state is not self._state:
            _logger.info("Race state %s -> %s", self._state.value, state.value)
            self._state = state

    def _warn(self, warning: SimulationWarning) -> None:
        _logger.warning("%s", warning.message)
        self._warnings.append(warning)
