"""Tests for CarInterpolator."""

from __future__ import annotations

import pytest

from f1_led_circuit.errors import EmptySourceError
from f1_led_circuit.simulation.interpolator import CarInterpolator, fraction_of, laps_in
from f1_led_circuit.telemetry.models import TelemetrySample


def make_samples(*pairs: tuple[float, float], car_id: str = "HAM") -> list[TelemetrySample]:
    """Build samples from ``(timestamp, cumulative distance)`` pairs."""
    return [
        TelemetrySample(car_id=car_id, timestamp=t, fraction=fraction_of(d), distance=d)
        for t, d in pairs
    ]


@pytest.fixture
def one_lap() -> CarInterpolator:
    return CarInterpolator(make_samples((0, 0.0), (10, 0.5), (20, 1.0)))


# ---------------------------------------------------------------------------
# laps_in / fraction_of
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("distance,laps,fraction", [
    (0.0, 0, 0.0),
    (0.25, 0, 0.25),
    (1.0, 1, 0.0),
    (2.75, 2, 0.75),
    (2.9999999999999996, 3, 0.0),
])
def test_laps_and_fraction(distance, laps, fraction):
    assert laps_in(distance) == laps
    assert fraction_of(distance) == pytest.approx(fraction, abs=1e-9)


# ---------------------------------------------------------------------------
# distance_at
# ---------------------------------------------------------------------------


def test_midpoint_interpolation(one_lap):
    pos = one_lap.position_at(5.0)
    assert pos.fraction == pytest.approx(0.25)
    assert pos.lap_delta == 0


def test_clamped_before_first_sample():
    interp = CarInterpolator(make_samples((10, 0.2), (20, 0.4)))
    pos = interp.position_at(3.0)
    assert pos.fraction == pytest.approx(0.2)
    assert pos.started is False
    assert pos.finished is False


def test_clamped_after_last_sample(one_lap):
    assert one_lap.distance_at(500.0) == pytest.approx(1.0)
    assert one_lap.position_at(500.0).finished is True


def test_single_sample_is_constant():
    interp = CarInterpolator(make_samples((4, 0.6)))
    assert interp.distance_at(0.0) == pytest.approx(0.6)
    assert interp.distance_at(100.0) == pytest.approx(0.6)
    assert interp.final_laps() == 0


def test_interpolation_is_monotonic():
    interp = CarInterpolator(make_samples((0, 0.0), (3, 0.4), (7, 0.9), (8, 1.3), (15, 2.1)))
    values = [interp.distance_at(t / 10) for t in range(0, 160)]
    assert values == sorted(values)


def test_empty_samples_raise():
    with pytest.raises(EmptySourceError):
        CarInterpolator([])


# ---------------------------------------------------------------------------
# Lap accounting
# ---------------------------------------------------------------------------


def test_line_crossing_counts_exactly_once(one_lap):
    one_lap.position_at(19.0)
    assert one_lap.position_at(20.0).lap_delta == 1
    assert one_lap.position_at(25.0).lap_delta == 0


def test_bracket_spanning_the_line():
    interp = CarInterpolator(make_samples((0, 0.9), (2, 1.1)))
    assert interp.position_at(0.5).lap_delta == 0
    pos = interp.position_at(1.5)
    assert pos.lap_delta == 1
    assert pos.fraction == pytest.approx(0.05)


def test_multi_lap_jump_counts_every_lap():
    interp = CarInterpolator(make_samples((0, 0.0), (10, 1.0), (20, 2.0), (30, 3.0), (40, 3.5)))
    interp.position_at(0.0)
    pos = interp.position_at(35.0)
    assert pos.lap_delta == 3
    assert pos.fraction == pytest.approx(0.25)


def test_rewind_gives_negative_delta_and_sync_clears_it():
    interp = CarInterpolator(make_samples((0, 0.0), (10, 1.0), (20, 2.0)))
    interp.position_at(15.0)
    assert interp.position_at(5.0).lap_delta == -1
    interp.position_at(15.0)
    interp.sync(5.0)
    assert interp.position_at(5.0).lap_delta == 0


def test_laps_completed_counted_from_first_sample():
    interp = CarInterpolator(make_samples((0, 2.5), (10, 3.5), (20, 4.5)))
    assert interp.laps_completed_at(0.0) == 0
    assert interp.laps_completed_at(10.0) == 1
    assert interp.final_laps() == 2


@pytest.mark.parametrize("distance,expected", [
    (0.0, 0.0),
    (0.25, 5.0),
    (1.0, 20.0),
    (-1.0, 0.0),
    (4.0, 20.0),
])
def test_time_at_distance(one_lap, distance, expected):
    assert one_lap.time_at_distance(distance) == pytest.approx(expected)


def test_time_at_distance_first_arrival_when_stationary():
    interp = CarInterpolator(make_samples((0, 0.0), (5, 0.5), (9, 0.5), (10, 1.0)))
    assert interp.time_at_distance(0.5) == pytest.approx(5.0)
