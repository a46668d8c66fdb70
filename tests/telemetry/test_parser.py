"""Tests for RecordParser."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from f1_led_circuit.errors import MalformedRecordError
from f1_led_circuit.telemetry.parser import RecordParser
from f1_led_circuit.track.layouts import TrackLayout

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_row(**overrides) -> dict:
    """Return a minimal valid raw row."""
    base = {"car_id": "HAM", "timestamp": "12.5", "fraction": "0.4"}
    base.update(overrides)
    return base


@pytest.fixture
def parser() -> RecordParser:
    return RecordParser()


@pytest.fixture
def square() -> TrackLayout:
    return TrackLayout([(0, 0), (10, 0), (10, 10), (0, 10)], layout_id="square")


# ---------------------------------------------------------------------------
# Valid rows
# ---------------------------------------------------------------------------


def test_parse_field_values(parser):
    record = parser.parse(make_row(), line=7)
    assert record.car_id == "HAM"
    assert record.timestamp == pytest.approx(12.5)
    assert record.fraction == pytest.approx(0.4)
    assert record.line == 7
    assert record.lap is None


def test_parse_accepts_numbers_and_header_aliases(parser):
    record = parser.parse({" Driver ": "VER", "Time": 3, "LAP_DIST_PCT": 0.25, "Lap": "2"})
    assert record.car_id == "VER"
    assert record.timestamp == 3.0
    assert record.fraction == 0.25
    assert record.lap == 2


@pytest.mark.parametrize("fraction", ["0", "0.0", "1.0", "1"])
def test_parse_accepts_fraction_bounds(parser, fraction):
    assert 0.0 <= parser.parse(make_row(fraction=fraction)).fraction <= 1.0


def test_parse_default_car_id_used_without_car_column():
    parser = RecordParser(default_car_id="albon")
    record = parser.parse({"timestamp": "1", "fraction": "0.1"})
    assert record.car_id == "albon"


def test_parse_date_column_gives_epoch(parser):
    record = parser.parse({"car": "NOR", "date": "2024-03-02T15:00:01.500Z", "fraction": "0.5"})
    expected = datetime(2024, 3, 2, 15, 0, 1, 500000, tzinfo=timezone.utc).timestamp()
    assert record.timestamp is None
    assert record.epoch == pytest.approx(expected)


def test_parse_naive_date_is_utc(parser):
    aware = parser.parse({"car": "NOR", "date": "2024-03-02T15:00:00+00:00", "fraction": "0.5"})
    naive = parser.parse({"car": "NOR", "date": "2024-03-02T15:00:00", "fraction": "0.5"})
    assert aware.epoch == naive.epoch


def test_parse_time_delta_column(parser):
    record = parser.parse({"car": "SAI", "time_delta": "250", "fraction": "0.5"})
    assert record.time_delta_ms == 250.0


def test_parse_blank_time_delta_is_zero(parser):
    record = parser.parse({"car": "SAI", "time_delta": "", "fraction": "0.5"})
    assert record.time_delta_ms == 0.0


def test_parse_timestamp_takes_priority_over_date(parser):
    record = parser.parse(make_row(date="2024-03-02T15:00:00Z"))
    assert record.timestamp == 12.5
    assert record.epoch is None


def test_parse_led_coordinates_resolved_through_layout(square):
    parser = RecordParser(layout=square)
    record = parser.parse({"car": "PIA", "timestamp": "1", "x_led": "10.2", "y_led": "9.9"})
    # third vertex of a 40-unit square sits at half a lap
    assert record.fraction == pytest.approx(0.5)


# ---------------------------------------------------------------------------
# Malformed rows
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("overrides", [
    {"timestamp": "abc"},
    {"timestamp": "-1"},
    {"timestamp": "nan"},
    {"timestamp": "inf"},
    {"fraction": "1.5"},
    {"fraction": "-0.1"},
    {"fraction": "fast"},
    {"lap": "-1"},
    {"lap": "1.5"},
    {"car_id": ""},
])
def test_parse_rejects_bad_fields(parser, overrides):
    with pytest.raises(MalformedRecordError):
        parser.parse(make_row(**overrides))


def test_parse_missing_timing_is_malformed(parser):
    with pytest.raises(MalformedRecordError, match="timestamp"):
        parser.parse({"car_id": "HAM", "fraction": "0.4"})


def test_parse_missing_position_is_malformed(parser):
    with pytest.raises(MalformedRecordError, match="position"):
        parser.parse({"car_id": "HAM", "timestamp": "1"})


def test_parse_led_coordinates_without_layout_is_malformed(parser):
    with pytest.raises(MalformedRecordError, match="layout"):
        parser.parse({"car_id": "HAM", "timestamp": "1", "x_led": "1", "y_led": "2"})


def test_parse_bad_date_is_malformed(parser):
    with pytest.raises(MalformedRecordError, match="ISO-8601"):
        parser.parse({"car_id": "HAM", "date": "yesterday", "fraction": "0.4"})


def test_malformed_error_carries_line(parser):
    with pytest.raises(MalformedRecordError) as excinfo:
        parser.parse(make_row(timestamp="x"), line=42)
    assert excinfo.value.line == 42
    assert "row 42" in str(excinfo.value)


def test_car_id_of_ignores_other_fields(parser):
    assert parser.car_id_of({"car": " LEC ", "timestamp": "bogus"}) == "LEC"
    assert parser.car_id_of({"timestamp": "1"}) is None
