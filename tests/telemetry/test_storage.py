"""Tests for SampleStorage."""

from __future__ import annotations

import pytest

from f1_led_circuit.telemetry.models import TelemetrySample
from f1_led_circuit.telemetry.storage import SampleStorage


def make_samples(car_id: str, n: int = 5) -> list[TelemetrySample]:
    return [
        TelemetrySample(car_id=car_id, timestamp=i * 2.0, fraction=(i * 0.3) % 1.0, distance=i * 0.3)
        for i in range(n)
    ]


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "race.db")


@pytest.fixture
def storage(db_path):
    s = SampleStorage(db_path)
    yield s
    s.close()


def test_save_and_load_round_trip(storage):
    samples = {"HAM": make_samples("HAM"), "VER": make_samples("VER", 3)}
    written = storage.save_samples("monza_2024", samples)
    assert written == 8
    assert storage.load_samples("monza_2024") == samples


def test_load_unknown_session_is_empty(storage):
    assert storage.load_samples("nope") == {}


def test_sessions_are_isolated(storage):
    storage.save_samples("a", {"HAM": make_samples("HAM", 2)})
    storage.save_samples("b", {"VER": make_samples("VER", 4)})
    assert list(storage.load_samples("a")) == ["HAM"]
    assert list(storage.load_samples("b")) == ["VER"]
    assert storage.list_sessions() == ["a", "b"]


def test_save_replaces_previous_samples(storage):
    storage.save_samples("a", {"HAM": make_samples("HAM", 5)})
    storage.save_samples("a", {"HAM": make_samples("HAM", 2)})
    assert len(storage.load_samples("a")["HAM"]) == 2


def test_data_persists_across_connections(db_path):
    first = SampleStorage(db_path)
    first.save_samples("s", {"LEC": make_samples("LEC")})
    first.close()

    second = SampleStorage(db_path)
    try:
        assert second.load_samples("s")["LEC"] == make_samples("LEC")
    finally:
        second.close()


def test_in_memory_database():
    storage = SampleStorage(":memory:")
    storage.save_samples("s", {"NOR": make_samples("NOR", 1)})
    assert storage.load_samples("s")["NOR"][0].car_id == "NOR"
    storage.close()
