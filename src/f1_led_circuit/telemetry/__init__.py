"""Telemetry record store.

Public API
----------
TelemetrySample - one validated timing sample for one car
RecordParser    - raw row dict → ParsedRecord
TelemetryStore  - CSV / row iterable → sorted samples per car
SampleStorage   - SQLite persistence of validated samples
load_race       - config → samples, from a file, a directory or a stored session
"""

from f1_led_circuit.telemetry.loader import TelemetryStore, car_id_from_path, load_race
from f1_led_circuit.telemetry.models import ParsedRecord, TelemetrySample
from f1_led_circuit.telemetry.parser import RecordParser
from f1_led_circuit.telemetry.storage import SampleStorage

__all__ = [
    "ParsedRecord",
    "RecordParser",
    "SampleStorage",
    "TelemetrySample",
    "TelemetryStore",
    "car_id_from_path",
    "load_race",
]
