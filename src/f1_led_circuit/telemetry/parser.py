"""RecordParser — converts one raw telemetry row into a ParsedRecord."""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from f1_led_circuit.errors import MalformedRecordError
from f1_led_circuit.telemetry.models import ParsedRecord
from f1_led_circuit.track.layouts import TrackLayout

# Accepted column names, checked in order.  Header names are matched
# case-insensitively with surrounding whitespace ignored.
_CAR_KEYS = ("car_id", "car", "driver", "number")
_TIME_KEYS = ("timestamp", "time", "t")
_DATE_KEYS = ("date",)
_DELTA_KEYS = ("time_delta",)
_FRACTION_KEYS = ("fraction", "track_fraction", "lap_dist_pct")
_LAP_KEYS = ("lap",)


def _lookup(row: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[str | None, Any]:
    """Return ``(key, value)`` for the first alias present with a non-blank value."""
    for key in keys:
        if key in row:
            value = row[key]
            if value is None or (isinstance(value, str) and value.strip() == ""):
                continue
            return key, value
    return None, None


def _normalise_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    # a byte-order mark survives on the first header of streams opened as utf-8
    return {str(k).strip().lstrip("\ufeff").lower(): v for k, v in raw.items() if k is not None}


def _to_float(value: Any, name: str, line: int | None) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise MalformedRecordError(f"{name} {value!r} is not numeric", line) from None
    if not math.isfinite(result):
        raise MalformedRecordError(f"{name} {value!r} is not finite", line)
    return result


def _parse_date(value: Any, line: int | None) -> float:
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise MalformedRecordError(f"date {value!r} is not ISO-8601", line) from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


class RecordParser:
    """Parses a raw telemetry row (e.g. from :class:`csv.DictReader`).

    Every field is validated; a row that cannot produce a car id, a timing
    value and a track fraction raises :class:`MalformedRecordError`.  Unlike
    live-telemetry clamping, nothing is silently coerced into range.

    Parameters
    ----------
    layout:
        Used to resolve ``x_led``/``y_led`` coordinates into a track fraction
        when the source has no fraction column.
    default_car_id:
        Car id for rows without a car column (one file per driver).
    """

    def __init__(
        self,
        layout: TrackLayout | None = None,
        default_car_id: str | None = None,
    ) -> None:
        self._layout = layout
        self._default_car_id = default_car_id

    def parse(self, raw: Mapping[str, Any], line: int | None = None) -> ParsedRecord:
        """Convert *raw* into a :class:`ParsedRecord`.

        Raises
        ------
        MalformedRecordError
            If a required field is missing, non-numeric, negative or out of range.
        """
        row = _normalise_keys(raw)

        record = ParsedRecord(
            car_id=self._parse_car_id(row, line),
            fraction=self._parse_fraction(row, line),
            line=line,
        )
        self._parse_timing(row, record, line)

        _, lap = _lookup(row, _LAP_KEYS)
        if lap is not None:
            lap_value = _to_float(lap, "lap", line)
            if lap_value < 0 or lap_value != int(lap_value):
                raise MalformedRecordError(f"lap {lap!r} is not a non-negative integer", line)
            record.lap = int(lap_value)

        return record

    def car_id_of(self, raw: Mapping[str, Any]) -> str | None:
        """Return the car id of *raw* without validating anything else."""
        row = _normalise_keys(raw)
        _, car = _lookup(row, _CAR_KEYS)
        if car is not None and str(car).strip():
            return str(car).strip()
        return self._default_car_id or None

    # ------------------------------------------------------------------
    # Field parsers
    # ------------------------------------------------------------------

    def _parse_car_id(self, row: dict[str, Any], line: int | None) -> str:
        car_id = self.car_id_of(row)
        if car_id is None:
            raise MalformedRecordError("missing car identifier", line)
        return car_id

    def _parse_fraction(self, row: dict[str, Any], line: int | None) -> float:
        _, value = _lookup(row, _FRACTION_KEYS)
        if value is not None:
            fraction = _to_float(value, "fraction", line)
            if not 0.0 <= fraction <= 1.0:
                raise MalformedRecordError(f"fraction {fraction} outside [0, 1]", line)
            return fraction

        _, x = _lookup(row, ("x_led",))
        _, y = _lookup(row, ("y_led",))
        if x is None or y is None:
            raise MalformedRecordError("missing track position", line)
        if self._layout is None:
            raise MalformedRecordError("LED coordinates given but no layout to resolve them", line)
        return self._layout.fraction_near(_to_float(x, "x_led", line), _to_float(y, "y_led", line))

    def _parse_timing(self, row: dict[str, Any], record: ParsedRecord, line: int | None) -> None:
        _, value = _lookup(row, _TIME_KEYS)
        if value is not None:
            timestamp = _to_float(value, "timestamp", line)
            if timestamp < 0:
                raise MalformedRecordError(f"timestamp {timestamp} is negative", line)
            record.timestamp = timestamp
            return

        _, value = _lookup(row, _DATE_KEYS)
        if value is not None:
            record.epoch = _parse_date(value, line)
            return

        if any(key in row for key in _DELTA_KEYS):
            _, value = _lookup(row, _DELTA_KEYS)
            # a blank delta means "advance immediately"
            delta = 0.0 if value is None else _to_float(value, "time_delta", line)
            if delta < 0:
                raise MalformedRecordError(f"time_delta {delta} is negative", line)
            record.time_delta_ms = delta
            return

        raise MalformedRecordError("missing timestamp", line)
