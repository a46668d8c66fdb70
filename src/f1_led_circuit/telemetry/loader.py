"""TelemetryStore — loads raw telemetry into sorted per-car sample sequences.

Pipeline
--------
1. Parse every row with :class:`RecordParser`; malformed rows are skipped
   and reported as :class:`RecordSkippedWarning`.
2. Group by car and resolve timing: absolute ``date`` values are rebased to
   the earliest date in the source, ``time_delta`` values are accumulated
   in input order.
3. Stable-sort each car's rows by timestamp.  Rows sharing a timestamp are
   merged: the last one in input order wins.
4. Unwrap the per-lap fraction into cumulative distance and clamp backward
   jitter so distance never decreases.

A car left with no samples is excluded with :class:`CarExcludedWarning`.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from f1_led_circuit.config import SimulationConfig
from f1_led_circuit.errors import (
    CarExcludedWarning,
    ConfigError,
    DuplicateSampleWarning,
    EmptySourceError,
    MalformedRecordError,
    RecordSkippedWarning,
    SimulationWarning,
)
from f1_led_circuit.telemetry.models import ParsedRecord, TelemetrySample
from f1_led_circuit.telemetry.parser import RecordParser
from f1_led_circuit.telemetry.storage import SampleStorage
from f1_led_circuit.track.layouts import TrackLayout

_logger = logging.getLogger(__name__)

# A fraction drop larger than this between consecutive samples is a line crossing.
_WRAP_THRESHOLD = 0.5

_FILENAME_CAR = re.compile(r"^time_delta_(?P<car>.+?)_start$")

Source = str | Path | io.TextIOBase | Iterable[Mapping[str, Any]]


def car_id_from_path(path: str | Path) -> str:
    """Derive a car id from a per-driver file name.

    ``time_delta_hamilton_start.csv`` → ``"hamilton"``; anything else → the stem.
    """
    stem = Path(path).stem
    match = _FILENAME_CAR.match(stem)
    return match.group("car") if match else stem


class TelemetryStore:
    """Holds validated telemetry samples for every car in a race.

    Parameters
    ----------
    layout:
        Needed only for sources that give ``x_led``/``y_led`` positions.

    Attributes
    ----------
    samples:
        ``car_id`` → samples sorted by timestamp; filled by :meth:`load`.
    warnings:
        Recoverable problems found while loading, in the order found.
    """

    def __init__(self, layout: TrackLayout | None = None) -> None:
        self._layout = layout
        self.samples: dict[str, list[TelemetrySample]] = {}
        self.warnings: list[SimulationWarning] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self, source: Source, car_id: str | None = None) -> dict[str, list[TelemetrySample]]:
        """Load *source* and return ``car_id`` → sorted samples.

        Args:
            source: CSV path, open text stream, or iterable of row mappings.
            car_id: Car id for rows without a car column.

        Raises:
            EmptySourceError: If no car has a single usable sample.
        """
        seen: set[str] = {car_id} if car_id else set()
        records = self._parse_rows(self._iter_rows(source), car_id, seen)
        loaded = self._build(records, seen, source_name=self._describe(source, car_id))
        self.samples.update(loaded)
        return loaded

    def load_directory(
        self, directory: str | Path, pattern: str = "*.csv"
    ) -> dict[str, list[TelemetrySample]]:
        """Load one CSV per car from *directory*; car ids come from file names.

        Rows are rebased together, so ``date`` columns stay aligned across files.

        Raises:
            EmptySourceError: If no file yields a usable car.
        """
        directory = Path(directory)
        records: list[ParsedRecord] = []
        seen: set[str] = set()
        for path in sorted(directory.glob(pattern)):
            car_id = car_id_from_path(path)
            seen.add(car_id)
            records.extend(self._parse_rows(self._iter_rows(path), car_id, seen))
        loaded = self._build(records, seen, source_name=str(directory))
        self.samples.update(loaded)
        return loaded

    def samples_for(self, car_id: str) -> list[TelemetrySample]:
        """Return the samples of *car_id*, or an empty list if unknown."""
        return self.samples.get(car_id, [])

    def car_ids(self) -> list[str]:
        return sorted(self.samples)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _iter_rows(source: Source) -> Iterable[Mapping[str, Any]]:
        if isinstance(source, (str, Path)):
            with Path(source).open(newline="", encoding="utf-8-sig") as fh:
                yield from csv.DictReader(fh)
        elif isinstance(source, io.TextIOBase):
            yield from csv.DictReader(source)
        else:
            yield from source

    @staticmethod
    def _describe(source: Source, car_id: str | None) -> str:
        if isinstance(source, (str, Path)):
            return str(source)
        return car_id or "telemetry rows"

    def _parse_rows(
        self, rows: Iterable[Mapping[str, Any]], car_id: str | None, seen: set[str]
    ) -> list[ParsedRecord]:
        """Parse *rows*, adding every car id encountered (even on bad rows) to *seen*."""
        parser = RecordParser(layout=self._layout, default_car_id=car_id)
        records: list[ParsedRecord] = []
        # line 1 is the CSV header
        for line, row in enumerate(rows, start=2):
            try:
                record = parser.parse(row, line=line)
            except MalformedRecordError as exc:
                row_car = parser.car_id_of(row)
                if row_car:
                    seen.add(row_car)
                self._warn(RecordSkippedWarning(exc.reason, line=line, car_id=row_car))
                continue
            seen.add(record.car_id)
            records.append(record)
        return records

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _build(
        self, records: list[ParsedRecord], seen: set[str], source_name: str
    ) -> dict[str, list[TelemetrySample]]:
        by_car: dict[str, list[ParsedRecord]] = {car_id: [] for car_id in seen}
        for rec in records:
            by_car.setdefault(rec.car_id, []).append(rec)

        epochs = [r.epoch for r in records if r.epoch is not None]
        base_epoch = min(epochs) if epochs else 0.0

        loaded: dict[str, list[TelemetrySample]] = {}
        for car_id in sorted(by_car):
            try:
                loaded[car_id] = self._build_car(car_id, by_car[car_id], base_epoch)
            except EmptySourceError as exc:
                self._warn(CarExcludedWarning(car_id, str(exc)))

        if not loaded:
            raise EmptySourceError(f"no usable telemetry in {source_name}")
        _logger.info("Loaded %d car(s) from %s", len(loaded), source_name)
        return loaded

    def _build_car(
        self, car_id: str, records: list[ParsedRecord], base_epoch: float
    ) -> list[TelemetrySample]:
        timed: list[tuple[float, ParsedRecord]] = []
        elapsed_ms = 0.0
        for rec in records:
            if rec.timestamp is not None:
                t = rec.timestamp
            elif rec.epoch is not None:
                t = rec.epoch - base_epoch
            else:
                # the row is shown until its delay expires, then the next row
                t = elapsed_ms / 1000.0
                elapsed_ms += rec.time_delta_ms or 0.0
            timed.append((t, rec))

        if not timed:
            raise EmptySourceError("no usable samples", car_id=car_id)

        timed.sort(key=lambda pair: pair[0])
        merged = self._merge_duplicates(car_id, timed)
        return self._unwrap(car_id, merged)

    def _merge_duplicates(
        self, car_id: str, timed: list[tuple[float, ParsedRecord]]
    ) -> list[tuple[float, ParsedRecord]]:
        merged: list[tuple[float, ParsedRecord]] = []
        dropped = 0
        for t, rec in timed:
            if merged and merged[-1][0] == t:
                merged[-1] = (t, rec)
                dropped += 1
                continue
            if dropped:
                self._warn(DuplicateSampleWarning(car_id, merged[-1][0], dropped))
                dropped = 0
            merged.append((t, rec))
        if dropped:
            self._warn(DuplicateSampleWarning(car_id, merged[-1][0], dropped))
        return merged

    @staticmethod
    def _unwrap(car_id: str, timed: list[tuple[float, ParsedRecord]]) -> list[TelemetrySample]:
        use_laps = all(rec.lap is not None for _, rec in timed)
        first_lap = timed[0][1].lap if use_laps else 0

        samples: list[TelemetrySample] = []
        laps = 0
        prev_fraction: float | None = None
        prev_distance = -math.inf
        for t, rec in timed:
            if use_laps:
                distance = (rec.lap - first_lap) + rec.fraction
            else:
                if prev_fraction is not None and rec.fraction < prev_fraction - _WRAP_THRESHOLD:
                    laps += 1
                distance = laps + rec.fraction
                prev_fraction = rec.fraction
            distance = max(distance, prev_distance)
            prev_distance = distance
            samples.append(TelemetrySample(
                car_id=car_id,
                timestamp=t,
                fraction=distance - math.floor(distance),
                distance=distance,
            ))
        return samples

    def _warn(self, warning: SimulationWarning) -> None:
        _logger.warning("%s", warning.message)
        self.warnings.append(warning)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def load_race(
    config: SimulationConfig, layout: TrackLayout | None = None
) -> tuple[dict[str, list[TelemetrySample]], list[SimulationWarning]]:
    """Load the race samples described by *config*.

    ``telemetry_path`` (a CSV file or a directory of per-driver files) is
    parsed when set, and the result is saved under ``session_id`` in the
    ``db_path`` database if one is named.  With only ``session_id`` the
    samples are read back from that database instead.

    Returns:
        ``(samples, warnings)`` where *warnings* are the load warnings.

    Raises:
        ConfigError: If neither ``telemetry_path`` nor ``session_id`` is set.
        EmptySourceError: If the source, or the stored session, has no usable car.
    """
    if not config.telemetry_path and not config.session_id:
        raise ConfigError(
            "telemetry_path (F1LED_TELEMETRY_PATH) or session_id (F1LED_SESSION_ID) is required"
        )

    warnings: list[SimulationWarning] = []
    samples: dict[str, list[TelemetrySample]] = {}
    if config.telemetry_path:
        store = TelemetryStore(layout=layout)
        if Path(config.telemetry_path).is_dir():
            samples = store.load_directory(config.telemetry_path)
        else:
            samples = store.load(config.telemetry_path)
        warnings = list(store.warnings)
        if not config.session_id:
            return samples, warnings

    storage = SampleStorage(config.db_path)
    try:
        if samples:
            written = storage.save_samples(config.session_id, samples)
            _logger.info(
                "Stored %d samples as session %r in %s", written, config.session_id, config.db_path
            )
        else:
            samples = storage.load_samples(config.session_id)
            if not samples:
                raise EmptySourceError(
                    f"session {config.session_id!r} not found in {config.db_path}"
                )
            _logger.info(
                "Loaded session %r from %s: %d car(s)",
                config.session_id, config.db_path, len(samples),
            )
    finally:
        storage.close()
    return samples, warnings
