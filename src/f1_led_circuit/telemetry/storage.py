"""SampleStorage — persists validated telemetry samples to SQLite.

A race parsed once from CSV can be saved under a session id and replayed
later without re-running the parse/validate pipeline.

Schema design notes:
  - ``sessions`` lookup table: avoids repeating the session id string on
    every sample row.
  - ``distance`` is stored as REAL, not scaled: it grows past 1.0 with each
    lap and the interpolator needs full precision to count laps.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping, Sequence

from f1_led_circuit.telemetry.models import TelemetrySample

_DDL = """
PRAGMA journal_mode = WAL;
PRAGMA synchronous  = NORMAL;

CREATE TABLE IF NOT EXISTS sessions (
    idx        INTEGER PRIMARY KEY,
    session_id TEXT    NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS samples (
    session_idx INTEGER NOT NULL,
    car_id      TEXT    NOT NULL,
    timestamp   REAL    NOT NULL,
    fraction    REAL    NOT NULL,
    distance    REAL    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_samples_session_car
    ON samples (session_idx, car_id, timestamp);
"""

_INSERT_SESSION = "INSERT OR IGNORE INTO sessions (session_id) VALUES (?)"
_SELECT_SESSION = "SELECT idx FROM sessions WHERE session_id = ?"

_INSERT_SAMPLE = """
INSERT INTO samples (session_idx, car_id, timestamp, fraction, distance)
VALUES (?, ?, ?, ?, ?)
"""

_SELECT_SAMPLES = """
SELECT x.car_id, x.timestamp, x.fraction, x.distance
FROM   samples x
JOIN   sessions s ON s.idx = x.session_idx
WHERE  s.session_id = ?
ORDER  BY x.car_id, x.timestamp, x.rowid
"""


class SampleStorage:
    """Stores and retrieves per-car sample sequences from a SQLite database.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.  Pass ``":memory:"`` for in-process testing.
    """

    def __init__(self, db_path: str = "race.db") -> None:
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        for stmt in _DDL.strip().split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        self._conn.commit()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def save_samples(
        self, session_id: str, samples: Mapping[str, Sequence[TelemetrySample]]
    ) -> int:
        """Replace the stored samples of *session_id*; return the number written."""
        idx = self._session_idx(session_id)
        rows = [
            (idx, car_id, s.timestamp, s.fraction, s.distance)
            for car_id in sorted(samples)
            for s in samples[car_id]
        ]
        with self._conn:
            self._conn.execute("DELETE FROM samples WHERE session_idx = ?", (idx,))
            self._conn.executemany(_INSERT_SAMPLE, rows)
        return len(rows)

    def load_samples(self, session_id: str) -> dict[str, list[TelemetrySample]]:
        """Return ``car_id`` → samples for *session_id* (empty dict if unknown)."""
        result: dict[str, list[TelemetrySample]] = {}
        for row in self._conn.execute(_SELECT_SAMPLES, (session_id,)):
            result.setdefault(row["car_id"], []).append(TelemetrySample(
                car_id=row["car_id"],
                timestamp=float(row["timestamp"]),
                fraction=float(row["fraction"]),
                distance=float(row["distance"]),
            ))
        return result

    def list_sessions(self) -> list[str]:
        rows = self._conn.execute("SELECT session_id FROM sessions ORDER BY idx").fetchall()
        return [row["session_id"] for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _session_idx(self, session_id: str) -> int:
        """Return the integer PK for *session_id*, creating a row if needed."""
        with self._conn:
            self._conn.execute(_INSERT_SESSION, (session_id,))
        row = self._conn.execute(_SELECT_SESSION, (session_id,)).fetchone()
        return row[0]
