"""Track modeling data structures."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TrackPoint:
    """A single vertex of a circuit layout.

    Coordinates use whatever units the layout source uses (LED board
    coordinates for the CSV layouts, metres for the built-in shapes).
    """

    lap_dist_pct: float
    """Arc-length fraction of the lap at this vertex [0.0, 1.0)."""

    x: float
    """X coordinate."""

    y: float
    """Y coordinate."""


@dataclass(frozen=True)
class LedSlot:
    """One discrete illuminated position along the circuit.

    ``lap_dist_pct`` is ``index / slot_count``; ``x``/``y`` locate the LED on
    the layout for drawing.
    """

    index: int
    lap_dist_pct: float
    x: float
    y: float
