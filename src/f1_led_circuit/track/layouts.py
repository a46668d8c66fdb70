"""Circuit layouts — closed polylines the LED slots are placed along.

A layout is built either from one of the built-in shapes, selected by id, or
from a CSV of LED coordinates with ``x_led`` and ``y_led`` columns.
"""

from __future__ import annotations

import bisect
import csv
import math
from collections.abc import Callable, Sequence
from pathlib import Path

from f1_led_circuit.track.models import TrackPoint


class TrackLayout:
    """Closed polyline with cumulative arc length.

    The last vertex connects back to the first; duplicate consecutive
    vertices are dropped.

    An *led_indexed* layout is a list of physical LEDs rather than a shape:
    every vertex is kept and vertex *i* of *n* sits at lap fraction ``i / n``
    whatever the spacing, so a car reported at an LED's coordinates lights
    that LED.

    Args:
        vertices: Ordered ``(x, y)`` pairs around the circuit.
        layout_id: Name used in logs and by the renderer.
        led_indexed: Treat each vertex as one LED (see above).

    Raises:
        ValueError: If fewer than two distinct vertices are given.
    """

    def __init__(
        self,
        vertices: Sequence[tuple[float, float]],
        layout_id: str = "custom",
        led_indexed: bool = False,
    ) -> None:
        cleaned: list[tuple[float, float]] = []
        for x, y in vertices:
            pt = (float(x), float(y))
            if led_indexed or not cleaned or pt != cleaned[-1]:
                cleaned.append(pt)
        if not led_indexed and len(cleaned) > 1 and cleaned[0] == cleaned[-1]:
            cleaned.pop()
        if len(cleaned) < 2:
            raise ValueError("A layout needs at least two distinct vertices")

        self.layout_id = layout_id
        self.led_indexed = led_indexed
        self._xy = cleaned

        cumulative = [0.0]
        n = len(cleaned)
        for i in range(n):
            x0, y0 = cleaned[i]
            x1, y1 = cleaned[(i + 1) % n]
            cumulative.append(cumulative[-1] + math.hypot(x1 - x0, y1 - y0))
        self.length = cumulative[-1]
        if led_indexed:
            self._pcts = [i / n for i in range(n + 1)]
        else:
            self._pcts = [d / self.length for d in cumulative]

        self.points = [
            TrackPoint(lap_dist_pct=self._pcts[i], x=x, y=y)
            for i, (x, y) in enumerate(cleaned)
        ]

    def __len__(self) -> int:
        return len(self.points)

    def point_at(self, lap_dist_pct: float) -> tuple[float, float]:
        """Return the ``(x, y)`` position at *lap_dist_pct* along the lap."""
        p = lap_dist_pct % 1.0
        n = len(self._xy)
        i = bisect.bisect_right(self._pcts, p) - 1
        i = min(max(i, 0), n - 1)
        p0, p1 = self._pcts[i], self._pcts[i + 1]
        x0, y0 = self._xy[i]
        x1, y1 = self._xy[(i + 1) % n]
        span = p1 - p0
        t = (p - p0) / span if span > 0 else 0.0
        return x0 + t * (x1 - x0), y0 + t * (y1 - y0)

    def fraction_near(self, x: float, y: float) -> float:
        """Return the lap fraction of the vertex closest to ``(x, y)``."""
        best = min(self.points, key=lambda pt: (pt.x - x) ** 2 + (pt.y - y) ** 2)
        return best.lap_dist_pct

    def bounds(self) -> tuple[float, float, float, float]:
        """Return ``(min_x, min_y, max_x, max_y)``."""
        xs = [x for x, _ in self._xy]
        ys = [y for _, y in self._xy]
        return min(xs), min(ys), max(xs), max(ys)


# ---------------------------------------------------------------------------
# Built-in shapes
# ---------------------------------------------------------------------------


def circle_layout(n_points: int = 360, radius: float = 100.0) -> TrackLayout:
    """Counter-clockwise circle starting at ``(radius, 0)``."""
    vertices = []
    for i in range(n_points):
        angle = 2 * math.pi * i / n_points
        vertices.append((radius * math.cos(angle), radius * math.sin(angle)))
    return TrackLayout(vertices, layout_id="circle")


def oval_layout(
    straight: float = 300.0, radius: float = 80.0, points_per_turn: int = 90
) -> TrackLayout:
    """Stadium oval: two straights joined by semicircular turns.

    The start/finish line sits at the middle of the bottom straight.
    """
    half = straight / 2
    vertices: list[tuple[float, float]] = [(0.0, -radius), (half, -radius)]
    for i in range(points_per_turn + 1):
        angle = -math.pi / 2 + math.pi * i / points_per_turn
        vertices.append((half + radius * math.cos(angle), radius * math.sin(angle)))
    vertices.append((-half, radius))
    for i in range(points_per_turn + 1):
        angle = math.pi / 2 + math.pi * i / points_per_turn
        vertices.append((-half + radius * math.cos(angle), radius * math.sin(angle)))
    return TrackLayout(vertices, layout_id="oval")


_BUILTIN: dict[str, Callable[[], TrackLayout]] = {
    "circle": circle_layout,
    "oval": oval_layout,
}


def available_layouts() -> list[str]:
    """Return the ids of the built-in layouts."""
    return sorted(_BUILTIN)


def load_layout_csv(path: str | Path) -> TrackLayout:
    """Read a layout from a CSV with ``x_led`` and ``y_led`` columns, one row per LED.

    The result is LED-indexed: row *i* becomes slot *i*, however unevenly the
    LEDs are spaced.

    Raises:
        ValueError: If a coordinate is not numeric or the file has too few rows.
    """
    path = Path(path)
    vertices: list[tuple[float, float]] = []
    with path.open(newline="", encoding="utf-8-sig") as fh:
        for lineno, row in enumerate(csv.DictReader(fh), start=2):
            try:
                vertices.append((float(row["x_led"]), float(row["y_led"])))
            except (KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"{path.name} row {lineno}: bad LED coordinate") from exc
    return TrackLayout(vertices, layout_id=path.stem, led_indexed=True)


def build_layout(layout_id: str, layout_path: str | Path | None = None) -> TrackLayout:
    """Return the layout for *layout_id*, or the CSV at *layout_path* when given.

    Raises:
        ValueError: If *layout_id* is not a built-in layout.
    """
    if layout_path:
        return load_layout_csv(layout_path)
    try:
        factory = _BUILTIN[layout_id]
    except KeyError:
        raise ValueError(
            f"Unknown track layout {layout_id!r}; expected one of {available_layouts()}"
        ) from None
    return factory()
