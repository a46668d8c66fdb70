"""TrackGeometry — fixed ring of LED slots and the fraction → slot mapping."""

from __future__ import annotations

import logging
import math

from f1_led_circuit.track.layouts import TrackLayout
from f1_led_circuit.track.models import LedSlot

_logger = logging.getLogger(__name__)

_EPS = 1e-9  # absorbs float noise such as 0.3 * 10 == 2.9999999999999996


class TrackGeometry:
    """An ordered, closed sequence of LED slots, evenly spaced along the lap.

    Slot *i* covers track fractions ``[i / n, (i + 1) / n)``.  Higher
    *led_count* gives smoother apparent motion at the cost of more drawing.

    Args:
        led_count: Number of slots.
        layout: Shape the slots are placed along.  Without one, slots get
            ``x = lap_dist_pct`` and ``y = 0`` (a straight LED strip).  An
            LED-indexed layout fixes the slots itself: one per LED, at the
            LED's own coordinates, and *led_count* is ignored.

    Raises:
        ValueError: If *led_count* is < 1.
    """

    def __init__(self, led_count: int, layout: TrackLayout | None = None) -> None:
        if led_count < 1:
            raise ValueError("led_count must be >= 1")
        self.layout = layout
        if layout is not None and layout.led_indexed:
            if led_count != len(layout):
                _logger.info(
                    "Layout %s has %d LEDs; ignoring led_count=%d",
                    layout.layout_id, len(layout), led_count,
                )
            self._slots = tuple(
                LedSlot(index=i, lap_dist_pct=pt.lap_dist_pct, x=pt.x, y=pt.y)
                for i, pt in enumerate(layout.points)
            )
            return

        slots: list[LedSlot] = []
        for i in range(led_count):
            pct = i / led_count
            x, y = layout.point_at(pct) if layout is not None else (pct, 0.0)
            slots.append(LedSlot(index=i, lap_dist_pct=pct, x=x, y=y))
        self._slots = tuple(slots)

    @property
    def slots(self) -> tuple[LedSlot, ...]:
        return self._slots

    def slot_count(self) -> int:
        return len(self._slots)

    def index_for_fraction(self, fraction: float) -> int:
        """Map a track fraction to its slot index.

        Values outside ``[0, 1)`` are reduced modulo 1.0 first, so a car that
        has crossed the line lands back near slot 0.  Non-finite input maps to
        slot 0.
        """
        if not math.isfinite(fraction):
            return 0
        n = len(self._slots)
        reduced = fraction % 1.0
        return math.floor(reduced * n + _EPS) % n

    def slot_for_fraction(self, fraction: float) -> LedSlot:
        return self._slots[self.index_for_fraction(fraction)]
