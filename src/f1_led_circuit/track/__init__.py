"""Circuit layouts and LED slot geometry."""

from f1_led_circuit.track.geometry import TrackGeometry
from f1_led_circuit.track.layouts import TrackLayout, build_layout, load_layout_csv
from f1_led_circuit.track.models import LedSlot, TrackPoint

__all__ = [
    "LedSlot",
    "TrackGeometry",
    "TrackLayout",
    "TrackPoint",
    "build_layout",
    "load_layout_csv",
]
