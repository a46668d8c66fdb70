"""LED board rendering — turns a simulation Frame into display data."""

from __future__ import annotations

from collections.abc import Iterable

from f1_led_circuit.simulation.models import Frame
from f1_led_circuit.track.geometry import TrackGeometry

UNLIT = "#000000"

# One colour per car, assigned in sorted car-id order and reused past 20 cars.
PALETTE: tuple[str, ...] = (
    "#ff0000",  # red
    "#00ff00",  # green
    "#0000ff",  # blue
    "#ffff00",  # yellow
    "#ff00ff",  # magenta
    "#00ffff",  # cyan
    "#800000",  # maroon
    "#008000",  # dark green
    "#000080",  # navy
    "#808000",  # olive
    "#800080",  # purple
    "#008080",  # teal
    "#c0c0c0",  # silver
    "#808080",  # gray
    "#ffa500",  # orange
    "#ff1493",  # deep pink
    "#4b0082",  # indigo
    "#ffd700",  # gold
    "#00bfff",  # deep sky blue
    "#ff69b4",  # hot pink
)


def format_clock(seconds: float) -> str:
    """Format simulated time as ``HH:MM:SS.mmm``.

    Examples
    --------
    >>> format_clock(3723.5)
    '01:02:03.500'
    """
    millis = round(max(seconds, 0.0) * 1000)
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


class LedBoardRenderer:
    """Maps a :class:`Frame` onto per-LED colours.

    Pure data transformation with no side effects — safe to call from any
    thread.

    Parameters
    ----------
    geometry:
        The LED ring the frame's indices refer to.
    car_ids:
        Every car that may appear in a frame; fixes the colour assignment.
    """

    def __init__(self, geometry: TrackGeometry, car_ids: Iterable[str]) -> None:
        self._geometry = geometry
        self._colours = {
            car_id: PALETTE[i % len(PALETTE)] for i, car_id in enumerate(sorted(car_ids))
        }

    def colour_for(self, car_id: str) -> str:
        return self._colours.get(car_id, UNLIT)

    def led_colours(self, frame: Frame) -> list[str]:
        """Return one colour per slot.

        Unlit slots are black.  When cars share a slot the higher-placed car
        is shown.
        """
        leds = [UNLIT] * self._geometry.slot_count()
        for car in reversed(frame.cars):
            leds[car.led_index] = self.colour_for(car.car_id)
        return leds

    def render(self, frame: Frame) -> dict:
        """Return a display-ready dict from a :class:`Frame`.

        Returns
        -------
        dict with keys:
            ``clock``      – simulated time as ``HH:MM:SS.mmm``
            ``state``      – race state value (e.g. ``'running'``)
            ``leds``       – list of ``#rrggbb`` strings, one per slot
            ``standings``  – list of dicts (``position``, ``car_id``, ``lap``,
              ``status``, ``colour``) in running order
        """
        return {
            "clock": format_clock(frame.simulated_time),
            "state": frame.state.value,
            "leds": self.led_colours(frame),
            "standings": [
                {
                    "position": car.position,
                    "car_id": car.car_id,
                    "lap": car.lap,
                    "status": car.status.value,
                    "colour": self.colour_for(car.car_id),
                }
                for car in frame.cars
            ],
        }
