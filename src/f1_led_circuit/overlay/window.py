"""Tkinter window that draws the LED circuit."""

from __future__ import annotations

import contextlib
import threading

from f1_led_circuit.track.geometry import TrackGeometry

# Colour constants
_BG = "#1a1a1a"
_FG = "#ffffff"
_PAD = 20  # canvas margin in pixels


def normalise_slots(
    geometry: TrackGeometry, width: int, height: int, pad: int = _PAD
) -> list[tuple[float, float]]:
    """Return canvas ``(x, y)`` for every slot, preserving the layout's aspect ratio.

    Canvas y grows downward, so layout y is flipped.
    """
    slots = geometry.slots
    xs = [s.x for s in slots]
    ys = [s.y for s in slots]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    span = max(max_x - min_x, max_y - min_y) or 1.0
    scale = min(width - 2 * pad, height - 2 * pad) / span
    return [
        (pad + (s.x - min_x) * scale, height - pad - (s.y - min_y) * scale)
        for s in slots
    ]


class LedBoardWindow:
    """LED circuit display.

    The Tk event loop runs in a daemon thread.  Call :meth:`update` from any
    thread with the dict produced by
    :meth:`~f1_led_circuit.overlay.renderer.LedBoardRenderer.render`; the
    next ``after`` tick repaints the canvas.

    Parameters
    ----------
    geometry:
        LED ring to draw.
    size:
        Canvas width and height in pixels.
    led_px:
        Side of each LED square in pixels.
    refresh_ms:
        Canvas repaint interval in ms; ≤ 33 gives ≥ 30 fps.
    headless:
        When True, skip Tk initialisation (for unit testing).
    """

    def __init__(
        self,
        geometry: TrackGeometry,
        size: int = 720,
        led_px: int = 8,
        refresh_ms: int = 33,
        headless: bool = False,
    ) -> None:
        self._geometry = geometry
        self._size = size
        self._led_px = led_px
        self._refresh_ms = refresh_ms
        self._headless = headless

        self._data: dict | None = None
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._root = None  # tkinter.Tk, set by _run()
        self._closed = threading.Event()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the window in a daemon thread."""
        self._thread = threading.Thread(target=self._run, daemon=True, name="LedBoardThread")
        self._thread.start()

    def update(self, data: dict) -> None:
        """Push new render data (thread-safe)."""
        with self._lock:
            self._data = data

    def latest(self) -> dict | None:
        """Return the most recently pushed render data."""
        with self._lock:
            return self._data

    @property
    def closed(self) -> bool:
        """True once the user has closed the window."""
        return self._closed.is_set()

    def stop(self) -> None:
        """Destroy the window."""
        root = self._root
        if root is not None:
            with contextlib.suppress(Exception):
                root.quit()

    # ------------------------------------------------------------------
    # Internal: runs inside the window thread
    # ------------------------------------------------------------------

    def _run(self) -> None:
        if self._headless:
            return
        try:
            import tkinter as tk
        except ImportError:
            self._closed.set()
            return

        root = tk.Tk()
        self._root = root
        root.title("F1 LED Circuit Simulation")
        root.configure(bg=_BG)
        root.protocol("WM_DELETE_WINDOW", lambda: (self._closed.set(), root.quit()))

        clock_var = tk.StringVar(value="00:00:00.000")
        tk.Label(
            root, textvariable=clock_var, font=("Consolas", 16, "bold"), bg=_BG, fg=_FG
        ).pack(pady=(8, 0))

        canvas = tk.Canvas(
            root, width=self._size, height=self._size, bg=_BG, highlightthickness=0
        )
        canvas.pack(padx=8, pady=8)

        half = self._led_px / 2
        led_ids = [
            canvas.create_rectangle(x - half, y - half, x + half, y + half, fill="#000000", outline="")
            for x, y in normalise_slots(self._geometry, self._size, self._size)
        ]

        def _refresh() -> None:
            with self._lock:
                data = self._data
            if data is not None:
                clock_var.set(f"{data['clock']}  [{data['state']}]")
                for item, colour in zip(led_ids, data["leds"]):
                    canvas.itemconfigure(item, fill=colour)
            root.after(self._refresh_ms, _refresh)

        root.after(self._refresh_ms, _refresh)
        root.mainloop()
        self._closed.set()
