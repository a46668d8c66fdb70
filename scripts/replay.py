"""Race replay on the LED circuit — host loop entry point.

Press Ctrl+C (or close the window) to quit.

Usage:
    uv run python scripts/replay.py --telemetry race.csv
    uv run python scripts/replay.py --telemetry data/ --layout-csv led_coords.csv
    uv run python scripts/replay.py --telemetry race.csv --speed 8 --headless
    uv run python scripts/replay.py --telemetry race.csv --session monza --db race.db
    uv run python scripts/replay.py --session monza --db race.db
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
import time

from dotenv import load_dotenv

load_dotenv()

from f1_led_circuit.config import SimulationConfig  # noqa: E402
from f1_led_circuit.errors import ConfigError, EmptySourceError  # noqa: E402
from f1_led_circuit.overlay.renderer import LedBoardRenderer  # noqa: E402
from f1_led_circuit.overlay.window import LedBoardWindow  # noqa: E402
from f1_led_circuit.simulation.engine import SimulationEngine  # noqa: E402
from f1_led_circuit.simulation.models import RaceState  # noqa: E402
from f1_led_circuit.telemetry.loader import load_race  # noqa: E402
from f1_led_circuit.track.layouts import build_layout  # noqa: E402


def _print_standings(render: dict) -> None:
    rows = "  ".join(
        f"P{r['position']} {r['car_id']} L{r['lap']}" for r in render["standings"][:5]
    )
    print(f"\r{render['clock']} [{render['state']}] {rows}", end="", flush=True)


def main() -> None:
    ap = argparse.ArgumentParser(description="F1 LED circuit race replay")
    ap.add_argument("--telemetry", help="Telemetry CSV file or directory of per-driver CSVs")
    ap.add_argument(
        "--session", dest="session_id", help="Store the race under this session id, or replay it"
    )
    ap.add_argument("--db", dest="db_path", help="SQLite file holding stored sessions")
    ap.add_argument("--layout", dest="track_layout_id", help="Built-in layout id (circle, oval)")
    ap.add_argument("--layout-csv", dest="layout_path", help="CSV of LED coordinates")
    ap.add_argument("--leds", dest="led_count", type=int, help="Number of LEDs on the circuit")
    ap.add_argument("--speed", dest="initial_speed_multiplier", type=float, help="Playback speed")
    ap.add_argument("--laps", dest="total_laps", type=int, help="Race distance in laps")
    ap.add_argument("--hz", dest="target_hz", type=float, help="Tick rate")
    ap.add_argument("--headless", action="store_true", help="Print standings instead of drawing")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = SimulationConfig.from_env(
            telemetry_path=args.telemetry,
            session_id=args.session_id,
            db_path=args.db_path,
            track_layout_id=args.track_layout_id,
            layout_path=args.layout_path,
            led_count=args.led_count,
            initial_speed_multiplier=args.initial_speed_multiplier,
            total_laps=args.total_laps,
            target_hz=args.target_hz,
        )
        layout = build_layout(config.track_layout_id, config.layout_path)
        samples, load_warnings = load_race(config, layout=layout)
    except (ConfigError, EmptySourceError, OSError, ValueError, sqlite3.Error) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    engine = SimulationEngine.from_config(samples, config, layout=layout)
    renderer = LedBoardRenderer(engine.geometry, engine.car_ids())
    window = LedBoardWindow(engine.geometry, headless=args.headless)
    print(f"Loaded {len(samples)} car(s), {len(load_warnings)} warning(s).")

    window.start()
    engine.play()
    interval = 1.0 / config.target_hz
    last = time.monotonic()
    try:
        while not window.closed:
            now = time.monotonic()
            frame = engine.tick(now - last)
            last = now
            render = renderer.render(frame)
            if args.headless:
                _print_standings(render)
            else:
                window.update(render)
            for overtake in frame.overtakes:
                logging.getLogger("replay").info(
                    "%s passes %s (lap %d)", overtake.car_id, overtake.passed_car_id, overtake.lap
                )
            if frame.state in (RaceState.FINISHED, RaceState.NO_CARS_ACTIVE):
                break
            wait = interval - (time.monotonic() - now)
            if wait > 0:
                time.sleep(wait)
    except KeyboardInterrupt:
        pass
    finally:
        window.stop()
        print("\nReplay stopped.")


if __name__ == "__main__":
    main()
