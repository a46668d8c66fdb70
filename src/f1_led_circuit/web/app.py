"""FastAPI replay application.

Serves the current frame of one race and its playback controls, for
renderers that run out of process (e.g. a physical LED board controller).

Run with ``uvicorn f1_led_circuit.web.app:app``; the race is loaded from
``F1LED_*`` settings (see :class:`~f1_led_circuit.config.SimulationConfig`).
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

from f1_led_circuit.config import SimulationConfig
from f1_led_circuit.errors import InvalidSeekError, InvalidSpeedError
from f1_led_circuit.web.schemas import (
    FrameResponse,
    HealthResponse,
    PlaybackResponse,
    SeekRequest,
    SpeedRequest,
    WarningsResponse,
)
from f1_led_circuit.web.service import ReplayService

load_dotenv()  # loads .env from project root; must run before env vars are consumed

VERSION = "0.1.0"


def create_app(service: ReplayService | None = None) -> FastAPI:
    """Build the API around *service*.

    Without a service, one is built from the environment on first use.
    """
    app = FastAPI(title="F1 LED Circuit Simulation", version=VERSION)
    holder: dict[str, ReplayService] = {}
    if service is not None:
        holder["service"] = service

    def get_service() -> ReplayService:
        if "service" not in holder:
            try:
                holder["service"] = ReplayService.from_config(SimulationConfig.from_env())
            except (OSError, ValueError, sqlite3.Error) as exc:
                raise HTTPException(status_code=503, detail=str(exc)) from exc
        return holder["service"]

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", version=VERSION)

    @app.get("/api/frame", response_model=FrameResponse)
    def frame() -> FrameResponse:
        """Advance the race by the real time since the last request."""
        return get_service().frame()

    @app.get("/api/warnings", response_model=WarningsResponse)
    def warnings() -> WarningsResponse:
        """Return the warnings raised since the previous call."""
        return WarningsResponse(warnings=get_service().drain_warnings())

    def _playback(action: Callable[[ReplayService], PlaybackResponse]) -> PlaybackResponse:
        try:
            return action(get_service())
        except (InvalidSpeedError, InvalidSeekError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    @app.post("/api/playback/play", response_model=PlaybackResponse)
    def play() -> PlaybackResponse:
        return _playback(lambda s: s.play())

    @app.post("/api/playback/pause", response_model=PlaybackResponse)
    def pause() -> PlaybackResponse:
        return _playback(lambda s: s.pause())

    @app.post("/api/playback/reset", response_model=PlaybackResponse)
    def reset() -> PlaybackResponse:
        return _playback(lambda s: s.reset())

    @app.post("/api/playback/reset-lap", response_model=PlaybackResponse)
    def reset_lap() -> PlaybackResponse:
        return _playback(lambda s: s.reset_lap())

    @app.post("/api/playback/speed", response_model=PlaybackResponse)
    def set_speed(req: SpeedRequest) -> PlaybackResponse:
        return _playback(lambda s: s.set_speed(req.multiplier))

    @app.post("/api/playback/seek", response_model=PlaybackResponse)
    def seek(req: SeekRequest) -> PlaybackResponse:
        return _playback(lambda s: s.seek(req.time))

    return app


app = create_app()
