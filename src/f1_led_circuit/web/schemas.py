"""Pydantic request/response schemas for the replay API."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str


class SpeedRequest(BaseModel):
    multiplier: float


class SeekRequest(BaseModel):
    time: float


class CarState(BaseModel):
    car_id: str
    position: int
    led_index: int
    lap: int
    fraction: float
    status: str


class OvertakeRecord(BaseModel):
    car_id: str
    passed_car_id: str
    lap: int


class FrameResponse(BaseModel):
    simulated_time: float
    clock: str
    state: str
    speed: float
    led_count: int
    cars: list[CarState]
    overtakes: list[OvertakeRecord]


class PlaybackResponse(BaseModel):
    state: str
    simulated_time: float
    speed: float


class WarningRecord(BaseModel):
    kind: str
    message: str


class WarningsResponse(BaseModel):
    warnings: list[WarningRecord]
