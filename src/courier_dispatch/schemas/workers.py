"""Admin API response schemas."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel


class QueueDepthModel(BaseModel):
    available: int
    in_flight: int
    delayed: int


class WorkerStatusModel(BaseModel):
    running: bool
    queue: str
    depth: Optional[QueueDepthModel] = None
    error: Optional[str] = None


class ManagerStatusModel(BaseModel):
    manager_running: bool
    workers: Dict[str, WorkerStatusModel]


class WorkersStatusResponse(ManagerStatusModel):
    last_updated: str


class WorkerActionResponse(BaseModel):
    success: bool
    message: str
    status: ManagerStatusModel


class PurgeResponse(BaseModel):
    success: bool
    queue: str
    purged: int


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: dict = {}
