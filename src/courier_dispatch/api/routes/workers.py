"""Worker control endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...schemas.workers import PurgeResponse, WorkerActionResponse, WorkersStatusResponse
from ...workers.manager import WorkerManager
from ..dependencies import get_manager

router = APIRouter(tags=["workers"])


@router.get("/workers/status", response_model=WorkersStatusResponse, status_code=status.HTTP_200_OK)
def get_workers_status(manager: WorkerManager = Depends(get_manager)) -> WorkersStatusResponse:
    return WorkersStatusResponse(**manager.queue_stats())


@router.post("/workers/start-all", response_model=WorkerActionResponse, status_code=status.HTTP_200_OK)
def start_all_workers(manager: WorkerManager = Depends(get_manager)) -> WorkerActionResponse:
    manager.start_all()
    return WorkerActionResponse(success=True, message="All workers started", status=manager.get_status())


@router.post("/workers/stop-all", response_model=WorkerActionResponse, status_code=status.HTTP_200_OK)
def stop_all_workers(manager: WorkerManager = Depends(get_manager)) -> WorkerActionResponse:
    manager.stop_all()
    return WorkerActionResponse(success=True, message="All workers stopped", status=manager.get_status())


@router.post("/workers/{name}/start", response_model=WorkerActionResponse, status_code=status.HTTP_200_OK)
def start_worker(name: str, manager: WorkerManager = Depends(get_manager)) -> WorkerActionResponse:
    started = manager.start_worker(name)
    message = f"Worker {name} started" if started else f"Worker {name} is already running or still stopping"
    return WorkerActionResponse(success=True, message=message, status=manager.get_status())


@router.post("/workers/{name}/stop", response_model=WorkerActionResponse, status_code=status.HTTP_200_OK)
def stop_worker(name: str, manager: WorkerManager = Depends(get_manager)) -> WorkerActionResponse:
    manager.stop_worker(name)
    return WorkerActionResponse(success=True, message=f"Worker {name} stopped", status=manager.get_status())


@router.post("/queues/{name}/purge", response_model=PurgeResponse, status_code=status.HTTP_200_OK)
def purge_queue(name: str, manager: WorkerManager = Depends(get_manager)) -> PurgeResponse:
    purged = manager.purge_queue(name)
    return PurgeResponse(success=True, queue=name, purged=purged)
