"""Request-scoped access to the running container."""

from __future__ import annotations

from fastapi import Request

from ..container import Container
from ..workers.manager import WorkerManager


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_manager(request: Request) -> WorkerManager:
    return request.app.state.container.manager
