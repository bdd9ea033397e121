"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.routes import health, workers
from .config import settings
from .container import Container, build_container
from .exceptions import DispatchError
from .schemas.workers import ErrorResponse


def create_app(container: Container | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name)
    app.state.container = container or build_container()

    @app.exception_handler(DispatchError)
    async def handle_dispatch_error(request: Request, exc: DispatchError) -> JSONResponse:
        body = ErrorResponse(error_code=exc.error_code, message=exc.message, details=exc.details)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(workers.router, prefix=settings.api_prefix)
    return app
