"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...container import Container
from ..dependencies import get_container

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_osrm_health_check():
    """Lazy import so the health route loads without httpx side effects."""
    from ...services.geo.osrm_client import check_health as osrm_health_check
    return osrm_health_check


@router.get("/health/providers", status_code=status.HTTP_200_OK)
def health_providers(container: Container = Depends(get_container)) -> dict:
    """Configured provider tiers in fallback order, plus OSRM reachability."""
    resolver = container.resolver
    result = {
        "geocoders": [provider.name for provider in resolver.geocoders],
        "routers": [provider.name for provider in resolver.routers],
        "queue_backend": container.config.queue_backend,
    }
    ping = getattr(container.transport, "ping", None)
    if ping is not None:
        result["queue_reachable"] = ping()
    if any(provider.name == "osrm" for provider in resolver.routers):
        try:
            result["osrm_healthy"] = _get_osrm_health_check()(container.config.osrm_base_url)
        except Exception as exc:
            result["osrm_healthy"] = False
            result["osrm_error"] = str(exc)
    return result
