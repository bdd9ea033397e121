"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Courier Dispatch Workers"
    api_prefix: str = "/api"
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, ge=1, le=65535)
    serve_api: bool = Field(
        default=True,
        description="Serve the admin API next to the workers. When off the process only runs workers.",
    )
    log_level: str = Field(default="INFO", description="Root log level for the worker process.")

    # Warehouse every auto-generated route starts from
    static_pickup_address: str = Field(
        default="160 W Forest Ave, Englewood",
        description="Address string geocoded as the pickup for every route assignment.",
    )
    warehouse_address: str = "160 W Forest Ave"
    warehouse_city: str = "Englewood"
    warehouse_state: str = "NJ"
    warehouse_zipcode: str = "07631"

    # Primary location service (place index + route calculator)
    location_service_api_key: Optional[str] = Field(
        default=None,
        description="API key for the hosted location service. The primary tier is skipped when unset.",
    )
    location_service_region: str = "ap-south-1"
    location_service_place_index: str = "BWayPlaceIndex"
    location_service_route_calculator: str = "BWayRouteCalculator"
    location_service_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Secondary geocoder
    nominatim_enabled: bool = True
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "B-Way-Route-Service/1.0"
    nominatim_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Secondary router
    osrm_base_url: Optional[str] = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing road paths.",
    )
    osrm_timeout_seconds: float = Field(default=15.0, gt=0.0)
    osrm_max_retries: int = Field(default=2, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)

    # Synthetic fallback
    synthetic_average_speed_kmh: float = Field(default=40.0, gt=0.0)

    # Route matching
    route_match_max_distance_km: float = Field(default=50.0, ge=0.0)
    route_assignment_max_distance_km: float = Field(default=20.0, ge=0.0)
    route_suggestion_max_distance_km: float = Field(default=30.0, ge=0.0)
    default_active_days: tuple[str, ...] = Field(default=("Mon", "Tue", "Wed", "Thu", "Fri"))

    # Queue transport
    queue_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "dispatch"
    route_assignment_queue: str = "bway-route-assignment"
    invoice_generation_queue: str = "bway-invoice-generation"
    queue_max_messages: int = Field(default=10, ge=1, le=10)
    queue_wait_time_seconds: int = Field(default=20, ge=0)
    queue_visibility_timeout_seconds: int = Field(default=30, ge=1)

    # Workers
    worker_poll_interval_seconds: float = Field(default=5.0, ge=0.0)
    worker_error_backoff_seconds: float = Field(default=10.0, ge=0.0)
    worker_max_retries: int = Field(default=3, ge=0)
    worker_retry_delay_seconds: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Delay before a failed message is retried. Unset means wait for the visibility lease to lapse.",
    )
    worker_shutdown_grace_seconds: float = Field(default=5.0, ge=0.0)

    # Billing
    invoice_due_days: int = Field(default=30, ge=0)

    # Notifications
    event_webhook_url: Optional[str] = Field(
        default=None,
        description="Endpoint receiving route/invoice events. Events are only logged when unset.",
    )
    event_webhook_timeout_seconds: float = Field(default=5.0, gt=0.0)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("default_active_days", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
