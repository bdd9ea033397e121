"""Hosted location service client (place index search and route calculator).

Both endpoints are called with API-key authentication, so no request signing
is needed. Positions are exchanged as ``[lng, lat]`` arrays.
"""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...exceptions import ProviderUnavailableError
from ...models.domain import Coordinate, RouteGeometry

logger = logging.getLogger(__name__)


class LocationServiceClient:
    """Primary tier for both geocoding and routing."""

    name = "location-service"

    def __init__(
        self,
        api_key: str | None = None,
        region: str | None = None,
        place_index: str | None = None,
        route_calculator: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.location_service_api_key
        if not self.api_key:
            raise ValueError("Location service API key is not configured.")
        self.region = region or settings.location_service_region
        self.place_index = place_index or settings.location_service_place_index
        self.route_calculator = route_calculator or settings.location_service_route_calculator
        self.timeout = timeout if timeout is not None else settings.location_service_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds

    @property
    def places_url(self) -> str:
        return (
            f"https://places.geo.{self.region}.amazonaws.com"
            f"/places/v0/indexes/{self.place_index}/search/text"
        )

    @property
    def routes_url(self) -> str:
        return (
            f"https://routes.geo.{self.region}.amazonaws.com"
            f"/routes/v0/calculators/{self.route_calculator}/calculate/route"
        )

    def _post(self, url: str, payload: dict) -> dict:
        attempt = 0
        while True:
            try:
                response = httpx.post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                attempt += 1
                status = exc.response.status_code
                if (status < 500 and status != 429) or attempt > self.max_retries:
                    raise ProviderUnavailableError(self.name, f"HTTP {status}") from exc
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise ProviderUnavailableError(self.name, str(exc)) from exc
            except httpx.HTTPError as exc:
                raise ProviderUnavailableError(self.name, str(exc)) from exc
            except ValueError as exc:
                raise ProviderUnavailableError(self.name, f"invalid JSON: {exc}") from exc
            wait_time = self.backoff_seconds * (2 ** (attempt - 1))
            logger.debug(f"Location service request failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
            time.sleep(wait_time)

    def geocode(self, address: str) -> Coordinate:
        data = self._post(self.places_url, {"Text": address, "MaxResults": 1})
        results = data.get("Results") or []
        if not results:
            raise ProviderUnavailableError(self.name, f"No coordinates found for address: {address}")
        try:
            lng, lat = results[0]["Place"]["Geometry"]["Point"]
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderUnavailableError(self.name, f"malformed result: {exc}") from exc
        return (float(lng), float(lat))

    def route(self, start: Coordinate, end: Coordinate, waypoints: Sequence[Coordinate] = ()) -> RouteGeometry:
        payload: dict = {
            "DeparturePosition": list(start),
            "DestinationPosition": list(end),
            "IncludeLegGeometry": True,
            "TravelMode": "Car",
            "DistanceUnit": "Kilometers",
        }
        if waypoints:
            payload["WaypointPositions"] = [list(point) for point in waypoints]

        data = self._post(self.routes_url, payload)

        # Legs are returned in travel order; their line strings join end to start.
        geometry: list[Coordinate] = []
        for leg in data.get("Legs") or []:
            line = (leg.get("Geometry") or {}).get("LineString") or []
            geometry.extend((float(lng), float(lat)) for lng, lat in line)
        if not geometry:
            raise ProviderUnavailableError(self.name, "route response had no leg geometry")

        summary = data.get("Summary") or {}
        return RouteGeometry(
            geometry=geometry,
            distance_meters=float(summary.get("Distance") or 0.0) * 1000.0,
            duration_seconds=float(summary.get("DurationSeconds") or 0.0),
            provider=self.name,
        )
