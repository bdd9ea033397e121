"""HTTP client for the OSRM road-network router."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...exceptions import ProviderUnavailableError
from ...models.domain import Coordinate, RouteGeometry

logger = logging.getLogger(__name__)


class OSRMClient:
    """Routing tier backed by an OSRM ``/route`` endpoint.

    Coordinates are passed through unchanged because OSRM already expects
    ``lon,lat`` ordering.
    """

    name = "osrm"

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self.user_agent = user_agent or settings.nominatim_user_agent

    def _get_client(self) -> httpx.Client:
        # One client per call; workers call this from several threads.
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            headers={"User-Agent": self.user_agent},
        )

    def route(self, start: Coordinate, end: Coordinate, waypoints: Sequence[Coordinate] = ()) -> RouteGeometry:
        """Get a driving path through ``[start, *waypoints, end]``.

        Returns:
            RouteGeometry with the GeoJSON line string, metres and seconds.
        """
        coordinates = [start, *waypoints, end]
        coordinate_str = ";".join(f"{lon},{lat}" for lon, lat in coordinates)

        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "false",
        }
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"
        logger.debug("OSRM routing: %s points", len(coordinates))

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()

                    if data.get("code") != "Ok" or not data.get("routes"):
                        error_msg = data.get("message", "No route found by OSRM")
                        raise ProviderUnavailableError(self.name, error_msg)

                    best = data["routes"][0]
                    geometry = [(float(lon), float(lat)) for lon, lat in best["geometry"]["coordinates"]]
                    logger.info(
                        f"OSRM routing successful: {best['distance'] / 1000:.2f} km, "
                        f"{round(best['duration'] / 60)} minutes"
                    )
                    return RouteGeometry(
                        geometry=geometry,
                        distance_meters=float(best["distance"]),
                        duration_seconds=float(best["duration"]),
                        provider=self.name,
                    )
                except httpx.HTTPStatusError as e:
                    attempt += 1
                    if e.response.status_code < 500 and e.response.status_code != 429:
                        raise ProviderUnavailableError(self.name, f"HTTP {e.response.status_code}") from e
                    if attempt > self.max_retries:
                        raise ProviderUnavailableError(self.name, f"HTTP {e.response.status_code}") from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM route request timed out after {self.max_retries} attempts: {e}")
                        raise ProviderUnavailableError(self.name, "timed out") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM route timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.NetworkError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailableError(
                            self.name, f"failed to connect to {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except (KeyError, TypeError, ValueError) as e:
                    raise ProviderUnavailableError(self.name, f"malformed response: {e}") from e
        finally:
            client.close()


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM reachability with a minimal two-point route request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        # Two points in Manhattan; works against public and self-hosted instances.
        test_coords = "-73.985130,40.758896;-73.968285,40.785091"
        url = f"{base.rstrip('/')}/route/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"overview": "false"}, timeout=5.0)
        response.raise_for_status()
        return response.json().get("code") == "Ok"
    except (httpx.HTTPError, ValueError):
        return False
