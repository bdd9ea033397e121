"""OpenStreetMap Nominatim geocoding tier."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...exceptions import ProviderUnavailableError
from ...models.domain import Coordinate

logger = logging.getLogger(__name__)


class NominatimGeocoder:
    name = "nominatim"

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.timeout = timeout if timeout is not None else settings.nominatim_timeout_seconds

    def geocode(self, address: str) -> Coordinate:
        logger.debug("Trying OpenStreetMap geocoding for: %s", address)
        try:
            response = httpx.get(
                f"{self.base_url}/search",
                params={"format": "json", "q": address, "limit": 1},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            response.raise_for_status()
            results = response.json()
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(self.name, str(exc)) from exc
        except ValueError as exc:
            raise ProviderUnavailableError(self.name, f"invalid JSON: {exc}") from exc

        if not results:
            raise ProviderUnavailableError(self.name, "no results")
        try:
            first = results[0]
            coordinates = (float(first["lon"]), float(first["lat"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderUnavailableError(self.name, f"malformed result: {exc}") from exc

        logger.info(f"OpenStreetMap geocoding successful for '{address}': [{coordinates[0]}, {coordinates[1]}]")
        return coordinates
