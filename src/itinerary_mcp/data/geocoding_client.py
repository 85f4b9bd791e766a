import logging

import httpx

from itinerary_mcp.data.config import ProviderConfig
from itinerary_mcp.models.geo import Coordinate

logger = logging.getLogger(__name__)


class GeocodingClient:
    """Async HTTP client for the Google Geocoding API.

    Any failure resolves to None: an unresolvable address is the caller's
    problem to report, not an exception here.

    Usage:
        async with GeocodingClient(config) as client:
            coordinate = await client.geocode("Colva Beach, Goa")
    """

    def __init__(self, config: ProviderConfig):
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GeocodingClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._config.http_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def geocode(self, address: str) -> Coordinate | None:
        """Resolve an address to the coordinate of its first result.

        Raises:
            RuntimeError: If client not initialized.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        if not self._config.api_key:
            logger.debug("No API key configured, cannot geocode")
            return None

        try:
            response = await self._client.get(
                self._config.geocode_url,
                params={"address": address, "key": self._config.api_key},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to geocode '{address}': {e}")
            return None

        results = data.get("results") or []
        if not results:
            return None

        location = (results[0].get("geometry") or {}).get("location") or {}
        lat, lng = location.get("lat"), location.get("lng")
        if not isinstance(lat, int | float) or not isinstance(lng, int | float):
            return None
        return Coordinate(lat=lat, lng=lng)
