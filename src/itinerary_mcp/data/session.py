"""Open every provider client for the duration of one request."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from itinerary_mcp.data.config import ProviderConfig, get_provider_config
from itinerary_mcp.data.directions_client import DirectionsClient
from itinerary_mcp.data.geocoding_client import GeocodingClient
from itinerary_mcp.data.overpass_client import OverpassClient
from itinerary_mcp.data.providers import Geocoder, MapFeatureProvider, RoutingProvider


@dataclass
class Providers:
    """The three external collaborators used by the planner."""

    routing: RoutingProvider
    map_features: MapFeatureProvider
    geocoder: Geocoder


@asynccontextmanager
async def open_providers(config: ProviderConfig | None = None) -> AsyncIterator[Providers]:
    """Async context manager yielding connected provider clients.

    Args:
        config: Optional configuration. Defaults to the cached environment config.

    Yields:
        Providers backed by httpx clients, closed on exit.
    """
    if config is None:
        config = get_provider_config()

    async with (
        DirectionsClient(config) as routing,
        OverpassClient(config) as map_features,
        GeocodingClient(config) as geocoder,
    ):
        yield Providers(routing=routing, map_features=map_features, geocoder=geocoder)
