"""Stop search and corridor resolution services behind the MCP tools."""

import logging

from itinerary_mcp.data.config import ProviderConfig, get_provider_config
from itinerary_mcp.data.retry import RetryPolicy, linear_backoff
from itinerary_mcp.data.session import Providers, open_providers
from itinerary_mcp.errors import GeocodeFailed, NoRouteFound, ProviderUnavailable
from itinerary_mcp.models.geo import Coordinate, PlaceRef
from itinerary_mcp.models.responses import FindStopsResponse, ResolveCorridorResponse
from itinerary_mcp.services.corridor_resolver import CorridorResolver
from itinerary_mcp.services.stop_finder import StopFinder

logger = logging.getLogger(__name__)


def clamp_corridor_width(width_meters: float | None, config: ProviderConfig) -> float:
    """Clamp a requested corridor width to the configured bounds (default if None)."""
    if width_meters is None:
        width_meters = config.corridor_width_meters
    return max(config.min_corridor_width_meters, min(config.max_corridor_width_meters, width_meters))


def build_stop_finder(providers: Providers, config: ProviderConfig) -> StopFinder:
    """StopFinder wired with the configured retry budget and radii."""
    policy = RetryPolicy(
        max_retries=config.max_retries,
        backoff=linear_backoff(config.retry_backoff_seconds),
    )
    return StopFinder(providers.map_features, policy, config.search_radii_meters)


def build_resolver(providers: Providers, config: ProviderConfig) -> CorridorResolver:
    """CorridorResolver wired with the configured thresholds."""
    return CorridorResolver(
        build_stop_finder(providers, config),
        providers.geocoder,
        origin_progress_max=config.origin_progress_max,
        destination_progress_min=config.destination_progress_min,
        partial_distance_meters=config.partial_distance_meters,
    )


async def _find_stops(
    providers: Providers, config: ProviderConfig, center: Coordinate, radius: float | None
) -> FindStopsResponse:
    finder = build_stop_finder(providers, config)
    try:
        stops = await finder.find_near_point(center, radius)
    except ProviderUnavailable as e:
        logger.warning(f"Stop search unavailable: {e}")
        return FindStopsResponse(center=center, stops=[], count=0, api_available=False)
    return FindStopsResponse(center=center, stops=stops, count=len(stops), api_available=True)


async def find_transit_stops(
    lat: float,
    lng: float,
    radius_meters: float | None = None,
    limit: int = 20,
    providers: Providers | None = None,
    config: ProviderConfig | None = None,
) -> FindStopsResponse:
    """Find bus stops near a coordinate.

    Args:
        lat: Latitude in degrees.
        lng: Longitude in degrees.
        radius_meters: Exact search radius. If None, the radius expands until a stop is found.
        limit: Maximum number of stops to return.
        providers: Optional provider override (tests).
        config: Optional configuration override.

    Returns:
        FindStopsResponse with stops sorted by distance.
    """
    config = config or get_provider_config()
    center = Coordinate(lat=lat, lng=lng)

    if providers is None:
        async with open_providers(config) as opened:
            response = await _find_stops(opened, config, center, radius_meters)
    else:
        response = await _find_stops(providers, config, center, radius_meters)

    response.stops = response.stops[:limit]
    response.count = len(response.stops)
    return response


async def _resolve(
    providers: Providers,
    config: ProviderConfig,
    origin: PlaceRef,
    destination: PlaceRef,
    width: float,
) -> ResolveCorridorResponse:
    resolver = build_resolver(providers, config)
    try:
        resolution = await resolver.resolve(origin, destination, width)
    except (GeocodeFailed, NoRouteFound) as e:
        return ResolveCorridorResponse(
            origin=origin,
            destination=destination,
            corridor_width_meters=width,
            found=False,
            error=str(e),
        )

    if resolution is None:
        return ResolveCorridorResponse(
            origin=origin,
            destination=destination,
            corridor_width_meters=width,
            found=False,
            error="No bus stops found along route corridor",
        )

    return ResolveCorridorResponse(
        origin=origin,
        destination=destination,
        corridor_width_meters=width,
        found=not resolution.is_partial,
        resolution=resolution,
        board_stop=resolution.board_summary(),
        alight_stop=resolution.alight_summary(),
    )


async def resolve_transit_corridor(
    origin: PlaceRef,
    destination: PlaceRef,
    corridor_width_meters: float | None = None,
    providers: Providers | None = None,
    config: ProviderConfig | None = None,
) -> ResolveCorridorResponse:
    """Resolve boarding/alighting stops between two places.

    ``found`` is True only for a complete pair that alights near the destination;
    partial results still carry the resolution for a walk/cab notice.
    """
    config = config or get_provider_config()
    width = clamp_corridor_width(corridor_width_meters, config)

    if providers is None:
        async with open_providers(config) as opened:
            return await _resolve(opened, config, origin, destination, width)
    return await _resolve(providers, config, origin, destination, width)
