"""MCP tools for bus stop search and corridor resolution."""

from itinerary_mcp.app import mcp
from itinerary_mcp.models.geo import parse_place
from itinerary_mcp.models.responses import FindStopsResponse, ResolveCorridorResponse
from itinerary_mcp.services.stop_service import find_transit_stops as _find_transit_stops
from itinerary_mcp.services.stop_service import (
    resolve_transit_corridor as _resolve_transit_corridor,
)


@mcp.tool()
async def find_transit_stops(
    lat: float,
    lng: float,
    radius_meters: int | None = None,
    limit: int = 20,
) -> FindStopsResponse:
    """Find bus stops near a coordinate, using OpenStreetMap data.

    Without a radius the search expands (500m, 1km, 2km, 3km, 5km) until at
    least one stop is found.

    Args:
        lat: Latitude of the search center.
        lng: Longitude of the search center.
        radius_meters: Exact search radius (1-10000). Omit to expand automatically.
        limit: Maximum number of results to return (default 20, max 100).

    Returns:
        FindStopsResponse with stops sorted by distance.
        api_available is False if the map data provider kept failing.
    """
    # Validate limit
    if limit < 1:
        limit = 1
    elif limit > 100:
        limit = 100

    # Validate radius
    if radius_meters is not None:
        radius_meters = max(1, min(10000, radius_meters))

    return await _find_transit_stops(lat=lat, lng=lng, radius_meters=radius_meters, limit=limit)


@mcp.tool()
async def resolve_transit_corridor(
    origin: str,
    destination: str,
    corridor_width_meters: float | None = None,
) -> ResolveCorridorResponse:
    """Pick a boarding and an alighting bus stop between two places.

    Stops are searched near both places and along the straight line between
    them; the boarding stop comes from the first 30% of the trip and the
    alighting stop from the last 30%.

    Args:
        origin: Address or "lat,lng".
        destination: Address or "lat,lng".
        corridor_width_meters: Max distance of a stop from the straight line
                (2000-15000, default 5000).

    Returns:
        ResolveCorridorResponse. found is False when no stop pair reaches within
        500m of the destination; the partial resolution is still included.
    """
    return await _resolve_transit_corridor(
        origin=parse_place(origin),
        destination=parse_place(destination),
        corridor_width_meters=corridor_width_meters,
    )
