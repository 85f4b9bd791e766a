from datetime import datetime

from itinerary_mcp.app import mcp
from itinerary_mcp.models.geo import parse_place
from itinerary_mcp.models.responses import PlanItineraryResponse
from itinerary_mcp.models.routing import TravelMode
from itinerary_mcp.services.trip_planner import plan_itinerary as _plan_itinerary


@mcp.tool()
async def plan_itinerary(
    places: list[str],
    travel_mode: TravelMode = TravelMode.TRANSIT,
    departure_time: str | None = None,
    corridor_width_meters: float | None = None,
) -> PlanItineraryResponse:
    """Plan a trip through an ordered list of places.

    Each consecutive pair of places is one leg. In transit mode a leg with no
    bus or train service is replaced by a walk to the best bus stop along the
    route corridor, a ride, and a walk on; very long walks become cab suggestions.

    Args:
        places: Origin, optional waypoints, destination. Addresses
                (e.g., "Panaji Bus Stand, Goa") or "lat,lng" strings.
        travel_mode: transit, walking, driving or bicycling (default: transit)
        departure_time: ISO 8601 departure for the first leg (default: now)
        corridor_width_meters: Corridor width for stop fallback (2000-15000, default 5000)

    Returns:
        PlanItineraryResponse with ordered events and the per-leg segment groups.
    """
    departure = datetime.fromisoformat(departure_time) if departure_time else None

    return await _plan_itinerary(
        places=[parse_place(p) for p in places],
        travel_mode=travel_mode,
        departure_time=departure,
        corridor_width_meters=corridor_width_meters,
    )
