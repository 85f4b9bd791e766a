import logging
from datetime import datetime
from typing import Any

import httpx

from itinerary_mcp.data.config import ProviderConfig
from itinerary_mcp.models.geo import Coordinate, PlaceRef
from itinerary_mcp.models.routing import (
    STATUS_REQUEST_FAILED,
    ProviderLeg,
    RouteResult,
    Step,
    TransitDetails,
    TravelKind,
    TravelMode,
)

logger = logging.getLogger(__name__)

# Google step travel_mode -> provider-agnostic kind
STEP_KINDS = {
    "WALKING": TravelKind.WALK,
    "TRANSIT": TravelKind.TRANSIT,
    "DRIVING": TravelKind.DRIVE,
    "BICYCLING": TravelKind.CYCLE,
}


def format_place(place: PlaceRef) -> str:
    """Render a place the way the Directions API expects it."""
    if isinstance(place, Coordinate):
        return place.as_query()
    return place


class DirectionsClient:
    """Async HTTP client for the Google Directions API.

    Usage:
        async with DirectionsClient(config) as client:
            result = await client.route("Panaji", "Margao", TravelMode.TRANSIT)
    """

    def __init__(self, config: ProviderConfig):
        """Initialize the client.

        Args:
            config: Configuration with API key and directions URL.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "DirectionsClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._config.http_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def route(
        self,
        origin: PlaceRef,
        destination: PlaceRef,
        mode: TravelMode,
        *,
        waypoints: list[PlaceRef] | None = None,
        transit_mode: str | None = None,
        departure_time: datetime | None = None,
    ) -> RouteResult:
        """Request directions and parse the first route.

        A non-OK provider status is returned as-is, not raised. A malformed
        payload comes back as REQUEST_FAILED.

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        params: dict[str, Any] = {
            "origin": format_place(origin),
            "destination": format_place(destination),
            "mode": mode.value,
        }
        if waypoints:
            params["waypoints"] = "|".join(format_place(w) for w in waypoints)
        if mode == TravelMode.TRANSIT:
            params["transit_routing_preference"] = "less_walking"
            if transit_mode:
                params["transit_mode"] = transit_mode
        if departure_time is not None:
            params["departure_time"] = int(departure_time.timestamp())
        if self._config.api_key:
            params["key"] = self._config.api_key

        response = await self._client.get(self._config.directions_url, params=params)
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning(f"Directions returned a malformed payload: {e}")
            return RouteResult(
                status=STATUS_REQUEST_FAILED, error_message="Malformed directions payload"
            )

        return parse_directions(payload)


def _value(obj: dict | None) -> float | None:
    """Read the numeric 'value' of a Google distance/duration object."""
    if not obj or obj.get("value") is None:
        return None
    return float(obj["value"])


def _text(obj: dict | None) -> str | None:
    return obj.get("text") if obj else None


def _location(obj: dict | None) -> Coordinate | None:
    if not obj or obj.get("lat") is None or obj.get("lng") is None:
        return None
    return Coordinate(lat=obj["lat"], lng=obj["lng"])


def _parse_transit_details(data: dict) -> TransitDetails:
    line = data.get("line") or {}
    vehicle = line.get("vehicle") or {}
    return TransitDetails(
        line_name=line.get("short_name") or line.get("name"),
        vehicle=vehicle.get("name"),
        departure_stop=(data.get("departure_stop") or {}).get("name"),
        departure_time=_text(data.get("departure_time")),
        arrival_stop=(data.get("arrival_stop") or {}).get("name"),
        arrival_time=_text(data.get("arrival_time")),
        num_stops=data.get("num_stops"),
    )


def _parse_step(data: dict) -> Step:
    kind = STEP_KINDS.get(data.get("travel_mode", ""), TravelKind.WALK)
    details = None
    if kind == TravelKind.TRANSIT and data.get("transit_details"):
        details = _parse_transit_details(data["transit_details"])
    return Step(
        travel_kind=kind,
        distance_meters=_value(data.get("distance")) or 0.0,
        duration_seconds=_value(data.get("duration")) or 0.0,
        transit_details=details,
    )


def _parse_leg(data: dict) -> ProviderLeg:
    return ProviderLeg(
        steps=[_parse_step(s) for s in data.get("steps") or []],
        distance_meters=_value(data.get("distance")),
        duration_seconds=_value(data.get("duration")),
        start_location=_location(data.get("start_location")),
        end_location=_location(data.get("end_location")),
    )


def parse_directions(payload: dict) -> RouteResult:
    """Parse a Directions API JSON payload (first route only)."""
    if not isinstance(payload, dict):
        return RouteResult(
            status=STATUS_REQUEST_FAILED, error_message="Malformed directions payload"
        )

    status = payload.get("status", "UNKNOWN_ERROR")
    routes = payload.get("routes") or []
    route = routes[0] if isinstance(routes, list) and routes and isinstance(routes[0], dict) else {}
    legs = [_parse_leg(leg) for leg in route.get("legs") or []]
    return RouteResult(status=status, legs=legs, error_message=payload.get("error_message"))
