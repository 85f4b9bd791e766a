"""Interfaces of the external collaborators.

The httpx clients in this package implement these; tests pass in-memory fakes.
"""

from datetime import datetime
from typing import Protocol

from itinerary_mcp.models.geo import BoundingBox, Coordinate, PlaceRef
from itinerary_mcp.models.routing import RouteResult, TravelMode
from itinerary_mcp.models.stops import MapFeature

# A tag filter is a conjunction of key=value pairs; a query matches any filter
TagFilter = tuple[tuple[str, str], ...]


class RoutingProvider(Protocol):
    async def route(
        self,
        origin: PlaceRef,
        destination: PlaceRef,
        mode: TravelMode,
        *,
        waypoints: list[PlaceRef] | None = None,
        transit_mode: str | None = None,
        departure_time: datetime | None = None,
    ) -> RouteResult: ...


class MapFeatureProvider(Protocol):
    async def query(self, box: BoundingBox, tag_filters: list[TagFilter]) -> list[MapFeature]: ...


class Geocoder(Protocol):
    async def geocode(self, address: str) -> Coordinate | None: ...
