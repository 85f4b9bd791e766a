"""Transit stop search against the map-feature provider.

Point searches expand their radius until something turns up; every provider
call runs under the injected RetryPolicy.
"""

import logging
from collections.abc import Iterable, Sequence

from itinerary_mcp.data.providers import MapFeatureProvider, TagFilter
from itinerary_mcp.data.retry import RetryPolicy
from itinerary_mcp.models.geo import BoundingBox, Coordinate
from itinerary_mcp.models.stops import StopCandidate
from itinerary_mcp.services.geomath import (
    bounding_box_around,
    corridor_bounding_box,
    distance_meters,
)

logger = logging.getLogger(__name__)

# Ascending radii for point searches; stop at the first that yields a stop
DEFAULT_SEARCH_RADII_METERS = (500, 1000, 2000, 3000, 5000)

# Bus-stop-like nodes in OpenStreetMap tagging
BUS_STOP_FILTERS: list[TagFilter] = [
    (("highway", "bus_stop"),),
    (("public_transport", "platform"), ("bus", "yes")),
    (("public_transport", "stop_position"), ("bus", "yes")),
]


def merge_candidates(*groups: Iterable[StopCandidate]) -> list[StopCandidate]:
    """Concatenate candidate lists, keeping the first occurrence of each id."""
    seen: set[int] = set()
    merged: list[StopCandidate] = []
    for group in groups:
        for candidate in group:
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            merged.append(candidate)
    return merged


class StopFinder:
    """Find bus stops near a point or inside an origin-destination corridor.

    Args:
        provider: Map-feature provider (Overpass client or a fake).
        retry_policy: Retry/backoff policy applied to each provider call.
        radii_meters: Ascending radii for expanding point searches.
    """

    def __init__(
        self,
        provider: MapFeatureProvider,
        retry_policy: RetryPolicy | None = None,
        radii_meters: Sequence[int] = DEFAULT_SEARCH_RADII_METERS,
    ):
        self._provider = provider
        self._retry = retry_policy or RetryPolicy()
        self._radii = tuple(sorted(radii_meters))

    async def _query(self, box: BoundingBox) -> list[StopCandidate]:
        """Query the provider under the retry policy.

        Raises:
            ProviderUnavailable: If every attempt failed.
        """
        features = await self._retry.run(
            lambda: self._provider.query(box, BUS_STOP_FILTERS),
            provider="map-feature provider",
        )
        return merge_candidates(StopCandidate.from_feature(f) for f in features)

    async def _search_radius(self, center: Coordinate, radius_meters: float) -> list[StopCandidate]:
        candidates = await self._query(bounding_box_around(center, radius_meters))

        within: list[tuple[float, StopCandidate]] = []
        for candidate in candidates:
            distance = distance_meters(center, candidate.coordinate)
            if distance <= radius_meters:
                within.append((distance, candidate))

        within.sort(key=lambda x: x[0])
        return [candidate for _, candidate in within]

    async def find_near_point(
        self,
        center: Coordinate,
        radius_meters: float | None = None,
    ) -> list[StopCandidate]:
        """Find stops near a point, sorted by distance.

        Args:
            center: Search center.
            radius_meters: Search exactly this radius. If None, walk the configured
                radii and stop at the first one that yields at least one stop.

        Returns:
            Stops within the radius, nearest first. Empty if nothing was found.

        Raises:
            ProviderUnavailable: If the provider kept failing.
        """
        if radius_meters is not None:
            return await self._search_radius(center, radius_meters)

        for radius in self._radii:
            stops = await self._search_radius(center, radius)
            if stops:
                logger.debug(f"Found {len(stops)} stops within {radius}m of {center.as_query()}")
                return stops

        logger.debug(f"No stops within {self._radii[-1]}m of {center.as_query()}")
        return []

    async def find_in_corridor(
        self,
        a: Coordinate,
        b: Coordinate,
        buffer_km: float,
    ) -> list[StopCandidate]:
        """Find stops inside the bounding box of a and b expanded by buffer_km.

        Raises:
            ProviderUnavailable: If the provider kept failing.
        """
        return await self._query(corridor_bounding_box(a, b, buffer_km))
