"""Pick a boarding and an alighting stop along the origin-destination corridor.

Used when the directions provider returns no transit for a leg. Candidates
come from three searches (near origin, near destination, whole corridor); the
progress thresholds bias the choice toward the real trip extremities rather
than whichever stop happens to be nearest in absolute distance.
"""

import asyncio
import logging

from itinerary_mcp.data.providers import Geocoder
from itinerary_mcp.errors import GeocodeFailed, NoRouteFound, ProviderUnavailable
from itinerary_mcp.models.geo import Coordinate, PlaceRef
from itinerary_mcp.models.responses import CorridorResolution
from itinerary_mcp.models.stops import StopCandidate
from itinerary_mcp.services.geomath import (
    distance_meters,
    perpendicular_distance_meters,
    project_progress,
)
from itinerary_mcp.services.stop_finder import StopFinder, merge_candidates

logger = logging.getLogger(__name__)

# Boarding stop must lie in the first 30% of the corridor
ORIGIN_PROGRESS_MAX = 0.3
# Alighting stop must lie in the last 30% of the corridor
DESTINATION_PROGRESS_MIN = 0.7
# Alighting further than this from the destination leaves a partial route
PARTIAL_DISTANCE_METERS = 500.0

DEFAULT_CORRIDOR_WIDTH_METERS = 5000.0


async def resolve_place(place: PlaceRef, geocoder: Geocoder) -> Coordinate:
    """Turn a place reference into a coordinate.

    Raises:
        GeocodeFailed: If an address cannot be resolved.
    """
    if isinstance(place, Coordinate):
        return place
    coordinate = await geocoder.geocode(place)
    if coordinate is None:
        raise GeocodeFailed(place)
    return coordinate


def _closest(
    candidates: list[StopCandidate],
    key: str,
    exclude: StopCandidate | None = None,
    progress_filter=None,
) -> StopCandidate | None:
    """Candidate minimizing the given distance field; first wins on ties."""
    best: StopCandidate | None = None
    best_score = float("inf")
    for candidate in candidates:
        if exclude is not None and candidate.id == exclude.id:
            continue
        if progress_filter is not None and not progress_filter(candidate.corridor_progress):
            continue
        score = getattr(candidate, key)
        if score < best_score:
            best_score = score
            best = candidate
    return best


class CorridorResolver:
    """Resolve a boarding/alighting stop pair between two places.

    Args:
        stop_finder: Stop search used to gather candidates.
        geocoder: Resolves free-text places.
        origin_progress_max: Max corridor progress for the boarding stop.
        destination_progress_min: Min corridor progress for the alighting stop.
        partial_distance_meters: Alighting distance above which the result is partial.
    """

    def __init__(
        self,
        stop_finder: StopFinder,
        geocoder: Geocoder,
        origin_progress_max: float = ORIGIN_PROGRESS_MAX,
        destination_progress_min: float = DESTINATION_PROGRESS_MIN,
        partial_distance_meters: float = PARTIAL_DISTANCE_METERS,
    ):
        self._stop_finder = stop_finder
        self._geocoder = geocoder
        self.origin_progress_max = origin_progress_max
        self.destination_progress_min = destination_progress_min
        self.partial_distance_meters = partial_distance_meters

    async def _gather_candidates(
        self, origin: Coordinate, destination: Coordinate, corridor_width_meters: float
    ) -> list[StopCandidate]:
        """Run the three searches concurrently and merge their results.

        A search that exhausts its retries counts as empty.

        Raises:
            NoRouteFound: If all three searches failed.
        """
        results = await asyncio.gather(
            self._stop_finder.find_near_point(origin),
            self._stop_finder.find_near_point(destination),
            self._stop_finder.find_in_corridor(origin, destination, corridor_width_meters / 1000),
            return_exceptions=True,
        )

        groups: list[list[StopCandidate]] = []
        failures = 0
        for result in results:
            if isinstance(result, ProviderUnavailable):
                failures += 1
                groups.append([])
            elif isinstance(result, BaseException):
                raise result
            else:
                groups.append(result)

        if failures == len(results):
            raise NoRouteFound("Transit stop search unavailable")
        if failures:
            logger.warning(f"{failures} of {len(results)} stop searches failed, continuing")

        return merge_candidates(*groups)

    def _annotate(
        self, candidates: list[StopCandidate], origin: Coordinate, destination: Coordinate
    ) -> list[StopCandidate]:
        """Fill the per-resolution derived fields."""
        return [
            c.model_copy(
                update={
                    "corridor_progress": project_progress(c.coordinate, origin, destination),
                    "perpendicular_distance_meters": perpendicular_distance_meters(
                        c.coordinate, origin, destination
                    ),
                    "distance_to_origin": distance_meters(origin, c.coordinate),
                    "distance_to_destination": distance_meters(destination, c.coordinate),
                }
            )
            for c in candidates
        ]

    def select(
        self,
        origin: Coordinate,
        destination: Coordinate,
        candidates: list[StopCandidate],
        corridor_width_meters: float,
    ) -> CorridorResolution | None:
        """Choose the stop pair from already gathered candidates.

        Returns:
            CorridorResolution, or None if no candidate lies inside the corridor.
        """
        annotated = self._annotate(candidates, origin, destination)
        in_corridor = [c for c in annotated if c.perpendicular_distance_meters <= corridor_width_meters]
        in_corridor.sort(key=lambda c: c.corridor_progress)

        if not in_corridor:
            return None

        origin_stop = _closest(
            in_corridor,
            "distance_to_origin",
            progress_filter=lambda p: p <= self.origin_progress_max,
        )
        destination_stop = _closest(
            in_corridor,
            "distance_to_destination",
            progress_filter=lambda p: p >= self.destination_progress_min,
        )
        if destination_stop is None:
            destination_stop = _closest(in_corridor, "distance_to_destination", exclude=origin_stop)
        if origin_stop is None:
            origin_stop = _closest(in_corridor, "distance_to_origin", exclude=destination_stop)

        if origin_stop is None or destination_stop is None or origin_stop.id == destination_stop.id:
            best = origin_stop or destination_stop or in_corridor[0]
            return CorridorResolution(
                origin=origin,
                destination=destination,
                origin_stop=best,
                destination_stop=None,
                is_partial=True,
                single_stop=True,
                intermediate_stop_count=0,
                stops_in_corridor=len(in_corridor),
            )

        low, high = sorted((origin_stop.corridor_progress, destination_stop.corridor_progress))
        intermediate = sum(1 for c in in_corridor if low < c.corridor_progress < high)

        return CorridorResolution(
            origin=origin,
            destination=destination,
            origin_stop=origin_stop,
            destination_stop=destination_stop,
            is_partial=destination_stop.distance_to_destination > self.partial_distance_meters,
            intermediate_stop_count=intermediate,
            stops_in_corridor=len(in_corridor),
        )

    async def resolve(
        self,
        origin: PlaceRef,
        destination: PlaceRef,
        corridor_width_meters: float = DEFAULT_CORRIDOR_WIDTH_METERS,
    ) -> CorridorResolution | None:
        """Resolve the best boarding/alighting stops between two places.

        Args:
            origin: Address or coordinate.
            destination: Address or coordinate.
            corridor_width_meters: Max perpendicular distance from the direct line.

        Returns:
            CorridorResolution, or None when no stop lies in the corridor.

        Raises:
            GeocodeFailed: If either place cannot be geocoded.
            NoRouteFound: If every stop search failed.
        """
        origin_ll, destination_ll = await asyncio.gather(
            resolve_place(origin, self._geocoder),
            resolve_place(destination, self._geocoder),
        )

        candidates = await self._gather_candidates(origin_ll, destination_ll, corridor_width_meters)
        if not candidates:
            logger.info("No transit stops found around the corridor")
            return None

        resolution = self.select(origin_ll, destination_ll, candidates, corridor_width_meters)
        if resolution is None:
            logger.info("No transit stops found along the route corridor")
        return resolution
