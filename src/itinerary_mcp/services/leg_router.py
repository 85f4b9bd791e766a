"""Route each consecutive pair of an ordered place list."""

import asyncio
import logging
from datetime import datetime

import httpx

from itinerary_mcp.data.providers import RoutingProvider
from itinerary_mcp.models.geo import PlaceRef
from itinerary_mcp.models.routing import (
    STATUS_REQUEST_FAILED,
    RouteLeg,
    RouteResult,
    Step,
    TravelMode,
)

logger = logging.getLogger(__name__)


def leg_from_result(
    leg_index: int,
    origin: PlaceRef,
    destination: PlaceRef,
    mode: TravelMode,
    result: RouteResult,
) -> RouteLeg:
    """Flatten a provider result into one RouteLeg.

    Provider legs (one per waypoint hop) are concatenated in order.
    """
    steps: list[Step] = []
    distance = 0.0
    duration = 0.0
    known_distance = False
    known_duration = False
    for provider_leg in result.legs:
        steps.extend(provider_leg.steps)
        if provider_leg.distance_meters is not None:
            distance += provider_leg.distance_meters
            known_distance = True
        if provider_leg.duration_seconds is not None:
            duration += provider_leg.duration_seconds
            known_duration = True

    return RouteLeg(
        leg_index=leg_index,
        from_place=origin,
        to_place=destination,
        travel_mode=mode,
        status=result.status,
        steps=steps,
        distance_meters=distance if known_distance else None,
        duration_seconds=duration if known_duration else None,
        start_location=result.legs[0].start_location if result.legs else None,
        end_location=result.legs[-1].end_location if result.legs else None,
    )


class LegRouter:
    """Issue one directions request per leg.

    Args:
        provider: Routing provider.
        prefer_bus: In transit mode, ask for bus-only transit first and fall back
            to any transit when that is not OK.
    """

    def __init__(self, provider: RoutingProvider, prefer_bus: bool = True):
        self._provider = provider
        self._prefer_bus = prefer_bus

    async def _request(
        self,
        origin: PlaceRef,
        destination: PlaceRef,
        mode: TravelMode,
        transit_mode: str | None,
        departure_time: datetime | None,
    ) -> RouteResult:
        try:
            return await self._provider.route(
                origin,
                destination,
                mode,
                transit_mode=transit_mode,
                departure_time=departure_time,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Directions request failed ({origin} -> {destination}): {e}")
            return RouteResult(status=STATUS_REQUEST_FAILED, error_message=str(e))

    async def route_segment(
        self,
        leg_index: int,
        origin: PlaceRef,
        destination: PlaceRef,
        mode: TravelMode,
        departure_time: datetime | None = None,
    ) -> RouteLeg:
        """Route a single raw segment and attribute it to a logical leg."""
        if mode == TravelMode.TRANSIT and self._prefer_bus:
            result = await self._request(origin, destination, mode, "bus", departure_time)
            if not result.ok:
                logger.debug(f"Bus-only transit returned {result.status}, trying any transit")
                result = await self._request(origin, destination, mode, None, departure_time)
        else:
            result = await self._request(origin, destination, mode, None, departure_time)

        if not result.ok:
            logger.info(f"Leg {leg_index} ({origin} -> {destination}): {result.status}")

        return leg_from_result(leg_index, origin, destination, mode, result)

    async def route_legs(
        self,
        ordered_places: list[PlaceRef],
        travel_mode: TravelMode,
        departure_time: datetime | None = None,
    ) -> list[RouteLeg]:
        """Route every consecutive pair concurrently.

        Args:
            ordered_places: Origin, waypoints..., destination.
            travel_mode: Mode requested for every leg.
            departure_time: Departure for the first leg.

        Returns:
            One RouteLeg per consecutive pair, in trip order.

        Raises:
            ValueError: If fewer than two places are given.
        """
        if len(ordered_places) < 2:
            raise ValueError("At least two places are required to plan a trip")

        tasks = [
            self.route_segment(
                i,
                ordered_places[i],
                ordered_places[i + 1],
                travel_mode,
                departure_time if i == 0 else None,
            )
            for i in range(len(ordered_places) - 1)
        ]
        return list(await asyncio.gather(*tasks))
