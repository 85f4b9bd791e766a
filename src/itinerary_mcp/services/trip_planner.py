"""Multi-stop itinerary planning.

Routes every leg, replaces transit legs that came back without transit by a
corridor fallback (walk to a stop, ride, walk on), and composes the result.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from itinerary_mcp.data.config import ProviderConfig, get_provider_config
from itinerary_mcp.data.session import Providers, open_providers
from itinerary_mcp.errors import GeocodeFailed, NoRouteFound
from itinerary_mcp.models.geo import Coordinate, PlaceRef
from itinerary_mcp.models.responses import (
    CorridorResolution,
    FallbackNotice,
    LegGap,
    PlanItineraryResponse,
)
from itinerary_mcp.models.routing import RouteLeg, Step, TravelKind, TravelMode
from itinerary_mcp.services.corridor_resolver import CorridorResolver
from itinerary_mcp.services.geomath import distance_meters
from itinerary_mcp.services.itinerary_composer import compose
from itinerary_mcp.services.leg_router import LegRouter
from itinerary_mcp.services.stop_service import build_resolver, clamp_corridor_width

logger = logging.getLogger(__name__)

# Walking speed for straight-line estimates
WALKING_SPEED_M_PER_MIN = 80


@dataclass
class LegPlan:
    """Outcome of planning one logical leg."""

    segments: list[RouteLeg]
    fallback: FallbackNotice | None = None
    gap: LegGap | None = None


@dataclass
class _Planner:
    router: LegRouter
    resolver: CorridorResolver
    corridor_width_meters: float
    departure_time: datetime | None = None


def straight_line_walk(
    leg_index: int,
    from_place: PlaceRef,
    to_place: PlaceRef,
    start: Coordinate,
    end: Coordinate,
) -> RouteLeg:
    """Walking segment estimated from the straight-line distance."""
    distance = distance_meters(start, end)
    duration = distance / WALKING_SPEED_M_PER_MIN * 60
    return RouteLeg(
        leg_index=leg_index,
        from_place=from_place,
        to_place=to_place,
        travel_mode=TravelMode.WALKING,
        steps=[Step(travel_kind=TravelKind.WALK, distance_meters=distance, duration_seconds=duration)],
        distance_meters=distance,
        duration_seconds=duration,
        start_location=start,
        end_location=end,
    )


async def _walk(
    planner: _Planner,
    leg_index: int,
    from_place: PlaceRef,
    to_place: PlaceRef,
    start: Coordinate,
    end: Coordinate,
) -> RouteLeg:
    segment = await planner.router.route_segment(leg_index, from_place, to_place, TravelMode.WALKING)
    if segment.ok:
        return segment
    logger.info(f"Walk {leg_index} returned {segment.status}, using straight-line estimate")
    return straight_line_walk(leg_index, from_place, to_place, start, end)


def _notice(leg_index: int, resolution: CorridorResolution) -> FallbackNotice:
    return FallbackNotice(
        leg_index=leg_index,
        board_stop=resolution.board_summary(),
        alight_stop=resolution.alight_summary(),
        is_partial=resolution.is_partial,
        walk_to_destination_meters=round(resolution.walk_to_destination_meters),
        intermediate_stop_count=resolution.intermediate_stop_count,
    )


async def _synthesize(
    planner: _Planner, leg: RouteLeg, resolution: CorridorResolution
) -> list[RouteLeg]:
    """Replacement segments for a leg: walk/ride/walk, or walk/walk via a single stop."""
    i = leg.leg_index
    board = resolution.origin_stop
    alight = resolution.destination_stop

    if alight is None:
        return list(
            await asyncio.gather(
                _walk(planner, i, leg.from_place, board.coordinate, resolution.origin, board.coordinate),
                _walk(planner, i, board.coordinate, leg.to_place, board.coordinate, resolution.destination),
            )
        )

    departure_time = planner.departure_time if i == 0 else None
    first, ride, last = await asyncio.gather(
        _walk(planner, i, leg.from_place, board.coordinate, resolution.origin, board.coordinate),
        planner.router.route_segment(
            i, board.coordinate, alight.coordinate, TravelMode.TRANSIT, departure_time
        ),
        _walk(planner, i, alight.coordinate, leg.to_place, alight.coordinate, resolution.destination),
    )
    return [first, ride, last]


def _gap(leg: RouteLeg, reason: str) -> LegPlan:
    if leg.ok:
        # the walk-only route is still usable
        return LegPlan(segments=[leg])
    return LegPlan(
        segments=[leg],
        gap=LegGap(leg_index=leg.leg_index, from_place=leg.from_place, to_place=leg.to_place, reason=reason),
    )


async def _plan_leg(planner: _Planner, leg: RouteLeg) -> LegPlan:
    """Keep a leg as routed, or replace it through the transit corridor."""
    if not leg.needs_fallback:
        if not leg.ok:
            return _gap(leg, f"Directions returned {leg.status}")
        return LegPlan(segments=[leg])

    logger.info(f"Leg {leg.leg_index} has no transit ({leg.status}), resolving corridor")
    try:
        resolution = await planner.resolver.resolve(
            leg.from_place, leg.to_place, planner.corridor_width_meters
        )
    except (GeocodeFailed, NoRouteFound) as e:
        logger.warning(f"Corridor fallback failed for leg {leg.leg_index}: {e}")
        return _gap(leg, str(e))

    if resolution is None:
        return _gap(leg, "No bus stops found along route corridor")

    segments = await _synthesize(planner, leg, resolution)
    failed = [s for s in segments if not s.ok]
    if failed:
        ride = failed[0]
        logger.warning(
            f"Corridor ride for leg {leg.leg_index} returned {ride.status}, dropping fallback"
        )
        return _gap(leg, f"No transit between corridor stops ({ride.status})")
    return LegPlan(segments=segments, fallback=_notice(leg.leg_index, resolution))


async def _plan(
    places: list[PlaceRef],
    travel_mode: TravelMode,
    departure_time: datetime | None,
    corridor_width_meters: float,
    providers: Providers,
    config: ProviderConfig,
) -> PlanItineraryResponse:
    planner = _Planner(
        router=LegRouter(providers.routing, prefer_bus=config.prefer_bus),
        resolver=build_resolver(providers, config),
        corridor_width_meters=corridor_width_meters,
        departure_time=departure_time,
    )

    legs = await planner.router.route_legs(places, travel_mode, departure_time)
    plans = await asyncio.gather(*(_plan_leg(planner, leg) for leg in legs))

    segments = [segment for plan in plans for segment in plan.segments]
    composed = compose(segments, len(places) - 1, config.cab_threshold_meters)
    gaps = [plan.gap for plan in plans if plan.gap is not None]

    error = None
    if gaps:
        error = "No route found for leg " + ", ".join(str(g.leg_index) for g in gaps)
    elif not composed.events:
        error = "No route found"

    return PlanItineraryResponse(
        places=places,
        travel_mode=travel_mode,
        events=composed.events,
        segment_groups=composed.segment_groups,
        legs=composed.legs,
        fallbacks=[plan.fallback for plan in plans if plan.fallback is not None],
        gaps=gaps,
        count=len(composed.events),
        success=error is None,
        error=error,
    )


async def plan_itinerary(
    places: list[PlaceRef],
    travel_mode: TravelMode = TravelMode.TRANSIT,
    departure_time: datetime | None = None,
    corridor_width_meters: float | None = None,
    providers: Providers | None = None,
    config: ProviderConfig | None = None,
) -> PlanItineraryResponse:
    """Plan an itinerary through an ordered list of places.

    Args:
        places: Origin, optional waypoints, destination (addresses or coordinates).
        travel_mode: Mode requested for every leg.
        departure_time: Departure for the first leg (default: now, provider side).
        corridor_width_meters: Corridor width for transit fallbacks (clamped).
        providers: Optional provider override (tests).
        config: Optional configuration override.

    Returns:
        PlanItineraryResponse with the composed events and per-leg metadata.
    """
    config = config or get_provider_config()
    width = clamp_corridor_width(corridor_width_meters, config)

    if len(places) < 2:
        return PlanItineraryResponse(
            places=places,
            travel_mode=travel_mode,
            success=False,
            error="At least two places are required to plan a trip",
        )

    try:
        async with asyncio.timeout(config.request_timeout_seconds):
            if providers is None:
                async with open_providers(config) as opened:
                    return await _plan(places, travel_mode, departure_time, width, opened, config)
            return await _plan(places, travel_mode, departure_time, width, providers, config)
    except TimeoutError:
        logger.warning(f"Planning timed out after {config.request_timeout_seconds}s")
        return PlanItineraryResponse(
            places=places,
            travel_mode=travel_mode,
            success=False,
            error=f"Planning timed out after {config.request_timeout_seconds:g}s",
        )
