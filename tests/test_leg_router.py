"""Tests for per-leg routing."""

from datetime import datetime

import httpx
import pytest
from conftest import FakeRouting, transit_result, walk_result

from itinerary_mcp.models.routing import RouteResult, TravelMode
from itinerary_mcp.services.leg_router import LegRouter


def always(result: RouteResult):
    return lambda **call: result


@pytest.mark.asyncio
async def test_one_leg_per_consecutive_pair():
    routing = FakeRouting(always(walk_result(800, 600)))
    router = LegRouter(routing)

    legs = await router.route_legs(["A", "B", "C", "D"], TravelMode.WALKING)

    assert [(leg.from_place, leg.to_place) for leg in legs] == [("A", "B"), ("B", "C"), ("C", "D")]
    assert [leg.leg_index for leg in legs] == [0, 1, 2]
    assert all(leg.distance_meters == 800 for leg in legs)


@pytest.mark.asyncio
async def test_fewer_than_two_places():
    router = LegRouter(FakeRouting(always(walk_result(1, 1))))

    with pytest.raises(ValueError, match="At least two places"):
        await router.route_legs(["A"], TravelMode.TRANSIT)


@pytest.mark.asyncio
async def test_transit_asks_for_bus_first():
    routing = FakeRouting(always(transit_result()))
    router = LegRouter(routing)

    legs = await router.route_legs(["Panaji", "Margao"], TravelMode.TRANSIT)

    assert len(routing.calls) == 1
    assert routing.calls[0]["transit_mode"] == "bus"
    assert legs[0].has_transit
    assert not legs[0].needs_fallback


@pytest.mark.asyncio
async def test_bus_only_failure_falls_back_to_any_transit():
    def handler(transit_mode, **call):
        if transit_mode == "bus":
            return RouteResult(status="ZERO_RESULTS")
        return transit_result(line="Konkan", board="Thivim", alight="Madgaon")

    routing = FakeRouting(handler)
    router = LegRouter(routing)

    legs = await router.route_legs(["Mapusa", "Margao"], TravelMode.TRANSIT)

    assert [c["transit_mode"] for c in routing.calls] == ["bus", None]
    assert legs[0].ok
    assert legs[0].steps[1].transit_details.line_name == "Konkan"


@pytest.mark.asyncio
async def test_without_bus_preference():
    routing = FakeRouting(always(transit_result()))
    router = LegRouter(routing, prefer_bus=False)

    await router.route_legs(["Panaji", "Margao"], TravelMode.TRANSIT)

    assert [c["transit_mode"] for c in routing.calls] == [None]


@pytest.mark.asyncio
async def test_walk_only_transit_needs_fallback():
    routing = FakeRouting(always(walk_result(5000, 3600)))
    router = LegRouter(routing)

    legs = await router.route_legs(["Colva", "Benaulim"], TravelMode.TRANSIT)

    assert legs[0].ok
    assert legs[0].needs_fallback


@pytest.mark.asyncio
async def test_non_transit_status_verbatim():
    routing = FakeRouting(always(RouteResult(status="NOT_FOUND")))
    router = LegRouter(routing)

    legs = await router.route_legs(["Nowhere", "Elsewhere"], TravelMode.DRIVING)

    assert legs[0].status == "NOT_FOUND"
    assert legs[0].steps == []
    assert legs[0].distance_meters is None
    assert not legs[0].needs_fallback


@pytest.mark.asyncio
async def test_transport_failure_becomes_request_failed():
    def handler(**call):
        raise httpx.ConnectError("connection refused")

    router = LegRouter(FakeRouting(handler))

    legs = await router.route_legs(["A", "B"], TravelMode.WALKING)

    assert legs[0].status == "REQUEST_FAILED"
    assert not legs[0].ok


@pytest.mark.asyncio
async def test_departure_time_only_on_first_leg():
    routing = FakeRouting(always(transit_result()))
    router = LegRouter(routing)
    departure = datetime(2024, 6, 1, 9, 0)

    await router.route_legs(["A", "B", "C"], TravelMode.TRANSIT, departure)

    by_origin = {c["origin"]: c["departure_time"] for c in routing.calls}
    assert by_origin == {"A": departure, "B": None}


@pytest.mark.asyncio
async def test_multi_hop_result_is_concatenated():
    result = RouteResult(
        status="OK",
        legs=walk_result(300, 240).legs + walk_result(500, 400).legs,
    )
    router = LegRouter(FakeRouting(always(result)))

    leg = await router.route_segment(2, "A", "B", TravelMode.WALKING)

    assert leg.leg_index == 2
    assert len(leg.steps) == 2
    assert leg.distance_meters == 800
    assert leg.duration_seconds == 640
