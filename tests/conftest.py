"""Shared fakes for provider-facing tests."""

from collections.abc import Callable

import pytest

from itinerary_mcp.data.config import ProviderConfig
from itinerary_mcp.data.retry import RetryPolicy
from itinerary_mcp.data.session import Providers
from itinerary_mcp.errors import TransientProviderError
from itinerary_mcp.models.geo import BoundingBox, Coordinate, PlaceRef
from itinerary_mcp.models.routing import (
    ProviderLeg,
    RouteResult,
    Step,
    TransitDetails,
    TravelKind,
    TravelMode,
)
from itinerary_mcp.models.stops import MapFeature

# Goa: Mapusa area to Margao area
ORIGIN = Coordinate(lat=15.50, lng=73.83)
DESTINATION = Coordinate(lat=15.28, lng=73.99)


def along(a: Coordinate, b: Coordinate, t: float) -> Coordinate:
    """Point at fraction t of the way from a to b (linear in degrees)."""
    return Coordinate(lat=a.lat + (b.lat - a.lat) * t, lng=a.lng + (b.lng - a.lng) * t)


def bus_stop(id: int, coordinate: Coordinate, name: str | None = None) -> MapFeature:
    tags = {"highway": "bus_stop"}
    if name:
        tags["name"] = name
    return MapFeature(id=id, coordinate=coordinate, tags=tags)


def walk_result(distance: float, duration: float) -> RouteResult:
    return RouteResult(
        status="OK",
        legs=[
            ProviderLeg(
                steps=[Step(travel_kind=TravelKind.WALK, distance_meters=distance, duration_seconds=duration)],
                distance_meters=distance,
                duration_seconds=duration,
            )
        ],
    )


def transit_result(line: str = "12", board: str = "Mapusa", alight: str = "Margao") -> RouteResult:
    steps = [
        Step(travel_kind=TravelKind.WALK, distance_meters=200, duration_seconds=150),
        Step(
            travel_kind=TravelKind.TRANSIT,
            distance_meters=25000,
            duration_seconds=3000,
            transit_details=TransitDetails(
                line_name=line,
                vehicle="Bus",
                departure_stop=board,
                departure_time="9:00 AM",
                arrival_stop=alight,
                arrival_time="9:50 AM",
                num_stops=14,
            ),
        ),
        Step(travel_kind=TravelKind.WALK, distance_meters=300, duration_seconds=240),
    ]
    return RouteResult(
        status="OK",
        legs=[ProviderLeg(steps=steps, distance_meters=25500, duration_seconds=3390)],
    )


class FakeMapFeatures:
    """Map-feature provider serving a fixed feature set, filtered by box."""

    def __init__(self, features: list[MapFeature] | None = None, failures: int = 0):
        self.features = features or []
        self.failures = failures
        self.boxes: list[BoundingBox] = []

    async def query(self, box, tag_filters):
        self.boxes.append(box)
        if self.failures > 0:
            self.failures -= 1
            raise TransientProviderError("runtime error: server busy")
        return [f for f in self.features if box.contains(f.coordinate)]


class FakeRouting:
    """Routing provider answering through a handler and recording every call."""

    def __init__(self, handler: Callable[..., RouteResult]):
        self.handler = handler
        self.calls: list[dict] = []

    async def route(
        self,
        origin: PlaceRef,
        destination: PlaceRef,
        mode: TravelMode,
        *,
        waypoints=None,
        transit_mode=None,
        departure_time=None,
    ) -> RouteResult:
        call = {
            "origin": origin,
            "destination": destination,
            "mode": mode,
            "transit_mode": transit_mode,
            "departure_time": departure_time,
        }
        self.calls.append(call)
        return self.handler(**call)


class FakeGeocoder:
    def __init__(self, places: dict[str, Coordinate] | None = None):
        self.places = places or {}

    async def geocode(self, address: str) -> Coordinate | None:
        return self.places.get(address)


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def retry_policy(fake_sleep: FakeSleep) -> RetryPolicy:
    """Default retry budget with a fake clock."""
    return RetryPolicy(sleep=fake_sleep)


@pytest.fixture
def config() -> ProviderConfig:
    """Test config with zero backoff so retries never wait."""
    return ProviderConfig(
        GOOGLE_MAPS_API_KEY="test_key",
        retry_backoff_seconds=0.0,
        request_timeout_seconds=5.0,
    )


@pytest.fixture
def make_providers():
    def _make(
        routing: FakeRouting,
        features: FakeMapFeatures | None = None,
        geocoder: FakeGeocoder | None = None,
    ) -> Providers:
        return Providers(
            routing=routing,
            map_features=features or FakeMapFeatures(),
            geocoder=geocoder or FakeGeocoder(),
        )

    return _make
