"""Tests for the Google Directions client."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import FakeGeocoder, FakeMapFeatures

from itinerary_mcp.data.config import ProviderConfig
from itinerary_mcp.data.directions_client import DirectionsClient, parse_directions
from itinerary_mcp.data.session import Providers
from itinerary_mcp.models.geo import Coordinate
from itinerary_mcp.models.responses import EventKind
from itinerary_mcp.models.routing import TravelKind, TravelMode
from itinerary_mcp.services.trip_planner import plan_itinerary


def create_directions_response() -> dict:
    """Create a sample Directions API response for testing."""
    return {
        "status": "OK",
        "routes": [
            {
                "legs": [
                    {
                        "distance": {"text": "29.1 km", "value": 29100},
                        "duration": {"text": "1 hour 10 mins", "value": 4200},
                        "start_location": {"lat": 15.5, "lng": 73.83},
                        "end_location": {"lat": 15.28, "lng": 73.99},
                        "steps": [
                            {
                                "travel_mode": "WALKING",
                                "distance": {"text": "0.4 km", "value": 400},
                                "duration": {"text": "5 mins", "value": 300},
                            },
                            {
                                "travel_mode": "TRANSIT",
                                "distance": {"text": "28.5 km", "value": 28500},
                                "duration": {"text": "1 hour", "value": 3600},
                                "transit_details": {
                                    "line": {
                                        "short_name": "12",
                                        "name": "Panaji - Margao",
                                        "vehicle": {"name": "Bus", "type": "BUS"},
                                    },
                                    "departure_stop": {"name": "Panaji Bus Stand, Goa"},
                                    "arrival_stop": {"name": "Margao KTC"},
                                    "departure_time": {"text": "9:00 AM", "value": 1700000000},
                                    "arrival_time": {"text": "10:00 AM", "value": 1700003600},
                                    "num_stops": 14,
                                },
                            },
                            {
                                "travel_mode": "WALKING",
                                "distance": {"text": "0.2 km", "value": 200},
                                "duration": {"text": "3 mins", "value": 180},
                            },
                        ],
                    }
                ]
            }
        ],
    }


def test_parse_directions_steps():
    result = parse_directions(create_directions_response())

    assert result.ok
    assert len(result.legs) == 1
    leg = result.legs[0]
    assert leg.distance_meters == 29100
    assert leg.start_location == Coordinate(lat=15.5, lng=73.83)
    assert [s.travel_kind for s in leg.steps] == [
        TravelKind.WALK,
        TravelKind.TRANSIT,
        TravelKind.WALK,
    ]

    details = leg.steps[1].transit_details
    assert details.line_name == "12"
    assert details.vehicle == "Bus"
    assert details.departure_stop == "Panaji Bus Stand, Goa"
    assert details.arrival_time == "10:00 AM"
    assert details.num_stops == 14


def test_parse_directions_zero_results():
    result = parse_directions({"status": "ZERO_RESULTS", "routes": []})
    assert not result.ok
    assert result.status == "ZERO_RESULTS"
    assert result.legs == []


def test_parse_directions_missing_status():
    assert parse_directions({}).status == "UNKNOWN_ERROR"


@pytest.mark.asyncio
async def test_route_sends_transit_params(config: ProviderConfig):
    mock_response = MagicMock()
    mock_response.json.return_value = create_directions_response()
    departure = datetime(2024, 6, 1, 9, 0, tzinfo=UTC)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response)
        mock_client_class.return_value = mock_client

        async with DirectionsClient(config) as client:
            result = await client.route(
                Coordinate(lat=15.5, lng=73.83),
                "Margao, Goa",
                TravelMode.TRANSIT,
                transit_mode="bus",
                departure_time=departure,
            )

        params = mock_client.get.call_args.kwargs["params"]

    assert result.ok
    assert params["origin"] == "15.5,73.83"
    assert params["destination"] == "Margao, Goa"
    assert params["mode"] == "transit"
    assert params["transit_mode"] == "bus"
    assert params["transit_routing_preference"] == "less_walking"
    assert params["departure_time"] == int(departure.timestamp())
    assert params["key"] == "test_key"


@pytest.mark.asyncio
async def test_route_walking_has_no_transit_params(config: ProviderConfig):
    mock_response = MagicMock()
    mock_response.json.return_value = {"status": "OK", "routes": []}

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response)
        mock_client_class.return_value = mock_client

        async with DirectionsClient(config) as client:
            await client.route(
                "Panaji",
                "Calangute",
                TravelMode.WALKING,
                waypoints=["Porvorim", Coordinate(lat=15.54, lng=73.76)],
            )

        params = mock_client.get.call_args.kwargs["params"]

    assert params["mode"] == "walking"
    assert params["waypoints"] == "Porvorim|15.54,73.76"
    assert "transit_mode" not in params
    assert "transit_routing_preference" not in params


@pytest.mark.asyncio
async def test_client_requires_async_context(config: ProviderConfig):
    client = DirectionsClient(config)

    with pytest.raises(RuntimeError, match="Client not initialized"):
        await client.route("a", "b", TravelMode.WALKING)


@pytest.mark.asyncio
async def test_route_non_json_body_is_request_failed(config: ProviderConfig):
    """A 200 response with a non-JSON body does not escape as ValueError."""
    mock_response = MagicMock()
    mock_response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response)
        mock_client_class.return_value = mock_client

        async with DirectionsClient(config) as client:
            result = await client.route("Panaji", "Margao", TravelMode.DRIVING)

    assert not result.ok
    assert result.status == "REQUEST_FAILED"
    assert result.legs == []


@pytest.mark.parametrize("payload", [["not", "a", "dict"], {"status": "OK", "routes": ["bad"]}])
def test_parse_directions_malformed(payload):
    result = parse_directions(payload)
    assert result.legs == []


@pytest.mark.asyncio
async def test_plan_with_non_json_directions_fails_cleanly(config: ProviderConfig):
    mock_response = MagicMock()
    mock_response.json.side_effect = ValueError("Expecting value")

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response)
        mock_client_class.return_value = mock_client

        async with DirectionsClient(config) as client:
            providers = Providers(
                routing=client, map_features=FakeMapFeatures(), geocoder=FakeGeocoder()
            )
            response = await plan_itinerary(
                ["Panaji", "Margao"],
                travel_mode=TravelMode.DRIVING,
                providers=providers,
                config=config,
            )

    assert not response.success
    assert response.gaps[0].reason == "Directions returned REQUEST_FAILED"
    assert [e.kind for e in response.events] == [EventKind.GAP]
