"""Provider-agnostic routing models.

These decouple the planner from any specific directions vendor: clients parse
vendor payloads into these types and nothing downstream sees vendor enums.
"""

from enum import Enum

from pydantic import BaseModel, Field

from itinerary_mcp.models.geo import Coordinate, PlaceRef

# Provider status for a successful route
STATUS_OK = "OK"
# Status used when the request itself failed (network, non-2xx)
STATUS_REQUEST_FAILED = "REQUEST_FAILED"


class TravelMode(str, Enum):
    """Requested mode for a leg."""

    TRANSIT = "transit"
    WALKING = "walking"
    DRIVING = "driving"
    BICYCLING = "bicycling"


class TravelKind(str, Enum):
    """Kind of a single step within a route."""

    WALK = "walk"
    TRANSIT = "transit"
    DRIVE = "drive"
    CYCLE = "cycle"


# Step kind used when a leg without steps has to be synthesized
KIND_FOR_MODE = {
    TravelMode.TRANSIT: TravelKind.WALK,
    TravelMode.WALKING: TravelKind.WALK,
    TravelMode.DRIVING: TravelKind.DRIVE,
    TravelMode.BICYCLING: TravelKind.CYCLE,
}


class TransitDetails(BaseModel):
    """Transit metadata carried by TRANSIT steps."""

    line_name: str | None = Field(default=None, description="Short name or full line name")
    vehicle: str | None = Field(default=None, description="Vehicle name, e.g. 'Bus'")
    departure_stop: str | None = None
    departure_time: str | None = Field(default=None, description="Display time at boarding")
    arrival_stop: str | None = None
    arrival_time: str | None = Field(default=None, description="Display time at alighting")
    num_stops: int | None = None


class Step(BaseModel):
    travel_kind: TravelKind
    distance_meters: float = 0.0
    duration_seconds: float = 0.0
    transit_details: TransitDetails | None = None


class ProviderLeg(BaseModel):
    """One leg of a provider route (between two consecutive route points)."""

    steps: list[Step] = Field(default_factory=list)
    distance_meters: float | None = None
    duration_seconds: float | None = None
    start_location: Coordinate | None = None
    end_location: Coordinate | None = None


class RouteResult(BaseModel):
    """Raw answer from the routing provider."""

    status: str
    legs: list[ProviderLeg] = Field(default_factory=list)
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


class RouteLeg(BaseModel):
    """One raw routing segment attributed to a logical trip leg.

    A logical leg is normally one segment; a corridor fallback replaces it with
    two or three segments sharing the same ``leg_index``.
    """

    leg_index: int = Field(description="Index of the logical trip leg this segment belongs to")
    from_place: PlaceRef
    to_place: PlaceRef
    travel_mode: TravelMode
    status: str = STATUS_OK
    steps: list[Step] = Field(default_factory=list)
    distance_meters: float | None = None
    duration_seconds: float | None = None
    start_location: Coordinate | None = None
    end_location: Coordinate | None = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def has_transit(self) -> bool:
        return any(step.travel_kind == TravelKind.TRANSIT for step in self.steps)

    @property
    def needs_fallback(self) -> bool:
        """A transit leg that came back without any transit steps."""
        return self.travel_mode == TravelMode.TRANSIT and not self.has_transit
