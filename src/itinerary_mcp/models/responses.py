from enum import Enum

from pydantic import BaseModel, Field

from itinerary_mcp.models.geo import Coordinate, PlaceRef
from itinerary_mcp.models.routing import TravelMode
from itinerary_mcp.models.stops import StopCandidate

# Itinerary Models


class EventKind(str, Enum):
    """Kind of an itinerary event."""

    WALK = "walk"
    BUS = "bus"
    CAB_SUGGESTED = "cab_suggested"
    DRIVE = "drive"
    CYCLE = "cycle"
    GAP = "gap"  # leg could not be planned


class ItineraryEvent(BaseModel):
    """One entry of the composed itinerary, in physical travel order."""

    kind: EventKind
    label: str = Field(description="Headline, e.g. 'Walk' or 'Bus 12'")
    subtext: str | None = Field(default=None, description="Secondary line for display")

    # Transit only
    line_name: str | None = None
    board_stop: str | None = None
    board_time: str | None = None
    alight_stop: str | None = None
    alight_time: str | None = None

    distance_meters: float = 0.0
    duration_seconds: float = 0.0
    leg_index: int = Field(description="Logical trip leg that produced this event")


class LegSummary(BaseModel):
    """Aggregate figures for one logical leg (used to place map labels)."""

    leg_index: int
    from_place: PlaceRef
    to_place: PlaceRef
    distance_meters: float = 0.0
    duration_seconds: float = 0.0
    midpoint: Coordinate | None = None


class ComposedItinerary(BaseModel):
    events: list[ItineraryEvent] = Field(default_factory=list)
    segment_groups: list[int] = Field(
        default_factory=list, description="Raw segments consumed per logical leg"
    )
    legs: list[LegSummary] = Field(default_factory=list)


# Corridor Models


class StopSummary(BaseModel):
    """Stop metadata needed to render a partial-route notice."""

    name: str
    coordinate: Coordinate
    distance_meters: int = Field(description="Distance to the relevant trip endpoint, rounded")


class CorridorResolution(BaseModel):
    """Boarding/alighting pair chosen along the origin-destination corridor."""

    origin: Coordinate
    destination: Coordinate
    origin_stop: StopCandidate
    destination_stop: StopCandidate | None = Field(
        default=None, description="Absent when only one usable stop was found"
    )
    is_partial: bool = Field(description="Rider still needs a substantial walk/cab after alighting")
    single_stop: bool = Field(default=False, description="No usable boarding/alighting pair")
    intermediate_stop_count: int = 0
    stops_in_corridor: int = 0

    @property
    def walk_to_destination_meters(self) -> float:
        stop = self.destination_stop or self.origin_stop
        return stop.distance_to_destination or 0.0

    def board_summary(self) -> StopSummary:
        return StopSummary(
            name=self.origin_stop.name,
            coordinate=self.origin_stop.coordinate,
            distance_meters=round(self.origin_stop.distance_to_origin or 0.0),
        )

    def alight_summary(self) -> StopSummary | None:
        if self.destination_stop is None:
            return None
        return StopSummary(
            name=self.destination_stop.name,
            coordinate=self.destination_stop.coordinate,
            distance_meters=round(self.destination_stop.distance_to_destination or 0.0),
        )


class FallbackNotice(BaseModel):
    """Explains that a leg was planned through corridor stops instead of a direct route."""

    leg_index: int
    board_stop: StopSummary
    alight_stop: StopSummary | None = None
    is_partial: bool
    walk_to_destination_meters: int
    intermediate_stop_count: int = 0


class LegGap(BaseModel):
    """A leg that could not be planned."""

    leg_index: int
    from_place: PlaceRef
    to_place: PlaceRef
    reason: str


class PlanItineraryResponse(BaseModel):
    """Response from plan_itinerary tool."""

    places: list[PlaceRef]
    travel_mode: TravelMode

    events: list[ItineraryEvent] = Field(default_factory=list)
    segment_groups: list[int] = Field(default_factory=list)
    legs: list[LegSummary] = Field(default_factory=list)
    fallbacks: list[FallbackNotice] = Field(default_factory=list)
    gaps: list[LegGap] = Field(default_factory=list)

    # Status
    count: int = Field(default=0, description="Number of events")
    success: bool
    error: str | None = None


class FindStopsResponse(BaseModel):
    """Response from find_transit_stops tool."""

    center: Coordinate
    stops: list[StopCandidate]
    count: int
    api_available: bool = Field(description="False if the map-feature provider kept failing")


class ResolveCorridorResponse(BaseModel):
    """Response from resolve_transit_corridor tool."""

    origin: PlaceRef
    destination: PlaceRef
    corridor_width_meters: float
    found: bool
    resolution: CorridorResolution | None = None
    board_stop: StopSummary | None = None
    alight_stop: StopSummary | None = None
    error: str | None = None
