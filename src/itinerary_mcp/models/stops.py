from pydantic import BaseModel, Field

from itinerary_mcp.models.geo import Coordinate

DEFAULT_STOP_NAME = "Bus Stop"


class MapFeature(BaseModel):
    """A point feature returned by the map-feature provider."""

    id: int
    coordinate: Coordinate
    tags: dict[str, str] = Field(default_factory=dict)


class StopCandidate(BaseModel):
    """A transit stop considered during one corridor resolution.

    The derived fields are filled once per resolution and never persisted.
    """

    id: int
    name: str
    coordinate: Coordinate
    tags: dict[str, str] = Field(default_factory=dict)

    # Derived per resolution
    distance_to_origin: float | None = None
    distance_to_destination: float | None = None
    corridor_progress: float | None = Field(
        default=None, description="0 at origin, 1 at destination"
    )
    perpendicular_distance_meters: float | None = None

    @classmethod
    def from_feature(cls, feature: MapFeature) -> "StopCandidate":
        return cls(
            id=feature.id,
            name=feature.tags.get("name") or DEFAULT_STOP_NAME,
            coordinate=feature.coordinate,
            tags=feature.tags,
        )
