from pydantic import BaseModel, Field


class Coordinate(BaseModel):
    """A WGS84 point in degrees."""

    lat: float = Field(ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(ge=-180, le=180, description="Longitude in degrees")

    def as_query(self) -> str:
        """Render as the "lat,lng" form accepted by the Google APIs."""
        return f"{self.lat},{self.lng}"


# A place is either a free-text address or a coordinate
PlaceRef = str | Coordinate


class BoundingBox(BaseModel):
    """Axis-aligned box in degrees (south, west, north, east)."""

    south: float
    west: float
    north: float
    east: float

    def contains(self, point: Coordinate) -> bool:
        return self.south <= point.lat <= self.north and self.west <= point.lng <= self.east


def place_label(place: PlaceRef) -> str:
    """Short display label for a place (text before the first comma)."""
    if isinstance(place, Coordinate):
        return f"{place.lat:.5f},{place.lng:.5f}"
    return place.split(",")[0].strip() or place


def parse_place(text: str) -> PlaceRef:
    """Read "lat,lng" as a Coordinate; anything else stays an address."""
    parts = text.split(",")
    if len(parts) == 2:
        try:
            return Coordinate(lat=float(parts[0]), lng=float(parts[1]))
        except ValueError:
            pass
    return text.strip()
