"""Geometric primitives for corridor reasoning.

Distances are great-circle (haversine). Projections use a local
equirectangular plane, which is accurate enough at city scale.
"""

import math

from itinerary_mcp.models.geo import BoundingBox, Coordinate

# Earth's radius in meters for haversine calculation
EARTH_RADIUS_METERS = 6_371_000

# Approximate meters per degree, used for bounding boxes and local projection
METERS_PER_DEGREE_LAT = 110_540
METERS_PER_DEGREE_LNG_AT_EQUATOR = 111_320
METERS_PER_DEGREE = 111_000


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Calculate the great-circle distance between two points in meters.

    Args:
        a, b: Points in degrees.

    Returns:
        Distance in meters.
    """
    lat1_rad = math.radians(a.lat)
    lat2_rad = math.radians(b.lat)
    delta_lat = math.radians(b.lat - a.lat)
    delta_lon = math.radians(b.lng - a.lng)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_METERS * c


def _to_local(p: Coordinate, origin: Coordinate, lng_scale: float) -> tuple[float, float]:
    """Project p into meters relative to origin (x east, y north)."""
    return (
        (p.lng - origin.lng) * lng_scale,
        (p.lat - origin.lat) * METERS_PER_DEGREE_LAT,
    )


def _lng_scale(a: Coordinate, b: Coordinate) -> float:
    avg_lat = (a.lat + b.lat) / 2
    return METERS_PER_DEGREE_LNG_AT_EQUATOR * math.cos(math.radians(avg_lat))


def project_progress(p: Coordinate, a: Coordinate, b: Coordinate) -> float:
    """Fraction along segment a->b of the point closest to p, clamped to [0, 1].

    Returns 0.0 for a degenerate segment (a == b).
    """
    scale = _lng_scale(a, b)
    dx, dy = _to_local(b, a, scale)
    px, py = _to_local(p, a, scale)

    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return 0.0

    t = (px * dx + py * dy) / length_sq
    return max(0.0, min(1.0, t))


def perpendicular_distance_meters(p: Coordinate, a: Coordinate, b: Coordinate) -> float:
    """Shortest distance from p to the infinite line through a and b.

    Falls back to the distance from p to a when a == b.
    """
    scale = _lng_scale(a, b)
    dx, dy = _to_local(b, a, scale)
    length = math.hypot(dx, dy)
    if length == 0:
        return distance_meters(p, a)

    px, py = _to_local(p, a, scale)
    # cross product magnitude is the parallelogram area; divide by base for height
    return abs(px * dy - py * dx) / length


def bounding_box_around(center: Coordinate, radius_meters: float) -> BoundingBox:
    """Square of side 2 x radius centered on a point."""
    lat_delta = radius_meters / METERS_PER_DEGREE
    lng_delta = radius_meters / (METERS_PER_DEGREE * math.cos(math.radians(center.lat)))
    return BoundingBox(
        south=center.lat - lat_delta,
        west=center.lng - lng_delta,
        north=center.lat + lat_delta,
        east=center.lng + lng_delta,
    )


def corridor_bounding_box(a: Coordinate, b: Coordinate, buffer_km: float) -> BoundingBox:
    """Bounding box of a and b, expanded by buffer_km on every side."""
    buffer_meters = buffer_km * 1000
    lat_delta = buffer_meters / METERS_PER_DEGREE
    lng_delta = buffer_meters / (METERS_PER_DEGREE * math.cos(math.radians(a.lat)))
    return BoundingBox(
        south=min(a.lat, b.lat) - lat_delta,
        west=min(a.lng, b.lng) - lng_delta,
        north=max(a.lat, b.lat) + lat_delta,
        east=max(a.lng, b.lng) + lng_delta,
    )


def midpoint(a: Coordinate, b: Coordinate) -> Coordinate:
    """Arithmetic midpoint, good enough for placing a label on a map."""
    return Coordinate(lat=(a.lat + b.lat) / 2, lng=(a.lng + b.lng) / 2)
