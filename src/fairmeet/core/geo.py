from __future__ import annotations
from math import asin, cos, degrees, radians, sin, sqrt
from typing import Sequence

from fairmeet.domain.models import Point
from fairmeet.errors import InvalidInputError

"""
Geospatial helpers.

We keep a tiny geometry layer here so the engine and the simulated travel model can do
distance and center-point calculations without pulling in heavier GIS dependencies.

Limitation: midpoint/centroid are plain arithmetic means of lat and lng. They are
wrong for point sets that span the antimeridian or a pole; meeting parties are
expected to be in one metro area.
"""

EARTH_RADIUS_M = 6_378_137


def midpoint(a: Point, b: Point) -> Point:
    """Arithmetic mean of two points."""
    return Point(lat=(a.lat + b.lat) / 2, lng=(a.lng + b.lng) / 2)


def centroid(points: Sequence[Point]) -> Point:
    """Arithmetic mean of lat and of lng across `points`."""
    if not points:
        raise InvalidInputError("centroid requires at least one point")
    n = len(points)
    return Point(lat=sum(p.lat for p in points) / n, lng=sum(p.lng for p in points) / n)


def great_circle_distance_m(a: Point, b: Point) -> float:
    """Compute great-circle (haversine) distance in meters between two points."""
    lat1 = radians(a.lat)
    lng1 = radians(a.lng)
    lat2 = radians(b.lat)
    lng2 = radians(b.lng)

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points.
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))


def offset_m(origin: Point, north_m: float, east_m: float) -> Point:
    """Move `origin` by a small local displacement in meters (equirectangular)."""
    lat = origin.lat + degrees(north_m / EARTH_RADIUS_M)
    lng = origin.lng + degrees(east_m / (EARTH_RADIUS_M * max(cos(radians(origin.lat)), 1e-6)))
    return Point(lat=min(90.0, max(-90.0, lat)), lng=((lng + 180.0) % 360.0) - 180.0)
