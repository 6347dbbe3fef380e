# app/services/geodesy.py
import math
from typing import Sequence

from app.models.routing import Coordinate

EARTH_RADIUS_M = 6_371_000.0


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """
    Compute great-circle distance between two points (lat/lng in degrees), in metres.
    """
    lat1 = math.radians(a.lat)
    lon1 = math.radians(a.lng)
    lat2 = math.radians(b.lat)
    lon2 = math.radians(b.lng)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def polyline_length_meters(points: Sequence[Coordinate]) -> float:
    """
    Total path length of a polyline (sum of its segment distances).
    """
    return sum(distance_meters(a, b) for a, b in zip(points[:-1], points[1:]))
