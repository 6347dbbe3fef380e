# app/services/interpolation.py
import math
from typing import List, Sequence, Tuple

from app.models.routing import Coordinate, Waypoint
from app.services.geodesy import distance_meters

# Slack for threshold comparisons; summed segment lengths drift by a few ulps
THRESHOLD_TOLERANCE_M = 1e-6


def waypoint_interval(total_distance_m: float, spacing_km: float) -> Tuple[int, float]:
    """
    Turn the requested spacing into (number_of_waypoints, interval_m).

    Spacing is a target: the route is divided into
    max(1, floor(total_km / spacing_km)) equal parts, so the real interval
    only equals the spacing when it divides the route evenly.
    """
    count = max(1, math.floor((total_distance_m / 1000.0) / spacing_km))
    return count, total_distance_m / count


def generate_waypoints_by_distance(
    polyline: Sequence[Coordinate],
    interval_m: float,
    total_distance_m: float,
    total_duration_s: float,
) -> List[Waypoint]:
    """
    Emit a waypoint every `interval_m` metres of path length along `polyline`.

    The walk keeps the distance covered so far and the next threshold; each
    segment that crosses one or more thresholds gets points linearly
    interpolated inside it. Spacing is measured along the path, so vertex
    density does not matter, and zero-length segments never emit twice.

    Source and destination are not included; the caller adds them.
    """
    waypoints: List[Waypoint] = []
    if len(polyline) < 2 or interval_m <= 0:
        return waypoints

    accumulated = 0.0
    next_threshold = interval_m
    distance_from_start = 0.0

    for start, end in zip(polyline[:-1], polyline[1:]):
        seg = distance_meters(start, end)

        while accumulated + seg >= next_threshold - THRESHOLD_TOLERANCE_M:
            remaining = min(next_threshold - accumulated, seg)
            ratio = max(0.0, min(1.0, remaining / seg if seg > 0 else 0.0))

            dist_at_point = distance_from_start + remaining
            duration_at_point = (
                total_duration_s * (dist_at_point / total_distance_m)
                if total_distance_m > 0
                else 0.0
            )

            waypoints.append(
                Waypoint(
                    name=f"~{round(next_threshold / 1000)} km",
                    location=Coordinate(
                        lat=start.lat + (end.lat - start.lat) * ratio,
                        lng=start.lng + (end.lng - start.lng) * ratio,
                    ),
                    distance_from_start=dist_at_point,
                    duration=max(0.0, duration_at_point),
                )
            )
            next_threshold += interval_m

        accumulated += seg
        distance_from_start += seg

    return waypoints
