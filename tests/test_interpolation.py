# tests/test_interpolation.py
import asyncio
import itertools
import math

import pytest

from app.models.routing import Coordinate
from app.services.geodesy import EARTH_RADIUS_M, polyline_length_meters
from app.services.directions import DirectionsService
from app.services.geocoding import KNOWN_CITIES
from app.services.interpolation import generate_waypoints_by_distance, waypoint_interval

# Metres per degree of longitude on the equator
M_PER_DEG = EARTH_RADIUS_M * math.pi / 180.0


def equator(*lngs):
    return [Coordinate(lat=0.0, lng=lng) for lng in lngs]


def test_waypoints_spaced_along_path_regardless_of_vertex_density():
    polyline = equator(0.0, 0.01, 0.013, 0.05, 0.1)
    length = polyline_length_meters(polyline)
    interval = length / 3.5

    waypoints = generate_waypoints_by_distance(polyline, interval, length, 0.0)

    assert len(waypoints) == math.floor(length / interval) == 3
    for k, wp in enumerate(waypoints, start=1):
        assert wp.distance_from_start == pytest.approx(k * interval, abs=1e-6)
        assert wp.location.lng == pytest.approx(k * interval / M_PER_DEG, abs=1e-9)
        assert wp.location.lat == pytest.approx(0.0, abs=1e-12)


def test_waypoints_are_ordered_and_within_route():
    polyline = [
        Coordinate(lat=19.0, lng=72.8),
        Coordinate(lat=19.2, lng=73.1),
        Coordinate(lat=19.25, lng=73.1),
        Coordinate(lat=19.6, lng=73.4),
    ]
    length = polyline_length_meters(polyline)
    interval = 7_000.0

    waypoints = generate_waypoints_by_distance(polyline, interval, length, 3600.0)
    distances = [wp.distance_from_start for wp in waypoints]

    assert distances == sorted(distances)
    assert len(set(distances)) == len(distances)
    assert distances[0] >= interval - 1e-6
    assert distances[-1] <= length
    assert len(waypoints) == math.floor(length / interval)


def test_names_are_rounded_kilometres():
    polyline = equator(0.0, 0.1)  # ~11.1 km
    length = polyline_length_meters(polyline)

    waypoints = generate_waypoints_by_distance(polyline, 3_000.0, length, 0.0)

    assert [wp.name for wp in waypoints] == ["~3 km", "~6 km", "~9 km"]
    assert all(wp.arrival_time is None for wp in waypoints)


def test_duration_is_proportional_to_distance():
    polyline = equator(0.0, 0.05, 0.1)
    length = polyline_length_meters(polyline)

    waypoints = generate_waypoints_by_distance(polyline, 2_500.0, length, 1_000.0)

    for wp in waypoints:
        assert wp.duration == pytest.approx(1_000.0 * wp.distance_from_start / length)


def test_duration_is_zero_without_total_distance():
    polyline = equator(0.0, 0.1)
    waypoints = generate_waypoints_by_distance(polyline, 3_000.0, 0.0, 500.0)
    assert waypoints
    assert all(wp.duration == 0.0 for wp in waypoints)


def test_zero_length_segments_do_not_duplicate_waypoints():
    polyline = equator(0.0, 0.01, 0.01, 0.02)
    seg = polyline_length_meters(polyline[:2])

    waypoints = generate_waypoints_by_distance(polyline, 0.75 * seg, 2 * seg, 0.0)

    assert len(waypoints) == 2
    assert waypoints[0].distance_from_start == pytest.approx(0.75 * seg)
    assert waypoints[1].distance_from_start == pytest.approx(1.5 * seg)


def test_degenerate_inputs_yield_nothing():
    assert generate_waypoints_by_distance(equator(0.0), 1_000.0, 0.0, 0.0) == []
    assert generate_waypoints_by_distance([], 1_000.0, 0.0, 0.0) == []
    assert generate_waypoints_by_distance(equator(0.0, 0.1), 0.0, 11_000.0, 0.0) == []


def test_route_shorter_than_interval_yields_nothing():
    polyline = equator(0.0, 0.001)  # ~111 m
    assert generate_waypoints_by_distance(polyline, 1_000.0, 111.0, 10.0) == []


def test_waypoint_interval_divides_route_evenly():
    count, interval = waypoint_interval(22_000.0, 5.0)
    assert count == 4
    assert interval == pytest.approx(5_500.0)


def test_waypoint_interval_has_at_least_one_part():
    count, interval = waypoint_interval(2_000.0, 3.0)
    assert count == 1
    assert interval == pytest.approx(2_000.0)


def test_even_division_keeps_requested_spacing():
    count, interval = waypoint_interval(30_000.0, 3.0)
    assert count == 10
    assert interval == pytest.approx(3_000.0)


def test_interval_from_policy_gives_equal_interior_spacing():
    polyline = equator(0.0, 0.08, 0.2)  # ~22.2 km
    length = polyline_length_meters(polyline)
    count, interval = waypoint_interval(length, 5.0)

    waypoints = generate_waypoints_by_distance(polyline, interval, length, 0.0)

    assert count == 4
    # The last threshold lands on the destination and is still emitted
    assert len(waypoints) == count
    assert waypoints[-1].location.lng == pytest.approx(0.2)
    for k, wp in enumerate(waypoints, start=1):
        assert wp.distance_from_start == pytest.approx(k * length / 4)


@pytest.mark.parametrize("spacing_km", [3.0, 5.0, 7.0, 10.0, 20.0])
def test_mock_routes_get_exactly_the_planned_number_of_waypoints(offline_settings, spacing_km):
    directions = DirectionsService(offline_settings)
    cities = ["mumbai", "delhi", "pune", "chennai", "kolkata", "jaipur"]

    for source, destination in itertools.permutations(cities, 2):
        route = asyncio.run(
            directions.get_route(KNOWN_CITIES[source], KNOWN_CITIES[destination], 60.0)
        )
        count, interval = waypoint_interval(route.distance_m, spacing_km)

        waypoints = generate_waypoints_by_distance(
            route.points, interval, route.distance_m, route.duration_s
        )

        assert len(waypoints) == count, (source, destination, spacing_km)
        assert waypoints[-1].distance_from_start == pytest.approx(route.distance_m)
        assert waypoints[-1].distance_from_start <= route.distance_m + 1e-6


def test_threshold_on_exact_route_end_is_emitted():
    polyline = equator(0.0, 0.013, 0.031, 0.05, 0.07)
    length = polyline_length_meters(polyline)

    for parts in range(1, 12):
        waypoints = generate_waypoints_by_distance(polyline, length / parts, length, 0.0)
        assert len(waypoints) == parts
        assert waypoints[-1].location.lng == pytest.approx(0.07)
