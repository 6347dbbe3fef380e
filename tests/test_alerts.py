# tests/test_alerts.py
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import ProviderError
from app.models.routing import Coordinate, Severity, WeatherSample, Waypoint
from app.services.alerts import (
    WeatherAlertService,
    arrival_time,
    build_alert,
    classify_severity,
    compute_arrival_times,
    display_timezone,
)

T0 = datetime(2025, 6, 1, 4, 30, tzinfo=timezone.utc)  # 10:00 AM IST


def sample(description="clear sky", rain=False, offset_hours=0.0):
    return WeatherSample(
        temperature=28.0,
        description=description,
        rain=rain,
        humidity=60,
        wind_speed=3.0,
        forecast_time=T0,
        offset_hours=offset_hours,
        provider="test",
    )


def waypoint(name, km, arrival=None):
    return Waypoint(
        name=name,
        location=Coordinate(lat=19.0 + km / 100.0, lng=73.0),
        distance_from_start=km * 1000.0,
        arrival_time=arrival,
    )


class FakeWeatherService:
    def __init__(self, failing=(), result=None):
        self.failing = list(failing)
        self.result = result or sample()
        self.requests = []

    async def get_weather(self, coord, target):
        self.requests.append((coord, target))
        if coord in self.failing:
            raise ProviderError("fake", "HTTP 500")
        return self.result


def test_arrival_time_is_speed_derived():
    assert arrival_time(T0, 60_000.0, 60.0) == T0 + timedelta(hours=1)
    assert arrival_time(T0, 0.0, 60.0) == T0
    assert arrival_time(T0, 45_000.0, 90.0) == T0 + timedelta(minutes=30)


def test_arrival_time_rejects_non_positive_speed():
    with pytest.raises(ValueError):
        arrival_time(T0, 1_000.0, 0.0)


def test_compute_arrival_times_returns_new_waypoints():
    original = [waypoint("A", 0), waypoint("B", 60), waypoint("C", 120)]

    timed = compute_arrival_times(original, T0, 60.0)

    assert [w.arrival_time for w in timed] == [T0, T0 + timedelta(hours=1), T0 + timedelta(hours=2)]
    assert all(w.arrival_time is None for w in original)


@pytest.mark.parametrize(
    "weather, expected",
    [
        (sample("light rain", rain=True), Severity.HIGH),
        (sample("overcast clouds", rain=True), Severity.HIGH),
        (sample("Scattered Clouds"), Severity.MEDIUM),
        (sample("Partly cloudy"), Severity.MEDIUM),
        (sample("clear sky"), Severity.LOW),
        (sample("Haze"), Severity.LOW),
        (None, Severity.UNKNOWN),
    ],
)
def test_classify_severity(weather, expected):
    assert classify_severity(weather) is expected


def test_alert_message_uses_local_arrival_time():
    tz = display_timezone()
    alert = build_alert(waypoint("Lonavala", 0, arrival=T0), sample("light rain", rain=True), tz)

    assert alert.arrival_time == "10:00 AM"
    assert alert.alert == "Rain Alert: Expect rains in Lonavala at 10:00 AM."
    assert alert.severity is Severity.HIGH
    assert alert.coords == Coordinate(lat=19.0, lng=73.0)


def test_alert_message_reports_forecast_offset():
    tz = display_timezone()
    alert = build_alert(waypoint("Khopoli", 0, arrival=T0), sample("few clouds", offset_hours=1.5), tz)

    assert alert.severity is Severity.MEDIUM
    assert alert.alert == (
        "Cloudy skies expected in Khopoli at 10:00 AM. (nearest forecast 1.5 h from arrival)"
    )


def test_alert_without_weather_is_unknown():
    alert = build_alert(waypoint("Panvel", 0, arrival=T0), None, display_timezone())

    assert alert.severity is Severity.UNKNOWN
    assert alert.weather_data is None
    assert alert.alert == "Weather data unavailable for Panvel"


def test_alert_requires_arrival_time():
    with pytest.raises(ValueError):
        build_alert(waypoint("Nowhere", 0), sample(), display_timezone())


def test_build_alerts_one_per_waypoint_in_order(offline_settings):
    waypoints = compute_arrival_times(
        [waypoint(f"W{i}", i * 10) for i in range(12)], T0, 60.0
    )
    weather = FakeWeatherService()
    service = WeatherAlertService(weather, settings=offline_settings)

    alerts = asyncio.run(service.build_alerts(waypoints))

    assert [a.location for a in alerts] == [w.name for w in waypoints]
    assert all(a.severity is Severity.LOW for a in alerts)
    # Weather is requested for each waypoint's own arrival time
    assert sorted(t for _, t in weather.requests) == [w.arrival_time for w in waypoints]


def test_single_weather_failure_only_affects_its_alert(offline_settings):
    waypoints = compute_arrival_times(
        [waypoint(f"W{i}", i * 10) for i in range(6)], T0, 60.0
    )
    weather = FakeWeatherService(failing=[waypoints[3].location], result=sample("light rain", rain=True))
    service = WeatherAlertService(weather, settings=offline_settings)

    alerts = asyncio.run(service.build_alerts(waypoints))

    assert len(alerts) == len(waypoints)
    assert [a.location for a in alerts] == [w.name for w in waypoints]
    assert alerts[3].severity is Severity.UNKNOWN
    assert alerts[3].weather_data is None
    assert all(a.severity is Severity.HIGH for i, a in enumerate(alerts) if i != 3)


def test_weather_returning_nothing_is_unknown(offline_settings):
    class NoWeather:
        async def get_weather(self, coord, target):
            return None

    waypoints = compute_arrival_times([waypoint("A", 0)], T0, 60.0)
    service = WeatherAlertService(NoWeather(), settings=offline_settings)

    alerts = asyncio.run(service.build_alerts(waypoints))

    assert alerts[0].severity is Severity.UNKNOWN
