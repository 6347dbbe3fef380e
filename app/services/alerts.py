# app/services/alerts.py
import asyncio
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import ProviderError
from app.core.logger import logger
from app.models.routing import Severity, WeatherAlert, WeatherSample, Waypoint
from app.services.weather import WeatherService

# Offsets below this are not worth mentioning in the alert text
MIN_REPORTED_OFFSET_HOURS = 0.05


def display_timezone(settings: Settings = default_settings) -> tzinfo:
    return timezone(timedelta(minutes=settings.DISPLAY_UTC_OFFSET_MINUTES))


def format_local_time(value: datetime, tz: tzinfo) -> str:
    """12-hour clock, e.g. "02:30 PM"."""
    return value.astimezone(tz).strftime("%I:%M %p")


def arrival_time(departure: datetime, distance_m: float, speed_kmh: float) -> datetime:
    """
    departure + (distance / speed). Always derived from the requested speed,
    never from the routing provider's own durations.
    """
    if speed_kmh <= 0:
        raise ValueError("speed must be positive")
    return departure + timedelta(hours=(distance_m / 1000.0) / speed_kmh)


def compute_arrival_times(
    waypoints: List[Waypoint],
    departure: datetime,
    speed_kmh: float,
) -> List[Waypoint]:
    return [
        w.model_copy(
            update={"arrival_time": arrival_time(departure, w.distance_from_start, speed_kmh)}
        )
        for w in waypoints
    ]


def classify_severity(sample: Optional[WeatherSample]) -> Severity:
    """
    rain -> high, cloudy -> medium, anything else -> low; no data -> unknown.
    """
    if sample is None:
        return Severity.UNKNOWN
    if sample.rain:
        return Severity.HIGH
    if "cloud" in sample.description.lower():
        return Severity.MEDIUM
    return Severity.LOW


def build_alert(waypoint: Waypoint, sample: Optional[WeatherSample], tz: tzinfo) -> WeatherAlert:
    if waypoint.arrival_time is None:
        raise ValueError(f"waypoint {waypoint.name!r} has no arrival time")

    when = format_local_time(waypoint.arrival_time, tz)
    severity = classify_severity(sample)

    if sample is None:
        message = f"Weather data unavailable for {waypoint.name}"
    else:
        if severity is Severity.HIGH:
            message = f"Rain Alert: Expect rains in {waypoint.name} at {when}."
        elif severity is Severity.MEDIUM:
            message = f"Cloudy skies expected in {waypoint.name} at {when}."
        else:
            message = f"Clear weather expected in {waypoint.name} at {when}."
        if sample.offset_hours >= MIN_REPORTED_OFFSET_HOURS:
            message += f" (nearest forecast {sample.offset_hours:.1f} h from arrival)"

    return WeatherAlert(
        location=waypoint.name,
        arrival_time=when,
        alert=message,
        severity=severity,
        weather_data=sample,
        coords=waypoint.location,
    )


class WeatherAlertService:
    """
    Looks up the weather at each waypoint's arrival time and turns it into a
    severity-tagged alert. One alert per waypoint, in waypoint order; a
    failed lookup yields an "unknown" alert instead of aborting the request.
    """

    def __init__(
        self,
        weather_service: Optional[WeatherService] = None,
        settings: Settings = default_settings,
    ) -> None:
        self.settings = settings
        self.weather_service = weather_service or WeatherService(settings)
        self.tz = display_timezone(settings)

    async def build_alerts(self, waypoints: List[Waypoint]) -> List[WeatherAlert]:
        batch_size = max(1, self.settings.WEATHER_BATCH_SIZE)
        alerts: List[WeatherAlert] = []

        for start in range(0, len(waypoints), batch_size):
            batch = waypoints[start:start + batch_size]
            alerts.extend(await asyncio.gather(*(self._alert_for(w) for w in batch)))

        by_severity = {s.value: 0 for s in Severity}
        for alert in alerts:
            by_severity[alert.severity.value] += 1
        logger.info("Built {} weather alerts: {}", len(alerts), by_severity)
        return alerts

    async def _alert_for(self, waypoint: Waypoint) -> WeatherAlert:
        if waypoint.arrival_time is None:
            raise ValueError(f"waypoint {waypoint.name!r} has no arrival time")

        sample: Optional[WeatherSample] = None
        try:
            sample = await self.weather_service.get_weather(waypoint.location, waypoint.arrival_time)
        except ProviderError as exc:
            logger.error("Error getting weather for {}: {}", waypoint.name, exc)
        return build_alert(waypoint, sample, self.tz)
