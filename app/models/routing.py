# app/models/routing.py

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.config import settings


class CamelModel(BaseModel):
    """
    Base model serialised with camelCase keys (what the map client expects),
    while still accepting snake_case field names on input.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coordinate(CamelModel):
    """
    Simple latitude/longitude coordinate.
    """
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class Waypoint(CamelModel):
    """
    A sampling point along the route.

    Generated waypoints start out named after their distance ("~6 km") and
    are renamed by reverse geocoding; arrival_time is filled in by the
    ETA stage. Each stage returns new instances.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    location: Coordinate
    distance_from_start: float = Field(0.0, ge=0.0)  # metres
    arrival_time: Optional[datetime] = None
    duration: float = Field(0.0, ge=0.0)  # seconds, proportional to route duration


class RouteGeometry(BaseModel):
    """
    Normalised output of a routing provider.
    """
    points: List[Coordinate]
    distance_m: float = Field(ge=0.0)
    duration_s: float = Field(ge=0.0)
    provider: str


class WeatherSample(CamelModel):
    """
    Weather valid at (or nearest to) a waypoint's arrival time.

    offset_hours is the gap between the requested instant and the forecast
    entry that was picked.
    """
    model_config = ConfigDict(frozen=True)

    temperature: float  # °C
    description: str
    rain: bool
    humidity: float  # %
    wind_speed: float  # m/s
    forecast_time: datetime
    is_forecast: bool = True
    offset_hours: float = 0.0
    provider: str = "mock"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


class WeatherAlert(CamelModel):
    location: str
    arrival_time: str
    alert: str
    severity: Severity
    weather_data: Optional[WeatherSample] = None
    coords: Coordinate


class RouteCheckRequest(CamelModel):
    """
    Request body for the /api/check-route endpoint.

    source/destination are validated by the endpoint so that a missing city
    is reported as a 400 rather than a schema error.
    """
    source: Optional[str] = None
    destination: Optional[str] = None
    # ISO 8601; naive values are read in the display timezone, None means now
    departure_time: Optional[datetime] = None
    speed: float = Field(settings.DEFAULT_SPEED_KMH, gt=0.0)  # km/h
    spacing: float = Field(settings.DEFAULT_SPACING_KM, gt=0.0)  # km


class RouteSummary(CamelModel):
    waypoints: List[Waypoint]
    total_duration: float  # seconds
    total_distance: float  # metres
    route_path: List[Coordinate]
    provider: str


class RouteCheckResponse(CamelModel):
    """
    Response for the /api/check-route endpoint.
    """
    route: RouteSummary
    weather_alerts: List[WeatherAlert]
