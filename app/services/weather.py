# app/services/weather.py
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.core.config import Settings, settings as default_settings
from app.core.logger import logger
from app.models.routing import Coordinate, WeatherSample
from app.services.fallback import FallbackChain, Strategy
from app.services.http_client import JsonHttpClient

# WMO weather interpretation codes used by Open-Meteo
WMO_DESCRIPTIONS: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast clouds",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}
WMO_RAIN_CODES = {51, 53, 55, 56, 57, 61, 63, 65, 66, 67, 80, 81, 82, 95, 96, 99}

# Mock weather: rain when the seeded draw exceeds this (about 30% of samples)
MOCK_RAIN_THRESHOLD = 0.7
MOCK_DRY_DESCRIPTIONS = ["Clear sky", "Partly cloudy", "Scattered clouds", "Haze"]


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def nearest_entry(times: Sequence[datetime], target: datetime) -> Tuple[int, float]:
    """
    Index of the timestamp closest to `target` and the gap in hours.
    """
    if not times:
        raise ValueError("empty time series")
    target = as_utc(target)
    index = min(range(len(times)), key=lambda i: abs((as_utc(times[i]) - target).total_seconds()))
    offset_hours = abs((as_utc(times[index]) - target).total_seconds()) / 3600.0
    return index, offset_hours


def mock_weather(coord: Coordinate, target: datetime) -> WeatherSample:
    """
    Deterministic stand-in sample: seeded by the rounded coordinate and the
    UTC hour of the target, so retries for the same input agree.
    """
    target = as_utc(target)
    rng = random.Random(f"{coord.lat:.3f},{coord.lng:.3f},{target.hour}")

    rain = rng.random() > MOCK_RAIN_THRESHOLD
    description = "Light rain" if rain else rng.choice(MOCK_DRY_DESCRIPTIONS)
    return WeatherSample(
        temperature=round(20.0 + rng.random() * 12.0, 1),
        description=description,
        rain=rain,
        humidity=round(45.0 + rng.random() * 45.0),
        wind_speed=round(1.0 + rng.random() * 9.0, 1),
        forecast_time=target,
        is_forecast=True,
        offset_hours=0.0,
        provider="mock",
    )


class WeatherService:
    """
    Weather valid at a given instant for a coordinate:
    OpenWeatherMap 3-hourly forecast (needs WEATHER_API_KEY)
    -> Open-Meteo hourly forecast -> deterministic mock.

    For time series the entry nearest the requested instant is used and the
    gap is reported as offset_hours.
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        http: Optional[JsonHttpClient] = None,
    ) -> None:
        self.settings = settings
        self.http = http or JsonHttpClient(settings)

        strategies: List[Tuple[str, Strategy]] = []
        if settings.WEATHER_API_KEY:
            strategies.append(("openweathermap", self._weather_openweathermap))
        if settings.OPEN_METEO_ENABLED:
            strategies.append(("open_meteo", self._weather_open_meteo))
        strategies.append(("mock", self._weather_mock))

        self.chain: FallbackChain[WeatherSample] = FallbackChain("weather", strategies)

    async def get_weather(self, coord: Coordinate, target: datetime) -> Optional[WeatherSample]:
        result = await self.chain.resolve(coord, as_utc(target))
        if result is None:
            return None
        return result.value

    # ------------------------------------------------------------------ #
    # Strategies
    # ------------------------------------------------------------------ #

    async def _weather_openweathermap(
        self, coord: Coordinate, target: datetime
    ) -> Optional[WeatherSample]:
        data = await self.http.get_json(
            "openweathermap",
            f"{self.settings.OPENWEATHER_BASE_URL}/forecast",
            params={
                "lat": coord.lat,
                "lon": coord.lng,
                "appid": self.settings.WEATHER_API_KEY,
                "units": "metric",
            },
        )
        entries: List[Dict[str, Any]] = data.get("list") or []
        if not entries:
            return None

        times = [datetime.fromtimestamp(int(e["dt"]), tz=timezone.utc) for e in entries]
        index, offset_hours = nearest_entry(times, target)
        entry = entries[index]

        rain_volume = entry.get("rain") or {}
        return WeatherSample(
            temperature=float(entry["main"]["temp"]),
            description=str(entry["weather"][0]["description"]),
            rain=float(rain_volume.get("3h", rain_volume.get("1h", 0)) or 0) > 0,
            humidity=float(entry["main"]["humidity"]),
            wind_speed=float((entry.get("wind") or {}).get("speed", 0.0)),
            forecast_time=times[index],
            is_forecast=True,
            offset_hours=round(offset_hours, 2),
            provider="openweathermap",
        )

    async def _weather_open_meteo(
        self, coord: Coordinate, target: datetime
    ) -> Optional[WeatherSample]:
        data = await self.http.get_json(
            "open_meteo",
            f"{self.settings.OPEN_METEO_BASE_URL}/forecast",
            params={
                "latitude": coord.lat,
                "longitude": coord.lng,
                "hourly": "temperature_2m,relative_humidity_2m,precipitation,"
                          "weather_code,wind_speed_10m",
                "wind_speed_unit": "ms",
                "timezone": "UTC",
                "forecast_days": 7,
            },
        )
        hourly = data.get("hourly") or {}
        raw_times = hourly.get("time") or []
        if not raw_times:
            return None

        times = [as_utc(datetime.fromisoformat(t)) for t in raw_times]
        i, offset_hours = nearest_entry(times, target)

        code = int(hourly["weather_code"][i])
        precipitation = float(hourly["precipitation"][i] or 0.0)
        return WeatherSample(
            temperature=float(hourly["temperature_2m"][i]),
            description=WMO_DESCRIPTIONS.get(code, "Unknown"),
            rain=precipitation > 0 or code in WMO_RAIN_CODES,
            humidity=float(hourly["relative_humidity_2m"][i]),
            wind_speed=float(hourly["wind_speed_10m"][i]),
            forecast_time=times[i],
            is_forecast=True,
            offset_hours=round(offset_hours, 2),
            provider="open_meteo",
        )

    async def _weather_mock(self, coord: Coordinate, target: datetime) -> Optional[WeatherSample]:
        logger.debug("Using mock weather for ({:.4f}, {:.4f})", coord.lat, coord.lng)
        return mock_weather(coord, target)
