# app/core/config.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Rain Route Planner API"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # OpenRouteService: directions + geocoding. Without a key the routing
    # layer runs in mock (straight-line) mode.
    OPENROUTE_API_KEY: Optional[str] = None
    OPENROUTE_BASE_URL: str = "https://api.openrouteservice.org"

    # OpenWeatherMap forecast API
    WEATHER_API_KEY: Optional[str] = None
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org/data/2.5"

    # Keyless public providers
    NOMINATIM_ENABLED: bool = True
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    NOMINATIM_USER_AGENT: str = "Rain-Route-Planner/1.0 (contact: example@example.com)"
    OPEN_METEO_ENABLED: bool = True
    OPEN_METEO_BASE_URL: str = "https://api.open-meteo.com/v1"

    # Per outbound call; expiry counts as a provider failure
    HTTP_TIMEOUT_S: float = 15.0

    DEFAULT_SPEED_KMH: float = 60.0
    DEFAULT_SPACING_KM: float = 3.0

    REVERSE_GEOCODE_CACHE_SIZE: int = 10_000
    REVERSE_GEOCODE_MAX_NAMED: int = 120
    REVERSE_GEOCODE_BATCH_SIZE: int = 5
    WEATHER_BATCH_SIZE: int = 5

    MOCK_ROUTE_SEGMENTS: int = 50

    # Alert times are rendered in this offset (IST by default)
    DISPLAY_UTC_OFFSET_MINUTES: int = 330

    DEFAULT_COUNTRY: str = "India"
    DEFAULT_COUNTRY_CODE: str = "IN"


settings = Settings()
