# tests/conftest.py
import os
import sys

import pytest

# Add the project root directory to sys.path so that "import app" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app.core.config import Settings  # noqa: E402


@pytest.fixture
def make_settings():
    """
    Build Settings that ignore .env and the real environment's credentials.
    Everything keyless is switched off unless a test turns it back on, so no
    test ever reaches the network.
    """
    def _make(**overrides) -> Settings:
        values = {
            "OPENROUTE_API_KEY": None,
            "WEATHER_API_KEY": None,
            "NOMINATIM_ENABLED": False,
            "OPEN_METEO_ENABLED": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def offline_settings(make_settings) -> Settings:
    return make_settings()
