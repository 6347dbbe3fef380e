# app/services/geocoding.py
import asyncio
import math
from typing import Dict, List, Optional, Tuple

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import ProviderError
from app.core.logger import logger
from app.models.routing import Coordinate, Waypoint
from app.services.cache import ReverseGeocodeCache
from app.services.fallback import FallbackChain, ProviderResult, Strategy
from app.services.http_client import JsonHttpClient

# Used when every reverse-geocode provider comes back empty
PLACEHOLDER_NAME = "Waypoint"

# Geographic centre of India, the answer of last resort
COUNTRY_CENTROID = Coordinate(lat=20.5937, lng=78.9629)

KNOWN_CITIES: Dict[str, Coordinate] = {
    "mumbai": Coordinate(lat=19.0760, lng=72.8777),
    "delhi": Coordinate(lat=28.7041, lng=77.1025),
    "new delhi": Coordinate(lat=28.6139, lng=77.2090),
    "bangalore": Coordinate(lat=12.9716, lng=77.5946),
    "bengaluru": Coordinate(lat=12.9716, lng=77.5946),
    "chennai": Coordinate(lat=13.0827, lng=80.2707),
    "kolkata": Coordinate(lat=22.5726, lng=88.3639),
    "hyderabad": Coordinate(lat=17.3850, lng=78.4867),
    "pune": Coordinate(lat=18.5204, lng=73.8567),
    "ahmedabad": Coordinate(lat=23.0225, lng=72.5714),
    "jaipur": Coordinate(lat=26.9124, lng=75.7873),
    "lucknow": Coordinate(lat=26.8467, lng=80.9462),
    "surat": Coordinate(lat=21.1702, lng=72.8311),
    "kanpur": Coordinate(lat=26.4499, lng=80.3319),
    "nagpur": Coordinate(lat=21.1458, lng=79.0882),
    "indore": Coordinate(lat=22.7196, lng=75.8577),
    "bhopal": Coordinate(lat=23.2599, lng=77.4126),
    "patna": Coordinate(lat=25.5941, lng=85.1376),
    "vadodara": Coordinate(lat=22.3072, lng=73.1812),
    "chandigarh": Coordinate(lat=30.7333, lng=76.7794),
    "kochi": Coordinate(lat=9.9312, lng=76.2673),
    "visakhapatnam": Coordinate(lat=17.6868, lng=83.2185),
}

# 4xx answers that concern the credential or quota rather than the query text
PROVIDER_WIDE_CLIENT_ERRORS = {401, 403, 429}

# Process-wide: shared by every request handled by this worker
reverse_geocode_cache = ReverseGeocodeCache(default_settings.REVERSE_GEOCODE_CACHE_SIZE)


def is_query_rejection(exc: ProviderError) -> bool:
    """A 4xx caused by one query text; other variants may still succeed."""
    status = exc.status_code
    return status is not None and 400 <= status < 500 and status not in PROVIDER_WIDE_CLIENT_ERRORS


def is_distance_placeholder(name: str) -> bool:
    """Generated waypoints are named "~N km" until reverse geocoding renames them."""
    return name.startswith("~")


class GeocodingService:
    """
    Forward and reverse geocoding with provider fallback:

    - forward:  OpenRouteService -> Nominatim -> known cities -> country centroid
    - reverse:  cache -> OpenRouteService -> Nominatim -> "Waypoint"

    Providers that need a credential are left out of the chain when it is
    not configured.
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        http: Optional[JsonHttpClient] = None,
        cache: Optional[ReverseGeocodeCache] = None,
    ) -> None:
        self.settings = settings
        self.http = http or JsonHttpClient(settings)
        self.cache = cache if cache is not None else reverse_geocode_cache

        forward: List[Tuple[str, Strategy]] = []
        reverse: List[Tuple[str, Strategy]] = []
        if settings.OPENROUTE_API_KEY:
            forward.append(("openrouteservice", self._forward_openroute))
            reverse.append(("openrouteservice", self._reverse_openroute))
        if settings.NOMINATIM_ENABLED:
            forward.append(("nominatim", self._forward_nominatim))
            reverse.append(("nominatim", self._reverse_nominatim))
        forward.append(("static", self._forward_static))
        forward.append(("centroid", self._forward_centroid))

        self.forward_chain: FallbackChain[Coordinate] = FallbackChain("forward geocode", forward)
        self.reverse_chain: FallbackChain[str] = FallbackChain("reverse geocode", reverse)

        logger.info(
            "GeocodingService initialised (forward: {}; reverse: {})",
            " -> ".join(self.forward_chain.provider_names),
            " -> ".join(self.reverse_chain.provider_names + ["placeholder"]),
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def geocode(self, city_name: str) -> ProviderResult[Coordinate]:
        """
        Resolve a city name to a coordinate. Always yields *some* coordinate
        for a non-empty name (the centroid strategy cannot fail).
        """
        result = await self.forward_chain.resolve(city_name.strip())
        if result is None:
            return ProviderResult(value=COUNTRY_CENTROID, provider="centroid")
        logger.info(
            "Geocoded '{}' -> ({:.6f}, {:.6f}) via {}",
            city_name,
            result.value.lat,
            result.value.lng,
            result.provider,
        )
        return result

    async def reverse_geocode(self, coord: Coordinate) -> str:
        """
        Best-effort place name for a coordinate. Misses are cached as the
        placeholder so they do not hit the network again.
        """
        cached = self.cache.get(coord.lat, coord.lng)
        if cached is not None:
            return cached

        result = await self.reverse_chain.resolve(coord.lat, coord.lng)
        name = result.value if result is not None else PLACEHOLDER_NAME
        self.cache.set(coord.lat, coord.lng, name)
        return name

    async def name_waypoints(self, waypoints: List[Waypoint]) -> List[Waypoint]:
        """
        Replace "~N km" names with place names.

        At most REVERSE_GEOCODE_MAX_NAMED generated waypoints are looked up
        (every k-th one when there are more), in concurrent batches of
        REVERSE_GEOCODE_BATCH_SIZE. The rest keep their distance label.
        """
        candidates = [i for i, w in enumerate(waypoints) if is_distance_placeholder(w.name)]
        if not candidates:
            return list(waypoints)

        max_to_name = self.settings.REVERSE_GEOCODE_MAX_NAMED
        step = max(1, math.ceil(len(candidates) / max_to_name))
        queue = candidates[::step]

        batch_size = max(1, self.settings.REVERSE_GEOCODE_BATCH_SIZE)
        names: Dict[int, str] = {}
        for start in range(0, len(queue), batch_size):
            batch = queue[start:start + batch_size]
            resolved = await asyncio.gather(
                *(self.reverse_geocode(waypoints[i].location) for i in batch)
            )
            names.update(zip(batch, resolved))

        logger.info(
            "Named {} of {} generated waypoints (stride {}, batch size {})",
            len(names),
            len(candidates),
            step,
            batch_size,
        )
        return [
            w.model_copy(update={"name": names[i]}) if names.get(i) else w
            for i, w in enumerate(waypoints)
        ]

    # ------------------------------------------------------------------ #
    # Forward geocode strategies
    # ------------------------------------------------------------------ #

    def _query_variants(self, city_name: str) -> List[str]:
        """
        Query texts tried in order: plain, with country, with "city" + country.
        Helps with ambiguous or state-less names.
        """
        country = self.settings.DEFAULT_COUNTRY
        variants = [city_name, f"{city_name}, {country}", f"{city_name} city, {country}"]
        if country.lower() in city_name.lower():
            variants = [city_name]
        # Keep order, drop duplicates
        return list(dict.fromkeys(variants))

    async def _get_variant_json(
        self,
        provider: str,
        url: str,
        params: Dict[str, object],
        headers: Dict[str, str],
        text: str,
    ) -> object:
        """
        One query variant. A rejection of this particular text counts as "no
        match" so the remaining variants still run; outages and auth
        failures abandon the provider.
        """
        try:
            return await self.http.get_json(provider, url, params=params, headers=headers)
        except ProviderError as exc:
            if not is_query_rejection(exc):
                raise
            logger.info(
                "{} rejected query '{}' (HTTP {}), trying next variant",
                provider,
                text,
                exc.status_code,
            )
            return None

    async def _forward_openroute(self, city_name: str) -> Optional[Coordinate]:
        url = f"{self.settings.OPENROUTE_BASE_URL}/geocode/search"
        headers = {"Authorization": self.settings.OPENROUTE_API_KEY or ""}

        for text in self._query_variants(city_name):
            params = {
                "text": text,
                "size": 1,
                "layers": "locality,borough,county,region,macroregion",
                "boundary.country": self.settings.DEFAULT_COUNTRY_CODE,
            }
            data = await self._get_variant_json("openrouteservice", url, params, headers, text)
            features = (data or {}).get("features") or []
            if features:
                lng, lat = features[0]["geometry"]["coordinates"][:2]
                return Coordinate(lat=float(lat), lng=float(lng))
            logger.debug("openrouteservice: no match for '{}'", text)

        return None

    async def _forward_nominatim(self, city_name: str) -> Optional[Coordinate]:
        url = f"{self.settings.NOMINATIM_BASE_URL}/search"
        headers = {"User-Agent": self.settings.NOMINATIM_USER_AGENT}

        for text in self._query_variants(city_name):
            params = {
                "q": text,
                "format": "json",
                "limit": 1,
                "addressdetails": 0,
                "countrycodes": self.settings.DEFAULT_COUNTRY_CODE.lower(),
            }
            data = await self._get_variant_json("nominatim", url, params, headers, text)
            if isinstance(data, list) and data:
                return Coordinate(lat=float(data[0]["lat"]), lng=float(data[0]["lon"]))
            logger.debug("nominatim: no match for '{}'", text)

        return None

    async def _forward_static(self, city_name: str) -> Optional[Coordinate]:
        return KNOWN_CITIES.get(city_name.strip().lower())

    async def _forward_centroid(self, city_name: str) -> Optional[Coordinate]:
        logger.warning("Could not geocode '{}', using country centroid", city_name)
        return COUNTRY_CENTROID

    # ------------------------------------------------------------------ #
    # Reverse geocode strategies
    # ------------------------------------------------------------------ #

    async def _reverse_openroute(self, lat: float, lng: float) -> Optional[str]:
        data = await self.http.get_json(
            "openrouteservice",
            f"{self.settings.OPENROUTE_BASE_URL}/geocode/reverse",
            params={"point.lat": lat, "point.lon": lng, "size": 1},
            headers={"Authorization": self.settings.OPENROUTE_API_KEY or ""},
        )
        features = (data or {}).get("features") or []
        if not features:
            return None
        props = features[0].get("properties") or {}
        for field in ("name", "locality", "region", "county", "state", "country"):
            if props.get(field):
                return str(props[field])
        return None

    async def _reverse_nominatim(self, lat: float, lng: float) -> Optional[str]:
        data = await self.http.get_json(
            "nominatim",
            f"{self.settings.NOMINATIM_BASE_URL}/reverse",
            params={"lat": lat, "lon": lng, "format": "json", "zoom": 10, "addressdetails": 1},
            headers={"User-Agent": self.settings.NOMINATIM_USER_AGENT},
        )
        address = (data or {}).get("address") or {}
        for field in ("city", "town", "village", "suburb", "county", "state", "country"):
            if address.get(field):
                return str(address[field])
        return None
