# app/services/directions.py
from typing import Any, Dict, List, Optional, Tuple

from app.core.config import Settings, settings as default_settings
from app.core.logger import logger
from app.models.routing import Coordinate, RouteGeometry
from app.services.fallback import FallbackChain, Strategy
from app.services.geodesy import polyline_length_meters
from app.services.http_client import JsonHttpClient


def parse_openroute_directions(data: Dict[str, Any]) -> Optional[RouteGeometry]:
    """
    Normalise an OpenRouteService directions payload.

    Both the GeoJSON shape ({"features": [...]}, summary under properties)
    and the plain JSON shape ({"routes": [...]}, summary on the route) are
    accepted. Coordinates come as [lon, lat]. Returns None for an
    unexpected shape or a geometry with fewer than two points.
    """
    if isinstance(data.get("features"), list) and data["features"]:
        route = data["features"][0]
        properties = route.get("properties") or {}
    elif isinstance(data.get("routes"), list) and data["routes"]:
        route = data["routes"][0]
        properties = route
    else:
        logger.error("ORS directions: unexpected response shape {}", str(data)[:1000])
        return None

    geometry = route.get("geometry") or {}
    raw_coords = geometry.get("coordinates") if isinstance(geometry, dict) else None
    if not raw_coords or len(raw_coords) < 2:
        logger.error("ORS directions: route has no usable geometry")
        return None

    points = [Coordinate(lat=float(c[1]), lng=float(c[0])) for c in raw_coords]

    summary = properties.get("summary") or {}
    distance = summary.get("distance", properties.get("distance", 0)) or 0
    duration = summary.get("duration", properties.get("duration", 0)) or 0

    return RouteGeometry(
        points=points,
        distance_m=float(distance),
        duration_s=float(duration),
        provider="openrouteservice",
    )


class DirectionsService:
    """
    Driving route between two coordinates:
    OpenRouteService (when OPENROUTE_API_KEY is set) -> straight-line mock.

    Routing itself is delegated; this layer only normalises the provider's
    answer into a RouteGeometry.
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        http: Optional[JsonHttpClient] = None,
    ) -> None:
        self.settings = settings
        self.http = http or JsonHttpClient(settings)

        strategies: List[Tuple[str, Strategy]] = []
        if settings.OPENROUTE_API_KEY:
            strategies.append(("openrouteservice", self._route_openroute))
        else:
            logger.warning(
                "OPENROUTE_API_KEY is not set. Routing runs in mock (straight-line) mode."
            )
        strategies.append(("straight_line", self._route_straight_line))

        self.chain: FallbackChain[RouteGeometry] = FallbackChain("route", strategies)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def get_route(
        self,
        source: Coordinate,
        destination: Coordinate,
        speed_kmh: float,
    ) -> Optional[RouteGeometry]:
        """
        Return the route geometry, or None if no provider (not even the mock)
        could produce one.
        """
        result = await self.chain.resolve(source, destination, speed_kmh)
        if result is None:
            return None

        route = result.value
        logger.info(
            "Route via {}: {} points, distance={:.1f} m, duration={:.1f} s",
            result.provider,
            len(route.points),
            route.distance_m,
            route.duration_s,
        )
        return route

    # ------------------------------------------------------------------ #
    # Strategies
    # ------------------------------------------------------------------ #

    async def _route_openroute(
        self,
        source: Coordinate,
        destination: Coordinate,
        speed_kmh: float,
    ) -> Optional[RouteGeometry]:
        body = {
            "coordinates": [
                [source.lng, source.lat],
                [destination.lng, destination.lat],
            ],
            "instructions": True,
            "preference": "fastest",
            "units": "m",
        }
        headers = {
            "Authorization": self.settings.OPENROUTE_API_KEY or "",
            "Content-Type": "application/json",
        }
        data = await self.http.post_json(
            "openrouteservice",
            f"{self.settings.OPENROUTE_BASE_URL}/v2/directions/driving-car/geojson",
            body,
            headers=headers,
        )
        return parse_openroute_directions(data)

    async def _route_straight_line(
        self,
        source: Coordinate,
        destination: Coordinate,
        speed_kmh: float,
    ) -> Optional[RouteGeometry]:
        """
        Mock route: evenly interpolated points on the straight line between
        source and destination, driven at the requested speed.
        """
        segments = max(1, self.settings.MOCK_ROUTE_SEGMENTS)
        points = [
            Coordinate(
                lat=source.lat + (destination.lat - source.lat) * i / segments,
                lng=source.lng + (destination.lng - source.lng) * i / segments,
            )
            for i in range(segments + 1)
        ]

        distance_m = polyline_length_meters(points)
        speed_mps = speed_kmh * 1000.0 / 3600.0
        duration_s = distance_m / speed_mps if speed_mps > 0 else 0.0

        return RouteGeometry(
            points=points,
            distance_m=distance_m,
            duration_s=duration_s,
            provider="straight_line",
        )
