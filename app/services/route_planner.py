# app/services/route_planner.py

import asyncio
from datetime import datetime
from time import perf_counter
from typing import List, Optional

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import RouteUnavailableError
from app.core.logger import logger
from app.models.routing import (
    RouteCheckRequest,
    RouteCheckResponse,
    RouteSummary,
    Waypoint,
)
from app.services.alerts import WeatherAlertService, compute_arrival_times, display_timezone
from app.services.directions import DirectionsService
from app.services.geocoding import GeocodingService
from app.services.interpolation import generate_waypoints_by_distance, waypoint_interval


class RoutePlanner:
    """
    End-to-end pipeline behind /api/check-route:
    - geocode source and destination
    - fetch the driving route (or a mock one)
    - sample evenly spaced waypoints along the route geometry
    - name them via reverse geocoding (best-effort)
    - compute arrival times from the requested speed
    - attach weather alerts for each arrival time
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        geocoding: Optional[GeocodingService] = None,
        directions: Optional[DirectionsService] = None,
        alerts: Optional[WeatherAlertService] = None,
    ) -> None:
        self.settings = settings
        self.geocoding = geocoding or GeocodingService(settings)
        self.directions = directions or DirectionsService(settings)
        self.alerts = alerts or WeatherAlertService(settings=settings)
        self.tz = display_timezone(settings)
        logger.info("RoutePlanner initialised.")

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def check_route(self, request: RouteCheckRequest) -> RouteCheckResponse:
        """
        Run the whole pipeline. Provider problems degrade the data (mock
        values, "unknown" alerts) rather than failing; only a route with no
        usable geometry raises RouteUnavailableError.
        """
        t0 = perf_counter()

        source_name = (request.source or "").strip()
        destination_name = (request.destination or "").strip()
        if not source_name or not destination_name:
            raise ValueError("Source and destination are required")

        departure = self._resolve_departure(request.departure_time)
        logger.info(
            "Received route check {} -> {} departing {} at {:.1f} km/h, spacing {:.1f} km",
            source_name,
            destination_name,
            departure.isoformat(),
            request.speed,
            request.spacing,
        )

        # 1) Geocode both ends
        source_geo, destination_geo = await asyncio.gather(
            self.geocoding.geocode(source_name),
            self.geocoding.geocode(destination_name),
        )
        source_coord = source_geo.value
        destination_coord = destination_geo.value

        # 2) Route geometry
        t_route0 = perf_counter()
        route = await self.directions.get_route(source_coord, destination_coord, request.speed)
        logger.info("Route fetched in {:.2f} ms", (perf_counter() - t_route0) * 1000.0)
        if route is None or len(route.points) < 2:
            logger.error(
                "Route generation returned empty response for {} -> {}",
                source_name,
                destination_name,
            )
            raise RouteUnavailableError("Failed to get route information")

        # 3) Evenly spaced waypoints, bracketed by source and destination
        count, interval_m = waypoint_interval(route.distance_m, request.spacing)
        generated = generate_waypoints_by_distance(
            route.points, interval_m, route.distance_m, route.duration_s
        )
        logger.info(
            "Even waypoint stats: target={} interval={:.1f} m geometry_points={} generated={}",
            count,
            interval_m,
            len(route.points),
            len(generated),
        )

        waypoints: List[Waypoint] = [
            Waypoint(
                name=source_name,
                location=source_coord,
                distance_from_start=0.0,
                duration=0.0,
            ),
            *generated,
            Waypoint(
                name=destination_name,
                location=destination_coord,
                distance_from_start=route.distance_m,
                duration=route.duration_s,
            ),
        ]

        # 4) Names, 5) arrival times, 6) weather
        t_names0 = perf_counter()
        waypoints = await self.geocoding.name_waypoints(waypoints)
        logger.info("Waypoints named in {:.2f} ms", (perf_counter() - t_names0) * 1000.0)

        waypoints = compute_arrival_times(waypoints, departure, request.speed)

        t_weather0 = perf_counter()
        weather_alerts = await self.alerts.build_alerts(waypoints)
        logger.info("Weather fetched in {:.2f} ms", (perf_counter() - t_weather0) * 1000.0)

        logger.info(
            "Route check done: {} waypoints, distance={:.1f} m, total time {:.2f} ms",
            len(waypoints),
            route.distance_m,
            (perf_counter() - t0) * 1000.0,
        )

        return RouteCheckResponse(
            route=RouteSummary(
                waypoints=waypoints,
                total_duration=route.duration_s,
                total_distance=route.distance_m,
                route_path=route.points,
                provider=route.provider,
            ),
            weather_alerts=weather_alerts,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _resolve_departure(self, departure: Optional[datetime]) -> datetime:
        """
        Missing departure means now; naive values are local display time.
        """
        if departure is None:
            return datetime.now(self.tz)
        if departure.tzinfo is None:
            return departure.replace(tzinfo=self.tz)
        return departure
