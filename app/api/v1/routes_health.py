# app/api/v1/routes_health.py
from fastapi import APIRouter, Depends

from app.api.v1.routes_route_check import get_route_planner
from app.core.config import settings
from app.services.route_planner import RoutePlanner

router = APIRouter(tags=["health"])


@router.get("/health/", summary="Health check")
@router.get("/api/health", summary="Health check", include_in_schema=False)
async def health_check(planner: RoutePlanner = Depends(get_route_planner)):
    """
    Simple health check endpoint to verify that the API is running, and which
    providers each step will try (in order).
    """
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "providers": {
            "geocoding": planner.geocoding.forward_chain.provider_names,
            "routing": planner.directions.chain.provider_names,
            "weather": planner.alerts.weather_service.chain.provider_names,
        },
    }
