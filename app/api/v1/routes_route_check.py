# app/api/v1/routes_route_check.py
from fastapi import APIRouter, Depends, HTTPException

from app.models.routing import RouteCheckRequest, RouteCheckResponse
from app.services.route_planner import RoutePlanner

router = APIRouter(
    prefix="/api",
    tags=["route-check"],
)

# Single shared instance (the reverse-geocode cache is process-wide anyway)
route_planner = RoutePlanner()


def get_route_planner() -> RoutePlanner:
    return route_planner


@router.post(
    "/check-route",
    response_model=RouteCheckResponse,
    summary="Plan a route and attach weather alerts along it",
)
async def check_route(
    request: RouteCheckRequest,
    planner: RoutePlanner = Depends(get_route_planner),
) -> RouteCheckResponse:
    """
    Plan a driving route between two cities and report the expected weather
    at each waypoint's arrival time.

    - Waypoints are sampled roughly every `spacing` km along the route.
    - Arrival times assume a constant `speed` (km/h) from `departureTime`.
    - Missing provider credentials switch the relevant step to mock data.
    """
    if not (request.source or "").strip() or not (request.destination or "").strip():
        raise HTTPException(status_code=400, detail="Source and destination are required")

    return await planner.check_route(request)
