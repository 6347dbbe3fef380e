# app/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import routes_health, routes_route_check
from app.core.config import settings
from app.core.exceptions import RouteUnavailableError
from app.core.logger import logger


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Plans a driving route between two cities and overlays "
                    "weather alerts at each waypoint's arrival time.",
    )

    # The map client is served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(routes_health.router)
    app.include_router(routes_route_check.router)

    @app.exception_handler(RouteUnavailableError)
    async def route_unavailable_handler(request: Request, exc: RouteUnavailableError) -> JSONResponse:
        logger.error("Route unavailable for {}: {}", request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": "Failed to get route information"})

    logger.info("{} {} started ({})", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    return app


app = create_app()
