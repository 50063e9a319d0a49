"""
FastAPI application factory.

* Registers the realtime ride channel plus the fare and admin routes.
* Closes every open ride session on shutdown via lifespan events.
* Applies rate-limiting middleware to the REST routes.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
import random
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.connections import ConnectionRegistry
from src.api.middleware import limiter
from src.api.routes import admin, fares, rides
from src.config import Settings, settings as default_settings
from src.domain.pricing import FareCalculator
from src.infrastructure.routing import StraightLineRouteProvider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Stop all simulated rides on shutdown."""
    logger.info("Ride coordinator ready")
    yield
    await app.state.registry.close_all()
    logger.info("Ride coordinator stopped")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or default_settings
    logging.basicConfig(level=app_settings.log_level.upper())

    app = FastAPI(
        title="Simulated Ride Dispatch API",
        description=(
            "Mock ride-hailing backend: assigns a fabricated driver to each "
            "ride request and streams its simulated movement and ride "
            "status over a websocket."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.registry = ConnectionRegistry()
    app.state.route_provider = StraightLineRouteProvider.from_settings(app_settings)
    app.state.fare_calculator = FareCalculator.from_settings(app_settings)
    # One random source per connection, each drawn from a per-app master so
    # a seeded app is reproducible without repeating drivers across sessions
    master_rng = random.Random(app_settings.random_seed)
    app.state.rng_factory = lambda: random.Random(master_rng.getrandbits(64))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(rides.router)
    app.include_router(fares.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
