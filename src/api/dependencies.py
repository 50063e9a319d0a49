"""FastAPI dependency injection helpers."""

from fastapi import Request

from src.api.connections import ConnectionRegistry
from src.domain.pricing import FareCalculator
from src.infrastructure.routing import GeoRouteProvider


def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_route_provider(request: Request) -> GeoRouteProvider:
    return request.app.state.route_provider


def get_fare_calculator(request: Request) -> FareCalculator:
    return request.app.state.fare_calculator
