"""
Fare endpoints
==============

POST /api/v1/fares/estimate -- distance, duration and fare for a pickup/drop pair
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import get_fare_calculator, get_route_provider
from src.api.middleware import limiter
from src.api.schemas import FareEstimateRequest, FareEstimateResponse
from src.domain.pricing import FareCalculator, round_half_up
from src.infrastructure.routing import GeoRouteProvider, RouteNotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fares", tags=["fares"])


@router.post(
    "/estimate",
    response_model=FareEstimateResponse,
    summary="Estimate a fare",
    responses={422: {"description": "No route between pickup and drop."}},
)
@limiter.limit("100/minute")
async def estimate_fare(
    request: Request,
    body: FareEstimateRequest,
    route_provider: GeoRouteProvider = Depends(get_route_provider),
    calculator: FareCalculator = Depends(get_fare_calculator),
):
    try:
        route = await route_provider.route(
            body.pickup.to_domain(), body.drop.to_domain()
        )
    except RouteNotFound as exc:
        logger.warning("Fare estimate without route: %s", exc)
        raise HTTPException(status_code=422, detail=str(exc))

    distance_km = round_half_up(route.total_distance_meters / 100) / 10
    duration_min = round_half_up(route.total_duration_seconds / 60)
    return FareEstimateResponse(
        distance_km=distance_km,
        duration_min=duration_min,
        fare=calculator.estimate(distance_km, duration_min),
    )
