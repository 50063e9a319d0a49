"""
Admin / observability endpoints
===============================

GET /api/v1/admin/sessions -- live connections and their ride status
GET /api/v1/admin/health   -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from src.api.connections import ConnectionRegistry
from src.api.dependencies import get_registry
from src.api.middleware import limiter
from src.api.schemas import HealthResponse, SessionsResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/sessions",
    response_model=SessionsResponse,
    summary="Count live ride sessions by status",
)
@limiter.limit("100/minute")
async def get_sessions(
    request: Request,
    registry: ConnectionRegistry = Depends(get_registry),
):
    return SessionsResponse(
        connections=len(registry), by_status=registry.status_counts()
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
