"""Pydantic schemas for the realtime event channel and the REST API."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from src.domain.entities import Coordinate, RideRequest


# ── Realtime payloads ─────────────────────────────────────────────────


class CoordinatePayload(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)


class RideRequestPayload(BaseModel):
    pickup: CoordinatePayload
    drop: CoordinatePayload
    distance_km: Optional[float] = Field(None, ge=0, alias="distanceKm")

    model_config = {"populate_by_name": True}

    def to_domain(self) -> RideRequest:
        return RideRequest(
            pickup=self.pickup.to_domain(),
            drop=self.drop.to_domain(),
            distance_km=self.distance_km,
        )


class DriverPayload(BaseModel):
    id: str
    name: str
    car: str
    photo: str
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ErrorPayload(BaseModel):
    detail: str


class EventEnvelope(BaseModel):
    """Every websocket frame: ``{"event": <name>, "data": <payload>}``."""

    event: str
    data: Any = None


# ── REST requests ─────────────────────────────────────────────────────


class FareEstimateRequest(BaseModel):
    pickup: CoordinatePayload
    drop: CoordinatePayload


# ── REST responses ────────────────────────────────────────────────────


class FareEstimateResponse(BaseModel):
    distance_km: float
    duration_min: float
    fare: Optional[int] = None


class SessionsResponse(BaseModel):
    connections: int
    by_status: dict[str, int] = {}


class HealthResponse(BaseModel):
    status: str = "ok"
