"""
Domain entities with business logic.

Patterns used
-------------
- **Value Objects**: ``Coordinate`` and ``RideRequest`` are immutable and
  validate themselves on construction.
- **State Pattern** on ``RideSession``: enforces valid lifecycle transitions
  (idle -> requested -> driver_assigned -> driver_arriving -> ongoing
  -> completed, with cancellation back to idle).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

from .enums import ACTIVE_STATUSES, RIDE_TRANSITIONS, RideStatus


class InvalidStateTransition(Exception):
    """Raised when a ride status change violates the state machine."""


class InvalidCoordinate(ValueError):
    """Raised for a latitude / longitude outside the valid range."""


class RideAlreadyInProgress(Exception):
    """Raised when a second ride is requested while one is active."""

    def __init__(self, status: RideStatus):
        super().__init__("ride already in progress")
        self.status = status


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidCoordinate(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise InvalidCoordinate(f"longitude out of range: {self.lng}")

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class RideRequest:
    pickup: Coordinate
    drop: Coordinate
    distance_km: Optional[float] = None


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class DriverRecord:
    id: str
    name: str
    car: str
    photo: str
    position: Coordinate

    def to_dict(self) -> dict[str, Any]:
        """Wire shape sent with ``driverAssigned`` (position flattened)."""
        return {
            "id": self.id,
            "name": self.name,
            "car": self.car,
            "photo": self.photo,
            "lat": self.position.lat,
            "lng": self.position.lng,
        }


@dataclass
class RideSession:
    """Per-connection ride state owned by a single coordinator."""

    status: RideStatus = RideStatus.IDLE
    driver: Optional[DriverRecord] = None
    request: Optional[RideRequest] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False)
    # bumped on every cancellation; a ride task only emits while its
    # captured generation is still current
    generation: int = 0

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = RIDE_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def revoke(self) -> None:
        """Invalidate every callback scheduled under the current generation."""
        self.generation += 1

    def reset(self) -> None:
        self.status = RideStatus.IDLE
        self.driver = None
        self.request = None
        self.task = None
