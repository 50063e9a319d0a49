"""
Route provider contract and an offline implementation.

The production route provider is an external mapping service (directions
API).  ``StraightLineRouteProvider`` answers with the great-circle segment
between the two points so the project runs locally without an API key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from src.config import Settings
from src.domain.distance import distance_between
from src.domain.entities import Coordinate


class RouteNotFound(Exception):
    """The provider could not compute a route between the two points."""


@dataclass(frozen=True)
class RouteResult:
    path: list[Coordinate] = field(default_factory=list)
    total_distance_meters: float = 0.0
    total_duration_seconds: float = 0.0


class GeoRouteProvider(Protocol):
    async def route(
        self, origin: Coordinate, destination: Coordinate
    ) -> RouteResult: ...


class StraightLineRouteProvider:
    def __init__(self, average_speed_kmh: float = 25.0, max_route_km: float = 500.0):
        if average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be positive")
        self.average_speed_kmh = average_speed_kmh
        self.max_route_km = max_route_km

    @classmethod
    def from_settings(cls, settings: Settings) -> "StraightLineRouteProvider":
        return cls(settings.average_speed_kmh, settings.max_route_km)

    async def route(self, origin: Coordinate, destination: Coordinate) -> RouteResult:
        km = distance_between(origin, destination)
        if km > self.max_route_km:
            raise RouteNotFound(
                f"No drivable route: {km:.1f} km exceeds {self.max_route_km:.0f} km"
            )
        return RouteResult(
            path=[origin, destination],
            total_distance_meters=km * 1000.0,
            total_duration_seconds=km / self.average_speed_kmh * 3600.0,
        )
