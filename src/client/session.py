"""
Rider-side session state.

``RideClientSession`` is the client counterpart of the coordinator: it builds
commands for the realtime channel, folds incoming server events into a
``BookingState`` and derives the read-only values a booking screen shows
(distance, ETA, fare estimate).  It never talks to the network itself; an
async ``send`` callable is injected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from src.api.schemas import CoordinatePayload, DriverPayload, ErrorPayload
from src.domain.entities import Coordinate
from src.domain.enums import ClientEvent, RideStatus, ServerEvent, parse_status
from src.domain.pricing import FareCalculator, round_half_up
from src.infrastructure.routing import GeoRouteProvider, RouteNotFound

logger = logging.getLogger(__name__)

Transport = Callable[[dict[str, Any]], Awaitable[None]]


class InvalidRideCommand(Exception):
    """A command the client refuses to send (e.g. pickup or drop missing)."""


@dataclass(frozen=True)
class RouteInfo:
    path: list[Coordinate]
    distance_km: float
    duration_min: float


@dataclass
class BookingState:
    status: RideStatus = RideStatus.IDLE
    pickup: Optional[Coordinate] = None
    drop: Optional[Coordinate] = None
    route: Optional[RouteInfo] = None
    driver_info: Optional[dict[str, Any]] = None
    driver_location: Optional[Coordinate] = None
    last_error: Optional[str] = None
    route_path: list[Coordinate] = field(default_factory=list)


class RideClientSession:
    def __init__(
        self,
        send: Transport,
        route_provider: GeoRouteProvider,
        fare_calculator: FareCalculator | None = None,
    ):
        self._send = send
        self.route_provider = route_provider
        self.fare_calculator = fare_calculator or FareCalculator()
        self.state = BookingState()

    # ── Derived values ────────────────────────────────────────────────

    @property
    def distance_km(self) -> Optional[float]:
        return self.state.route.distance_km if self.state.route else None

    @property
    def eta_min(self) -> Optional[float]:
        return self.state.route.duration_min if self.state.route else None

    @property
    def fare_estimate(self) -> Optional[int]:
        return self.fare_calculator.estimate(self.distance_km, self.eta_min)

    # ── Trip planning ─────────────────────────────────────────────────

    async def set_pickup(self, point: Coordinate) -> None:
        self.state.pickup = point
        await self._refresh_route()

    async def set_drop(self, point: Coordinate) -> None:
        self.state.drop = point
        await self._refresh_route()

    async def _refresh_route(self) -> None:
        pickup, drop = self.state.pickup, self.state.drop
        if pickup is None or drop is None:
            return
        try:
            result = await self.route_provider.route(pickup, drop)
        except RouteNotFound as exc:
            logger.warning("Route lookup failed: %s", exc)
            self.state.route = None
            self.state.route_path = []
            return

        # Rounded the way the booking screen displays them
        km = round_half_up(result.total_distance_meters / 100) / 10
        mins = round_half_up(result.total_duration_seconds / 60)
        self.state.route = RouteInfo(
            path=list(result.path), distance_km=km, duration_min=mins
        )
        self.state.route_path = list(result.path)

    # ── Commands ──────────────────────────────────────────────────────

    async def request_ride(self) -> dict[str, Any]:
        """Send ``requestRide``; raises ``InvalidRideCommand`` if incomplete."""
        pickup, drop = self.state.pickup, self.state.drop
        if pickup is None or drop is None:
            raise InvalidRideCommand("Select pickup and drop")

        message = {
            "event": ClientEvent.REQUEST_RIDE.value,
            "data": {
                "pickup": pickup.to_dict(),
                "drop": drop.to_dict(),
                "distanceKm": self.distance_km,
            },
        }
        self.state.status = RideStatus.REQUESTED
        self.state.last_error = None
        await self._send(message)
        return message

    async def cancel_ride(self) -> None:
        await self._send({"event": ClientEvent.CANCEL_RIDE.value, "data": None})
        self._return_to_idle()
        self.state.route_path = []

    def connection_lost(self) -> None:
        """The server drops the session on disconnect; mirror that locally."""
        logger.info("Connection lost; treating ride as cancelled")
        self._return_to_idle()

    def _return_to_idle(self) -> None:
        self.state.status = RideStatus.IDLE
        self.state.driver_info = None
        self.state.driver_location = None

    # ── Reducer ───────────────────────────────────────────────────────

    def apply(self, event: str, data: Any) -> BookingState:
        """Fold one server event into the booking state."""
        try:
            if event == ServerEvent.DRIVER_ASSIGNED.value:
                driver = DriverPayload.model_validate(data)
                self.state.driver_info = driver.model_dump()
                self.state.driver_location = None
            elif event == ServerEvent.DRIVER_LOCATION.value:
                point = CoordinatePayload.model_validate(data)
                self.state.driver_location = point.to_domain()
            elif event == ServerEvent.RIDE_STATUS.value:
                status = parse_status(data)
                if status is None:
                    logger.warning("Unknown rideStatus received: %r", data)
                else:
                    self.state.status = status
            elif event == ServerEvent.ERROR.value:
                error = ErrorPayload.model_validate(data)
                logger.warning("Server rejected command: %s", error.detail)
                self.state.last_error = error.detail
            else:
                logger.debug("Ignoring unknown event %r", event)
        except ValidationError as exc:
            logger.warning("Malformed %s payload ignored: %s", event, exc)
        return self.state

    def apply_message(self, message: dict[str, Any]) -> BookingState:
        return self.apply(message.get("event", ""), message.get("data"))
