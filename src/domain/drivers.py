"""
Mock driver fabrication.

There is no driver pool: every accepted ride gets a freshly made driver that
starts a short random distance away from the pickup point.  The random source
is injected so tests can seed it and assert exact coordinates.
"""

from __future__ import annotations

import random

from src.config import Settings

from .entities import Coordinate, DriverRecord


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class DriverFactory:
    def __init__(
        self,
        rng: random.Random,
        jitter_degrees: float = 0.01,
        name: str = "Ravi",
        car: str = "Swift Dzire - KA01AB1234",
        photo: str = "/driver-placeholder.png",
    ):
        if jitter_degrees < 0:
            raise ValueError("jitter_degrees must be non-negative")
        self.rng = rng
        self.jitter_degrees = jitter_degrees
        self.name = name
        self.car = car
        self.photo = photo

    @classmethod
    def from_settings(cls, settings: Settings, rng: random.Random) -> "DriverFactory":
        return cls(
            rng,
            jitter_degrees=settings.driver_jitter_degrees,
            name=settings.driver_name,
            car=settings.driver_car,
            photo=settings.driver_photo,
        )

    def _jitter(self) -> float:
        """Uniform offset in ``[-jitter, +jitter]``."""
        return (self.rng.random() - 0.5) * 2 * self.jitter_degrees

    def create(self, pickup: Coordinate) -> DriverRecord:
        driver_id = f"driver_{int(self.rng.random() * 1000)}"
        start = Coordinate(
            lat=_clamp(pickup.lat + self._jitter(), -90.0, 90.0),
            lng=_clamp(pickup.lng + self._jitter(), -180.0, 180.0),
        )
        return DriverRecord(
            id=driver_id,
            name=self.name,
            car=self.car,
            photo=self.photo,
            position=start,
        )
