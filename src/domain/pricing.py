"""
Fare Estimation  (Strategy Pattern)
===================================

Formula
-------
Fare = max(round((Base_Fare + Distance x Rate_Per_KM + Duration x Rate_Per_Min)
               x Surge_Multiplier), Base_Fare)

* Distance and duration come from the route provider, so the fare is an
  estimate shown to the rider; it is never authoritative or persisted.
* Rounding is half-up (``145.5 -> 146``, ``144.5 -> 145``), not Python's
  banker's rounding.
* If either input is unknown the estimate is unavailable (``None``).

Complexity: O(1) per estimate.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional

from src.config import Settings


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(
        self,
        distance_km: float,
        duration_min: float,
        base_fare: float,
        rate_per_km: float,
        rate_per_min: float,
    ) -> float: ...


class StandardPricing(PricingStrategy):
    def calculate(
        self,
        distance_km: float,
        duration_min: float,
        base_fare: float,
        rate_per_km: float,
        rate_per_min: float,
    ) -> float:
        return base_fare + distance_km * rate_per_km + duration_min * rate_per_min


class SurgePricing(StandardPricing):
    def __init__(self, surge_multiplier: float = 1.0):
        self.surge_multiplier = surge_multiplier

    def calculate(
        self,
        distance_km: float,
        duration_min: float,
        base_fare: float,
        rate_per_km: float,
        rate_per_min: float,
    ) -> float:
        raw = super().calculate(
            distance_km, duration_min, base_fare, rate_per_km, rate_per_min
        )
        return raw * self.surge_multiplier


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ── Calculator facade ─────────────────────────────────────────────────


class FareCalculator:
    """High-level API used by the client session and the fare endpoint."""

    def __init__(
        self,
        base_fare: float = 25.0,
        rate_per_km: float = 10.0,
        rate_per_min: float = 1.0,
        surge_multiplier: float = 1.0,
    ):
        self.base_fare = base_fare
        self.rate_per_km = rate_per_km
        self.rate_per_min = rate_per_min
        self.strategy: PricingStrategy = SurgePricing(surge_multiplier)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FareCalculator":
        return cls(
            base_fare=settings.base_fare,
            rate_per_km=settings.rate_per_km,
            rate_per_min=settings.rate_per_min,
            surge_multiplier=settings.surge_multiplier,
        )

    def estimate(
        self, distance_km: Optional[float], duration_min: Optional[float]
    ) -> Optional[int]:
        if distance_km is None or duration_min is None:
            return None
        raw = self.strategy.calculate(
            distance_km,
            duration_min,
            self.base_fare,
            self.rate_per_km,
            self.rate_per_min,
        )
        return max(round_half_up(raw), round_half_up(self.base_fare))


_default_calculator = FareCalculator()


def fare(
    distance_km: Optional[float], duration_min: Optional[float]
) -> Optional[int]:
    """Fare estimate with the default tariff (base 25, 10/km, 1/min, no surge)."""
    return _default_calculator.estimate(distance_km, duration_min)
