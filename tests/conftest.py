"""
Shared test fixtures.

Timing settings are zeroed (or set to a few milliseconds) so a full
simulated ride runs in well under a second, and every random source is
seeded so driver ids and jittered start positions are reproducible.
"""

from __future__ import annotations

import random
from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.config import Settings
from src.domain.drivers import DriverFactory
from src.domain.entities import Coordinate, RideRequest
from src.workers.coordinator import RideSessionCoordinator

SEED = 42

PICKUP = Coordinate(lat=12.9, lng=77.6)
DROP = Coordinate(lat=12.95, lng=77.65)


class RecordingSink:
    """Stands in for the websocket: records every emitted event in order."""

    def __init__(self):
        self.events: list[tuple[str, Any]] = []

    async def __call__(self, event: str, data: Any) -> None:
        self.events.append((event, data))

    def of(self, event: str) -> list[Any]:
        return [data for name, data in self.events if name == event]

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


def make_coordinator(
    sink: RecordingSink,
    seed: int = SEED,
    step_delay: float = 0.0,
    steps: int = 30,
    connection_id: str | None = None,
) -> RideSessionCoordinator:
    return RideSessionCoordinator(
        sink,
        DriverFactory(random.Random(seed)),
        motion_steps=steps,
        step_delay=step_delay,
        arrival_delay=0.0,
        boarding_delay=0.0,
        dropoff_delay=0.0,
        connection_id=connection_id,
    )


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def ride_request() -> RideRequest:
    return RideRequest(pickup=PICKUP, drop=DROP, distance_km=7.5)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        step_delay_seconds=0.0,
        arrival_delay_seconds=0.0,
        boarding_delay_seconds=0.0,
        dropoff_delay_seconds=0.0,
        random_seed=SEED,
    )


@pytest.fixture
def slow_settings() -> Settings:
    """A ride that stays active long enough to interact with mid-flight."""
    return Settings(
        step_delay_seconds=0.05,
        arrival_delay_seconds=0.0,
        boarding_delay_seconds=0.0,
        dropoff_delay_seconds=0.0,
        random_seed=SEED,
    )


@pytest.fixture
def app(fast_settings):
    return create_app(fast_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def slow_client(slow_settings):
    with TestClient(create_app(slow_settings)) as test_client:
        yield test_client
