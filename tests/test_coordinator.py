"""
Ride session coordinator tests.

Demonstrates:
1. The full event sequence of a fulfilled ride.
2. Seeded jitter gives exact, reproducible driver start positions.
3. Cancellation is race-free: nothing is emitted after ``idle``.
4. A second request during an active ride is rejected.
5. Two sessions never share drivers or locations.
"""

from __future__ import annotations

import asyncio
import random

import pytest

from src.config import Settings
from src.domain.drivers import DriverFactory
from src.domain.entities import Coordinate, RideAlreadyInProgress, RideRequest
from src.domain.enums import RideStatus
from src.workers.coordinator import RideSessionCoordinator
from tests.conftest import DROP, PICKUP, SEED, RecordingSink, make_coordinator


def _expected_start(seed: int, pickup: Coordinate, jitter: float = 0.01):
    rng = random.Random(seed)
    driver_id = f"driver_{int(rng.random() * 1000)}"
    lat = pickup.lat + (rng.random() - 0.5) * 2 * jitter
    lng = pickup.lng + (rng.random() - 0.5) * 2 * jitter
    return driver_id, lat, lng


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.002)


class TestFulfilledRide:
    @pytest.mark.asyncio
    async def test_event_sequence(self, sink, ride_request):
        coordinator = make_coordinator(sink)
        await coordinator.request_ride(ride_request)
        await coordinator.session.task

        names = sink.names()
        assert names.count("driverAssigned") == 1
        assert names[0] == "driverAssigned"
        assert names.index("driverAssigned") < names.index("driverLocation")
        assert len(sink.of("driverLocation")) == 60
        assert sink.of("rideStatus") == [
            "driver_assigned",
            "driver_arriving",
            "ongoing",
            "completed",
        ]
        assert sink.events[-1] == ("rideStatus", "completed")
        assert coordinator.status == RideStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_thirty_locations_per_phase(self, sink, ride_request):
        coordinator = make_coordinator(sink)
        await coordinator.request_ride(ride_request)
        await coordinator.session.task

        names = sink.names()
        arriving = sink.events.index(("rideStatus", "driver_arriving"))
        ongoing = sink.events.index(("rideStatus", "ongoing"))
        assert names[:arriving].count("driverLocation") == 30
        assert names[ongoing:].count("driverLocation") == 30
        # pickup leg ends exactly on the pickup point
        pickup_leg = [d for n, d in sink.events[:arriving] if n == "driverLocation"]
        assert pickup_leg[-1] == PICKUP.to_dict()

    @pytest.mark.asyncio
    async def test_seeded_scenario_positions(self, sink, ride_request):
        coordinator = make_coordinator(sink, seed=SEED)
        await coordinator.request_ride(ride_request)
        await coordinator.session.task

        driver_id, start_lat, start_lng = _expected_start(SEED, PICKUP)
        assigned = sink.of("driverAssigned")[0]
        assert assigned["id"] == driver_id
        assert assigned["lat"] == start_lat
        assert assigned["lng"] == start_lng
        assert abs(start_lat - PICKUP.lat) <= 0.01
        assert abs(start_lng - PICKUP.lng) <= 0.01

        locations = sink.of("driverLocation")
        first = locations[0]
        assert min(start_lat, PICKUP.lat) < first["lat"] < max(start_lat, PICKUP.lat)
        assert min(start_lng, PICKUP.lng) < first["lng"] < max(start_lng, PICKUP.lng)
        assert locations[-1] == {"lat": DROP.lat, "lng": DROP.lng}

    @pytest.mark.asyncio
    async def test_driver_position_tracks_motion(self, sink, ride_request):
        coordinator = make_coordinator(sink)
        driver = await coordinator.request_ride(ride_request)
        await coordinator.session.task
        assert driver.position == DROP

    @pytest.mark.asyncio
    async def test_locations_arrive_in_time_order(self, ride_request):
        stamps: list[float] = []
        loop = asyncio.get_running_loop()

        class TimedSink(RecordingSink):
            async def __call__(self, event, data):
                stamps.append(loop.time())
                await super().__call__(event, data)

        coordinator = make_coordinator(TimedSink(), step_delay=0.001)
        await coordinator.request_ride(ride_request)
        await coordinator.session.task
        assert stamps == sorted(stamps)

    @pytest.mark.asyncio
    async def test_new_ride_after_completion(self, sink, ride_request):
        coordinator = make_coordinator(sink)
        await coordinator.request_ride(ride_request)
        await coordinator.session.task
        await coordinator.request_ride(ride_request)
        await coordinator.session.task
        assert sink.names().count("driverAssigned") == 2
        assert coordinator.status == RideStatus.COMPLETED


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_mid_pickup_emits_nothing_after_idle(self, sink, ride_request):
        coordinator = make_coordinator(sink, step_delay=0.01)
        await coordinator.request_ride(ride_request)
        await _wait_for(lambda: len(sink.of("driverLocation")) >= 3)

        await coordinator.cancel_ride()
        await asyncio.sleep(0.2)

        assert sink.events[-1] == ("rideStatus", "idle")
        assert len(sink.of("driverLocation")) < 30
        assert "driver_arriving" not in sink.of("rideStatus")
        assert coordinator.status == RideStatus.IDLE
        assert coordinator.session.driver is None
        assert coordinator.session.task is None

    @pytest.mark.asyncio
    async def test_cancel_during_drop_phase(self, sink, ride_request):
        coordinator = make_coordinator(sink, step_delay=0.005)
        await coordinator.request_ride(ride_request)
        await _wait_for(lambda: "ongoing" in sink.of("rideStatus"))

        await coordinator.cancel_ride()
        await asyncio.sleep(0.2)

        assert sink.events[-1] == ("rideStatus", "idle")
        assert "completed" not in sink.of("rideStatus")

    @pytest.mark.asyncio
    async def test_cancel_when_idle_only_acknowledges(self, sink):
        coordinator = make_coordinator(sink)
        await coordinator.cancel_ride()
        assert sink.events == [("rideStatus", "idle")]
        assert coordinator.session.generation == 0

    @pytest.mark.asyncio
    async def test_cancel_after_completion_resets_session(self, sink, ride_request):
        coordinator = make_coordinator(sink)
        await coordinator.request_ride(ride_request)
        await coordinator.session.task
        await coordinator.cancel_ride()
        assert coordinator.status == RideStatus.IDLE
        assert coordinator.session.request is None

    @pytest.mark.asyncio
    async def test_close_silences_session(self, sink, ride_request):
        coordinator = make_coordinator(sink, step_delay=0.01)
        await coordinator.request_ride(ride_request)
        await _wait_for(lambda: len(sink.of("driverLocation")) >= 1)

        await coordinator.close()
        emitted = len(sink.events)
        await asyncio.sleep(0.1)

        assert len(sink.events) == emitted
        assert coordinator.closed
        with pytest.raises(RuntimeError):
            await coordinator.request_ride(ride_request)


class TestRejection:
    @pytest.mark.asyncio
    async def test_second_request_while_active_is_rejected(self, sink, ride_request):
        coordinator = make_coordinator(sink, step_delay=0.01)
        first = await coordinator.request_ride(ride_request)

        with pytest.raises(RideAlreadyInProgress, match="ride already in progress"):
            await coordinator.request_ride(ride_request)

        assert coordinator.session.driver is first
        assert len(sink.of("driverAssigned")) == 1
        await coordinator.close()

    @pytest.mark.asyncio
    async def test_reject_emits_error_event(self, sink):
        coordinator = make_coordinator(sink)
        await coordinator.reject("ride already in progress")
        assert sink.events == [("error", {"detail": "ride already in progress"})]
        assert coordinator.status == RideStatus.IDLE


class TestSessionIsolation:
    @pytest.mark.asyncio
    async def test_concurrent_sessions_do_not_cross_talk(self):
        sink_a, sink_b = RecordingSink(), RecordingSink()
        a = make_coordinator(sink_a, seed=1, step_delay=0.001, connection_id="a")
        b = make_coordinator(sink_b, seed=2, step_delay=0.001, connection_id="b")
        far_pickup = Coordinate(19.09, 72.87)
        far_drop = Coordinate(19.12, 72.85)

        await asyncio.gather(
            a.request_ride(RideRequest(PICKUP, DROP)),
            b.request_ride(RideRequest(far_pickup, far_drop)),
        )
        await asyncio.gather(a.session.task, b.session.task)

        assert sink_a.of("driverAssigned")[0]["id"] == _expected_start(1, PICKUP)[0]
        assert sink_b.of("driverAssigned")[0]["id"] == _expected_start(2, far_pickup)[0]
        assert len(sink_a.of("driverLocation")) == 60
        assert len(sink_b.of("driverLocation")) == 60
        # Every location stays in its own city
        assert all(abs(p["lat"] - 12.9) < 0.1 for p in sink_a.of("driverLocation"))
        assert all(abs(p["lat"] - 19.1) < 0.1 for p in sink_b.of("driverLocation"))
        assert sink_a.of("driverLocation")[-1] == DROP.to_dict()
        assert sink_b.of("driverLocation")[-1] == far_drop.to_dict()


class TestFromSettings:
    def test_settings_reach_coordinator_and_driver_factory(self):
        settings = Settings(
            motion_steps=5,
            step_delay_seconds=0.01,
            driver_jitter_degrees=0.0,
            driver_name="Asha",
        )
        factory = DriverFactory.from_settings(settings, random.Random(SEED))
        coordinator = RideSessionCoordinator.from_settings(
            settings, RecordingSink(), factory, connection_id="cfg"
        )

        assert coordinator.motion_steps == 5
        assert coordinator.step_delay == 0.01
        assert coordinator.connection_id == "cfg"
        driver = factory.create(PICKUP)
        assert driver.name == "Asha"
        assert driver.position == PICKUP
