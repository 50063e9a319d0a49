"""
Ride Session Coordinator
========================

One coordinator per realtime connection.  It owns that connection's
``RideSession`` and is the only thing that emits events to it.

Lifecycle of a fulfilled ride
-----------------------------
1. ``request_ride``: fabricate a driver near the pickup, emit
   ``driverAssigned`` then ``rideStatus(driver_assigned)``, start the ride task.
2. Pickup leg: a ``MotionRun`` from the driver's start to the pickup point,
   one ``driverLocation`` per step.
3. Leg finished -> ``rideStatus(driver_arriving)`` -> ``rideStatus(ongoing)``.
4. Drop leg: a ``MotionRun`` from pickup to drop.
5. Leg finished -> ``rideStatus(completed)``.

Cancellation safety
-------------------
Every timer of a ride (both motion runs and the settle delays between
phases) lives inside one ``asyncio.Task`` stored on the session.  Each
emission from that task first checks the session generation captured when
the ride started.  ``cancel_ride`` and ``close`` bump the generation before
cancelling the task, so a revoked ride can never emit again.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from functools import partial
from typing import Any, Awaitable, Callable

from src.config import Settings
from src.domain.drivers import DriverFactory
from src.domain.entities import (
    Coordinate,
    DriverRecord,
    RideAlreadyInProgress,
    RideRequest,
    RideSession,
)
from src.domain.enums import RideStatus, ServerEvent
from src.workers.motion import DEFAULT_STEP_DELAY, DEFAULT_STEPS, MotionRun

logger = logging.getLogger(__name__)

EventSink = Callable[[str, Any], Awaitable[None]]


class RideSessionCoordinator:
    def __init__(
        self,
        send: EventSink,
        driver_factory: DriverFactory,
        *,
        motion_steps: int = DEFAULT_STEPS,
        step_delay: float = DEFAULT_STEP_DELAY,
        arrival_delay: float = 0.5,
        boarding_delay: float = 1.5,
        dropoff_delay: float = 2.0,
        connection_id: str | None = None,
    ):
        self._send = send
        self.driver_factory = driver_factory
        self.motion_steps = motion_steps
        self.step_delay = step_delay
        self.arrival_delay = arrival_delay
        self.boarding_delay = boarding_delay
        self.dropoff_delay = dropoff_delay
        self.connection_id = connection_id or uuid.uuid4().hex[:8]
        self.session = RideSession()
        self._motion: MotionRun | None = None
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        send: EventSink,
        driver_factory: DriverFactory,
        connection_id: str | None = None,
    ) -> "RideSessionCoordinator":
        return cls(
            send,
            driver_factory,
            motion_steps=settings.motion_steps,
            step_delay=settings.step_delay_seconds,
            arrival_delay=settings.arrival_delay_seconds,
            boarding_delay=settings.boarding_delay_seconds,
            dropoff_delay=settings.dropoff_delay_seconds,
            connection_id=connection_id,
        )

    @property
    def status(self) -> RideStatus:
        return self.session.status

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Commands ──────────────────────────────────────────────────────

    async def request_ride(self, request: RideRequest) -> DriverRecord:
        """Accept a ride and start simulating it.

        Raises ``RideAlreadyInProgress`` while another ride is active.
        """
        if self._closed:
            raise RuntimeError(f"Connection {self.connection_id} is closed")
        session = self.session
        if session.is_active:
            raise RideAlreadyInProgress(session.status)

        session.transition_to(RideStatus.REQUESTED)
        session.request = request
        driver = self.driver_factory.create(request.pickup)
        session.driver = driver
        generation = session.generation
        logger.info(
            "[%s] Ride requested %s -> %s; assigned %s",
            self.connection_id,
            request.pickup.to_dict(),
            request.drop.to_dict(),
            driver.id,
        )

        await self._emit(generation, ServerEvent.DRIVER_ASSIGNED, driver.to_dict())
        await self._advance(generation, RideStatus.DRIVER_ASSIGNED)
        if generation == session.generation:
            session.task = asyncio.create_task(
                self._drive(generation, driver, request),
                name=f"ride-{self.connection_id}-{generation}",
            )
        return driver

    async def cancel_ride(self) -> None:
        """Revoke the current ride and report ``idle``."""
        session = self.session
        if session.status == RideStatus.IDLE:
            logger.debug("[%s] Cancel with no active ride", self.connection_id)
            await self._send(ServerEvent.RIDE_STATUS.value, RideStatus.IDLE.value)
            return

        previous = session.status
        await self._stop_ride()
        session.transition_to(RideStatus.IDLE)
        session.reset()
        logger.info("[%s] Ride cancelled (was %s)", self.connection_id, previous.value)
        await self._send(ServerEvent.RIDE_STATUS.value, RideStatus.IDLE.value)

    async def reject(self, detail: str) -> None:
        """Report a refused or malformed command; ride state is untouched."""
        await self._send(ServerEvent.ERROR.value, {"detail": detail})

    async def close(self) -> None:
        """Connection teardown: stop all timers and discard the session."""
        if self._closed:
            return
        self._closed = True
        await self._stop_ride()
        self.session.reset()
        logger.debug("[%s] Session discarded", self.connection_id)

    # ── Ride task ─────────────────────────────────────────────────────

    async def _drive(
        self, generation: int, driver: DriverRecord, request: RideRequest
    ) -> None:
        try:
            await self._run_leg(generation, driver, driver.position, request.pickup)
            await asyncio.sleep(self.arrival_delay)
            await self._advance(generation, RideStatus.DRIVER_ARRIVING)
            await asyncio.sleep(self.boarding_delay)
            await self._advance(generation, RideStatus.ONGOING)
            await self._run_leg(generation, driver, request.pickup, request.drop)
            await asyncio.sleep(self.dropoff_delay)
            await self._advance(generation, RideStatus.COMPLETED)
            logger.info("[%s] Ride completed by %s", self.connection_id, driver.id)
        except asyncio.CancelledError:
            logger.debug("[%s] Ride task cancelled", self.connection_id)
            raise
        except Exception:
            logger.exception("[%s] Ride simulation failed", self.connection_id)

    async def _run_leg(
        self,
        generation: int,
        driver: DriverRecord,
        start: Coordinate,
        end: Coordinate,
    ) -> None:
        run = MotionRun(
            start,
            end,
            on_step=partial(self._on_driver_step, generation, driver),
            steps=self.motion_steps,
            step_delay=self.step_delay,
        )
        self._motion = run
        try:
            await run.start().wait()
        finally:
            run.cancel()
            if self._motion is run:
                self._motion = None

    async def _on_driver_step(
        self, generation: int, driver: DriverRecord, point: Coordinate
    ) -> None:
        if generation != self.session.generation:
            return
        driver.position = point
        await self._emit(generation, ServerEvent.DRIVER_LOCATION, point.to_dict())

    # ── Internals ─────────────────────────────────────────────────────

    async def _advance(self, generation: int, status: RideStatus) -> None:
        if generation != self.session.generation:
            return
        self.session.transition_to(status)
        logger.info("[%s] Ride status -> %s", self.connection_id, status.value)
        await self._emit(generation, ServerEvent.RIDE_STATUS, status.value)

    async def _emit(self, generation: int, event: ServerEvent, data: Any) -> None:
        if generation != self.session.generation:
            return
        await self._send(event.value, data)

    async def _stop_ride(self) -> None:
        session = self.session
        session.revoke()
        if self._motion is not None:
            self._motion.cancel()
            self._motion = None
        task = session.task
        session.task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
