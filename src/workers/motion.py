"""
Driver Motion Simulator
=======================

Moves a simulated driver along a straight leg in ``steps`` equal increments,
one increment every ``step_delay`` seconds:

    point_i = start + i / steps x (end - start),   i = 1 .. steps

The last point equals ``end`` exactly.  A ``MotionRun`` is single-use: a new
leg needs a new run.  Callers learn that a leg is finished by awaiting
``MotionRun.wait()`` rather than by scheduling a second timer of the same
length, so status changes cannot drift away from the driver's position.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterator

from src.domain.entities import Coordinate

logger = logging.getLogger(__name__)

DEFAULT_STEPS = 30
DEFAULT_STEP_DELAY = 1.5  # seconds

StepCallback = Callable[[Coordinate], Awaitable[None]]


def interpolate_path(
    start: Coordinate, end: Coordinate, steps: int = DEFAULT_STEPS
) -> Iterator[Coordinate]:
    """Lazily yield ``steps`` evenly spaced points from *start* to *end*."""
    if steps < 1:
        raise ValueError("steps must be >= 1")
    dlat = end.lat - start.lat
    dlng = end.lng - start.lng
    for i in range(1, steps):
        fraction = i / steps
        yield Coordinate(start.lat + fraction * dlat, start.lng + fraction * dlng)
    yield end


class MotionRun:
    """One paced traversal of a leg, cancellable at any point."""

    def __init__(
        self,
        start: Coordinate,
        end: Coordinate,
        on_step: StepCallback,
        steps: int = DEFAULT_STEPS,
        step_delay: float = DEFAULT_STEP_DELAY,
    ):
        if steps < 1:
            raise ValueError("steps must be >= 1")
        if step_delay < 0:
            raise ValueError("step_delay must be non-negative")
        self.start_point = start
        self.end_point = end
        self.on_step = on_step
        self.steps = steps
        self.step_delay = step_delay
        self.steps_emitted = 0
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def nominal_duration(self) -> float:
        return self.steps * self.step_delay

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> "MotionRun":
        if self._task is not None:
            raise RuntimeError("MotionRun already started; create a new run per leg")
        self._task = asyncio.create_task(self._run())
        return self

    def cancel(self) -> None:
        """Stop the run; no coordinate is emitted after this returns."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> int:
        """Wait for the run to finish and return the number of steps emitted.

        Raises ``asyncio.CancelledError`` if the run was cancelled.
        """
        if self._task is None:
            raise RuntimeError("MotionRun has not been started")
        await self._task
        return self.steps_emitted

    async def _run(self) -> None:
        for point in interpolate_path(self.start_point, self.end_point, self.steps):
            await asyncio.sleep(self.step_delay)
            if self._cancelled:
                return
            self.steps_emitted += 1
            await self.on_step(point)
        logger.debug(
            "Motion run finished after %d steps (%.1fs nominal)",
            self.steps_emitted,
            self.nominal_duration,
        )
