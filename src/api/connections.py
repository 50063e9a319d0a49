"""
Registry of live realtime connections.

Each websocket owns its ``RideSessionCoordinator``; the registry only keeps
a reference to it so the admin endpoints can count sessions.  It never
routes events between connections.
"""

from __future__ import annotations

import logging
from collections import Counter

from src.workers.coordinator import RideSessionCoordinator

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    def __init__(self):
        self._coordinators: dict[str, RideSessionCoordinator] = {}

    def __len__(self) -> int:
        return len(self._coordinators)

    def register(self, coordinator: RideSessionCoordinator) -> None:
        self._coordinators[coordinator.connection_id] = coordinator
        logger.info(
            "Connection %s opened (%d active)", coordinator.connection_id, len(self)
        )

    def unregister(self, coordinator: RideSessionCoordinator) -> None:
        self._coordinators.pop(coordinator.connection_id, None)
        logger.info(
            "Connection %s closed (%d active)", coordinator.connection_id, len(self)
        )

    def status_counts(self) -> dict[str, int]:
        counts = Counter(c.status.value for c in self._coordinators.values())
        return dict(counts)

    async def close_all(self) -> None:
        """Stop every session's timers (application shutdown)."""
        for coordinator in list(self._coordinators.values()):
            await coordinator.close()
        self._coordinators.clear()
