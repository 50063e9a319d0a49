"""
Realtime ride channel
=====================

WS /ws/rides -- one ride session per connection

Every frame in both directions is ``{"event": <name>, "data": <payload>}``.

client -> server: ``requestRide`` {pickup, drop, distanceKm}, ``cancelRide``
server -> client: ``driverAssigned``, ``driverLocation``, ``rideStatus``,
                  ``error`` {detail}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from pydantic import ValidationError

from src.api.schemas import EventEnvelope, RideRequestPayload
from src.domain.drivers import DriverFactory
from src.domain.entities import RideAlreadyInProgress
from src.domain.enums import ClientEvent
from src.workers.coordinator import RideSessionCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rides"])


@router.websocket("/ws/rides")
async def ride_channel(websocket: WebSocket):
    state = websocket.app.state
    await websocket.accept()

    async def send(event: str, data: Any) -> None:
        if websocket.application_state == WebSocketState.CONNECTED:
            await websocket.send_json({"event": event, "data": data})

    coordinator = RideSessionCoordinator.from_settings(
        state.settings,
        send,
        DriverFactory.from_settings(state.settings, state.rng_factory()),
    )
    state.registry.register(coordinator)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            text = message.get("text")
            if text is None:
                logger.warning("[%s] Binary frame rejected", coordinator.connection_id)
                await coordinator.reject("malformed message")
                continue
            await handle_frame(coordinator, text)
    except WebSocketDisconnect:
        logger.info("Client %s disconnected", coordinator.connection_id)
    finally:
        await coordinator.close()
        state.registry.unregister(coordinator)


async def handle_frame(coordinator: RideSessionCoordinator, text: str) -> None:
    """Decode one client frame and hand it to the coordinator."""
    try:
        envelope = EventEnvelope.model_validate_json(text)
    except ValidationError:
        logger.warning("[%s] Malformed frame: %.200s", coordinator.connection_id, text)
        await coordinator.reject("malformed message")
        return

    if envelope.event == ClientEvent.REQUEST_RIDE.value:
        try:
            request = RideRequestPayload.model_validate(envelope.data).to_domain()
        except ValidationError as exc:
            logger.warning(
                "[%s] Invalid requestRide payload: %s", coordinator.connection_id, exc
            )
            await coordinator.reject(
                f"invalid requestRide payload ({exc.error_count()} errors)"
            )
            return
        try:
            await coordinator.request_ride(request)
        except RideAlreadyInProgress as exc:
            logger.warning(
                "[%s] Rejected requestRide while %s",
                coordinator.connection_id,
                exc.status.value,
            )
            await coordinator.reject(str(exc))

    elif envelope.event == ClientEvent.CANCEL_RIDE.value:
        await coordinator.cancel_ride()

    else:
        logger.warning(
            "[%s] Unknown client event %r", coordinator.connection_id, envelope.event
        )
        await coordinator.reject(f"unknown event: {envelope.event}")
