"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    DRIVER_ASSIGNED = "driver_assigned"
    DRIVER_ARRIVING = "driver_arriving"
    ONGOING = "ongoing"
    COMPLETED = "completed"


# Statuses during which a ride is in flight and may be cancelled
ACTIVE_STATUSES: frozenset[RideStatus] = frozenset(
    {
        RideStatus.REQUESTED,
        RideStatus.DRIVER_ASSIGNED,
        RideStatus.DRIVER_ARRIVING,
        RideStatus.ONGOING,
    }
)

# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.IDLE: {RideStatus.REQUESTED},
    RideStatus.REQUESTED: {RideStatus.DRIVER_ASSIGNED, RideStatus.IDLE},
    RideStatus.DRIVER_ASSIGNED: {RideStatus.DRIVER_ARRIVING, RideStatus.IDLE},
    RideStatus.DRIVER_ARRIVING: {RideStatus.ONGOING, RideStatus.IDLE},
    RideStatus.ONGOING: {RideStatus.COMPLETED, RideStatus.IDLE},
    # completed is terminal for the ride; the session may be acknowledged
    # back to idle or start a new ride
    RideStatus.COMPLETED: {RideStatus.IDLE, RideStatus.REQUESTED},
}


class ClientEvent(str, enum.Enum):
    """Commands a rider client sends over the realtime channel."""

    REQUEST_RIDE = "requestRide"
    CANCEL_RIDE = "cancelRide"


class ServerEvent(str, enum.Enum):
    """Events the coordinator emits to its connection."""

    DRIVER_ASSIGNED = "driverAssigned"
    DRIVER_LOCATION = "driverLocation"
    RIDE_STATUS = "rideStatus"
    ERROR = "error"


def parse_status(value: object) -> RideStatus | None:
    """Return the matching ``RideStatus`` or ``None`` for unknown input."""
    try:
        return RideStatus(value)
    except (ValueError, TypeError):
        return None
