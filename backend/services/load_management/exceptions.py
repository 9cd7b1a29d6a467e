"""Custom exceptions for load lifecycle management."""


class LoadNotFoundError(Exception):
    """Raised when a load cannot be found."""
    pass


class InvalidStatusError(Exception):
    """Raised when a status value is not part of the load lifecycle."""
    pass


class InvalidTransitionError(Exception):
    """Raised when a load cannot move from its current status to the requested one."""

    def __init__(self, from_status: str, to_status: str, message: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message or f"Cannot move load from '{from_status}' to '{to_status}'")


class DriverRequiredError(Exception):
    """Raised when assigning a load without naming a driver."""
    pass


class AssignmentConflictError(Exception):
    """Raised when a load is already owned by a different driver."""
    pass


class OutsideGeofenceError(Exception):
    """Raised when a driver reports an arrival or delivery too far from the stop."""

    def __init__(self, distance_meters: float, limit_meters: float, stop: str):
        self.distance_meters = distance_meters
        self.limit_meters = limit_meters
        self.stop = stop
        super().__init__(
            f"Too far from {stop} location ({round(distance_meters)}m away, max {round(limit_meters)}m)"
        )
