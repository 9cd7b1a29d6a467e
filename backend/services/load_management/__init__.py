"""
Load management service - the delivery lifecycle of a Load.

This module handles:
    - Validated status transitions with an append-only audit trail
    - Manual status updates from dispatchers and drivers
    - GPS geofence detection (pickup arrival/departure, delivery arrival)
    - Late load (SLA) reporting
"""

from .status_machine import (
    ALLOWED_TRANSITIONS,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    StatusChange,
    StatusResult,
    is_transition_allowed,
    transition_load,
    assign_driver,
    update_load_status,
)
from .geofence import (
    GeofenceConfig,
    GeofenceTransition,
    detect_geofence_transition,
    process_location_update,
)
from .sla import LateLoad, find_late_loads, report_late_loads
from .exceptions import (
    LoadNotFoundError,
    InvalidStatusError,
    InvalidTransitionError,
    DriverRequiredError,
    AssignmentConflictError,
    OutsideGeofenceError,
)

__all__ = [
    # State machine
    "ALLOWED_TRANSITIONS",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "StatusChange",
    "StatusResult",
    "is_transition_allowed",
    "transition_load",
    "assign_driver",
    "update_load_status",
    # Geofence
    "GeofenceConfig",
    "GeofenceTransition",
    "detect_geofence_transition",
    "process_location_update",
    # SLA
    "LateLoad",
    "find_late_loads",
    "report_late_loads",
    # Exceptions
    "LoadNotFoundError",
    "InvalidStatusError",
    "InvalidTransitionError",
    "DriverRequiredError",
    "AssignmentConflictError",
    "OutsideGeofenceError",
]
