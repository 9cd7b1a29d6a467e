"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - load_management: Load status machine, geofencing and SLA reporting
    - dispatch: Blasting loads to drivers and arbitrating the winner
"""

# Expose commonly used functions at package level
from .load_management import (
    transition_load,
    update_load_status,
    process_location_update,
    find_late_loads,
    LoadNotFoundError,
    InvalidStatusError,
    InvalidTransitionError,
    DriverRequiredError,
    AssignmentConflictError,
    OutsideGeofenceError,
)
from .dispatch import (
    create_blast,
    cancel_blast,
    respond,
    accept_blast,
    list_active_blasts_for_driver,
    sweep_expired_blasts,
    get_driver_suggestion,
    InvalidRadiusError,
    InvalidExpiryError,
    MissingCoordinatesError,
    LoadAlreadyBlastedError,
    LoadNotBlastableError,
    BlastNotFoundError,
    OfferNotFoundError,
)

__all__ = [
    # Load management
    "transition_load",
    "update_load_status",
    "process_location_update",
    "find_late_loads",
    # Dispatch
    "create_blast",
    "cancel_blast",
    "respond",
    "accept_blast",
    "list_active_blasts_for_driver",
    "sweep_expired_blasts",
    "get_driver_suggestion",
    # Exceptions
    "LoadNotFoundError",
    "InvalidStatusError",
    "InvalidTransitionError",
    "DriverRequiredError",
    "AssignmentConflictError",
    "OutsideGeofenceError",
    "InvalidRadiusError",
    "InvalidExpiryError",
    "MissingCoordinatesError",
    "LoadAlreadyBlastedError",
    "LoadNotBlastableError",
    "BlastNotFoundError",
    "OfferNotFoundError",
]
