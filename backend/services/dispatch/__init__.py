"""
Dispatch service - offering loads to drivers.

This module handles:
    - Eligible driver selection for a load
    - Blast lifecycle (create, send, cancel)
    - Driver responses (view, decline, accept)
    - Race-free arbitration of the winning driver
    - Expiry sweeping and handoff reconciliation
    - Driver suggestions for manual assignment
"""

from .eligibility import Candidate, find_eligible_drivers
from .blast_lifecycle import (
    ASSIGNED,
    ALREADY_ASSIGNED,
    BLAST_EXPIRED,
    BLAST_CANCELLED,
    VIEWED,
    DECLINED,
    CANCELLED,
    BlastResult,
    create,
    send,
    create_blast,
    cancel_blast,
    cancel_open_blast_for_load,
)
from .arbiter import accept_blast, complete_handoff
from .response_ledger import (
    RESPONSE_ACTIONS,
    mark_viewed,
    decline,
    respond,
    list_active_blasts_for_driver,
)
from .expiry import SweepResult, expire_blast, sweep_expired_blasts, reconcile_accepted_blasts
from .suggestion import DriverSuggestion, get_driver_suggestion
from .exceptions import (
    InvalidRadiusError,
    InvalidExpiryError,
    MissingCoordinatesError,
    LoadAlreadyBlastedError,
    LoadNotBlastableError,
    BlastNotFoundError,
    OfferNotFoundError,
)

__all__ = [
    # Eligibility
    "Candidate",
    "find_eligible_drivers",
    # Blast lifecycle
    "ASSIGNED",
    "ALREADY_ASSIGNED",
    "BLAST_EXPIRED",
    "BLAST_CANCELLED",
    "VIEWED",
    "DECLINED",
    "CANCELLED",
    "BlastResult",
    "create",
    "send",
    "create_blast",
    "cancel_blast",
    "cancel_open_blast_for_load",
    # Responses
    "RESPONSE_ACTIONS",
    "mark_viewed",
    "decline",
    "respond",
    "accept_blast",
    "complete_handoff",
    "list_active_blasts_for_driver",
    # Expiry
    "SweepResult",
    "expire_blast",
    "sweep_expired_blasts",
    "reconcile_accepted_blasts",
    # Suggestions
    "DriverSuggestion",
    "get_driver_suggestion",
    # Exceptions
    "InvalidRadiusError",
    "InvalidExpiryError",
    "MissingCoordinatesError",
    "LoadAlreadyBlastedError",
    "LoadNotBlastableError",
    "BlastNotFoundError",
    "OfferNotFoundError",
]
