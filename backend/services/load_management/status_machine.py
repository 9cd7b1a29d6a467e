"""
Load status state machine.

Every status change of a Load (dispatcher edits, driver actions, geofence
detections, blast arbitration) goes through transition_load(), which
validates the edge, writes the row conditionally and appends exactly one
LoadStatusEvent.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from common.utils import calculate_distance
from loads.models import Load, LoadStatusEvent
from realtime.notifications import queue_dispatcher_event, queue_push
from .exceptions import (
    AssignmentConflictError,
    DriverRequiredError,
    InvalidStatusError,
    InvalidTransitionError,
    LoadNotFoundError,
    OutsideGeofenceError,
)

logger = logging.getLogger(__name__)


# Maps each status to the statuses it may move to. Anything else is illegal.
# completed is final; cancelled/failed only reopen to pending.
ALLOWED_TRANSITIONS = {
    'pending':          ('assigned', 'blasted', 'cancelled', 'failed'),
    'blasted':          ('assigned', 'pending', 'in_progress', 'cancelled', 'failed'),
    'assigned':         ('in_progress', 'arrived_pickup', 'pending', 'cancelled', 'failed'),
    'in_progress':      ('arrived_pickup', 'in_transit', 'arrived_delivery', 'delivered', 'cancelled', 'failed'),
    'arrived_pickup':   ('in_transit', 'in_progress', 'cancelled', 'failed'),
    'in_transit':       ('arrived_delivery', 'delivered', 'cancelled', 'failed'),
    'arrived_delivery': ('delivered', 'completed', 'in_transit', 'cancelled', 'failed'),
    'delivered':        ('completed', 'cancelled', 'failed'),
    'completed':        (),
    'cancelled':        ('pending',),
    'failed':           ('pending',),
}

ALL_STATUSES = frozenset(ALLOWED_TRANSITIONS)

# A driver working one of these cannot take another load
ACTIVE_STATUSES = ('assigned', 'in_progress', 'arrived_pickup', 'in_transit', 'arrived_delivery')

TERMINAL_STATUSES = ('completed', 'cancelled', 'failed')

DRIVER_REQUIRED_STATUSES = ACTIVE_STATUSES + ('delivered', 'completed')

UNASSIGNED_STATUSES = ('pending', 'blasted')

ARRIVAL_STATUSES = ('arrived_pickup', 'arrived_delivery')

_TIMESTAMP_FIELDS = {
    'assigned': 'assigned_at',
    'arrived_pickup': 'arrived_pickup_at',
    'in_transit': 'picked_up_at',
    'arrived_delivery': 'arrived_delivery_at',
    'delivered': 'delivered_at',
    'completed': 'completed_at',
    'cancelled': 'cancelled_at',
}

# Which stop a driver-reported status must be reported from
_GEOFENCED_STATUSES = {
    'arrived_pickup': 'pickup',
    'arrived_delivery': 'delivery',
    'delivered': 'delivery',
}


@dataclass
class StatusChange:
    """Outcome of a single transition attempt."""
    load: Load
    previous_status: str
    new_status: str
    changed: bool
    event: Optional[LoadStatusEvent] = None


@dataclass
class StatusResult:
    """Result object for updateLoadStatus-style operations."""
    success: bool
    load: Optional[Load] = None
    message: str = ""
    error_code: Optional[str] = None
    change: Optional[StatusChange] = None


def is_transition_allowed(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, ())


# ===================== Core Transition =====================

def transition_load(
    load_id: int,
    new_status: str,
    actor: str,
    reason: str = "",
    latitude=None,
    longitude=None,
    driver=None,
) -> StatusChange:
    """
    Move a load to ``new_status`` and append the audit event.

    Args:
        load_id: ID of the load
        new_status: Target status
        actor: Actor label recorded on the event (dispatcher:4, system:geofence...)
        reason: Free-text reason
        latitude: Optional coordinate where the change was reported
        longitude: Optional coordinate where the change was reported
        driver: Driver to assign (required when moving to 'assigned' without one)

    Returns:
        StatusChange; ``changed`` is False when the load already had the status

    Raises:
        InvalidStatusError, LoadNotFoundError, InvalidTransitionError,
        DriverRequiredError, AssignmentConflictError
    """
    if new_status not in ALL_STATUSES:
        raise InvalidStatusError(f"Unknown load status: {new_status}")

    with transaction.atomic():
        try:
            load = Load.objects.select_for_update().get(pk=load_id)
        except Load.DoesNotExist:
            raise LoadNotFoundError(f"Load {load_id} not found")

        previous = load.status
        if previous == new_status:
            return StatusChange(load=load, previous_status=previous, new_status=new_status, changed=False)

        if not is_transition_allowed(previous, new_status):
            raise InvalidTransitionError(previous, new_status)

        now = timezone.now()
        updates = {'status': new_status, 'updated_at': now}
        guard = Q(pk=load.pk, status=previous)

        if new_status == 'assigned':
            target = driver if driver is not None else load.driver
            if target is None:
                raise DriverRequiredError("A driver is required to assign a load")
            if load.driver_id is not None and load.driver_id != target.pk:
                raise AssignmentConflictError(
                    f"Load {load.pk} is already held by driver {load.driver_id}"
                )
            # Never overwrite another driver's claim
            guard &= Q(driver__isnull=True) | Q(driver=target)
            updates['driver'] = target
        elif new_status in UNASSIGNED_STATUSES:
            updates['driver'] = None

        timestamp_field = _TIMESTAMP_FIELDS.get(new_status)
        if timestamp_field:
            updates[timestamp_field] = now

        if Load.objects.filter(guard).update(**updates) == 0:
            raise AssignmentConflictError(f"Load {load.pk} changed while moving to '{new_status}'")

        for field, value in updates.items():
            setattr(load, field, value)

        event = LoadStatusEvent.objects.create(
            load=load,
            previous_status=previous,
            new_status=new_status,
            changed_by=actor,
            reason=reason or "",
            latitude=latitude,
            longitude=longitude,
            created_at=now,
        )

        logger.info("Load %s: %s -> %s (%s)", load.pk, previous, new_status, actor)
        _queue_side_effects(load, previous, new_status)

    return StatusChange(
        load=load,
        previous_status=previous,
        new_status=new_status,
        changed=True,
        event=event,
    )


def assign_driver(load_id: int, driver, actor: str, reason: str = "") -> StatusChange:
    """
    Hand a pending/blasted load to a driver.

    Idempotent: a load already owned by the same driver is left alone.

    Raises:
        AssignmentConflictError: if the load is held by someone else or has
            moved past the point where it can be assigned
    """
    with transaction.atomic():
        try:
            load = Load.objects.select_for_update().get(pk=load_id)
        except Load.DoesNotExist:
            raise LoadNotFoundError(f"Load {load_id} not found")

        if load.driver_id == driver.pk and load.status in DRIVER_REQUIRED_STATUSES:
            return StatusChange(load=load, previous_status=load.status, new_status=load.status, changed=False)

        if load.status not in UNASSIGNED_STATUSES or load.driver_id is not None:
            raise AssignmentConflictError(
                f"Load {load.pk} is {load.status} with driver {load.driver_id}; cannot assign driver {driver.pk}"
            )

        return transition_load(load.pk, 'assigned', actor, reason, driver=driver)


# ===================== Exposed Operation =====================

def update_load_status(
    load_id: int,
    new_status: str,
    actor: str,
    reason: Optional[str] = None,
    latitude=None,
    longitude=None,
    driver=None,
    force: bool = False,
) -> StatusResult:
    """
    Manual (dispatcher or driver initiated) status change.

    Goes through the same validation as geofence-triggered changes; conflicts
    come back as unsuccessful results rather than exceptions. Moving a blasted
    load anywhere by hand first withdraws its blast, in the same transaction,
    so no driver can win a load that has already been moved on.

    Args:
        force: Assign even when the driver is already working another load

    Raises:
        LoadNotFoundError: if the load does not exist
    """
    try:
        load = Load.objects.get(pk=load_id)
    except Load.DoesNotExist:
        raise LoadNotFoundError(f"Load {load_id} not found")

    if new_status == 'assigned' and not force:
        busy_load = _active_load_for(driver or load.driver, exclude=load)
        if busy_load is not None:
            return StatusResult(
                success=False,
                load=load,
                message=(
                    f"Driver {busy_load.driver_id} already has an active load "
                    f"({busy_load.reference_number or busy_load.pk}, status: {busy_load.status}). "
                    "Send force to assign anyway."
                ),
                error_code='driver_busy',
            )

    try:
        if latitude is not None and longitude is not None:
            _enforce_geofence(load, new_status, latitude, longitude)
        with transaction.atomic():
            if load.status == 'blasted' and new_status != 'blasted':
                conflict = _withdraw_blast(load, new_status, actor)
                if conflict:
                    return StatusResult(success=False, load=load, message=conflict, error_code='assignment_conflict')
            change = transition_load(
                load.pk, new_status, actor, reason or "",
                latitude=latitude, longitude=longitude, driver=driver,
            )
    except InvalidStatusError as e:
        return StatusResult(success=False, load=load, message=str(e), error_code='invalid_status')
    except InvalidTransitionError as e:
        return StatusResult(success=False, load=load, message=str(e), error_code='invalid_transition')
    except DriverRequiredError as e:
        return StatusResult(success=False, load=load, message=str(e), error_code='driver_required')
    except AssignmentConflictError as e:
        return StatusResult(success=False, load=load, message=str(e), error_code='assignment_conflict')
    except OutsideGeofenceError as e:
        return StatusResult(success=False, load=load, message=str(e), error_code='outside_geofence')

    if change.changed and new_status == 'assigned':
        queue_push(
            [change.load.driver.user_id],
            "Load assigned",
            f"Load {change.load.reference_number or change.load.pk} has been assigned to you.",
            {"load_id": change.load.pk, "kind": "load_assigned"},
        )

    message = (
        f"Load moved to {new_status}" if change.changed else f"Load already {new_status}"
    )
    return StatusResult(success=True, load=change.load, message=message, change=change)


# ===================== Helper Functions =====================

def _active_load_for(driver, exclude: Load) -> Optional[Load]:
    if driver is None:
        return None
    return (
        Load.objects.filter(driver=driver, status__in=ACTIVE_STATUSES)
        .exclude(pk=exclude.pk)
        .order_by('assigned_at')
        .first()
    )


def _withdraw_blast(load: Load, new_status: str, actor: str) -> Optional[str]:
    """
    Close the blast of a blasted load before it is moved by hand.

    The load stays blasted until the caller's transition, so the blast CAS
    decides against a concurrent accept.

    Returns:
        A conflict message if a driver has already won the load, else None
    """
    from services.dispatch import ALREADY_ASSIGNED, cancel_open_blast_for_load

    ref = load.reference_number or load.pk
    result = cancel_open_blast_for_load(
        load, reason=f"Load moved to {new_status} manually", actor=actor, revert_load=False,
    )
    if result is not None:
        if result.outcome == ALREADY_ASSIGNED:
            return f"Load {ref} was just accepted by driver {result.blast.accepted_by_id}"
        return None

    # No open blast left: a blasted load is then waiting on its winner's handoff
    won = load.blasts.filter(status='accepted').order_by('-accepted_at').first()
    if won is not None:
        return f"Load {ref} is being handed to driver {won.accepted_by_id}"
    return None


def _enforce_geofence(load: Load, new_status: str, latitude, longitude):
    stop = _GEOFENCED_STATUSES.get(new_status)
    if stop is None:
        return

    target_lat = getattr(load, f"{stop}_latitude")
    target_lng = getattr(load, f"{stop}_longitude")
    if target_lat is None or target_lng is None:
        return

    limit = getattr(settings, "GEOFENCE_ENFORCEMENT_RADIUS_METERS", 200)
    distance = calculate_distance(target_lat, target_lng, latitude, longitude)
    if distance > limit:
        raise OutsideGeofenceError(distance, limit, stop)


def _queue_side_effects(load: Load, previous: str, new_status: str):
    """Schedule notifications for after the transition commits."""
    queue_dispatcher_event(
        f"load_{new_status}",
        load,
        f"Load {load.reference_number or load.pk} moved from {previous} to {new_status}",
        {"previous_status": previous},
    )

    if new_status in ARRIVAL_STATUSES and load.driver_id and getattr(settings, "GEOFENCE_NOTIFY_DRIVER", True):
        stop = "pickup" if new_status == 'arrived_pickup' else "delivery"
        queue_push(
            [load.driver.user_id],
            "Arrival confirmed",
            f"You have arrived at the {stop} for load {load.reference_number or load.pk}.",
            {"load_id": load.pk, "kind": new_status},
        )
