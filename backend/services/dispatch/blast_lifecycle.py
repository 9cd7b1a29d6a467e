"""
Blast lifecycle: draft -> sent -> (accepted | expired | cancelled).

A blast offers one pending load to every eligible driver at once. Every
change of ``DispatchBlast.status`` is a conditional update, so acceptance,
cancellation and expiry can race freely: whichever write lands first wins
and the others see zero rows updated.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from loads.models import BlastResponse, DispatchBlast, Load
from realtime.notifications import queue_dispatcher_event, queue_push
from services.load_management.exceptions import LoadNotFoundError
from services.load_management.status_machine import transition_load
from .eligibility import find_eligible_drivers
from .exceptions import (
    BlastNotFoundError,
    InvalidExpiryError,
    InvalidRadiusError,
    LoadAlreadyBlastedError,
    LoadNotBlastableError,
    MissingCoordinatesError,
)

logger = logging.getLogger(__name__)

BLAST_ACTOR = "system:blast"

# Load statuses a blast may be created from
BLASTABLE_STATUSES = ('pending',)

# Outcomes reported back to drivers and dispatchers
ASSIGNED = 'assigned'
ALREADY_ASSIGNED = 'already_assigned'
BLAST_EXPIRED = 'blast_expired'
BLAST_CANCELLED = 'blast_cancelled'
VIEWED = 'viewed'
DECLINED = 'declined'
CANCELLED = 'cancelled'


@dataclass
class BlastResult:
    """Result object for blast operations."""
    success: bool
    outcome: str
    blast: Optional[DispatchBlast] = None
    message: str = ""
    error_code: Optional[str] = None


def closed_outcome(blast: DispatchBlast, driver=None) -> BlastResult:
    """Describe a blast that is no longer taking responses."""
    if blast.status == 'accepted':
        if driver is not None and blast.accepted_by_id == driver.pk:
            return BlastResult(True, ASSIGNED, blast, "Load is assigned to you")
        return BlastResult(False, ALREADY_ASSIGNED, blast, "Load no longer available", ALREADY_ASSIGNED)
    if blast.status == 'expired':
        return BlastResult(False, BLAST_EXPIRED, blast, "This load offer has expired", BLAST_EXPIRED)
    if blast.status == 'cancelled':
        return BlastResult(False, BLAST_CANCELLED, blast, "This load offer was cancelled", BLAST_CANCELLED)
    return BlastResult(False, blast.status, blast, f"Blast is {blast.status}", 'blast_not_sent')


def get_blast(blast_id: int) -> DispatchBlast:
    try:
        return DispatchBlast.objects.select_related('load').get(pk=blast_id)
    except DispatchBlast.DoesNotExist:
        raise BlastNotFoundError(f"Blast {blast_id} not found")


def _actor_for(user) -> str:
    return user.actor_label if user is not None else BLAST_ACTOR


# ===================== Create / Send =====================

def create(
    load: Load,
    radius_miles: float,
    expires_at,
    created_by=None,
    message: str = "",
    priority: str = 'normal',
    hub_agnostic: bool = False,
) -> DispatchBlast:
    """
    Create a draft blast for a load.

    Raises:
        InvalidRadiusError, InvalidExpiryError, MissingCoordinatesError,
        LoadAlreadyBlastedError, LoadNotBlastableError
    """
    if radius_miles is None or radius_miles <= 0:
        raise InvalidRadiusError("Blast radius must be greater than 0 miles")

    if expires_at is None or expires_at <= timezone.now():
        raise InvalidExpiryError("Blast expiry must be in the future")

    if not load.has_pickup_coordinates:
        raise MissingCoordinatesError(f"Load {load.pk} has no pickup coordinates")

    if load.blasts.filter(status__in=DispatchBlast.OPEN_STATUSES).exists():
        raise LoadAlreadyBlastedError(f"Load {load.pk} already has an active blast")

    if load.status not in BLASTABLE_STATUSES:
        raise LoadNotBlastableError(f"Load {load.pk} is {load.status}; only pending loads can be blasted")

    try:
        with transaction.atomic():
            blast = DispatchBlast.objects.create(
                load=load,
                created_by=created_by,
                hub=load.hub,
                hub_agnostic=hub_agnostic,
                message=message or "",
                priority=priority,
                radius_miles=float(radius_miles),
                expires_at=expires_at,
                status='draft',
                prior_load_status=load.status,
            )
    except IntegrityError:
        # Lost a race with another dispatcher blasting the same load
        raise LoadAlreadyBlastedError(f"Load {load.pk} already has an active blast")

    return blast


def send(blast: DispatchBlast, now=None) -> int:
    """
    Move a draft blast to sent and notify every eligible driver.

    Returns:
        Number of drivers notified
    """
    now = now or timezone.now()

    with transaction.atomic():
        if not DispatchBlast.objects.filter(pk=blast.pk, status='draft').update(
            status='sent', blast_sent_at=now, updated_at=now
        ):
            blast.refresh_from_db()
            logger.warning("Blast %s is %s; not sending", blast.pk, blast.status)
            return 0

        load = transition_load(
            blast.load_id,
            'blasted',
            _actor_for(blast.created_by),
            reason=f"Blast #{blast.pk} sent ({blast.radius_miles:g} mi)",
        ).load

        candidates = find_eligible_drivers(load, blast.radius_miles, hub_agnostic=blast.hub_agnostic, now=now)
        for candidate in candidates:
            BlastResponse.objects.create(
                blast=blast,
                driver=candidate.driver,
                status='notified',
                distance_miles=candidate.distance_miles,
                notified_at=now,
            )
            DispatchBlast.objects.filter(pk=blast.pk).update(drivers_notified=F('drivers_notified') + 1)

            queue_push(
                [candidate.driver.user_id],
                "New load available",
                blast.message or f"Load {load.reference_number or load.pk} is {candidate.distance_miles:.1f} mi away.",
                {
                    "kind": "blast_offer",
                    "blast_id": blast.pk,
                    "load_id": load.pk,
                    "distance_miles": candidate.distance_miles,
                    "priority": blast.priority,
                    "expires_at": blast.expires_at.isoformat(),
                },
            )

        blast.refresh_from_db()
        queue_dispatcher_event(
            'blast_sent',
            load,
            f"Blast #{blast.pk} sent to {len(candidates)} driver(s)",
            {"blast_id": blast.pk, "drivers_notified": len(candidates)},
        )
        transaction.on_commit(lambda: schedule_expiry(blast))

    logger.info("Blast %s for load %s sent to %d driver(s)", blast.pk, blast.load_id, len(candidates))
    return len(candidates)


def schedule_expiry(blast: DispatchBlast) -> None:
    """Queue the Celery task that expires the blast at ``expires_at``."""
    from loads.tasks import expire_blast_task

    try:
        expire_blast_task.apply_async((blast.pk,), eta=blast.expires_at)
    except Exception:
        # The periodic sweep still expires it
        logger.exception("Could not schedule expiry for blast %s", blast.pk)


@transaction.atomic
def create_blast(
    load_id: int,
    radius_miles: Optional[float] = None,
    expires_at=None,
    message: Optional[str] = None,
    created_by=None,
    priority: str = 'normal',
    hub_agnostic: bool = False,
) -> DispatchBlast:
    """
    Offer a pending load to all eligible drivers.

    Args:
        load_id: ID of the load to blast
        radius_miles: Search radius (defaults to BLAST_DEFAULT_RADIUS_MILES)
        expires_at: When the offer lapses (defaults to now + BLAST_DEFAULT_EXPIRY_MINUTES)
        message: Optional note shown to drivers
        created_by: Dispatcher user
        priority: low | normal | high | urgent
        hub_agnostic: Offer to drivers from every hub

    Returns:
        The sent DispatchBlast

    Raises:
        LoadNotFoundError, InvalidRadiusError, InvalidExpiryError,
        MissingCoordinatesError, LoadAlreadyBlastedError, LoadNotBlastableError
    """
    try:
        load = Load.objects.select_for_update().get(pk=load_id)
    except Load.DoesNotExist:
        raise LoadNotFoundError(f"Load {load_id} not found")

    if radius_miles is None:
        radius_miles = getattr(settings, "BLAST_DEFAULT_RADIUS_MILES", 50)
    if expires_at is None:
        expires_at = timezone.now() + timedelta(
            minutes=getattr(settings, "BLAST_DEFAULT_EXPIRY_MINUTES", 30)
        )

    blast = create(
        load,
        radius_miles,
        expires_at,
        created_by=created_by,
        message=message or "",
        priority=priority,
        hub_agnostic=hub_agnostic,
    )
    send(blast)
    return blast


# ===================== Closing =====================

def close_open_responses(blast: DispatchBlast, status: str, now=None) -> List[int]:
    """
    Mark every still-open response of a closed blast as ``status``.

    Returns:
        User IDs of the affected drivers
    """
    now = now or timezone.now()
    open_responses = BlastResponse.objects.filter(blast=blast, status__in=BlastResponse.OPEN_STATUSES)
    user_ids = list(open_responses.values_list('driver__user_id', flat=True))
    open_responses.update(status=status, responded_at=now)
    return user_ids


def revert_load_after_close(blast: DispatchBlast, actor: str, reason: str):
    """Put a still-blasted load back to the status it had before the blast."""
    load = Load.objects.select_for_update().get(pk=blast.load_id)
    if load.status != 'blasted':
        return None
    return transition_load(load.pk, blast.prior_load_status, actor, reason)


def cancel_blast(blast_id: int, reason: str = "", actor: str = BLAST_ACTOR, revert_load: bool = True) -> BlastResult:
    """
    Cancel a sent blast.

    Loses cleanly against a concurrent accept or expiry: the result then
    reports what the blast became instead. With ``revert_load=False`` the
    load is left blasted for the caller to move on.
    """
    blast = get_blast(blast_id)
    now = timezone.now()

    with transaction.atomic():
        cancelled = DispatchBlast.objects.filter(pk=blast.pk, status='sent').update(
            status='cancelled',
            closed_at=now,
            cancellation_reason=reason or "",
            updated_at=now,
        )
        if not cancelled:
            blast.refresh_from_db()
            return closed_outcome(blast)

        blast.refresh_from_db()
        recipients = close_open_responses(blast, 'expired', now)
        if revert_load:
            revert_load_after_close(
                blast, actor,
                f"Blast #{blast.pk} cancelled: {reason}" if reason else f"Blast #{blast.pk} cancelled",
            )
        load = Load.objects.get(pk=blast.load_id)

        queue_push(
            recipients,
            "Load no longer available",
            f"Load {load.reference_number or load.pk} was withdrawn.",
            {"kind": "blast_cancelled", "blast_id": blast.pk, "load_id": load.pk},
        )
        queue_dispatcher_event(
            'blast_cancelled',
            load,
            f"Blast #{blast.pk} cancelled",
            {"blast_id": blast.pk, "reason": reason or ""},
        )

    logger.info("Blast %s cancelled by %s", blast.pk, actor)
    return BlastResult(True, CANCELLED, blast, "Blast cancelled")


def cancel_open_blast_for_load(
    load: Load,
    reason: str = "",
    actor: str = BLAST_ACTOR,
    revert_load: bool = True,
) -> Optional[BlastResult]:
    """Cancel the load's sent blast, if it has one."""
    blast = load.blasts.filter(status='sent').first()
    if blast is None:
        return None
    return cancel_blast(blast.pk, reason, actor, revert_load=revert_load)
