"""
Assignment arbiter: decides the single winner of a blast.

The decision is one conditional update on the blast row:

    UPDATE dispatch_blasts
       SET status='accepted', accepted_by=:driver, accepted_at=now()
     WHERE id=:id AND status='sent' AND accepted_by IS NULL

Whoever updates the row wins. Everybody else sees zero rows and is told the
load is no longer available. Handing the load to the winner happens in a
second transaction and is safe to repeat.
"""

import logging
import time
from typing import List, Tuple

from django.conf import settings
from django.db import OperationalError, transaction
from django.utils import timezone

from loads.models import BlastResponse, DispatchBlast, Load
from realtime.notifications import queue_dispatcher_event, queue_push
from services.load_management.exceptions import (
    AssignmentConflictError,
    InvalidTransitionError,
    LoadNotFoundError,
)
from services.load_management.status_machine import assign_driver
from .blast_lifecycle import (
    ALREADY_ASSIGNED,
    ASSIGNED,
    BLAST_CANCELLED,
    DECLINED,
    BlastResult,
    closed_outcome,
    get_blast,
)
from .exceptions import OfferNotFoundError

logger = logging.getLogger(__name__)

ARBITER_ACTOR = "system:arbiter"


def _response_time_ms(response: BlastResponse, now) -> int:
    return max(0, int((now - response.notified_at).total_seconds() * 1000))


def _claim(blast_id: int, response: BlastResponse, driver, now) -> Tuple[bool, List[int]]:
    """
    One attempt at the compare-and-set.

    Returns:
        (won, user IDs of the drivers who lost)
    """
    with transaction.atomic():
        won = DispatchBlast.objects.filter(
            pk=blast_id,
            status='sent',
            accepted_by__isnull=True,
        ).update(
            status='accepted',
            accepted_by=driver,
            accepted_at=now,
            closed_at=now,
            updated_at=now,
        )
        if not won:
            return False, []

        BlastResponse.objects.filter(pk=response.pk).update(
            status='accepted',
            responded_at=now,
            response_time_ms=_response_time_ms(response, now),
        )

        losers = BlastResponse.objects.filter(
            blast_id=blast_id,
            status__in=BlastResponse.OPEN_STATUSES,
        ).exclude(pk=response.pk)
        loser_user_ids = list(losers.values_list('driver__user_id', flat=True))
        losers.update(status='lost', responded_at=now)

    return True, loser_user_ids


def _claim_with_retry(blast_id: int, response: BlastResponse, driver, now) -> Tuple[bool, List[int]]:
    max_retries = getattr(settings, "ARBITRATION_MAX_RETRIES", 3)
    backoff = getattr(settings, "ARBITRATION_RETRY_BACKOFF_SECONDS", 0.05)

    attempt = 0
    while True:
        try:
            return _claim(blast_id, response, driver, now)
        except OperationalError:
            # Same predicate on retry: a retry can only win if nobody else has
            if attempt >= max_retries:
                logger.exception("Arbitration for blast %s failed after %d retries", blast_id, attempt)
                raise
            attempt += 1
            logger.warning("Transient error arbitrating blast %s, retry %d", blast_id, attempt)
            time.sleep(backoff * attempt)


def complete_handoff(blast_id: int) -> bool:
    """
    Assign the blast's load to its winner.

    Idempotent: a load already assigned to the winner is left alone. A load
    taken by someone else in the meantime is reported and left alone.

    Returns:
        True if the load is (now) assigned to the winner
    """
    blast = DispatchBlast.objects.select_related('accepted_by').get(pk=blast_id)
    if blast.status != 'accepted' or blast.accepted_by is None:
        return False

    try:
        assign_driver(
            blast.load_id,
            blast.accepted_by,
            ARBITER_ACTOR,
            reason=f"Accepted blast #{blast.pk}",
        )
    except AssignmentConflictError as e:
        logger.warning("Handoff for blast %s refused: %s", blast.pk, e)
        return False
    except (InvalidTransitionError, LoadNotFoundError) as e:
        logger.warning("Handoff for blast %s failed: %s", blast.pk, e)
        return False

    return True


def accept_blast(blast_id: int, driver, now=None) -> BlastResult:
    """
    Try to win a blast for ``driver``.

    Losing is a normal outcome, returned as ``already_assigned`` (or
    ``blast_expired``/``blast_cancelled``), never raised.

    Raises:
        BlastNotFoundError: blast does not exist
        OfferNotFoundError: driver was never offered this blast
    """
    blast = get_blast(blast_id)
    try:
        response = BlastResponse.objects.get(blast=blast, driver=driver)
    except BlastResponse.DoesNotExist:
        raise OfferNotFoundError(f"Blast {blast_id} was not offered to driver {driver.pk}")

    if response.status == 'declined':
        return BlastResult(False, DECLINED, blast, "You already declined this load", 'already_declined')

    now = now or timezone.now()
    won, loser_user_ids = _claim_with_retry(blast.pk, response, driver, now)

    if not won:
        blast.refresh_from_db()
        result = closed_outcome(blast, driver)
        if result.outcome != ASSIGNED:
            logger.info("Driver %s lost blast %s (%s)", driver.pk, blast.pk, result.outcome)
            return result
        # Repeat accept by the winner: finish a handoff that may have failed
        if complete_handoff(blast.pk) or Load.objects.filter(pk=blast.load_id, driver=driver).exists():
            return result
        return _withdrawn(blast, driver)

    logger.info("Driver %s won blast %s for load %s", driver.pk, blast.pk, blast.load_id)

    handed_off = None
    try:
        handed_off = complete_handoff(blast.pk)
    except Exception:
        # The sweeper reconciles accepted blasts whose load is still blasted
        logger.exception("Handoff for blast %s failed; will be reconciled", blast.pk)

    blast.refresh_from_db()
    load = Load.objects.get(pk=blast.load_id)
    ref = load.reference_number or load.pk

    if load.driver_id is not None and load.driver_id != driver.pk:
        # Dispatcher assigned the load by hand while the blast was still open
        return BlastResult(False, ALREADY_ASSIGNED, blast, "Load no longer available", ALREADY_ASSIGNED)
    if handed_off is False:
        return _withdrawn(blast, driver)

    queue_push(
        [driver.user_id],
        "Load confirmed",
        f"Load {ref} is yours.",
        {"kind": "blast_won", "blast_id": blast.pk, "load_id": load.pk},
    )
    if getattr(settings, "BLAST_NOTIFY_LOSERS", True):
        queue_push(
            loser_user_ids,
            "Load no longer available",
            f"Load {ref} was taken by another driver.",
            {"kind": "blast_lost", "blast_id": blast.pk, "load_id": load.pk},
        )
    queue_dispatcher_event(
        'blast_accepted',
        load,
        f"Blast #{blast.pk} accepted by {driver.user.username}",
        {"blast_id": blast.pk, "accepted_by": driver.pk},
    )

    return BlastResult(True, ASSIGNED, blast, "Load assigned to you")


def _withdrawn(blast: DispatchBlast, driver) -> BlastResult:
    """The driver won the blast but the load was moved on before the handoff."""
    load = Load.objects.get(pk=blast.load_id)
    logger.warning(
        "Driver %s won blast %s but load %s is %s; not awarded",
        driver.pk, blast.pk, load.pk, load.status,
    )
    if load.driver_id is not None:
        return BlastResult(False, ALREADY_ASSIGNED, blast, "Load no longer available", ALREADY_ASSIGNED)
    return BlastResult(False, BLAST_CANCELLED, blast, "This load was withdrawn", BLAST_CANCELLED)
