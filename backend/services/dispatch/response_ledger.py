"""
Response ledger: one BlastResponse row per notified driver.

Drivers view, decline or accept the offers they were sent. Viewing and
declining only touch the driver's own row; accepting is delegated to the
arbiter.
"""

import logging
from typing import List

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from loads.models import BlastResponse, DispatchBlast
from realtime.notifications import queue_dispatcher_event
from .arbiter import accept_blast
from .blast_lifecycle import (
    DECLINED,
    VIEWED,
    BlastResult,
    closed_outcome,
    get_blast,
)
from .exceptions import OfferNotFoundError
from .expiry import sweep_expired_blasts

logger = logging.getLogger(__name__)

RESPONSE_ACTIONS = ('view', 'decline', 'accept')


def _get_response(blast: DispatchBlast, driver) -> BlastResponse:
    try:
        return BlastResponse.objects.get(blast=blast, driver=driver)
    except BlastResponse.DoesNotExist:
        raise OfferNotFoundError(f"Blast {blast.pk} was not offered to driver {driver.pk}")


def mark_viewed(blast_id: int, driver) -> BlastResult:
    """notified -> viewed. Idempotent; nothing changes once the blast is closed."""
    blast = get_blast(blast_id)
    response = _get_response(blast, driver)

    if blast.status != 'sent':
        return closed_outcome(blast, driver)

    now = timezone.now()
    with transaction.atomic():
        if BlastResponse.objects.filter(pk=response.pk, status='notified').update(
            status='viewed', viewed_at=now
        ):
            DispatchBlast.objects.filter(pk=blast.pk, status='sent').update(
                drivers_viewed=F('drivers_viewed') + 1
            )

    return BlastResult(True, VIEWED, blast, "Offer viewed")


def decline(blast_id: int, driver, reason: str = "") -> BlastResult:
    """notified|viewed -> declined. Other drivers are unaffected."""
    blast = get_blast(blast_id)
    response = _get_response(blast, driver)

    if response.status == 'declined':
        return BlastResult(True, DECLINED, blast, "Offer declined")

    if blast.status != 'sent':
        return closed_outcome(blast, driver)

    now = timezone.now()
    with transaction.atomic():
        declined = BlastResponse.objects.filter(
            pk=response.pk,
            status__in=BlastResponse.OPEN_STATUSES,
        ).update(
            status='declined',
            decline_reason=reason or "",
            responded_at=now,
            response_time_ms=max(0, int((now - response.notified_at).total_seconds() * 1000)),
        )
        if not declined:
            # Closed between our read and the write
            blast.refresh_from_db()
            return closed_outcome(blast, driver)

        DispatchBlast.objects.filter(pk=blast.pk).update(drivers_declined=F('drivers_declined') + 1)
        queue_dispatcher_event(
            'blast_declined',
            blast.load,
            f"Driver {driver.user.username} declined blast #{blast.pk}",
            {"blast_id": blast.pk, "driver_id": driver.pk, "reason": reason or ""},
        )

    logger.info("Driver %s declined blast %s", driver.pk, blast.pk)
    return BlastResult(True, DECLINED, blast, "Offer declined")


def respond(blast_id: int, driver, action: str, reason: str = "") -> BlastResult:
    """
    Record a driver's response to a blast.

    Args:
        blast_id: ID of the blast
        driver: Responding Driver
        action: view | decline | accept
        reason: Decline reason (decline only)

    Returns:
        BlastResult; accept yields ``assigned`` or ``already_assigned``

    Raises:
        BlastNotFoundError, OfferNotFoundError
    """
    if action == 'view':
        return mark_viewed(blast_id, driver)
    if action == 'decline':
        return decline(blast_id, driver, reason)
    if action == 'accept':
        return accept_blast(blast_id, driver)
    return BlastResult(False, action, None, f"Unknown action '{action}'", 'invalid_action')


def list_active_blasts_for_driver(driver, now=None) -> List[DispatchBlast]:
    """Offers the driver can still act on: sent, unexpired and not yet answered."""
    now = now or timezone.now()
    sweep_expired_blasts(now)

    return list(
        DispatchBlast.objects.filter(
            status='sent',
            expires_at__gt=now,
            responses__driver=driver,
            responses__status__in=BlastResponse.OPEN_STATUSES,
        )
        .select_related('load')
        .order_by('expires_at', 'id')
    )
