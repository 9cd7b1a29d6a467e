"""
Expiry sweeper for blasts whose offer window has passed.

Runs from Celery beat, from a per-blast task scheduled at ``expires_at``,
from the process_blast_expiry command and lazily before drivers list their
offers. Uses the same conditional write as the arbiter, so an accept that
lands before the sweep keeps the load and a sweep that lands first wins.
"""

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from loads.models import DispatchBlast, Load
from realtime.notifications import queue_dispatcher_event, queue_push
from .arbiter import complete_handoff
from .blast_lifecycle import close_open_responses, revert_load_after_close

logger = logging.getLogger(__name__)

EXPIRY_ACTOR = "system:expiry"


@dataclass
class SweepResult:
    expired: int = 0
    reconciled: int = 0


def expire_blast(blast_id: int, now=None) -> bool:
    """
    Expire one blast if it is still sent and past ``expires_at``.

    Returns:
        True if this call expired it; False if it was already closed or not due
    """
    now = now or timezone.now()

    with transaction.atomic():
        flipped = DispatchBlast.objects.filter(
            pk=blast_id,
            status='sent',
            expires_at__lt=now,
        ).update(status='expired', closed_at=now, updated_at=now)
        if not flipped:
            return False

        blast = DispatchBlast.objects.get(pk=blast_id)
        recipients = close_open_responses(blast, 'expired', now)
        revert_load_after_close(blast, EXPIRY_ACTOR, f"Blast #{blast.pk} expired without a winner")
        load = Load.objects.get(pk=blast.load_id)

        queue_push(
            recipients,
            "Load offer expired",
            f"The offer for load {load.reference_number or load.pk} has expired.",
            {"kind": "blast_expired", "blast_id": blast.pk, "load_id": load.pk},
        )
        queue_dispatcher_event(
            'blast_expired',
            load,
            f"Blast #{blast.pk} expired with no driver accepting",
            {"blast_id": blast.pk},
        )

    logger.info("Blast %s for load %s expired", blast_id, blast.load_id)
    return True


def reconcile_accepted_blasts() -> int:
    """
    Finish handoffs that failed after a blast was won.

    A load still ``blasted`` with no open blast can only be waiting on the
    winner of its latest accepted blast.
    """
    stranded = (
        DispatchBlast.objects.filter(
            status='accepted',
            load__status='blasted',
            load__driver__isnull=True,
        )
        .exclude(load__blasts__status__in=DispatchBlast.OPEN_STATUSES)
        .order_by('load_id', '-accepted_at')
    )

    reconciled = 0
    seen_loads = set()
    for blast in stranded:
        if blast.load_id in seen_loads:
            continue
        seen_loads.add(blast.load_id)
        if complete_handoff(blast.pk):
            logger.info("Reconciled handoff for blast %s", blast.pk)
            reconciled += 1
    return reconciled


def sweep_expired_blasts(now=None) -> SweepResult:
    """Expire every overdue blast and reconcile stranded handoffs."""
    now = now or timezone.now()
    result = SweepResult()

    due_ids = list(
        DispatchBlast.objects.filter(status='sent', expires_at__lt=now).values_list('pk', flat=True)
    )
    for blast_id in due_ids:
        try:
            if expire_blast(blast_id, now):
                result.expired += 1
        except Exception:
            logger.exception("Failed to expire blast %s", blast_id)

    result.reconciled = reconcile_accepted_blasts()

    if result.expired or result.reconciled:
        logger.info("Blast sweep: %d expired, %d reconciled", result.expired, result.reconciled)
    return result
