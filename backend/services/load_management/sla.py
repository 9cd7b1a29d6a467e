"""
Late load reporting.

SLA deadlines are reported to dispatchers, never enforced: nothing here
changes a load's status.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List

from django.conf import settings
from django.db.models import Max
from django.utils import timezone

from loads.models import Load
from realtime.notifications import notify_dispatchers
from .status_machine import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


@dataclass
class LateLoad:
    load: Load
    alert_type: str  # sla_breached | no_update
    minutes_late: int


def find_late_loads(now=None) -> List[LateLoad]:
    """
    Loads being worked that are past their SLA deadline or have gone quiet.

    A load is ``sla_breached`` once ``sla_deadline`` has passed, otherwise
    ``no_update`` when its last status event is older than SLA_NO_UPDATE_HOURS.
    """
    now = now or timezone.now()
    quiet_cutoff = now - timedelta(hours=getattr(settings, "SLA_NO_UPDATE_HOURS", 4))

    candidates = (
        Load.objects.filter(status__in=ACTIVE_STATUSES)
        .annotate(last_event_at=Max('status_events__created_at'))
        .order_by('sla_deadline', 'id')
    )

    late: List[LateLoad] = []
    for load in candidates:
        if load.sla_deadline is not None and load.sla_deadline < now:
            minutes = int((now - load.sla_deadline).total_seconds() // 60)
            late.append(LateLoad(load, 'sla_breached', minutes))
            continue

        last_activity = load.last_event_at or load.assigned_at or load.created_at
        if last_activity < quiet_cutoff:
            minutes = int((now - last_activity).total_seconds() // 60)
            late.append(LateLoad(load, 'no_update', minutes))

    return late


def report_late_loads(now=None) -> int:
    """Alert dispatchers about every late load; returns how many were reported."""
    late_loads = find_late_loads(now)
    for item in late_loads:
        ref = item.load.reference_number or item.load.pk
        if item.alert_type == 'sla_breached':
            message = f"Load {ref} has breached its SLA deadline by {item.minutes_late} min."
        else:
            message = f"Load {ref} has had no status update for {item.minutes_late} min."
        notify_dispatchers(item.alert_type, item.load, message, {"minutes_late": item.minutes_late})

    if late_loads:
        logger.info("Reported %d late load(s)", len(late_loads))
    return len(late_loads)
