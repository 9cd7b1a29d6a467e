"""Celery tasks for load dispatch background processing."""

from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


@shared_task
def expire_blast_task(blast_id: int):
    """
    Celery task to expire a blast once its offer window has passed.

    Scheduled with ``eta=expires_at`` when the blast is sent. If the blast
    was accepted or cancelled in the meantime (or the task runs early) this
    is a no-op.
    """
    from services.dispatch import expire_blast

    try:
        if expire_blast(blast_id):
            logger.info(f"Expired blast {blast_id}")
        else:
            logger.debug(f"Blast {blast_id} already closed or not yet due")
        return True
    except Exception as e:
        logger.error(f"Error expiring blast {blast_id}: {e}")
        return False


@shared_task
def sweep_expired_blasts_task():
    """Periodic safety net: expire overdue blasts and finish stranded handoffs."""
    from services.dispatch import sweep_expired_blasts

    result = sweep_expired_blasts()
    return {"expired": result.expired, "reconciled": result.reconciled}


@shared_task
def check_late_loads_task():
    """Alert dispatchers about loads past their SLA or without recent updates."""
    from services.load_management import report_late_loads

    return report_late_loads()


@shared_task
def cleanup_gps_history_task():
    """Drop GPS breadcrumbs older than GPS_HISTORY_RETENTION_HOURS."""
    from drivers.models import DriverLocation

    hours = getattr(settings, "GPS_HISTORY_RETENTION_HOURS", 2)
    cutoff = timezone.now() - timedelta(hours=hours)
    deleted, _ = DriverLocation.objects.filter(recorded_at__lt=cutoff).delete()
    if deleted:
        logger.info(f"Deleted {deleted} GPS point(s) older than {hours}h")
    return deleted
