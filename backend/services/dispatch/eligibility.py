"""
Build the ordered candidate list of drivers for a blast.

Drivers are measured against the load's pickup point using their last known
position, closest first.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Tuple

from django.conf import settings
from django.utils import timezone

from common.utils import distance_miles
from drivers.models import Driver
from loads.models import Load
from services.load_management.status_machine import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    driver: Driver
    distance_miles: Optional[float]


def _sort_key(candidate: Candidate):
    # Unknown distance and unknown shift start sort last
    shift = candidate.driver.shift_started_at
    return (
        candidate.distance_miles is None,
        candidate.distance_miles or 0.0,
        shift is None,
        shift.timestamp() if shift else 0.0,
        candidate.driver.pk,
    )


def find_eligible_drivers(
    load: Load,
    radius_miles: Optional[float],
    *,
    hub_agnostic: bool = False,
    pickup: Optional[Tuple[float, float]] = None,
    require_location: bool = True,
    now=None,
) -> List[Candidate]:
    """
    Drivers who may be offered ``load``.

    Args:
        load: The load being offered
        radius_miles: Max distance from pickup; None means no distance limit
        hub_agnostic: Ignore hub matching
        pickup: (lat, lng) override for the load's pickup coordinates
        require_location: Drop drivers without a fresh GPS fix
        now: Reference time for location staleness

    Returns:
        Candidates ordered by distance, then longest idle shift first
    """
    now = now or timezone.now()
    stale_after = timedelta(minutes=getattr(settings, "DRIVER_LOCATION_STALE_MINUTES", 30))

    if pickup is None and load.has_pickup_coordinates:
        pickup = (float(load.pickup_latitude), float(load.pickup_longitude))

    drivers = Driver.objects.select_related('user').filter(status='active')
    if not hub_agnostic:
        drivers = drivers.filter(hub__iexact=load.hub)
    if load.vehicle_type:
        drivers = drivers.filter(vehicle_type__iexact=load.vehicle_type)

    # Busy drivers: anyone already working another load
    busy_ids = set(
        Load.objects.filter(status__in=ACTIVE_STATUSES, driver__isnull=False)
        .exclude(pk=load.pk)
        .values_list('driver_id', flat=True)
    )

    candidates: List[Candidate] = []
    for driver in drivers:
        if driver.pk in busy_ids:
            continue

        fresh = (
            driver.has_location
            and driver.last_location_update is not None
            and now - driver.last_location_update <= stale_after
        )

        if not fresh or pickup is None:
            if not require_location and radius_miles is None:
                candidates.append(Candidate(driver, None))
            continue

        distance = distance_miles(
            pickup[0], pickup[1],
            float(driver.current_latitude), float(driver.current_longitude),
        )
        if radius_miles is not None and distance > radius_miles:
            continue

        candidates.append(Candidate(driver, round(distance, 2)))

    candidates.sort(key=_sort_key)

    logger.debug(
        "Found %d eligible driver(s) for load %s (radius=%s mi, hub_agnostic=%s)",
        len(candidates), load.pk, radius_miles, hub_agnostic,
    )
    return candidates
