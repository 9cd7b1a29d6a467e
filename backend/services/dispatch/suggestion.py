"""
Driver suggestions for manual assignment.

Scores every available driver for a load on three things: how idle they
are, how close they are to pickup, and how much they have already hauled
today. Read-only; nothing is assigned or notified.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from django.conf import settings
from django.db.models import Count
from django.utils import timezone

from drivers.models import Driver
from loads.models import Load
from services.load_management.exceptions import LoadNotFoundError
from .eligibility import find_eligible_drivers

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 10

# (upper bound in miles, points)
DISTANCE_POINTS = [(5, 45), (10, 34), (20, 23), (30, 12)]
FAR_DISTANCE_POINTS = 5
NO_GPS_DISTANCE_POINTS = 18

WORKLOAD_POINTS = {0: 25, 1: 18, 2: 11}
BUSY_WORKLOAD_POINTS = 5


@dataclass
class DriverSuggestion:
    driver: Driver
    score: int
    distance_miles: Optional[float]
    eta_minutes: Optional[int]
    loads_today: int
    meets_cutoff: Optional[bool] = None
    reasoning: List[str] = field(default_factory=list)


def _status_points(loads_today: int) -> int:
    if loads_today == 0:
        return 30
    if loads_today == 1:
        return 20
    return 10


def _distance_points(distance: Optional[float]) -> int:
    if distance is None:
        return NO_GPS_DISTANCE_POINTS
    for limit, points in DISTANCE_POINTS:
        if distance < limit:
            return points
    return FAR_DISTANCE_POINTS


def _workload_points(loads_today: int) -> int:
    return WORKLOAD_POINTS.get(loads_today, BUSY_WORKLOAD_POINTS)


def _loads_today_by_driver(driver_ids, now) -> dict:
    start_of_day = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    rows = (
        Load.objects.filter(driver_id__in=driver_ids, assigned_at__gte=start_of_day)
        .values('driver_id')
        .annotate(total=Count('id'))
    )
    return {row['driver_id']: row['total'] for row in rows}


def get_driver_suggestion(
    load_id: int,
    pickup_lat: Optional[float] = None,
    pickup_lng: Optional[float] = None,
    cutoff_time=None,
    now=None,
) -> List[DriverSuggestion]:
    """
    Rank drivers for manually assigning a load.

    Args:
        load_id: ID of the load
        pickup_lat: Pickup latitude override (defaults to the load's)
        pickup_lng: Pickup longitude override (defaults to the load's)
        cutoff_time: Optional time the driver must reach pickup by
        now: Reference time

    Returns:
        Up to 10 DriverSuggestion, best first

    Raises:
        LoadNotFoundError: if the load does not exist
    """
    try:
        load = Load.objects.get(pk=load_id)
    except Load.DoesNotExist:
        raise LoadNotFoundError(f"Load {load_id} not found")

    now = now or timezone.now()
    speed_mph = float(getattr(settings, "SUGGESTION_AVERAGE_SPEED_MPH", 30))

    pickup = None
    if pickup_lat is not None and pickup_lng is not None:
        pickup = (float(pickup_lat), float(pickup_lng))

    candidates = find_eligible_drivers(load, None, pickup=pickup, require_location=False, now=now)
    loads_today = _loads_today_by_driver([c.driver.pk for c in candidates], now)

    suggestions: List[DriverSuggestion] = []
    for candidate in candidates:
        hauled = loads_today.get(candidate.driver.pk, 0)
        distance = candidate.distance_miles
        reasoning = []

        if hauled == 0:
            reasoning.append("Available, no loads yet today")
        else:
            reasoning.append(f"Available, {hauled} load{'s' if hauled != 1 else ''} today")

        eta = None
        if distance is None:
            reasoning.append("No recent GPS position")
        else:
            eta = int(round(distance / speed_mph * 60))
            reasoning.append(f"{distance:.1f} mi from pickup (~{eta} min)")

        meets_cutoff = None
        if cutoff_time is not None and eta is not None:
            meets_cutoff = now + timedelta(minutes=eta) <= cutoff_time
            reasoning.append("Can reach pickup before cutoff" if meets_cutoff else "Would miss the cutoff")

        score = _status_points(hauled) + _distance_points(distance) + _workload_points(hauled)
        suggestions.append(DriverSuggestion(
            driver=candidate.driver,
            score=score,
            distance_miles=distance,
            eta_minutes=eta,
            loads_today=hauled,
            meets_cutoff=meets_cutoff,
            reasoning=reasoning,
        ))

    suggestions.sort(key=lambda s: (
        -s.score,
        s.distance_miles is None,
        s.distance_miles or 0.0,
        s.driver.pk,
    ))

    logger.debug("Scored %d driver(s) for load %s", len(suggestions), load.pk)
    return suggestions[:MAX_SUGGESTIONS]
