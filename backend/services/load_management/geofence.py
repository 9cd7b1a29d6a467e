"""
GPS geofence monitor.

Turns a stream of driver location pings into arrival/departure events:

1. detect_geofence_transition() - pure decision over (status, distances, accuracy)
2. process_location_update() - resolves the driver's load, records the
   GeofenceEvent and drives the LoadStatusMachine

Each (load, event_type) pair fires at most once; repeated pings inside the
fence are ignored.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from django.conf import settings
from django.db import IntegrityError, transaction

from common.utils import calculate_distance
from loads.models import GeofenceEvent, Load
from .exceptions import AssignmentConflictError, InvalidTransitionError
from .status_machine import ACTIVE_STATUSES, transition_load

logger = logging.getLogger(__name__)

GEOFENCE_ACTOR = "system:geofence"


@dataclass(frozen=True)
class GeofenceConfig:
    arrival_radius_m: float = 150.0
    departure_radius_m: float = 300.0
    max_accuracy_m: float = 100.0

    @classmethod
    def from_settings(cls) -> "GeofenceConfig":
        return cls(
            arrival_radius_m=float(getattr(settings, "GEOFENCE_ARRIVAL_RADIUS_METERS", 150)),
            departure_radius_m=float(getattr(settings, "GEOFENCE_DEPARTURE_RADIUS_METERS", 300)),
            max_accuracy_m=float(getattr(settings, "GEOFENCE_MAX_ACCURACY_METERS", 100)),
        )


@dataclass(frozen=True)
class GeofenceTransition:
    event_type: str
    new_status: str
    stop: str
    distance_m: float


def detect_geofence_transition(
    status: str,
    pickup_distance_m: Optional[float],
    delivery_distance_m: Optional[float],
    accuracy_m: Optional[float],
    recorded_events: Iterable[str] = (),
    config: Optional[GeofenceConfig] = None,
) -> Optional[GeofenceTransition]:
    """
    Decide whether a location sample crosses a pickup/delivery fence.

    Args:
        status: Current load status
        pickup_distance_m: Distance to pickup (None if pickup has no coordinates)
        delivery_distance_m: Distance to delivery (None if delivery has no coordinates)
        accuracy_m: Reported GPS accuracy; unknown or poor fixes never trigger
        recorded_events: Event types already recorded for this load
        config: Fence thresholds

    Returns:
        The transition to apply, or None
    """
    config = config or GeofenceConfig()
    recorded = set(recorded_events)

    if accuracy_m is None or accuracy_m > config.max_accuracy_m:
        return None

    pickup_arrived = 'arrived_pickup' in recorded

    if status in ('assigned', 'in_progress') and not pickup_arrived:
        if pickup_distance_m is not None and pickup_distance_m <= config.arrival_radius_m:
            return GeofenceTransition('arrived_pickup', 'arrived_pickup', 'pickup', pickup_distance_m)
        return None

    if status == 'arrived_pickup':
        if (
            'departed_pickup' not in recorded
            and pickup_distance_m is not None
            and pickup_distance_m > config.departure_radius_m
        ):
            return GeofenceTransition('departed_pickup', 'in_transit', 'pickup', pickup_distance_m)
        return None

    en_route_to_delivery = status == 'in_transit' or (status == 'in_progress' and pickup_arrived)
    if en_route_to_delivery and 'arrived_delivery' not in recorded:
        if delivery_distance_m is not None and delivery_distance_m <= config.arrival_radius_m:
            return GeofenceTransition('arrived_delivery', 'arrived_delivery', 'delivery', delivery_distance_m)

    return None


# ===================== Location Stream Handler =====================

def resolve_active_load(driver, active_load_id: Optional[int] = None) -> Optional[Load]:
    """The load a ping applies to: the one named by the device, else the driver's current one."""
    loads = Load.objects.filter(driver=driver, status__in=ACTIVE_STATUSES)
    if active_load_id is not None:
        return loads.filter(pk=active_load_id).first()
    return loads.order_by('-assigned_at', '-id').first()


def process_location_update(driver, location, config: Optional[GeofenceConfig] = None) -> Optional[GeofenceEvent]:
    """
    Evaluate one stored DriverLocation against the driver's active load.

    Returns:
        The GeofenceEvent that was recorded, or None
    """
    config = config or GeofenceConfig.from_settings()

    load = resolve_active_load(driver, location.active_load_id)
    if load is None:
        return None

    lat = float(location.latitude)
    lng = float(location.longitude)

    pickup_distance = None
    if load.has_pickup_coordinates:
        pickup_distance = calculate_distance(load.pickup_latitude, load.pickup_longitude, lat, lng)

    delivery_distance = None
    if load.has_delivery_coordinates:
        delivery_distance = calculate_distance(load.delivery_latitude, load.delivery_longitude, lat, lng)

    recorded = set(load.geofence_events.values_list('event_type', flat=True))

    transition = detect_geofence_transition(
        load.status,
        pickup_distance,
        delivery_distance,
        location.accuracy,
        recorded,
        config,
    )
    if transition is None:
        return None

    try:
        with transaction.atomic():
            event = GeofenceEvent.objects.create(
                load=load,
                driver=driver,
                event_type=transition.event_type,
                latitude=location.latitude,
                longitude=location.longitude,
                accuracy=location.accuracy,
                distance_meters=round(transition.distance_m, 1),
                triggered_at=location.recorded_at,
            )
            transition_load(
                load.pk,
                transition.new_status,
                GEOFENCE_ACTOR,
                reason=(
                    f"Auto-detected by GPS geofence ({lat:.6f}, {lng:.6f}), "
                    f"{round(transition.distance_m)}m from {transition.stop}"
                ),
                latitude=location.latitude,
                longitude=location.longitude,
            )
    except IntegrityError:
        # Another ping for the same load already recorded this event
        logger.debug("Geofence %s for load %s already recorded", transition.event_type, load.pk)
        return None
    except (InvalidTransitionError, AssignmentConflictError) as e:
        logger.info("Geofence %s ignored for load %s: %s", transition.event_type, load.pk, e)
        return None

    logger.info(
        "Geofence %s for load %s by driver %s (%.0fm)",
        transition.event_type, load.pk, driver.pk, transition.distance_m,
    )
    return event
