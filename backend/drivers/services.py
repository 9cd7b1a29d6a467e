import logging

from django.db import transaction
from django.utils import timezone

from drivers.models import Driver, DriverLocation
from loads.models import Load
from realtime.notifications import queue_dispatcher_event
from services.load_management import process_location_update
from services.load_management.status_machine import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


# DRIVER STATUS UPDATE
def update_driver_status(driver: Driver, new_status: str) -> Driver:
    """
    Update driver duty status.
    Going active starts a new shift; leaving active ends it.
    """
    previous = driver.status
    driver.status = new_status
    update_fields = ["status"]

    if new_status == "active" and previous != "active":
        driver.shift_started_at = timezone.now()
        update_fields.append("shift_started_at")
    elif new_status in ("inactive", "off_duty"):
        driver.shift_started_at = None
        update_fields.append("shift_started_at")

    driver.save(update_fields=update_fields)
    logger.info("Driver %s status %s -> %s", driver.pk, previous, new_status)
    return driver


def update_driver_location(
    driver: Driver,
    latitude,
    longitude,
    accuracy=None,
    speed=None,
    heading=None,
    active_load_id=None,
    recorded_at=None,
):
    """
    Store a GPS ping and run it through the geofence monitor.

    Used by:
    - HTTP POST /api/driver/location/
    - WebSocket driver_location_update messages

    Returns:
        (DriverLocation, GeofenceEvent or None)
    """
    recorded_at = recorded_at or timezone.now()

    # Only keep a load reference the driver actually owns
    if active_load_id is not None and not Load.objects.filter(pk=active_load_id, driver=driver).exists():
        logger.debug("Driver %s reported foreign load %s; ignoring it", driver.pk, active_load_id)
        active_load_id = None

    with transaction.atomic():
        location = DriverLocation.objects.create(
            driver=driver,
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            speed=speed,
            heading=heading,
            active_load_id=active_load_id,
            recorded_at=recorded_at,
        )

        driver.current_latitude = latitude
        driver.current_longitude = longitude
        driver.current_accuracy = accuracy
        driver.last_location_update = recorded_at
        driver.save(update_fields=[
            "current_latitude", "current_longitude", "current_accuracy", "last_location_update",
        ])

    geofence_event = process_location_update(driver, location)

    current_load = get_current_load(driver)
    if current_load is not None:
        # Live tracking for dispatchers watching this load
        queue_dispatcher_event(
            "driver_location",
            current_load,
            "",
            {
                "latitude": float(latitude),
                "longitude": float(longitude),
                "accuracy": accuracy,
                "speed": speed,
                "heading": heading,
                "recorded_at": recorded_at.isoformat(),
            },
        )

    return location, geofence_event


def get_current_load(driver: Driver):
    """The load the driver is working right now, if any."""
    return (
        Load.objects.filter(driver=driver, status__in=ACTIVE_STATUSES)
        .order_by("-assigned_at", "-id")
        .first()
    )
