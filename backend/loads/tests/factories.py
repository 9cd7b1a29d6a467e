"""Shared builders for load and dispatch tests."""

from datetime import timedelta
from itertools import count

from django.utils import timezone

from accounts.models import User
from drivers.models import Driver
from loads.models import Load

# Downtown Phoenix
PICKUP = (33.45, -112.07)
DELIVERY = (33.55, -112.07)

# Statute miles per degree of latitude on the haversine sphere
MILES_PER_DEGREE_LAT = 69.09

_vehicle_numbers = count(1000)


def north_of(point, miles):
    """A point ``miles`` due north of ``point``."""
    return point[0] + miles / MILES_PER_DEGREE_LAT, point[1]


def make_dispatcher(username="dispatcher"):
    return User.objects.create_user(
        username=username,
        password="dispatch1234",
        role="dispatcher",
        phone_number="6025550100",
    )


def make_driver(
    username,
    position=None,
    hub="phoenix",
    status="active",
    vehicle_type="",
    located_at=None,
    shift_started_at=None,
):
    user = User.objects.create_user(
        username=username,
        password="driver1234",
        role="driver",
        phone_number="6025550199",
    )
    lat, lng = position if position is not None else (None, None)
    if position is not None and located_at is None:
        located_at = timezone.now()
    return Driver.objects.create(
        user=user,
        hub=hub,
        status=status,
        vehicle_number=f"AZ-{next(_vehicle_numbers)}",
        vehicle_type=vehicle_type,
        current_latitude=lat,
        current_longitude=lng,
        current_accuracy=10.0 if position is not None else None,
        last_location_update=located_at,
        shift_started_at=shift_started_at or (timezone.now() - timedelta(hours=2)),
    )


def make_load(dispatcher=None, pickup=PICKUP, delivery=DELIVERY, **fields):
    fields.setdefault("reference_number", "PHX-1001")
    fields.setdefault("hub", "phoenix")
    fields.setdefault("status", "pending")
    return Load.objects.create(
        dispatcher=dispatcher,
        pickup_address="1 N Central Ave, Phoenix",
        pickup_latitude=pickup[0] if pickup else None,
        pickup_longitude=pickup[1] if pickup else None,
        delivery_address="Sky Harbor Cargo, Phoenix",
        delivery_latitude=delivery[0] if delivery else None,
        delivery_longitude=delivery[1] if delivery else None,
        **fields,
    )


def make_assigned_load(driver, dispatcher=None, **fields):
    """A load already worked by ``driver`` (no audit trail)."""
    fields.setdefault("status", "assigned")
    fields.setdefault("assigned_at", timezone.now())
    return make_load(dispatcher=dispatcher, driver=driver, **fields)


def in_minutes(minutes):
    return timezone.now() + timedelta(minutes=minutes)
