"""
Seed a few Phoenix drivers and a load, blast it, and race two accepts.

Run against a development database:
    python scripts/demo_blast.py
"""

import os
import sys
from datetime import timedelta
from pathlib import Path

import django

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "app_backend.settings")
django.setup()

from django.utils import timezone  # noqa: E402
from accounts.models import User  # noqa: E402
from drivers.models import Driver  # noqa: E402
from loads.models import Load  # noqa: E402
from services.dispatch import accept_blast, cancel_open_blast_for_load, create_blast  # noqa: E402
from services.load_management import TERMINAL_STATUSES, transition_load  # noqa: E402

PICKUP = (33.4484, -112.0740)


def ensure_dispatcher(username: str) -> User:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={"role": "dispatcher", "email": f"{username}@example.com"},
    )
    if created:
        user.set_password("demo1234")
        user.save()
    return user


def ensure_driver(username: str, vehicle_number: str, miles_north: float) -> Driver:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={"role": "driver", "phone_number": "6025550199", "email": f"{username}@example.com"},
    )
    if created:
        user.set_password("demo1234")
        user.save()

    driver, _ = Driver.objects.update_or_create(
        user=user,
        defaults={
            "vehicle_number": vehicle_number,
            "hub": "phoenix",
            "status": "active",
            "current_latitude": round(PICKUP[0] + miles_north / 69.09, 6),
            "current_longitude": PICKUP[1],
            "current_accuracy": 10.0,
            "last_location_update": timezone.now(),
            "shift_started_at": timezone.now() - timedelta(hours=3),
        },
    )
    return driver


def reset_demo_loads():
    """Cancel loads left over from earlier runs so their drivers are free again."""
    leftovers = Load.objects.filter(reference_number__startswith="DEMO-").exclude(status__in=TERMINAL_STATUSES)
    for load in leftovers:
        cancel_open_blast_for_load(load, reason="Demo reset")
        transition_load(load.pk, "cancelled", "system:demo", "Demo reset")


def create_demo_load(dispatcher: User) -> Load:
    return Load.objects.create(
        reference_number=f"DEMO-{timezone.now():%H%M%S}",
        dispatcher=dispatcher,
        hub="phoenix",
        pickup_address="1 N Central Ave, Phoenix",
        pickup_latitude=PICKUP[0],
        pickup_longitude=PICKUP[1],
        delivery_address="Sky Harbor Cargo, Phoenix",
        delivery_latitude=33.4352,
        delivery_longitude=-112.0101,
    )


def main():
    dispatcher = ensure_dispatcher("demo_dispatcher")
    near = ensure_driver("demo_driver_near", "DM-1001", 3)
    mid = ensure_driver("demo_driver_mid", "DM-1002", 8)
    ensure_driver("demo_driver_far", "DM-1999", 15)

    reset_demo_loads()
    load = create_demo_load(dispatcher)

    blast = create_blast(load.id, radius_miles=10, created_by=dispatcher, message="Demo blast")
    print(f"Blast #{blast.id} sent to {blast.drivers_notified} driver(s) (far driver should be skipped).")
    for response in blast.responses.select_related("driver__user"):
        print(f"  {response.driver.user.username}: {response.distance_miles} mi ({response.status})")

    first = accept_blast(blast.id, mid)
    second = accept_blast(blast.id, near)
    print(f"{mid.user.username}: {first.outcome} ({first.message})")
    print(f"{near.user.username}: {second.outcome} ({second.message})")

    load.refresh_from_db()
    print(f"Load {load.reference_number} is {load.status}, driver={load.driver.user.username if load.driver else None}")


if __name__ == "__main__":
    main()
