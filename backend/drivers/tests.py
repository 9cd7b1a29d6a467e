from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from loads.tests.factories import PICKUP, make_assigned_load, make_dispatcher, make_driver, north_of
from .models import DriverLocation
from .services import update_driver_status


class DriverStatusTests(TestCase):
    def setUp(self):
        self.driver = make_driver("maria", north_of(PICKUP, 1), status="inactive")
        self.driver.shift_started_at = None
        self.driver.save(update_fields=["shift_started_at"])

    def test_going_active_starts_a_shift(self):
        update_driver_status(self.driver, "active")

        self.driver.refresh_from_db()
        self.assertEqual(self.driver.status, "active")
        self.assertIsNotNone(self.driver.shift_started_at)

    def test_break_keeps_shift_and_off_duty_ends_it(self):
        update_driver_status(self.driver, "active")
        started = self.driver.shift_started_at

        update_driver_status(self.driver, "on_break")
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.shift_started_at, started)

        update_driver_status(self.driver, "off_duty")
        self.driver.refresh_from_db()
        self.assertIsNone(self.driver.shift_started_at)


class DriverApiTests(TestCase):
    def setUp(self):
        self.driver = make_driver("maria", north_of(PICKUP, 2))
        self.client = APIClient()
        self.client.force_authenticate(user=self.driver.user)

    def test_profile(self):
        response = self.client.get(reverse("driver-profile"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["user"]["username"], "maria")
        self.assertEqual(response.data["hub"], "phoenix")

    def test_profile_update_cannot_touch_status(self):
        response = self.client.post(
            reverse("driver-profile"),
            {"vehicle_type": "box_truck", "status": "off_duty"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.vehicle_type, "box_truck")
        self.assertEqual(self.driver.status, "active")

    def test_status_update(self):
        response = self.client.put(reverse("driver-status"), {"status": "on_break"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.status, "on_break")

        bad = self.client.put(reverse("driver-status"), {"status": "napping"}, format="json")
        self.assertEqual(bad.status_code, 400)

    def test_location_ping_triggers_arrival(self):
        load = make_assigned_load(self.driver)

        response = self.client.post(
            reverse("driver-location"),
            {"latitude": PICKUP[0], "longitude": PICKUP[1], "accuracy": 6.5, "active_load_id": load.id},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["geofence_event"]["event_type"], "arrived_pickup")
        self.assertEqual(DriverLocation.objects.get(driver=self.driver).active_load_id, load.id)
        load.refresh_from_db()
        self.assertEqual(load.status, "arrived_pickup")

    def test_location_out_of_range_is_rejected(self):
        response = self.client.post(
            reverse("driver-location"), {"latitude": 95, "longitude": -112.07}, format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertFalse(DriverLocation.objects.exists())

    def test_current_load(self):
        self.assertEqual(self.client.get(reverse("driver-current-load")).status_code, 404)

        load = make_assigned_load(self.driver)
        response = self.client.get(reverse("driver-current-load"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["id"], load.id)

    def test_dispatcher_is_not_a_driver(self):
        client = APIClient()
        client.force_authenticate(user=make_dispatcher())

        self.assertEqual(client.get(reverse("driver-profile")).status_code, 403)
