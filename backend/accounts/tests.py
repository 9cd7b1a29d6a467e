from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from drivers.models import Driver
from .models import User


class AuthFlowTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_register_driver_creates_roster_entry(self):
        response = self.client.post(reverse("register"), {
            "username": "maria",
            "password": "driver1234",
            "email": "maria@example.com",
            "role": "driver",
            "phone_number": "6025550101",
            "vehicle_number": "AZ-4410",
            "vehicle_type": "cargo_van",
            "hub": "tucson",
        }, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertIn("access", response.data["tokens"])
        driver = Driver.objects.get(user__username="maria")
        self.assertEqual(driver.vehicle_number, "AZ-4410")
        self.assertEqual(driver.hub, "tucson")
        self.assertEqual(driver.status, "inactive")

    def test_driver_registration_requires_vehicle(self):
        response = self.client.post(reverse("register"), {
            "username": "omar",
            "password": "driver1234",
            "role": "driver",
        }, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertIn("vehicle_number", response.data)
        self.assertFalse(User.objects.filter(username="omar").exists())

    def test_register_dispatcher_has_no_driver_profile(self):
        response = self.client.post(reverse("register"), {
            "username": "dana",
            "password": "dispatch1234",
            "role": "dispatcher",
        }, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertFalse(Driver.objects.filter(user__username="dana").exists())

    def test_login(self):
        User.objects.create_user(username="dana", password="dispatch1234", role="dispatcher")

        ok = self.client.post(reverse("login"), {"username": "dana", "password": "dispatch1234"}, format="json")
        bad = self.client.post(reverse("login"), {"username": "dana", "password": "nope"}, format="json")

        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.data["user"]["role"], "dispatcher")
        self.assertEqual(bad.status_code, 400)

    def test_actor_label(self):
        user = User.objects.create_user(username="dana", password="dispatch1234", role="dispatcher")

        self.assertEqual(user.actor_label, f"dispatcher:{user.pk}")
