from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from services.dispatch import find_eligible_drivers

from .factories import PICKUP, make_assigned_load, make_driver, make_load, north_of


class FindEligibleDriversTests(TestCase):
    def setUp(self):
        self.load = make_load()
        self.driver_a = make_driver("driver_a", north_of(PICKUP, 3))
        self.driver_b = make_driver("driver_b", north_of(PICKUP, 8))
        self.driver_c = make_driver("driver_c", north_of(PICKUP, 15))

    def test_radius_keeps_nearby_drivers_closest_first(self):
        candidates = find_eligible_drivers(self.load, 10)

        self.assertEqual([c.driver for c in candidates], [self.driver_a, self.driver_b])
        self.assertAlmostEqual(candidates[0].distance_miles, 3.0, places=1)
        self.assertAlmostEqual(candidates[1].distance_miles, 8.0, places=1)

    def test_no_radius_returns_every_located_driver(self):
        candidates = find_eligible_drivers(self.load, None)

        self.assertEqual(
            [c.driver for c in candidates],
            [self.driver_a, self.driver_b, self.driver_c],
        )

    def test_other_hub_is_skipped_unless_hub_agnostic(self):
        tucson = make_driver("tucson_driver", north_of(PICKUP, 1), hub="tucson")

        local = find_eligible_drivers(self.load, 10)
        anywhere = find_eligible_drivers(self.load, 10, hub_agnostic=True)

        self.assertNotIn(tucson, [c.driver for c in local])
        self.assertEqual(anywhere[0].driver, tucson)

    def test_hub_match_ignores_case(self):
        self.load.hub = "Phoenix"
        self.load.save(update_fields=['hub'])

        candidates = find_eligible_drivers(self.load, 10)

        self.assertEqual(len(candidates), 2)

    def test_off_duty_and_stale_drivers_are_skipped(self):
        make_driver("on_break", north_of(PICKUP, 1), status="on_break")
        make_driver(
            "stale",
            north_of(PICKUP, 1),
            located_at=timezone.now() - timedelta(hours=3),
        )
        make_driver("no_gps")

        candidates = find_eligible_drivers(self.load, 10)

        self.assertEqual([c.driver for c in candidates], [self.driver_a, self.driver_b])

    def test_driver_working_another_load_is_skipped(self):
        make_assigned_load(self.driver_a, reference_number="PHX-2000")

        candidates = find_eligible_drivers(self.load, 10)

        self.assertEqual([c.driver for c in candidates], [self.driver_b])

    def test_vehicle_type_must_match_when_load_requires_one(self):
        reefer = make_driver("reefer", north_of(PICKUP, 5), vehicle_type="Reefer")
        self.load.vehicle_type = "reefer"
        self.load.save(update_fields=['vehicle_type'])

        candidates = find_eligible_drivers(self.load, 10)

        self.assertEqual([c.driver for c in candidates], [reefer])

    def test_equal_distance_prefers_longest_shift(self):
        spot = north_of(PICKUP, 2)
        late_starter = make_driver("late", spot, shift_started_at=timezone.now() - timedelta(hours=1))
        early_starter = make_driver("early", spot, shift_started_at=timezone.now() - timedelta(hours=6))

        candidates = find_eligible_drivers(self.load, 2.5)

        self.assertEqual([c.driver for c in candidates], [early_starter, late_starter])

    def test_unlocated_drivers_listed_last_when_location_optional(self):
        no_gps = make_driver("no_gps")

        candidates = find_eligible_drivers(self.load, None, require_location=False)

        self.assertEqual(candidates[-1].driver, no_gps)
        self.assertIsNone(candidates[-1].distance_miles)
