from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from services.dispatch import get_driver_suggestion
from services.load_management import LoadNotFoundError

from .factories import PICKUP, make_assigned_load, make_driver, make_load, north_of


class DriverSuggestionTests(TestCase):
    def setUp(self):
        self.now = timezone.now()
        self.load = make_load()
        self.near = make_driver("near", north_of(PICKUP, 3))
        self.mid = make_driver("mid", north_of(PICKUP, 12))
        self.no_gps = make_driver("no_gps")
        self.hauler = make_driver("hauler", north_of(PICKUP, 3))
        for n in range(2):
            make_assigned_load(
                self.hauler,
                reference_number=f"PHX-DONE-{n}",
                status='completed',
                assigned_at=self.now,
            )

    def test_drivers_are_ranked_by_score(self):
        suggestions = get_driver_suggestion(self.load.id, now=self.now)

        self.assertEqual(
            [(s.driver, s.score) for s in suggestions],
            [(self.near, 100), (self.mid, 78), (self.no_gps, 73), (self.hauler, 66)],
        )
        self.assertEqual(suggestions[3].loads_today, 2)
        self.assertIsNone(suggestions[2].distance_miles)
        self.assertIn("No recent GPS position", suggestions[2].reasoning)

    def test_eta_and_cutoff(self):
        suggestions = get_driver_suggestion(
            self.load.id, cutoff_time=self.now + timedelta(minutes=10), now=self.now,
        )
        by_driver = {s.driver: s for s in suggestions}

        self.assertEqual(by_driver[self.near].eta_minutes, 6)
        self.assertTrue(by_driver[self.near].meets_cutoff)
        self.assertEqual(by_driver[self.mid].eta_minutes, 24)
        self.assertFalse(by_driver[self.mid].meets_cutoff)
        self.assertIsNone(by_driver[self.no_gps].meets_cutoff)

    def test_pickup_override_moves_the_reference_point(self):
        suggestions = get_driver_suggestion(
            self.load.id, *north_of(PICKUP, 12), now=self.now,
        )

        self.assertEqual(suggestions[0].driver, self.mid)
        self.assertLess(suggestions[0].distance_miles, 0.1)

    def test_busy_drivers_are_not_suggested(self):
        make_assigned_load(self.near, reference_number="PHX-ACTIVE")

        suggestions = get_driver_suggestion(self.load.id, now=self.now)

        self.assertNotIn(self.near, [s.driver for s in suggestions])

    def test_at_most_ten_suggestions(self):
        for i in range(10):
            make_driver(f"extra_{i}", north_of(PICKUP, 20 + i))

        self.assertEqual(len(get_driver_suggestion(self.load.id, now=self.now)), 10)

    def test_unknown_load(self):
        with self.assertRaises(LoadNotFoundError):
            get_driver_suggestion(999999)
